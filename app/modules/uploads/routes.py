from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from app.config import settings
from app.core.dependencies import get_current_user_id
from app.core.rate_limit import limiter
from app.modules.uploads.service import UploadService
from app.modules.uploads.storage import ObjectStorage, get_storage
from typing import Dict, Optional

router = APIRouter(prefix="/upload", tags=["uploads"])


def get_upload_service(storage: ObjectStorage = Depends(get_storage)) -> UploadService:
    return UploadService(storage)


@router.post("")
@limiter.limit(settings.upload_rate_limit)
async def upload_image(
    request: Request,
    file: UploadFile = File(...),
    bucket: Optional[str] = Form(None),
    current_user: Dict = Depends(get_current_user_id),
    service: UploadService = Depends(get_upload_service)
):
    """Upload an image (jpeg/png/webp, 5MB max)"""
    content = await file.read()
    return service.upload_image(current_user["id"], content, file.filename, file.content_type, bucket)


@router.delete("")
async def delete_image(
    path: str = Query(..., min_length=1),
    bucket: Optional[str] = Query(None),
    current_user: Dict = Depends(get_current_user_id),
    service: UploadService = Depends(get_upload_service)
):
    return service.delete_image(current_user["id"], path, bucket)
