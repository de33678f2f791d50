from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from app.config import settings
from app.core.dependencies import get_current_user_id, get_optional_user, is_admin
from app.core.rate_limit import limiter
from app.database.supabase_client import get_supabase
from app.modules.revenue_proofs.schemas import (
    ProofCreate, ProofUpdate, ProofCommentCreate, ProofReportCreate, ProofListResponse
)
from app.modules.revenue_proofs.service import RevenueProofService
from app.modules.uploads.storage import ObjectStorage, get_storage
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/revenue-proof", tags=["revenue-proof"])


def get_proof_service(supabase: Client = Depends(get_supabase)) -> RevenueProofService:
    return RevenueProofService(supabase)


def get_proof_service_with_storage(
    supabase: Client = Depends(get_supabase),
    storage: ObjectStorage = Depends(get_storage),
) -> RevenueProofService:
    return RevenueProofService(supabase, storage)


@router.get("", response_model=ProofListResponse)
async def list_proofs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    platform: Optional[str] = Query(None, pattern="^(youtube|instagram|tiktok|other)$"),
    period: str = Query("all", pattern="^(all|daily|weekly|monthly)$"),
    service: RevenueProofService = Depends(get_proof_service)
):
    return service.list_proofs(page, limit, platform, period)


@router.post("", status_code=201)
@limiter.limit(settings.upload_rate_limit)
async def create_proof(
    request: Request,
    title: str = Form(..., min_length=2, max_length=100),
    content: str = Form(..., min_length=10, max_length=5000),
    amount: int = Form(..., ge=0),
    platform: str = Form(..., pattern="^(youtube|instagram|tiktok|other)$"),
    screenshot: UploadFile = File(...),
    current_user: Dict = Depends(get_current_user_id),
    service: RevenueProofService = Depends(get_proof_service_with_storage)
):
    """Post today's revenue proof (one per KST day)"""
    body = ProofCreate(title=title, content=content, amount=amount, platform=platform)
    data = await screenshot.read()
    proof = service.create_proof(current_user["id"], body, data, screenshot.filename, screenshot.content_type)
    return {"success": True, "data": proof}


@router.get("/ranking")
async def ranking(
    period: str = Query("monthly", pattern="^(daily|weekly|monthly)$"),
    limit: int = Query(10, ge=1, le=100),
    current_user: Optional[Dict] = Depends(get_optional_user),
    service: RevenueProofService = Depends(get_proof_service)
):
    return service.ranking(period, limit, current_user["id"] if current_user else None)


@router.get("/my")
async def my_proofs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    include_hidden: bool = Query(False, alias="includeHidden"),
    current_user: Dict = Depends(get_current_user_id),
    service: RevenueProofService = Depends(get_proof_service)
):
    return service.my_proofs(current_user["id"], page, limit, include_hidden)


@router.delete("/my")
async def delete_all_my_proofs(
    confirm: Optional[str] = Query(None),
    current_user: Dict = Depends(get_current_user_id),
    service: RevenueProofService = Depends(get_proof_service_with_storage)
):
    return service.delete_all_mine(current_user["id"], confirm)


@router.get("/{proof_id}")
async def get_proof(
    proof_id: str,
    current_user: Optional[Dict] = Depends(get_optional_user),
    service: RevenueProofService = Depends(get_proof_service)
):
    return {"data": service.get_proof(proof_id, current_user["id"] if current_user else None)}


@router.put("/{proof_id}")
async def update_proof(
    proof_id: str,
    body: ProofUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: RevenueProofService = Depends(get_proof_service)
):
    return {"data": service.update_proof(proof_id, current_user["id"], body)}


@router.delete("/{proof_id}")
async def delete_proof(
    proof_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: RevenueProofService = Depends(get_proof_service_with_storage)
):
    service.delete_proof(proof_id, current_user["id"])
    return {"success": True}


@router.post("/{proof_id}/like")
async def toggle_like(
    proof_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: RevenueProofService = Depends(get_proof_service)
):
    return service.toggle_like(proof_id, current_user["id"])


@router.get("/{proof_id}/comment")
async def list_comments(
    proof_id: str,
    service: RevenueProofService = Depends(get_proof_service)
):
    return {"data": service.list_comments(proof_id)}


@router.post("/{proof_id}/comment", status_code=201)
async def add_comment(
    proof_id: str,
    body: ProofCommentCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: RevenueProofService = Depends(get_proof_service)
):
    return {"data": service.add_comment(proof_id, current_user["id"], body)}


@router.delete("/{proof_id}/comment")
async def delete_comment(
    proof_id: str,
    comment_id: str = Query(..., alias="commentId"),
    current_user: Dict = Depends(get_current_user_id),
    service: RevenueProofService = Depends(get_proof_service)
):
    service.delete_comment(proof_id, comment_id, current_user["id"])
    return {"success": True}


@router.post("/{proof_id}/report")
async def report_proof(
    proof_id: str,
    body: ProofReportCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: RevenueProofService = Depends(get_proof_service)
):
    return service.report(proof_id, current_user["id"], body)


@router.get("/{proof_id}/report")
async def list_reports(
    proof_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: RevenueProofService = Depends(get_proof_service)
):
    return service.get_reports(proof_id, current_user["id"], admin=is_admin(current_user))
