from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_current_user_id
from app.database.supabase_client import get_supabase
from app.modules.certificates.schemas import CertificateCreate, CertificateUpdate
from app.modules.certificates.service import CertificateService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/certificates", tags=["certificates"])


def get_certificate_service(supabase: Client = Depends(get_supabase)) -> CertificateService:
    return CertificateService(supabase)


@router.get("")
async def get_certificates(
    certificate_id: Optional[str] = Query(None, alias="id"),
    course_id: Optional[str] = Query(None, alias="courseId"),
    current_user: Dict = Depends(get_current_user_id),
    service: CertificateService = Depends(get_certificate_service)
):
    """One certificate by id, the caller's certificate for a course, or all of the caller's certificates"""
    if certificate_id:
        return {"data": service.get_by_id(certificate_id, current_user["id"])}
    if course_id:
        return {"data": service.get_for_course(current_user["id"], course_id)}
    return {"data": service.list_mine(current_user["id"])}


@router.post("", status_code=201)
async def issue_certificate(
    body: CertificateCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: CertificateService = Depends(get_certificate_service)
):
    return {"data": service.issue(current_user["id"], body), "message": "Certificate created successfully"}


@router.patch("")
async def update_certificate(
    body: CertificateUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: CertificateService = Depends(get_certificate_service)
):
    return {"data": service.update(current_user["id"], body), "message": "Certificate updated successfully"}
