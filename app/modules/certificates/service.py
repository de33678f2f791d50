import logging
import time
import uuid
from supabase import Client
from app.core.time_utils import utcnow
from app.database.supabase_client import first_row
from app.modules.certificates.schemas import CertificateCreate, CertificateUpdate
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def certificate_grade(score: Optional[int]) -> str:
    if score is None:
        return "Pass"
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    return "Pass"


def certificate_number() -> str:
    return f"CERT-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8].upper()}"


class CertificateService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_by_id(self, certificate_id: str, user_id: str) -> Dict[str, Any]:
        cert = first_row(
            self.supabase.table("user_certificates")
            .select("*")
            .eq("id", certificate_id)
            .limit(1)
            .execute()
        )
        if not cert:
            raise HTTPException(status_code=404, detail="Certificate not found")
        if cert.get("user_id") != user_id and not cert.get("is_public"):
            raise HTTPException(status_code=403, detail="Access denied")
        return cert

    def get_for_course(self, user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
        return first_row(
            self.supabase.table("user_certificates")
            .select("*")
            .eq("user_id", user_id)
            .eq("course_id", course_id)
            .limit(1)
            .execute()
        )

    def list_mine(self, user_id: str) -> List[Dict[str, Any]]:
        return self.supabase.table("user_certificates")\
            .select("*")\
            .eq("user_id", user_id)\
            .order("issued_at", desc=True)\
            .execute().data or []

    def issue(self, user_id: str, body: CertificateCreate) -> Dict[str, Any]:
        if self.get_for_course(user_id, body.course_id):
            raise HTTPException(status_code=409, detail="Certificate already exists for this course")
        score = 100 if body.score is None else min(100, max(0, body.score))
        number = certificate_number()
        result = self.supabase.table("user_certificates").insert({
            "user_id": user_id,
            "course_id": body.course_id,
            "certificate_number": number,
            "completion_date": (body.completion_date or utcnow()).isoformat(),
            "issued_at": utcnow().isoformat(),
            "score": score,
            "grade": certificate_grade(body.score),
            "is_public": False,
        }).execute()
        logger.info("Certificate %s issued to %s for course %s", number, user_id, body.course_id)
        return first_row(result)

    def update(self, user_id: str, body: CertificateUpdate) -> Dict[str, Any]:
        cert = first_row(
            self.supabase.table("user_certificates")
            .select("user_id")
            .eq("id", body.id)
            .limit(1)
            .execute()
        )
        if not cert or cert.get("user_id") != user_id:
            raise HTTPException(status_code=403, detail="Certificate not found or access denied")
        updates = body.model_dump(exclude_none=True, exclude={"id"})
        if not updates:
            raise HTTPException(status_code=400, detail="Nothing to update")
        result = self.supabase.table("user_certificates")\
            .update(updates)\
            .eq("id", body.id)\
            .execute()
        return first_row(result)
