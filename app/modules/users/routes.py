from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_current_user_id, get_auth_service, require_admin
from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.auth.service import AuthService
from app.modules.users import nickname as nicknames
from app.modules.users.schemas import (
    ProfileUpdate, NaverCafeVerifyRequest, NaverCafeReview, NaverCafeStatus, AccountDeleteRequest
)
from app.modules.users.service import UserService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/user", tags=["users"])
account_router = APIRouter(prefix="/account", tags=["account"])
admin_router = APIRouter(prefix="/admin/verify-cafe", tags=["admin"])


def get_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


def get_admin_user_service(supabase: Client = Depends(get_service_supabase)) -> UserService:
    return UserService(supabase)


@router.get("/profile")
async def get_profile(
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    return {"profile": service.get_profile(current_user["id"])}


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    return {"profile": service.update_profile(current_user["id"], body)}


@router.post("/init-profile")
async def init_profile(
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    """Called once after the first sign-in (OAuth callback) to create the profile row."""
    return service.init_profile(current_user)


@router.get("/generate-nickname")
async def generate_nickname(
    count: int = Query(1, ge=1, le=10),
    current_user: Dict = Depends(get_current_user_id),
):
    if count == 1:
        return {"nickname": nicknames.generate_nickname()}
    return {"nicknames": nicknames.generate_multiple(count)}


@router.get("/naver-cafe", response_model=NaverCafeStatus)
async def get_naver_cafe(
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    return service.get_naver_cafe_status(current_user["id"])


@router.post("/naver-cafe")
async def verify_naver_cafe(
    body: NaverCafeVerifyRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    return service.verify_naver_cafe(current_user["id"], body)


@router.delete("/naver-cafe")
async def remove_naver_cafe(
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    return service.remove_naver_cafe(current_user["id"])


@account_router.delete("")
async def delete_account(
    body: AccountDeleteRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
    auth_service: AuthService = Depends(get_auth_service),
    admin_client: Client = Depends(get_service_supabase),
):
    """Anonymise the caller's account after re-checking the password"""
    password_ok = auth_service.verify_password(current_user.get("email") or "", body.password)
    result = service.delete_account(current_user, body, password_ok, admin_client=admin_client)
    auth_service.end_sessions(current_user["id"])
    return result


@account_router.get("/deletion-status")
async def deletion_status(
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    return service.get_deletion_status(current_user["id"])


@admin_router.get("")
async def list_pending_verifications(
    admin: Dict = Depends(require_admin),
    service: UserService = Depends(get_admin_user_service)
):
    pending = service.list_pending_naver_cafe()
    return {"success": True, "data": pending, "total": len(pending)}


@admin_router.post("")
async def review_verification(
    body: NaverCafeReview,
    admin: Dict = Depends(require_admin),
    service: UserService = Depends(get_admin_user_service)
):
    """Approve or reject a user's Naver Cafe link"""
    return service.review_naver_cafe(admin["id"], body)
