from fastapi import APIRouter, Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import settings
from app.core.dependencies import get_current_user_id, is_admin, require_admin
from app.core.rate_limit import limiter
from app.database.supabase_client import get_supabase
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse, SetAdminRequest
)
from app.modules.auth.service import AuthService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    return credentials.credentials


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit(settings.auth_rate_limit)
async def register(
    request: Request,
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.auth_rate_limit)
async def login(
    request: Request,
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me")
async def get_me(current_user: Dict = Depends(get_current_user_id)):
    """Current authenticated user with the admin flag (for frontend UI)."""
    return {**current_user, "is_admin": is_admin(current_user)}


@router.post("/set-admin", status_code=200)
async def set_admin(
    body: SetAdminRequest,
    current_user: Dict = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    service.set_admin(body.user_id, body.is_admin)
    return {
        "message": f"User {body.user_id} admin status set to {body.is_admin}",
        "user_id": body.user_id,
        "is_admin": body.is_admin
    }
