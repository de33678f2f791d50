"""
Core dependencies for route protection and admin checks
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import settings
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[dict]:
    """Current user when a valid bearer token is sent, otherwise None (public listings)."""
    if credentials is None:
        return None
    try:
        return auth_service.get_current_user(credentials.credentials)
    except HTTPException:
        return None


def is_admin(user_data: Optional[dict]) -> bool:
    """Admin flag from app_metadata (server-side only) or the configured admin e-mail list"""
    if not user_data:
        return False
    app_metadata = user_data.get("app_metadata") or {}
    if app_metadata.get("type") == "super_user" or app_metadata.get("role") == "admin":
        return True
    email = (user_data.get("email") or "").lower()
    return bool(email) and email in settings.get_admin_emails()


def require_admin(user_data: dict = Depends(get_current_user_id)) -> dict:
    """Dependency that only lets administrators through"""
    if not is_admin(user_data):
        logger.warning("Admin access denied for user %s", user_data.get("id"))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user_data
