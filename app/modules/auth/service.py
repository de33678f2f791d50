import hashlib
import logging
import time
from supabase import Client
from app.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from app.database.supabase_client import SupabaseClient
from app.config.settings import settings
from fastapi import HTTPException
from typing import Dict, Any

logger = logging.getLogger(__name__)

# Short-lived cache of Supabase user lookups keyed by sha256(token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Sign up through Supabase Auth; the profile row is created later by init-profile."""
        try:
            user_metadata = {}
            if register_data.full_name:
                user_metadata["full_name"] = register_data.full_name

            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {"data": user_metadata}
            })
            if not auth_response.user:
                raise HTTPException(status_code=400, detail="Failed to register user")

            logger.info("Registered user %s", auth_response.user.id)
            return RegisterResponse(
                user_id=auth_response.user.id,
                email=auth_response.user.email or register_data.email,
                message="User registered successfully"
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "already registered" in error_message.lower() or "already exists" in error_message.lower():
                raise HTTPException(status_code=400, detail="User already exists")
            raise HTTPException(status_code=500, detail=f"Registration failed: {error_message}")

    def login(self, login_data: LoginRequest) -> TokenResponse:
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })
            if not auth_response.user or not auth_response.session:
                raise HTTPException(status_code=401, detail="Invalid credentials")

            return TokenResponse(
                access_token=auth_response.session.access_token,
                token_type="bearer",
                user_id=auth_response.user.id,
                email=auth_response.user.email or login_data.email
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise HTTPException(status_code=401, detail="Invalid email or password")
            raise HTTPException(status_code=500, detail=f"Login failed: {error_message}")

    def verify_password(self, email: str, password: str) -> bool:
        """Re-authenticate a user (used before destructive account operations)."""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
            return bool(auth_response.user)
        except Exception as e:
            logger.warning("Password re-authentication failed for %s: %s", email, e)
            return False

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve the Supabase user behind a bearer token, cached for a minute."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="User not authenticated")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "app_metadata": user.app_metadata or {},
                "created_at": user.created_at,
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        # Supabase access tokens are stateless JWTs; drop our cached lookup and end the client session
        _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning("Supabase sign_out failed: %s", e)
            return False

    def end_sessions(self, user_id: str) -> None:
        """Forget cached lookups for a user and sign the client session out."""
        for key, (user_data, _) in list(_AUTH_USER_CACHE.items()):
            if user_data.get("id") == user_id:
                del _AUTH_USER_CACHE[key]
        try:
            self.supabase.auth.sign_out()
        except Exception as e:
            logger.warning("Supabase sign_out failed for %s: %s", user_id, e)

    def set_admin(self, user_id: str, is_admin: bool = True) -> bool:
        """Write the admin flag into app_metadata (requires the service role key)"""
        if not settings.supabase_service_role_key:
            raise HTTPException(
                status_code=500,
                detail="Service role key not configured. Cannot update app_metadata."
            )
        try:
            admin_client = SupabaseClient.get_service_client()
            app_metadata = {"type": "super_user"} if is_admin else {"type": None}
            response = admin_client.auth.admin.update_user_by_id(
                user_id,
                {"app_metadata": app_metadata}
            )
            if not response.user:
                raise HTTPException(status_code=404, detail="User not found")
            logger.info("Admin flag for %s set to %s", user_id, is_admin)
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to update admin status: {str(e)}")
