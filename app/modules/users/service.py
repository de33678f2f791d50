import hashlib
import logging
import time
from supabase import Client
from app.core.time_utils import utcnow
from app.database.supabase_client import first_row
from app.modules.users import nickname as nicknames
from app.modules.users.schemas import (
    ProfileUpdate, NaverCafeVerifyRequest, NaverCafeReview, AccountDeleteRequest
)
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

DELETED_USER_NAME = "[삭제된 사용자]"
DELETED_USERNAME_PREFIX = "deleted_user_"
MAX_NICKNAME_ATTEMPTS = 10

# Rows removed on account deletion; failures are logged and skipped.
# collection_items go with their collection (on delete cascade).
_USER_OWNED_TABLES = ("collections", "user_api_keys", "alert_rules")


def _is_unique_violation(error: Exception, column: str) -> bool:
    code = getattr(error, "code", None)
    message = str(getattr(error, "message", "") or error)
    return (code == "23505" or "23505" in message) and column in message


def author_card(user_id: Optional[str], profile: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Public author info attached to posts, proofs and comments"""
    if not profile:
        return {"id": user_id, "username": "Anonymous", "nickname": nicknames.ANONYMOUS, "avatar_url": None}
    return {
        "id": user_id,
        "username": profile.get("username") or "Anonymous",
        "nickname": nicknames.display_nickname(profile),
        "avatar_url": profile.get("avatar_url"),
    }


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        profile = first_row(result)
        if not profile:
            raise HTTPException(status_code=404, detail="Profile not found")
        return profile

    def get_profiles_by_ids(self, user_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """Map of user_id -> public profile fields, for decorating lists with authors."""
        ids = sorted({uid for uid in user_ids if uid})
        if not ids:
            return {}
        result = self.supabase.table("profiles")\
            .select("id, username, full_name, avatar_url, random_nickname, naver_cafe_nickname, naver_cafe_verified")\
            .in_("id", ids)\
            .execute()
        return {row["id"]: row for row in (result.data or [])}

    def update_profile(self, user_id: str, data: ProfileUpdate) -> Dict[str, Any]:
        update_data = data.model_dump(exclude_none=True)
        update_data["updated_at"] = utcnow().isoformat()
        try:
            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            if _is_unique_violation(e, "username"):
                raise HTTPException(status_code=409, detail="Username already taken")
            logger.error("Failed to update profile %s: %s", user_id, e)
            raise HTTPException(status_code=500, detail="Failed to update profile")
        profile = first_row(result)
        if not profile:
            raise HTTPException(status_code=404, detail="Profile not found")
        return profile

    def _unique_random_nickname(self, user_id: str) -> str:
        for _ in range(MAX_NICKNAME_ATTEMPTS):
            candidate = nicknames.generate_nickname()
            taken = self.supabase.table("profiles")\
                .select("id")\
                .eq("random_nickname", candidate)\
                .limit(1)\
                .execute()
            if not taken.data:
                return candidate
        return f"user_{user_id[:8]}"

    def init_profile(self, user: Dict[str, Any]) -> Dict[str, Any]:
        """Create the profile row after the first sign-in, or backfill a missing random nickname."""
        user_id = user["id"]
        try:
            existing = first_row(
                self.supabase.table("profiles")
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
            now = utcnow().isoformat()
            if not existing:
                email = user.get("email") or ""
                result = self.supabase.table("profiles").insert({
                    "id": user_id,
                    "email": email,
                    "username": email.split("@")[0] if email else "user",
                    "full_name": (user.get("user_metadata") or {}).get("full_name"),
                    "random_nickname": self._unique_random_nickname(user_id),
                    "naver_cafe_verified": False,
                    "created_at": now,
                    "updated_at": now,
                }).execute()
                logger.info("Initialised profile for %s", user_id)
                return {"message": "Profile initialized successfully", "profile": first_row(result), "isNew": True}

            if not existing.get("random_nickname"):
                result = self.supabase.table("profiles")\
                    .update({"random_nickname": self._unique_random_nickname(user_id), "updated_at": now})\
                    .eq("id", user_id)\
                    .execute()
                return {"message": "Random nickname assigned", "profile": first_row(result), "isNew": False}

            return {"message": "Profile already exists", "profile": existing, "isNew": False}
        except HTTPException:
            raise
        except Exception as e:
            logger.error("Failed to initialise profile %s: %s", user_id, e)
            raise HTTPException(status_code=500, detail="Failed to create profile")

    # Naver Cafe verification

    def get_naver_cafe_status(self, user_id: str) -> Dict[str, Any]:
        profile = self.get_profile(user_id)
        history = self.supabase.table("naver_cafe_verifications")\
            .select("*")\
            .eq("user_id", user_id)\
            .order("created_at", desc=True)\
            .limit(5)\
            .execute()
        return {
            "verified": bool(profile.get("naver_cafe_verified")),
            "nickname": profile.get("naver_cafe_nickname"),
            "memberUrl": profile.get("naver_cafe_member_url"),
            "verifiedAt": profile.get("naver_cafe_verified_at"),
            "verificationHistory": history.data or [],
        }

    def verify_naver_cafe(self, user_id: str, body: NaverCafeVerifyRequest) -> Dict[str, Any]:
        if not nicknames.is_valid_cafe_url(body.member_url):
            raise HTTPException(
                status_code=400,
                detail=f"Invalid URL. Only {nicknames.CAFE_NAME} cafe URLs are allowed"
            )

        in_use = self.supabase.table("profiles")\
            .select("id")\
            .eq("naver_cafe_nickname", body.nickname)\
            .neq("id", user_id)\
            .limit(1)\
            .execute()
        if in_use.data:
            raise HTTPException(status_code=400, detail="This nickname is already in use")

        profile = self.get_profile(user_id)
        if profile.get("naver_cafe_verified"):
            raise HTTPException(status_code=400, detail="Naver Cafe is already verified")

        now = utcnow().isoformat()
        verification = first_row(
            self.supabase.table("naver_cafe_verifications").insert({
                "user_id": user_id,
                "cafe_nickname": body.nickname,
                "verification_status": "pending",
                "verified": False,
                "created_at": now,
            }).execute()
        )
        if not verification:
            raise HTTPException(status_code=500, detail="Failed to create verification request")

        # Membership URLs are auto-approved; the cafe itself gates who has a member page
        self.supabase.table("profiles")\
            .update({
                "naver_cafe_nickname": body.nickname,
                "naver_cafe_member_url": body.member_url,
                "naver_cafe_verified": True,
                "naver_cafe_verified_at": now,
                "updated_at": now,
            })\
            .eq("id", user_id)\
            .execute()
        self.supabase.table("naver_cafe_verifications")\
            .update({"verified": True, "verification_status": "verified", "verified_at": now})\
            .eq("id", verification["id"])\
            .execute()

        logger.info("Naver Cafe verified for %s", user_id)
        return {
            "verified": True,
            "message": f"{nicknames.CAFE_NAME} cafe verification completed successfully",
            "verificationId": verification["id"],
            "cafeName": nicknames.CAFE_NAME,
        }

    def list_pending_naver_cafe(self) -> List[Dict[str, Any]]:
        """Unverified profiles that still carry a cafe nickname and member page (rejected or revoked)."""
        result = self.supabase.table("profiles")\
            .select("id, email, username, naver_cafe_nickname, naver_cafe_member_url, created_at, updated_at")\
            .eq("naver_cafe_verified", False)\
            .order("updated_at", desc=True)\
            .execute()
        return [
            row for row in result.data or []
            if row.get("naver_cafe_nickname") and row.get("naver_cafe_member_url")
        ]

    def review_naver_cafe(self, admin_id: str, body: NaverCafeReview) -> Dict[str, Any]:
        """Admin approval or rejection of a user's cafe link. Rejection keeps nickname and URL for a retry."""
        try:
            profile = self.get_profile(body.user_id)
        except HTTPException as e:
            if e.status_code == 404:
                raise HTTPException(status_code=404, detail="User profile not found")
            raise
        if body.approved and profile.get("naver_cafe_verified"):
            raise HTTPException(status_code=400, detail="User is already verified")
        if not profile.get("naver_cafe_nickname") or not profile.get("naver_cafe_member_url"):
            raise HTTPException(status_code=400, detail="No verification request found for this user")

        now = utcnow().isoformat()
        try:
            self.supabase.table("profiles")\
                .update({
                    "naver_cafe_verified": body.approved,
                    "naver_cafe_verified_at": now if body.approved else None,
                    "updated_at": now,
                })\
                .eq("id", body.user_id)\
                .execute()
        except Exception as e:
            logger.error("Failed to review Naver Cafe link for %s: %s", body.user_id, e)
            raise HTTPException(status_code=500, detail="Failed to update profile")

        open_statuses = ["pending"] if body.approved else ["pending", "verified"]
        try:
            self.supabase.table("naver_cafe_verifications")\
                .update({
                    "verification_status": "verified" if body.approved else "rejected",
                    "verified": body.approved,
                    "verified_at": now,
                    "verified_by": admin_id,
                    "rejection_reason": None if body.approved else (body.reason or "관리자 거부"),
                })\
                .eq("user_id", body.user_id)\
                .in_("verification_status", open_statuses)\
                .execute()
        except Exception as e:
            logger.warning("Failed to update verification history for %s: %s", body.user_id, e)

        if body.approved:
            logger.info("Naver Cafe link approved for %s by %s", body.user_id, admin_id)
            return {
                "success": True,
                "message": "네이버 카페 인증이 승인되었습니다",
                "data": {
                    "userId": body.user_id,
                    "nickname": profile.get("naver_cafe_nickname"),
                    "approved": True,
                    "approvedAt": now,
                },
            }
        logger.info("Naver Cafe link rejected for %s by %s", body.user_id, admin_id)
        return {
            "success": True,
            "message": "네이버 카페 인증이 거부되었습니다",
            "data": {"userId": body.user_id, "approved": False, "reason": body.reason, "rejectedAt": now},
        }

    def remove_naver_cafe(self, user_id: str) -> Dict[str, str]:
        try:
            self.supabase.table("profiles")\
                .update({
                    "naver_cafe_verified": False,
                    "naver_cafe_verified_at": None,
                    "naver_cafe_nickname": None,
                    "naver_cafe_member_url": None,
                    "updated_at": utcnow().isoformat(),
                })\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error("Failed to remove Naver Cafe link for %s: %s", user_id, e)
            raise HTTPException(status_code=500, detail="Failed to update profile")
        return {"message": "Naver Cafe verification removed successfully"}

    # Account deletion

    def delete_account(
        self,
        user: Dict[str, Any],
        body: AccountDeleteRequest,
        password_ok: bool,
        admin_client: Optional[Client] = None,
    ) -> Dict[str, Any]:
        """Anonymise the profile and drop user-owned data. auth.users is kept for referential integrity."""
        if not password_ok:
            logger.warning("Failed password verification for account deletion: %s", user["id"])
            raise HTTPException(status_code=400, detail="Invalid password")

        client = admin_client or self.supabase
        user_id = user["id"]
        deletion_id = hashlib.sha256(f"{user_id}{int(time.time() * 1000)}".encode()).hexdigest()[:16]
        deleted_at = utcnow().isoformat()

        try:
            client.table("profiles")\
                .update({
                    "full_name": DELETED_USER_NAME,
                    "username": f"{DELETED_USERNAME_PREFIX}{deletion_id}",
                    "avatar_url": None,
                    "random_nickname": None,
                    "naver_cafe_verified": False,
                    "naver_cafe_verified_at": None,
                    "naver_cafe_nickname": None,
                    "naver_cafe_member_url": None,
                    "channel_name": None,
                    "channel_url": None,
                    "updated_at": deleted_at,
                })\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error("Failed to anonymise profile %s: %s", user_id, e)
            raise HTTPException(status_code=500, detail="Failed to delete account")

        for table in _USER_OWNED_TABLES:
            try:
                client.table(table).delete().eq("user_id", user_id).execute()
            except Exception as e:
                logger.warning("Failed to delete %s rows for %s: %s", table, user_id, e)

        try:
            client.table("account_deletion_logs").insert({
                "user_id": user_id,
                "deletion_id": deletion_id,
                "reason": body.reason or "User requested account deletion",
                "email_hash": hashlib.sha256((user.get("email") or "").encode()).hexdigest(),
                "deleted_at": deleted_at,
            }).execute()
        except Exception as e:
            logger.warning("Failed to write deletion log for %s: %s", user_id, e)

        logger.info("Account anonymised: %s", deletion_id)
        return {"success": True, "message": "Account deleted successfully", "deletionId": deletion_id}

    def get_deletion_status(self, user_id: str) -> Dict[str, Any]:
        profile = self.get_profile(user_id)
        username = profile.get("username") or ""
        is_deleted = profile.get("full_name") == DELETED_USER_NAME or username.startswith(DELETED_USERNAME_PREFIX)
        if not is_deleted:
            return {"isDeleted": False, "deletedAt": None, "deletionId": None}

        deletion_id = username[len(DELETED_USERNAME_PREFIX):] or None
        log = None
        try:
            log = first_row(
                self.supabase.table("account_deletion_logs")
                .select("deleted_at")
                .eq("user_id", user_id)
                .order("deleted_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning("Failed to read deletion log for %s: %s", user_id, e)
        return {
            "isDeleted": True,
            "deletedAt": (log or {}).get("deleted_at") or profile.get("updated_at"),
            "deletionId": deletion_id,
        }
