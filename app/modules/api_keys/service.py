import logging
from supabase import Client
from app.config import settings
from app.core.time_utils import utcnow
from app.database.supabase_client import first_row
from app.modules.api_keys import crypto
from app.modules.api_keys.schemas import ApiKeySave
from app.modules.youtube.client import YouTubeClient
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

PUBLIC_COLUMNS = (
    "id, service_name, api_key_masked, usage_count, usage_today, is_active, is_valid, "
    "validation_error, metadata, last_used_at, created_at, updated_at"
)


def _public(row: Dict[str, Any]) -> Dict[str, Any]:
    return {key: row.get(key) for key in PUBLIC_COLUMNS.split(", ") if key in row}


async def validate_youtube_key(api_key: str) -> Dict[str, Any]:
    client = YouTubeClient(api_key, max_retries=0)
    return await client.validate_key()


class ApiKeyService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def save(self, user_id: str, body: ApiKeySave) -> Dict[str, Any]:
        """Validate (optionally) and upsert the user's key for one service."""
        api_key = body.api_key.strip()
        if not crypto.validate_api_key_format(api_key, body.service_name):
            raise HTTPException(status_code=400, detail=f"Invalid {body.service_name} API key format")

        validation = {"is_valid": None, "error": None, "quota_remaining": None}
        if body.validate_key and body.service_name == "youtube":
            validation = await validate_youtube_key(api_key)
            if not validation["is_valid"]:
                raise HTTPException(status_code=400, detail=validation["error"] or "Invalid API key")

        try:
            encrypted = crypto.encrypt_api_key(api_key)
        except crypto.EncryptionConfigError as e:
            logger.error("API key encryption unavailable: %s", e)
            raise HTTPException(status_code=500, detail="API key encryption is not configured")

        metadata = {}
        if validation["quota_remaining"] is not None:
            metadata["quotaRemaining"] = validation["quota_remaining"]
        now = utcnow().isoformat()
        try:
            result = self.supabase.table("user_api_keys")\
                .upsert({
                    "user_id": user_id,
                    "service_name": body.service_name,
                    "api_key_masked": crypto.mask_api_key(api_key),
                    "encrypted_key": encrypted,
                    "is_active": True,
                    "is_valid": validation["is_valid"],
                    "validation_error": validation["error"],
                    "metadata": metadata,
                    "updated_at": now,
                }, on_conflict="user_id,service_name")\
                .execute()
        except Exception as e:
            logger.error("Failed to save API key for %s/%s: %s", user_id, body.service_name, e)
            raise HTTPException(status_code=500, detail="Failed to save API key")

        saved = first_row(result) or {}
        logger.info("Saved %s API key for %s", body.service_name, user_id)
        return _public(saved)

    async def auto_setup(self, user_id: str, service_name: str) -> Dict[str, Any]:
        """Store the server's own YouTube key for the user. Outside production only."""
        if settings.is_production:
            raise HTTPException(status_code=403, detail="Auto-setup not available in production")
        if service_name != "youtube":
            raise HTTPException(status_code=400, detail="Invalid service name")
        if not settings.youtube_api_key:
            raise HTTPException(status_code=500, detail="YouTube API key not configured in environment")

        existing = self.get(user_id, service_name)
        if existing:
            return {"data": _public(existing[0]), "message": "API key already exists"}

        body = ApiKeySave(apiKey=settings.youtube_api_key, serviceName=service_name, validate=False)
        saved = await self.save(user_id, body)
        logger.info("Auto-configured %s API key for %s", service_name, user_id)
        return {"data": saved, "message": "API key saved successfully"}

    def get(self, user_id: str, service_name: Optional[str] = None) -> List[Dict[str, Any]]:
        """Active key metadata; the encrypted value never leaves the service."""
        query = self.supabase.table("user_api_keys")\
            .select(PUBLIC_COLUMNS)\
            .eq("user_id", user_id)\
            .eq("is_active", True)
        if service_name:
            query = query.eq("service_name", service_name)
        result = query.execute()
        return result.data or []

    def get_decrypted(self, user_id: str, service_name: str = "youtube") -> Optional[str]:
        row = first_row(
            self.supabase.table("user_api_keys")
            .select("encrypted_key")
            .eq("user_id", user_id)
            .eq("service_name", service_name)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        if not row or not row.get("encrypted_key"):
            return None
        try:
            plaintext = crypto.decrypt_api_key(row["encrypted_key"])
        except (crypto.DecryptionError, crypto.EncryptionConfigError) as e:
            logger.error("Could not decrypt %s key for %s: %s", service_name, user_id, e)
            return None

        try:
            self.supabase.rpc("increment_api_key_usage", {
                "p_user_id": user_id,
                "p_service_name": service_name,
            }).execute()
        except Exception as e:
            logger.warning("Failed to record API key usage for %s: %s", user_id, e)
        return plaintext

    def delete(self, user_id: str, service_name: str) -> bool:
        try:
            result = self.supabase.table("user_api_keys")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("service_name", service_name)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not result.data:
            raise HTTPException(status_code=404, detail="API key not found")
        return True
