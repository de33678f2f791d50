from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_current_user_id
from app.database.supabase_client import get_supabase
from app.modules.api_keys.schemas import ApiKeyAutoSetup, ApiKeySave
from app.modules.api_keys.service import ApiKeyService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/user/api-keys", tags=["api-keys"])


def get_api_key_service(supabase: Client = Depends(get_supabase)) -> ApiKeyService:
    return ApiKeyService(supabase)


@router.get("")
async def list_api_keys(
    service: Optional[str] = Query(None),
    current_user: Dict = Depends(get_current_user_id),
    api_keys: ApiKeyService = Depends(get_api_key_service)
):
    return {"success": True, "data": api_keys.get(current_user["id"], service)}


@router.post("", status_code=201)
async def save_api_key(
    body: ApiKeySave,
    current_user: Dict = Depends(get_current_user_id),
    api_keys: ApiKeyService = Depends(get_api_key_service)
):
    """Encrypt and store an API key (validated against YouTube for youtube keys)"""
    data = await api_keys.save(current_user["id"], body)
    return {"success": True, "data": data}


@router.post("/auto-setup")
async def auto_setup_api_key(
    body: ApiKeyAutoSetup,
    current_user: Dict = Depends(get_current_user_id),
    api_keys: ApiKeyService = Depends(get_api_key_service)
):
    """Development helper: reuse the server YouTube key for this account"""
    result = await api_keys.auto_setup(current_user["id"], body.service_name)
    return {"success": True, **result}


@router.delete("")
async def delete_api_key(
    service: str = Query("youtube"),
    current_user: Dict = Depends(get_current_user_id),
    api_keys: ApiKeyService = Depends(get_api_key_service)
):
    api_keys.delete(current_user["id"], service)
    return {"success": True, "message": "API key deleted"}
