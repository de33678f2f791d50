from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_current_user_id
from app.database.supabase_client import get_supabase
from app.modules.folders.schemas import FolderCreate, FolderUpdate, FolderChannelsAdd
from app.modules.folders.service import FolderService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/youtube/folders", tags=["folders"])


def get_folder_service(supabase: Client = Depends(get_supabase)) -> FolderService:
    return FolderService(supabase)


@router.get("")
async def list_folders(
    current_user: Dict = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
):
    return {"success": True, "folders": service.list_mine(current_user["id"])}


@router.post("", status_code=201)
async def create_folder(
    body: FolderCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
):
    return {"success": True, "folder": service.create(current_user["id"], body)}


@router.put("")
async def update_folder(
    body: FolderUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
):
    return {"success": True, "folder": service.update(current_user["id"], body)}


@router.delete("")
async def delete_folder(
    folder_id: str = Query(..., alias="id"),
    current_user: Dict = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
):
    """Delete a folder together with its channel links"""
    return service.delete(current_user["id"], folder_id)


@router.post("/channels", status_code=201)
async def add_folder_channels(
    body: FolderChannelsAdd,
    current_user: Dict = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
):
    return service.add_channels(current_user["id"], body)


@router.delete("/channels")
async def remove_folder_channel(
    folder_id: str = Query(..., alias="folderId"),
    channel_id: str = Query(..., alias="channelId"),
    current_user: Dict = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
):
    return service.remove_channel(current_user["id"], folder_id, channel_id)
