from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_current_user_id
from app.database.supabase_client import get_supabase
from app.modules.collections.schemas import (
    CollectionCreate, CollectionUpdate, CollectionItemCreate, CollectionReorder
)
from app.modules.collections.service import CollectionService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/youtube/collections", tags=["collections"])


def get_collection_service(supabase: Client = Depends(get_supabase)) -> CollectionService:
    return CollectionService(supabase)


@router.get("")
async def list_collections(
    current_user: Dict = Depends(get_current_user_id),
    service: CollectionService = Depends(get_collection_service)
):
    return {"collections": service.list_mine(current_user["id"])}


@router.post("", status_code=201)
async def create_collection(
    body: CollectionCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: CollectionService = Depends(get_collection_service)
):
    return {"collection": service.create(current_user["id"], body)}


@router.get("/items")
async def list_items(
    collection_id: str = Query(...),
    current_user: Dict = Depends(get_current_user_id),
    service: CollectionService = Depends(get_collection_service)
):
    return {"items": service.list_items(current_user["id"], collection_id)}


@router.post("/items", status_code=201)
async def add_item(
    body: CollectionItemCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: CollectionService = Depends(get_collection_service)
):
    return {"item": service.add_item(current_user["id"], body)}


@router.delete("/items")
async def remove_item(
    collection_id: str = Query(...),
    video_id: str = Query(...),
    current_user: Dict = Depends(get_current_user_id),
    service: CollectionService = Depends(get_collection_service)
):
    return service.remove_item(current_user["id"], collection_id, video_id)


@router.put("/items/reorder")
async def reorder_items(
    body: CollectionReorder,
    current_user: Dict = Depends(get_current_user_id),
    service: CollectionService = Depends(get_collection_service)
):
    return service.reorder(current_user["id"], body)


@router.get("/{collection_id}")
async def get_collection(
    collection_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: CollectionService = Depends(get_collection_service)
):
    return {"collection": service.get(current_user["id"], collection_id)}


@router.put("/{collection_id}")
async def update_collection(
    collection_id: str,
    body: CollectionUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: CollectionService = Depends(get_collection_service)
):
    return {"collection": service.update(current_user["id"], collection_id, body)}


@router.delete("/{collection_id}")
async def delete_collection(
    collection_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: CollectionService = Depends(get_collection_service)
):
    return service.delete(current_user["id"], collection_id)
