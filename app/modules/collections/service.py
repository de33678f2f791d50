import logging
from supabase import Client
from app.core.time_utils import utcnow
from app.database.supabase_client import first_row
from app.modules.collections.schemas import (
    CollectionCreate, CollectionUpdate, CollectionItemCreate, CollectionReorder
)
from typing import Any, Dict, List
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class CollectionService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get(self, collection_id: str) -> Dict[str, Any]:
        collection = first_row(
            self.supabase.table("collections")
            .select("*")
            .eq("id", collection_id)
            .limit(1)
            .execute()
        )
        if not collection:
            raise HTTPException(status_code=404, detail="Collection not found")
        return collection

    def _owned(self, user_id: str, collection_id: str) -> Dict[str, Any]:
        collection = self._get(collection_id)
        if collection["user_id"] != user_id:
            raise HTTPException(status_code=403, detail="Not the owner of this collection")
        return collection

    def _set_video_count(self, collection_id: str) -> int:
        result = self.supabase.table("collection_items")\
            .select("id", count="exact")\
            .eq("collection_id", collection_id)\
            .execute()
        count = result.count or 0
        self.supabase.table("collections")\
            .update({"video_count": count, "updated_at": utcnow().isoformat()})\
            .eq("id", collection_id)\
            .execute()
        return count

    def list_mine(self, user_id: str) -> List[Dict[str, Any]]:
        return self.supabase.table("collections")\
            .select("*")\
            .eq("user_id", user_id)\
            .order("created_at", desc=True)\
            .execute().data or []

    def get(self, user_id: str, collection_id: str) -> Dict[str, Any]:
        collection = self._get(collection_id)
        if collection["user_id"] != user_id and not collection.get("is_public"):
            raise HTTPException(status_code=404, detail="Collection not found")
        return collection

    def create(self, user_id: str, body: CollectionCreate) -> Dict[str, Any]:
        now = utcnow().isoformat()
        result = self.supabase.table("collections").insert({
            "user_id": user_id,
            **body.model_dump(),
            "video_count": 0,
            "created_at": now,
            "updated_at": now,
        }).execute()
        return first_row(result)

    def update(self, user_id: str, collection_id: str, body: CollectionUpdate) -> Dict[str, Any]:
        self._owned(user_id, collection_id)
        updates = body.model_dump(exclude_none=True)
        if not updates:
            raise HTTPException(status_code=400, detail="Nothing to update")
        updates["updated_at"] = utcnow().isoformat()
        result = self.supabase.table("collections").update(updates).eq("id", collection_id).execute()
        return first_row(result)

    def delete(self, user_id: str, collection_id: str) -> Dict[str, Any]:
        self._owned(user_id, collection_id)
        self.supabase.table("collection_items").delete().eq("collection_id", collection_id).execute()
        self.supabase.table("collections").delete().eq("id", collection_id).execute()
        return {"success": True}

    def list_items(self, user_id: str, collection_id: str) -> List[Dict[str, Any]]:
        self.get(user_id, collection_id)
        return self.supabase.table("collection_items")\
            .select("*")\
            .eq("collection_id", collection_id)\
            .order("position")\
            .execute().data or []

    def add_item(self, user_id: str, body: CollectionItemCreate) -> Dict[str, Any]:
        self._owned(user_id, body.collection_id)
        existing = self.supabase.table("collection_items")\
            .select("id")\
            .eq("collection_id", body.collection_id)\
            .eq("video_id", body.video_id)\
            .limit(1)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=400, detail="Video is already in this collection")

        last = first_row(
            self.supabase.table("collection_items")
            .select("position")
            .eq("collection_id", body.collection_id)
            .order("position", desc=True)
            .limit(1)
            .execute()
        )
        position = (last.get("position") or 0) + 1 if last else 0
        result = self.supabase.table("collection_items").insert({
            "collection_id": body.collection_id,
            "video_id": body.video_id,
            "notes": body.notes,
            "tags": body.tags,
            "position": position,
            "added_by": user_id,
            "added_at": utcnow().isoformat(),
        }).execute()
        self._set_video_count(body.collection_id)
        return first_row(result)

    def remove_item(self, user_id: str, collection_id: str, video_id: str) -> Dict[str, Any]:
        self._owned(user_id, collection_id)
        result = self.supabase.table("collection_items")\
            .delete()\
            .eq("collection_id", collection_id)\
            .eq("video_id", video_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Video is not in this collection")
        self._set_video_count(collection_id)
        return {"success": True}

    def reorder(self, user_id: str, body: CollectionReorder) -> Dict[str, Any]:
        self._owned(user_id, body.collection_id)
        for item in body.items:
            self.supabase.table("collection_items")\
                .update({"position": item.position})\
                .eq("collection_id", body.collection_id)\
                .eq("video_id", item.video_id)\
                .execute()
        return {"success": True}
