import logging
from supabase import Client
from app.core.time_utils import utcnow
from app.database.supabase_client import first_row
from app.modules.folders.schemas import (
    FolderCreate, FolderUpdate, FolderChannelsAdd, DEFAULT_COLOR, DEFAULT_ICON
)
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class FolderService:
    """Channel folders used to group YouTube sources for monitoring."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _owned(self, user_id: str, folder_id: str) -> Dict[str, Any]:
        folder = first_row(
            self.supabase.table("source_folders")
            .select("*")
            .eq("id", folder_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not folder:
            raise HTTPException(status_code=404, detail="Folder not found")
        return folder

    def _name_taken(self, user_id: str, name: str, exclude_id: Optional[str] = None) -> bool:
        query = self.supabase.table("source_folders")\
            .select("id")\
            .eq("user_id", user_id)\
            .eq("name", name)
        if exclude_id:
            query = query.neq("id", exclude_id)
        return bool(query.limit(1).execute().data)

    def _channels_by_folder(self, folder_ids: List[str]) -> Dict[str, List[Dict[str, Any]]]:
        if not folder_ids:
            return {}
        rows = self.supabase.table("folder_channels")\
            .select("id, folder_id, channel_id, added_at")\
            .in_("folder_id", folder_ids)\
            .execute().data or []
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for row in rows:
            grouped.setdefault(row["folder_id"], []).append(row)
        return grouped

    def _set_channel_count(self, folder_id: str) -> int:
        result = self.supabase.table("folder_channels")\
            .select("id", count="exact")\
            .eq("folder_id", folder_id)\
            .execute()
        count = result.count or 0
        self.supabase.table("source_folders")\
            .update({"channel_count": count, "updated_at": utcnow().isoformat()})\
            .eq("id", folder_id)\
            .execute()
        return count

    def list_mine(self, user_id: str) -> List[Dict[str, Any]]:
        try:
            folders = self.supabase.table("source_folders")\
                .select("*")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .execute().data or []
            channels = self._channels_by_folder([f["id"] for f in folders])
        except Exception as e:
            logger.error("Failed to fetch folders for %s: %s", user_id, e)
            raise HTTPException(status_code=500, detail="Failed to fetch folders")
        return [
            {
                **folder,
                "channelCount": len(channels.get(folder["id"], [])) or folder.get("channel_count") or 0,
                "folderChannels": channels.get(folder["id"], []),
            }
            for folder in folders
        ]

    def create(self, user_id: str, body: FolderCreate) -> Dict[str, Any]:
        if self._name_taken(user_id, body.name):
            raise HTTPException(status_code=400, detail="A folder with this name already exists")
        now = utcnow().isoformat()
        try:
            result = self.supabase.table("source_folders").insert({
                "user_id": user_id,
                "name": body.name,
                "description": (body.description or "").strip() or None,
                "color": body.color or DEFAULT_COLOR,
                "icon": body.icon or DEFAULT_ICON,
                "is_active": True,
                "channel_count": 0,
                "created_at": now,
                "updated_at": now,
            }).execute()
        except Exception as e:
            logger.error("Failed to create folder for %s: %s", user_id, e)
            raise HTTPException(status_code=500, detail="Failed to create folder")
        return first_row(result)

    def update(self, user_id: str, body: FolderUpdate) -> Dict[str, Any]:
        self._owned(user_id, body.id)
        updates: Dict[str, Any] = {"updated_at": utcnow().isoformat()}

        name = (body.name or "").strip()
        if name:
            if self._name_taken(user_id, name, exclude_id=body.id):
                raise HTTPException(status_code=400, detail="A folder with this name already exists")
            updates["name"] = name
        fields = body.model_fields_set
        if "description" in fields:
            updates["description"] = (body.description or "").strip() or None
        if "color" in fields and body.color:
            updates["color"] = body.color
        if "icon" in fields and body.icon:
            updates["icon"] = body.icon

        try:
            result = self.supabase.table("source_folders")\
                .update(updates)\
                .eq("id", body.id)\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            logger.error("Failed to update folder %s: %s", body.id, e)
            raise HTTPException(status_code=500, detail="Failed to update folder")
        return first_row(result)

    def delete(self, user_id: str, folder_id: str) -> Dict[str, Any]:
        self._owned(user_id, folder_id)
        try:
            self.supabase.table("folder_channels").delete().eq("folder_id", folder_id).execute()
        except Exception as e:
            logger.error("Failed to delete channels of folder %s: %s", folder_id, e)
            raise HTTPException(status_code=500, detail="Failed to delete folder channels")
        try:
            self.supabase.table("source_folders")\
                .delete()\
                .eq("id", folder_id)\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            logger.error("Failed to delete folder %s: %s", folder_id, e)
            raise HTTPException(status_code=500, detail="Failed to delete folder")
        return {"success": True, "message": "Folder deleted successfully"}

    def add_channels(self, user_id: str, body: FolderChannelsAdd) -> Dict[str, Any]:
        self._owned(user_id, body.folder_id)
        existing = {
            row["channel_id"]
            for row in self._channels_by_folder([body.folder_id]).get(body.folder_id, [])
        }
        now = utcnow().isoformat()
        new_ids = []
        for channel_id in body.channel_ids:
            channel_id = channel_id.strip()
            if channel_id and channel_id not in existing and channel_id not in new_ids:
                new_ids.append(channel_id)
        if new_ids:
            self.supabase.table("folder_channels").insert([
                {"folder_id": body.folder_id, "channel_id": channel_id, "added_at": now}
                for channel_id in new_ids
            ]).execute()
        return {"success": True, "added": len(new_ids), "channelCount": self._set_channel_count(body.folder_id)}

    def remove_channel(self, user_id: str, folder_id: str, channel_id: str) -> Dict[str, Any]:
        self._owned(user_id, folder_id)
        result = self.supabase.table("folder_channels")\
            .delete()\
            .eq("folder_id", folder_id)\
            .eq("channel_id", channel_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Channel is not in this folder")
        return {"success": True, "channelCount": self._set_channel_count(folder_id)}
