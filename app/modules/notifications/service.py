import logging
from supabase import Client
from app.core.time_utils import utcnow
from app.database.supabase_client import first_row
from app.modules.notifications.schemas import NotificationCreate, NotificationMarkRead
from typing import Any, Dict
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list(self, user_id: str, limit: int = 20, offset: int = 0, unread_only: bool = False) -> Dict[str, Any]:
        try:
            query = self.supabase.table("notifications")\
                .select("*", count="exact")\
                .eq("user_id", user_id)
            if unread_only:
                query = query.eq("is_read", False)
            result = query.order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            unread = self.supabase.table("notifications")\
                .select("id", count="exact")\
                .eq("user_id", user_id)\
                .eq("is_read", False)\
                .execute()
        except Exception as e:
            logger.error("Failed to fetch notifications for %s: %s", user_id, e)
            raise HTTPException(status_code=500, detail="Failed to fetch notifications")
        return {
            "notifications": result.data or [],
            "pagination": {"total": result.count or 0, "limit": limit, "offset": offset},
            "unreadCount": unread.count or 0,
        }

    def create(self, user_id: str, body: NotificationCreate, admin: bool = False) -> Dict[str, Any]:
        target = body.target_user_id or user_id
        if target != user_id and not admin:
            raise HTTPException(status_code=403, detail="Only admins can notify other users")
        result = self.supabase.table("notifications").insert({
            "user_id": target,
            "title": body.title,
            "message": body.message,
            "type": body.type,
            "is_read": False,
            "created_at": utcnow().isoformat(),
        }).execute()
        notification = first_row(result)
        if not notification:
            raise HTTPException(status_code=500, detail="Failed to create notification")
        return notification

    def mark_read(self, user_id: str, body: NotificationMarkRead) -> Dict[str, Any]:
        query = self.supabase.table("notifications")\
            .update({"is_read": True})\
            .eq("user_id", user_id)
        if body.mark_all:
            query = query.eq("is_read", False)
        elif body.notification_ids:
            query = query.in_("id", body.notification_ids)
        else:
            raise HTTPException(status_code=400, detail="Either notificationIds or markAll must be provided")
        query.execute()
        return {"success": True, "message": "Notifications marked as read"}

    def delete(self, user_id: str, notification_id: str) -> Dict[str, Any]:
        self.supabase.table("notifications")\
            .delete()\
            .eq("id", notification_id)\
            .eq("user_id", user_id)\
            .execute()
        return {"success": True, "message": "Notification deleted successfully"}
