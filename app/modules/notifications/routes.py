from fastapi import APIRouter, Depends, HTTPException, Query
from app.core.dependencies import get_current_user_id, is_admin
from app.database.supabase_client import get_supabase
from app.modules.notifications.schemas import NotificationCreate, NotificationMarkRead
from app.modules.notifications.service import NotificationService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(supabase: Client = Depends(get_supabase)) -> NotificationService:
    return NotificationService(supabase)


@router.get("")
async def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread: bool = Query(False),
    current_user: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return service.list(current_user["id"], limit, offset, unread)


@router.post("", status_code=201)
async def create_notification(
    body: NotificationCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return service.create(current_user["id"], body, admin=is_admin(current_user))


@router.put("")
async def mark_notifications_read(
    body: NotificationMarkRead,
    current_user: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return service.mark_read(current_user["id"], body)


@router.delete("")
async def delete_notification(
    notification_id: Optional[str] = Query(None, alias="id"),
    current_user: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    if not notification_id:
        raise HTTPException(status_code=400, detail="Notification ID is required")
    return service.delete(current_user["id"], notification_id)
