import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from app.core.dependencies import get_current_user_id
from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.pubsub.feed import parse_notification
from app.modules.pubsub.schemas import SubscribeRequest
from app.modules.pubsub.service import PubSubService
from supabase import Client
from typing import Dict, Optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/youtube", tags=["pubsub"])


def get_pubsub_service(supabase: Client = Depends(get_supabase)) -> PubSubService:
    return PubSubService(supabase)


def get_webhook_pubsub_service(supabase: Client = Depends(get_service_supabase)) -> PubSubService:
    return PubSubService(supabase)


@router.get("/webhook", response_class=PlainTextResponse)
async def verify_subscription(
    mode: str = Query(..., alias="hub.mode"),
    topic: str = Query(..., alias="hub.topic"),
    challenge: str = Query(..., alias="hub.challenge"),
    lease_seconds: Optional[int] = Query(None, alias="hub.lease_seconds"),
    service: PubSubService = Depends(get_webhook_pubsub_service)
):
    """Hub intent verification: echo the challenge for known subscriptions."""
    return PlainTextResponse(service.verify(mode, topic, challenge, lease_seconds))


@router.post("/webhook")
async def receive_notification(
    request: Request,
    service: PubSubService = Depends(get_webhook_pubsub_service)
):
    body = await request.body()
    try:
        notification = parse_notification(body.decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid notification format")
    if not notification.get("channel_id"):
        raise HTTPException(status_code=400, detail="Invalid notification format")

    subscription = service.check_signature(
        notification["channel_id"], body, request.headers.get("x-hub-signature")
    )
    try:
        event_type = service.process_notification(subscription, notification)
    except Exception as e:
        # Answer 2xx so the hub does not keep redelivering
        logger.error("Failed to process notification for %s: %s", notification["channel_id"], e)
        return {"success": False}
    return {"success": True, "event": event_type}


@router.get("/subscribe")
async def list_subscriptions(
    current_user: Dict = Depends(get_current_user_id),
    service: PubSubService = Depends(get_pubsub_service)
):
    return {"success": True, "subscriptions": service.list_for_user(current_user["id"])}


@router.post("/subscribe")
async def subscribe_channel(
    body: SubscribeRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: PubSubService = Depends(get_pubsub_service)
):
    result = await service.subscribe(body.channel_id, current_user["id"], body.channel_title)
    if not result["success"]:
        raise HTTPException(status_code=400, detail="Failed to subscribe to hub")
    return {**result, "message": "Subscription request sent. Awaiting hub verification."}


@router.delete("/subscribe")
async def unsubscribe_channel(
    channel_id: str = Query(..., alias="channelId"),
    current_user: Dict = Depends(get_current_user_id),
    service: PubSubService = Depends(get_pubsub_service)
):
    return await service.unsubscribe(channel_id)
