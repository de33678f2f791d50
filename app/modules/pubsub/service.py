import hashlib
import hmac
import logging
import re
import secrets
from datetime import timedelta
from typing import Any, Dict, List, Optional

import httpx
from fastapi import HTTPException
from supabase import Client

from app.config import settings
from app.core.time_utils import to_utc_iso, utcnow
from app.database.supabase_client import first_row

logger = logging.getLogger(__name__)

TOPIC_BASE = "https://www.youtube.com/xml/feeds/videos.xml?channel_id="
LEASE_SECONDS = 432000
RENEW_WITHIN_HOURS = 6
_TOPIC_CHANNEL_RE = re.compile(r"channel_id=([^&]+)")


def topic_url(channel_id: str) -> str:
    return f"{TOPIC_BASE}{channel_id}"


def channel_from_topic(topic: str) -> Optional[str]:
    match = _TOPIC_CHANNEL_RE.search(topic or "")
    return match.group(1) if match else None


def sign_body(body: bytes, secret: str) -> str:
    return "sha1=" + hmac.new(secret.encode(), body, hashlib.sha1).hexdigest()


def verify_hub_signature(body: bytes, secret: str, header: Optional[str]) -> bool:
    if not header:
        return False
    return hmac.compare_digest(sign_body(body, secret), header.strip())


def event_type_for(notification: Dict[str, Any]) -> str:
    if notification.get("deleted"):
        return "video_deleted"
    published = notification.get("published_at")
    updated = notification.get("updated_at")
    if published and updated and published[:19] != updated[:19]:
        return "video_updated"
    return "video_published"


class PubSubService:
    def __init__(self, supabase: Client, hub_url: Optional[str] = None, callback_url: Optional[str] = None):
        self.supabase = supabase
        self.hub_url = hub_url or settings.pubsub_hub_url
        self.callback_url = callback_url or settings.pubsub_callback_url

    async def _send_hub_request(self, mode: str, channel_id: str, secret: str) -> int:
        form = {
            "hub.callback": self.callback_url,
            "hub.topic": topic_url(channel_id),
            "hub.verify": "async",
            "hub.mode": mode,
            "hub.secret": secret,
            "hub.lease_seconds": str(LEASE_SECONDS),
        }
        try:
            async with httpx.AsyncClient(timeout=15.0) as client:
                response = await client.post(self.hub_url, data=form)
        except httpx.RequestError as e:
            logger.error("Hub %s request for %s failed: %s", mode, channel_id, e)
            return 0
        return response.status_code

    def _log(self, channel_id: str, action: str, status: str) -> None:
        try:
            self.supabase.table("subscription_logs").insert({
                "channel_id": channel_id,
                "action": action,
                "status": status,
                "created_at": utcnow().isoformat(),
            }).execute()
        except Exception as e:
            logger.warning("Failed to write subscription log for %s: %s", channel_id, e)

    def get_subscription(self, channel_id: str) -> Optional[Dict[str, Any]]:
        return first_row(
            self.supabase.table("youtube_subscriptions")
            .select("*")
            .eq("channel_id", channel_id)
            .limit(1)
            .execute()
        )

    async def subscribe(
        self,
        channel_id: str,
        user_id: Optional[str] = None,
        channel_title: Optional[str] = None,
        action: str = "subscribe",
        secret: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not self.callback_url:
            raise HTTPException(status_code=500, detail="PubSub callback URL is not configured")
        secret = secret or secrets.token_hex(32)
        status_code = await self._send_hub_request("subscribe", channel_id, secret)
        status = "pending" if status_code in (202, 204) else "failed"

        row = {
            "channel_id": channel_id,
            "hub_topic": topic_url(channel_id),
            "hub_callback": self.callback_url,
            "hub_secret": secret,
            "status": status,
            "lease_seconds": LEASE_SECONDS,
            "updated_at": utcnow().isoformat(),
        }
        if user_id:
            row["user_id"] = user_id
        if channel_title:
            row["channel_title"] = channel_title
        result = self.supabase.table("youtube_subscriptions")\
            .upsert(row, on_conflict="channel_id")\
            .execute()
        self._log(channel_id, action, status)
        logger.info("Hub %s for %s: HTTP %s -> %s", action, channel_id, status_code, status)

        subscription = first_row(result) or row
        return {
            "success": status == "pending",
            "status": status,
            "subscriptionId": subscription.get("id"),
        }

    async def unsubscribe(self, channel_id: str) -> Dict[str, Any]:
        subscription = self.get_subscription(channel_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")
        status_code = await self._send_hub_request("unsubscribe", channel_id, subscription.get("hub_secret") or "")
        accepted = status_code in (202, 204)
        self._log(channel_id, "unsubscribe", "pending" if accepted else "failed")
        if not accepted:
            raise HTTPException(status_code=400, detail="Failed to unsubscribe from hub")
        return {"success": True, "message": "Unsubscribe request sent"}

    def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        rows = self.supabase.table("youtube_subscriptions")\
            .select("*")\
            .eq("user_id", user_id)\
            .order("created_at", desc=True)\
            .execute().data or []
        return [{k: v for k, v in row.items() if k != "hub_secret"} for row in rows]

    def verify(self, mode: str, topic: str, challenge: str, lease_seconds: Optional[int] = None) -> str:
        """Handle the hub's intent verification; returns the challenge to echo back."""
        channel_id = channel_from_topic(topic)
        subscription = self.get_subscription(channel_id) if channel_id else None
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")

        now = utcnow()
        if mode == "subscribe":
            lease = lease_seconds or subscription.get("lease_seconds") or LEASE_SECONDS
            updates = {
                "status": "active",
                "lease_seconds": lease,
                "expires_at": to_utc_iso(now + timedelta(seconds=lease)),
                "verified_at": now.isoformat(),
                "updated_at": now.isoformat(),
            }
            status = "active"
        elif mode == "unsubscribe":
            updates = {"status": "expired", "updated_at": now.isoformat()}
            status = "expired"
        else:
            raise HTTPException(status_code=400, detail="Invalid hub.mode")

        self.supabase.table("youtube_subscriptions")\
            .update(updates)\
            .eq("channel_id", channel_id)\
            .execute()
        self._log(channel_id, "verify", status)
        return challenge

    def check_signature(self, channel_id: str, body: bytes, header: Optional[str]) -> Dict[str, Any]:
        subscription = self.get_subscription(channel_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")
        secret = subscription.get("hub_secret")
        if secret and not verify_hub_signature(body, secret, header):
            raise HTTPException(status_code=403, detail="Invalid signature")
        return subscription

    def process_notification(self, subscription: Dict[str, Any], notification: Dict[str, Any]) -> str:
        now = utcnow().isoformat()
        event_type = event_type_for(notification)
        video_id = notification.get("video_id")

        if video_id:
            video = {
                "video_id": video_id,
                "channel_id": notification["channel_id"],
                "updated_at": now,
            }
            if notification.get("title"):
                video["title"] = notification["title"]
            if notification.get("published_at"):
                video["published_at"] = notification["published_at"]
            if notification.get("deleted"):
                video["deleted_at"] = notification.get("updated_at") or now
            self.supabase.table("videos").upsert(video, on_conflict="video_id").execute()

        self.supabase.table("webhook_events").insert({
            "provider": "youtube",
            "event_id": f"{video_id}:{event_type}:{notification.get('updated_at') or now}",
            "event_type": event_type,
            "payload": notification,
            "processed_at": now,
        }).execute()
        self.supabase.table("youtube_subscriptions")\
            .update({
                "last_notification_at": now,
                "notification_count": int(subscription.get("notification_count") or 0) + 1,
            })\
            .eq("channel_id", notification["channel_id"])\
            .execute()
        logger.info("Processed %s for video %s", event_type, video_id)
        return event_type

    async def renew_expiring(self, within_hours: int = RENEW_WITHIN_HOURS) -> Dict[str, int]:
        """Renew active subscriptions close to expiry and mark lapsed ones expired."""
        now = utcnow()
        lapsed = self.supabase.table("youtube_subscriptions")\
            .update({"status": "expired", "updated_at": now.isoformat()})\
            .eq("status", "active")\
            .lt("expires_at", to_utc_iso(now))\
            .execute()

        expiring = self.supabase.table("youtube_subscriptions")\
            .select("channel_id, hub_secret")\
            .eq("status", "active")\
            .gte("expires_at", to_utc_iso(now))\
            .lte("expires_at", to_utc_iso(now + timedelta(hours=within_hours)))\
            .execute().data or []

        renewed = 0
        for row in expiring:
            try:
                result = await self.subscribe(row["channel_id"], action="renew", secret=row.get("hub_secret"))
                renewed += 1 if result["success"] else 0
            except Exception as e:
                logger.error("Failed to renew subscription for %s: %s", row["channel_id"], e)
        return {"renewed": renewed, "expired": len(lapsed.data or [])}
