import logging
import re
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from supabase import Client

from app.core.time_utils import utcnow, to_utc_iso
from app.database.supabase_client import first_row
from app.modules.youtube.client import YouTubeAPIError, YouTubeClient
from app.modules.youtube.service import api_error_to_http
from app.modules.youtube_lens import keywords
from app.modules.youtube_lens.schemas import ChannelUpdate

logger = logging.getLogger(__name__)

NEWCOMER_DAYS = 7
NEWCOMER_LIMIT = 5
KEYWORD_VIDEO_LIMIT = 100
KEYWORD_CHANNEL_FALLBACK_LIMIT = 50
KEYWORD_RESPONSE_LIMIT = 20

# PostgREST filter syntax characters are not allowed in the free-text search
_FILTER_CHARS_RE = re.compile(r"[,()*%\\]")

CHANNEL_SUMMARY_COLUMNS = (
    "channel_id, title, subscriber_count, view_count_total, category, subcategory, dominant_format"
)

DEFAULT_CATEGORIES = [
    {"categoryId": "1", "nameKo": "영화/애니메이션", "nameEn": "Film & Animation"},
    {"categoryId": "2", "nameKo": "자동차", "nameEn": "Autos & Vehicles"},
    {"categoryId": "10", "nameKo": "음악", "nameEn": "Music"},
    {"categoryId": "15", "nameKo": "반려동물", "nameEn": "Pets & Animals"},
    {"categoryId": "17", "nameKo": "스포츠", "nameEn": "Sports"},
    {"categoryId": "19", "nameKo": "여행/이벤트", "nameEn": "Travel & Events"},
    {"categoryId": "20", "nameKo": "게임", "nameEn": "Gaming"},
    {"categoryId": "22", "nameKo": "인물/블로그", "nameEn": "People & Blogs"},
    {"categoryId": "23", "nameKo": "코미디", "nameEn": "Comedy"},
    {"categoryId": "24", "nameKo": "엔터테인먼트", "nameEn": "Entertainment"},
    {"categoryId": "25", "nameKo": "뉴스/정치", "nameEn": "News & Politics"},
    {"categoryId": "26", "nameKo": "노하우/스타일", "nameEn": "Howto & Style"},
    {"categoryId": "27", "nameKo": "교육", "nameEn": "Education"},
    {"categoryId": "28", "nameKo": "과학기술", "nameEn": "Science & Technology"},
]


def channel_to_response(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "channelId": row.get("channel_id"),
        "title": row.get("title"),
        "handle": row.get("handle"),
        "description": row.get("description"),
        "customUrl": row.get("custom_url"),
        "thumbnailUrl": row.get("thumbnail_url"),
        "approvalStatus": row.get("approval_status"),
        "approvalNotes": row.get("approval_notes"),
        "approvedBy": row.get("approved_by"),
        "approvedAt": row.get("approved_at"),
        "source": row.get("source"),
        "subscriberCount": row.get("subscriber_count") or 0,
        "viewCountTotal": row.get("view_count_total") or 0,
        "videoCount": row.get("video_count") or 0,
        "category": row.get("category"),
        "subcategory": row.get("subcategory"),
        "dominantFormat": row.get("dominant_format"),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }


def channel_row_from_api(item: Dict[str, Any]) -> Dict[str, Any]:
    """yl_channels columns from a channels.list item (snippet + statistics)."""
    snippet = item.get("snippet") or {}
    statistics = item.get("statistics") or {}
    thumbnails = snippet.get("thumbnails") or {}
    custom_url = snippet.get("customUrl")
    return {
        "channel_id": item["id"],
        "title": snippet.get("title") or "",
        "handle": custom_url.lstrip("@") if custom_url else None,
        "description": snippet.get("description"),
        "custom_url": custom_url,
        "thumbnail_url": (thumbnails.get("default") or {}).get("url"),
        "subscriber_count": int(statistics.get("subscriberCount") or 0),
        "view_count_total": int(statistics.get("viewCount") or 0),
        "video_count": int(statistics.get("videoCount") or 0),
    }


class LensService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    # Admin channel registry

    def _get_channel(self, channel_id: str) -> Dict[str, Any]:
        channel = first_row(
            self.supabase.table("yl_channels")
            .select("*")
            .eq("channel_id", channel_id)
            .limit(1)
            .execute()
        )
        if not channel:
            raise HTTPException(status_code=404, detail="Channel not found")
        return channel

    def _audit(self, channel_id: str, action: str, actor_id: str, notes: Optional[str] = None) -> None:
        self.supabase.table("yl_approval_logs").insert({
            "channel_id": channel_id,
            "action": action,
            "actor_id": actor_id,
            "notes": notes,
            "created_at": utcnow().isoformat(),
        }).execute()

    def list_channels(self, status: Optional[str] = None, q: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.supabase.table("yl_channels")\
            .select("*")\
            .order("created_at", desc=True)
        if status and status != "all":
            query = query.eq("approval_status", status)
        term = _FILTER_CHARS_RE.sub("", q or "").strip()
        if term:
            query = query.or_(f"title.ilike.%{term}%,channel_id.ilike.%{term}%")
        return [channel_to_response(row) for row in query.execute().data or []]

    async def add_channel(self, admin_id: str, channel_id: str, client: YouTubeClient) -> Dict[str, Any]:
        existing = self.supabase.table("yl_channels").select("channel_id").eq("channel_id", channel_id).limit(1).execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="Channel already exists")

        try:
            items = await client.get_channels([channel_id])
        except YouTubeAPIError as e:
            raise api_error_to_http(e)
        if not items:
            raise HTTPException(status_code=404, detail="Channel not found on YouTube")

        now = utcnow().isoformat()
        row = {
            **channel_row_from_api(items[0]),
            "approval_status": "pending",
            "source": "manual",
            "created_at": now,
            "updated_at": now,
        }
        result = self.supabase.table("yl_channels").insert(row).execute()
        channel = first_row(result) or row
        self._audit(channel_id, "pending", admin_id, "Channel added by admin")
        logger.info("Lens channel %s added by %s", channel_id, admin_id)
        return {
            "success": True,
            "data": {
                "channelId": channel["channel_id"],
                "title": channel.get("title"),
                "subscriberCount": channel.get("subscriber_count") or 0,
            },
        }

    def update_channel(self, admin_id: str, channel_id: str, body: ChannelUpdate) -> Dict[str, Any]:
        self._get_channel(channel_id)
        now = utcnow().isoformat()
        updates: Dict[str, Any] = {"updated_at": now}
        fields = body.model_dump(exclude_unset=True)

        if body.status:
            updates["approval_status"] = body.status
            updates["approval_notes"] = body.notes
            if body.status == "approved":
                updates["approved_by"] = admin_id
                updates["approved_at"] = now
        for key in ("category", "subcategory", "dominant_format"):
            if key in fields:
                updates[key] = fields[key]

        result = self.supabase.table("yl_channels")\
            .update(updates)\
            .eq("channel_id", channel_id)\
            .execute()
        self._audit(channel_id, body.status or "update", admin_id, body.notes)

        channel = first_row(result) or updates
        return {
            "success": True,
            "data": {
                "channelId": channel_id,
                "approvalStatus": channel.get("approval_status"),
                "updatedAt": channel.get("updated_at"),
            },
        }

    def delete_channel(self, admin_id: str, channel_id: str) -> Dict[str, Any]:
        self._get_channel(channel_id)
        # Audit row goes in before the channel disappears
        self._audit(channel_id, "delete", admin_id, "Channel deleted by admin")
        self.supabase.table("yl_channels").delete().eq("channel_id", channel_id).execute()
        logger.info("Lens channel %s deleted by %s", channel_id, admin_id)
        return {"success": True, "message": "Channel deleted successfully"}

    def channel_stats(self) -> Dict[str, Any]:
        rows = self.supabase.table("yl_channels")\
            .select("approval_status, category, dominant_format")\
            .execute().data or []
        statuses = Counter(row.get("approval_status") for row in rows)
        by_category = Counter(row["category"] for row in rows if row.get("category"))
        by_format = Counter(row["dominant_format"] for row in rows if row.get("dominant_format"))

        logs = self.supabase.table("yl_approval_logs")\
            .select("*")\
            .order("created_at", desc=True)\
            .limit(10)\
            .execute().data or []
        channel_ids = list({log["channel_id"] for log in logs if log.get("channel_id")})
        titles: Dict[str, str] = {}
        if channel_ids:
            channels = self.supabase.table("yl_channels")\
                .select("channel_id, title")\
                .in_("channel_id", channel_ids)\
                .execute().data or []
            titles = {c["channel_id"]: c.get("title") for c in channels}

        return {
            "totalChannels": len(rows),
            "pendingChannels": statuses.get("pending", 0),
            "approvedChannels": statuses.get("approved", 0),
            "rejectedChannels": statuses.get("rejected", 0),
            "channelsByCategory": dict(by_category),
            "channelsByFormat": dict(by_format),
            "recentApprovals": [
                {
                    "id": log.get("id"),
                    "channelId": log.get("channel_id"),
                    "action": log.get("action"),
                    "adminId": log.get("actor_id"),
                    "notes": log.get("notes"),
                    "createdAt": log.get("created_at"),
                    "channelTitle": titles.get(log.get("channel_id")) or "Unknown Channel",
                }
                for log in logs
            ],
        }

    # Dashboard

    def trending_summary(self, day: Optional[str] = None, limit: int = 10, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        day = day or now.date().isoformat()

        approved = self.supabase.table("yl_channels")\
            .select("category, subcategory")\
            .eq("approval_status", "approved")\
            .execute().data or []
        counts = Counter(row.get("category") or keywords.UNCATEGORIZED for row in approved)
        total = len(approved)
        category_stats = [
            {
                "category": category,
                "channelCount": count,
                "share": round(count / total * 100, 2) if total else 0,
            }
            for category, count in counts.most_common()
        ]

        top_deltas = self.supabase.table("yl_channel_daily_delta")\
            .select(f"channel_id, date, delta_views, delta_subscribers, growth_rate, "
                    f"channel:yl_channels!inner({CHANNEL_SUMMARY_COLUMNS})")\
            .eq("date", day)\
            .order("delta_views", desc=True)\
            .limit(limit)\
            .execute().data or []

        newcomers = self.supabase.table("yl_channels")\
            .select(CHANNEL_SUMMARY_COLUMNS)\
            .eq("approval_status", "approved")\
            .gte("approved_at", to_utc_iso(now - timedelta(days=NEWCOMER_DAYS)))\
            .order("approved_at", desc=True)\
            .limit(NEWCOMER_LIMIT)\
            .execute().data or []

        return {
            "success": True,
            "data": {
                "date": day,
                "categoryStats": category_stats,
                "topDeltas": top_deltas,
                "newcomers": newcomers,
            },
        }

    def categories(self) -> List[Dict[str, Any]]:
        rows = self.supabase.table("yl_channels")\
            .select("category")\
            .execute().data or []
        counts = Counter(row["category"] for row in rows if row.get("category"))

        merged = [dict(c) for c in DEFAULT_CATEGORIES]
        known = {c["nameKo"] for c in merged} | {c["nameEn"] for c in merged}
        for name in counts:
            if name not in known:
                merged.append({"categoryId": f"custom_{name}", "nameKo": name, "nameEn": name})

        result = []
        for index, category in enumerate(merged, start=1):
            names = {category["nameKo"], category["nameEn"]}
            result.append({
                **category,
                "channelCount": sum(counts.get(name, 0) for name in names),
                "displayOrder": index,
                "isActive": True,
            })
        return result

    # Keyword trends

    def keyword_trends(self, days: int = 1, category: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        query = self.supabase.table("yl_keyword_trends")\
            .select("*")\
            .gte("date", (now.date() - timedelta(days=days)).isoformat())\
            .lte("date", now.date().isoformat())\
            .order("growth_rate", desc=True)\
            .limit(30)
        if category and category != "all":
            query = query.eq("category", category)

        trends = [
            {
                "keyword": row["keyword"],
                "frequency": row.get("frequency") or 0,
                "growth": float(row.get("growth_rate") or 0),
                "channels": row.get("channels") or [],
                "category": row.get("category"),
            }
            for row in query.execute().data or []
        ]
        return {
            "success": True,
            "data": {
                "trends": trends,
                "categories": keywords.group_by_category(trends),
                "updated": now.isoformat(),
            },
        }

    def _attach_channel_categories(self, videos: List[Dict[str, Any]]) -> None:
        # yl_videos has no category column; trends are grouped by their channel's
        channel_ids = sorted({v["channel_id"] for v in videos if v.get("channel_id")})
        if not channel_ids:
            return
        rows = self.supabase.table("yl_channels")\
            .select("channel_id, category")\
            .in_("channel_id", channel_ids)\
            .execute().data or []
        categories = {row["channel_id"]: row.get("category") for row in rows}
        for video in videos:
            video.setdefault("category", categories.get(video.get("channel_id")))

    def analyze_keywords(
        self,
        channel_ids: Optional[List[str]] = None,
        analyze: bool = True,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or utcnow()
        query = self.supabase.table("yl_videos")\
            .select("video_id, channel_id, title, description, published_at")\
            .order("published_at", desc=True)\
            .limit(KEYWORD_VIDEO_LIMIT)
        if channel_ids:
            query = query.in_("channel_id", channel_ids)
        videos = query.execute().data or []

        if not videos:
            channels = self.supabase.table("yl_channels")\
                .select("channel_id, title, description, category")\
                .limit(KEYWORD_CHANNEL_FALLBACK_LIMIT)\
                .execute().data or []
            if not channels:
                return {"success": True, "data": {"trends": [], "analyzed": 0, "message": "No videos found for analysis"}}
            trends = keywords.analyze_keyword_trends(channels)
            return {
                "success": True,
                "data": {
                    "trends": trends[:KEYWORD_RESPONSE_LIMIT],
                    "analyzed": len(channels),
                    "message": "Analyzed channel data (no videos available yet)",
                },
            }

        if not analyze:
            return {"success": True, "data": {"videoCount": len(videos), "message": "Videos ready for analysis"}}

        self._attach_channel_categories(videos)

        yesterday = (now.date() - timedelta(days=1)).isoformat()
        previous_rows = self.supabase.table("yl_keyword_trends")\
            .select("keyword, frequency")\
            .eq("date", yesterday)\
            .execute().data or []
        previous = {row["keyword"]: row.get("frequency") or 0 for row in previous_rows}

        trends = keywords.analyze_keyword_trends(videos, previous)
        records = [keywords.to_db_record(t, now.date()) for t in trends]
        if records:
            try:
                self.supabase.table("yl_keyword_trends")\
                    .upsert(records, on_conflict="keyword,date")\
                    .execute()
            except Exception as e:
                # Analysis results are still returned when storage fails
                logger.error("Failed to store keyword trends: %s", e)

        return {
            "success": True,
            "data": {
                "trends": trends[:KEYWORD_RESPONSE_LIMIT],
                "analyzed": len(videos),
                "stored": len(records),
                "stats": keywords.keyword_stats(trends),
                "message": "Keyword trends analyzed and stored successfully",
            },
        }
