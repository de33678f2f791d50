import logging
from supabase import Client
from app.config import settings
from app.core.time_utils import utcnow
from app.modules.api_keys.service import ApiKeyService
from app.modules.youtube import formatting, metrics, outliers, shorts
from app.modules.youtube.client import YouTubeAPIError, YouTubeClient
from app.modules.youtube.popular import PopularShortsFinder
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def api_error_to_http(e: YouTubeAPIError) -> HTTPException:
    if e.code and e.code.lower().startswith("quota"):
        return HTTPException(status_code=429, detail={"error": "YouTube API quota exceeded", "code": e.code})
    if e.code in ("keyInvalid", "badRequest") or "API key" in (e.message or ""):
        return HTTPException(status_code=401, detail={"error": "YouTube API key is invalid", "code": e.code})
    if 400 <= e.status_code < 500:
        return HTTPException(status_code=e.status_code, detail={"error": e.message, "code": e.code})
    return HTTPException(status_code=502, detail={"error": e.message or "YouTube API request failed", "code": e.code})


def with_metrics(video: Dict[str, Any], subscriber_count: int = 10000) -> Dict[str, Any]:
    detection = shorts.detect_shorts(video)
    return {
        **video,
        "metrics": metrics.video_metrics(video, subscriber_count),
        "is_shorts": detection["is_shorts"],
        "shorts_confidence": detection["confidence"],
    }


class YouTubeService:
    def __init__(self, supabase: Client, api_keys: Optional[ApiKeyService] = None):
        self.supabase = supabase
        self.api_keys = api_keys or ApiKeyService(supabase)

    def client_for(self, user_id: str) -> YouTubeClient:
        """Client using the caller's stored key, falling back to the server key."""
        api_key = self.api_keys.get_decrypted(user_id, "youtube") or settings.youtube_api_key
        if not api_key:
            raise HTTPException(
                status_code=400,
                detail={"error": "YouTube API key is required", "actionRequired": "setupApiKey"},
            )
        return YouTubeClient(api_key)

    def _record_search(self, user_id: str, query: str, filters: Dict[str, Any], count: int) -> None:
        try:
            self.supabase.table("youtube_search_history").insert({
                "user_id": user_id,
                "query": query,
                "filters": filters,
                "result_count": count,
                "created_at": utcnow().isoformat(),
            }).execute()
        except Exception as e:
            logger.warning("Failed to store search history for %s: %s", user_id, e)

    async def search(self, user_id: str, query: str, **filters) -> Dict[str, Any]:
        if not query or not query.strip():
            raise HTTPException(status_code=400, detail="Search query is required")
        client = self.client_for(user_id)
        try:
            result = await client.search_videos(query.strip(), **filters)
        except YouTubeAPIError as e:
            raise api_error_to_http(e)
        items = [with_metrics(v) for v in result["items"]]
        self._record_search(user_id, query.strip(), {k: v for k, v in filters.items() if v is not None}, len(items))
        return {
            "items": items,
            "nextPageToken": result.get("nextPageToken"),
            "totalResults": result.get("totalResults", 0),
            "quota": {"used": client.quota_used, "remaining": client.quota_remaining},
        }

    async def popular(
        self,
        user_id: str,
        region_code: str = "KR",
        period: str = "7d",
        limit: int = 50,
        category_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        client = self.client_for(user_id)
        try:
            videos = await PopularShortsFinder(client).find(
                region_code=region_code, category_id=category_id, period=period, limit=limit
            )
        except YouTubeAPIError as e:
            raise api_error_to_http(e)
        return {
            "videos": videos,
            "total": len(videos),
            "period": period,
            "regionCode": region_code,
            "quota": {"used": client.quota_used, "remaining": client.quota_remaining},
        }

    async def metrics(self, user_id: str, video_ids: List[str], subscriber_count: int = 10000) -> Dict[str, Any]:
        client = self.client_for(user_id)
        try:
            videos = await client.get_video_details(video_ids)
        except YouTubeAPIError as e:
            raise api_error_to_http(e)
        if not videos:
            raise HTTPException(status_code=404, detail="No videos found")

        enriched = [with_metrics(v, subscriber_count) for v in videos]
        results = outliers.detect_outliers(
            [{**v, "vph": v["metrics"]["vph"]} for v in enriched]
        )
        total = len(enriched)
        return {
            "videos": enriched,
            "outliers": results,
            "report": outliers.outlier_report(results),
            "aggregate": {
                "totalViews": sum(v["view_count"] for v in enriched),
                "avgVph": sum(v["metrics"]["vph"] for v in enriched) / total,
                "avgEngagementRate": sum(v["metrics"]["engagementRate"] for v in enriched) / total,
                "avgViralScore": sum(v["metrics"]["viralScore"] for v in enriched) / total,
                "shorts": shorts.shorts_stats(videos),
            },
        }

    async def analyze_video(self, user_id: str, video_id: str) -> Dict[str, Any]:
        client = self.client_for(user_id)
        try:
            videos = await client.get_video_details([video_id])
            if not videos:
                raise HTTPException(status_code=404, detail="Video not found")
            video = videos[0]
            channels = await client.get_channels([video["channel_id"]]) if video.get("channel_id") else []
        except YouTubeAPIError as e:
            raise api_error_to_http(e)

        channel = None
        subscriber_count = 10000
        if channels:
            stats = channels[0].get("statistics") or {}
            channel = {
                "id": channels[0].get("id"),
                "title": (channels[0].get("snippet") or {}).get("title"),
                "subscriber_count": int(stats.get("subscriberCount") or 0),
                "view_count": int(stats.get("viewCount") or 0),
                "video_count": int(stats.get("videoCount") or 0),
            }
            subscriber_count = channel["subscriber_count"]
            channel["performance"] = metrics.channel_performance(channel)

        analysed = with_metrics(video, subscriber_count)
        return {
            "video": analysed,
            "channel": channel,
            "shorts": shorts.detect_shorts(video),
            "formatted": {
                "views": formatting.format_large_number(video["view_count"]),
                "likes": formatting.format_number_ko(video["like_count"]),
                "comments": formatting.format_number_ko(video["comment_count"]),
                "engagementRate": formatting.format_percent(analysed["metrics"]["engagementRate"]),
                "publishedAgo": formatting.format_time_ago(video["published_at"]) if video.get("published_at") else None,
            },
        }
