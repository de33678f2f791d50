"""YouTube Data API v3 client with a per-instance quota ledger."""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.config import settings
from app.core.http_client import ExternalAPIError, RetryingAPIClient

logger = logging.getLogger(__name__)

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
BATCH_SIZE = 50

QUOTA_COSTS: Dict[str, int] = {
    "search": 100,
    "videos": 1,
    "channels": 1,
    "playlists": 1,
    "playlistItems": 1,
    "videoCategories": 1,
}


class YouTubeAPIError(ExternalAPIError):
    pass


def chunked(values: List[str], size: int = BATCH_SIZE) -> Iterable[List[str]]:
    for start in range(0, len(values), size):
        yield values[start:start + size]


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def normalize_video(item: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a videos.list item into the shape used across analytics helpers."""
    snippet = item.get("snippet") or {}
    statistics = item.get("statistics") or {}
    content = item.get("contentDetails") or {}
    video_id = item.get("id")
    if isinstance(video_id, dict):
        video_id = video_id.get("videoId")
    return {
        "id": video_id,
        "title": snippet.get("title", ""),
        "description": snippet.get("description", ""),
        "channel_id": snippet.get("channelId"),
        "channel_title": snippet.get("channelTitle"),
        "published_at": snippet.get("publishedAt"),
        "thumbnails": snippet.get("thumbnails") or {},
        "tags": snippet.get("tags") or [],
        "category_id": snippet.get("categoryId"),
        "live_broadcast_content": snippet.get("liveBroadcastContent"),
        "duration": content.get("duration"),
        "view_count": _int(statistics.get("viewCount")),
        "like_count": _int(statistics.get("likeCount")),
        "comment_count": _int(statistics.get("commentCount")),
    }


class YouTubeClient(RetryingAPIClient):
    service_name = "YOUTUBE"
    error_class = YouTubeAPIError
    RETRYABLE_STATUS = {500, 502, 503, 504}

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        daily_limit: Optional[int] = None,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
        timeout: float = 15.0,
    ) -> None:
        super().__init__(YOUTUBE_API_BASE, timeout, max_retries=max_retries, backoff_factor=backoff_factor)
        self.api_key = api_key or settings.youtube_api_key
        if not self.api_key:
            raise ValueError("YouTube API key is not configured")
        self.daily_limit = daily_limit if daily_limit is not None else settings.youtube_daily_quota
        self.quota_used = 0

    @property
    def quota_remaining(self) -> int:
        return max(0, self.daily_limit - self.quota_used)

    def _charge(self, resource: str) -> None:
        cost = QUOTA_COSTS.get(resource, 1)
        if self.quota_used + cost > self.daily_limit:
            raise YouTubeAPIError(
                "YouTube API daily quota exceeded",
                status_code=403,
                code="quotaExceeded",
            )
        self.quota_used += cost

    async def _call(self, resource: str, params: Dict[str, Any]) -> Dict[str, Any]:
        self._charge(resource)
        query = {k: v for k, v in params.items() if v is not None}
        query["key"] = self.api_key
        return await self._request("GET", f"/{resource}", params=query)

    def _resolve_error(self, payload: Dict[str, Any], status_code: int) -> Tuple[str, Optional[str]]:
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict):
            reasons = [e.get("reason") for e in error.get("errors") or [] if isinstance(e, dict)]
            return error.get("message") or "YouTube API request failed", (reasons[0] if reasons else None)
        return super()._resolve_error(payload, status_code)

    async def validate_key(self) -> Dict[str, Any]:
        """Cheapest possible call (1 unit) to find out whether the key works."""
        try:
            await self._call("videos", {"part": "id", "chart": "mostPopular", "maxResults": 1})
            return {"is_valid": True, "error": None, "quota_remaining": None}
        except YouTubeAPIError as e:
            message = e.message or ""
            if e.status_code in (400, 403) and ("API key not valid" in message or e.code == "keyInvalid"):
                return {"is_valid": False, "error": "Invalid API key", "quota_remaining": None}
            if e.status_code == 403 and ("quota" in message.lower() or (e.code or "").lower().startswith("quota")):
                return {"is_valid": True, "error": None, "quota_remaining": 0}
            return {"is_valid": False, "error": message or "Validation failed", "quota_remaining": None}

    async def get_video_details(self, video_ids: List[str]) -> List[Dict[str, Any]]:
        videos: List[Dict[str, Any]] = []
        ids = [v for v in dict.fromkeys(video_ids) if v]
        for batch in chunked(ids):
            data = await self._call("videos", {
                "part": "snippet,statistics,contentDetails",
                "id": ",".join(batch),
                "maxResults": BATCH_SIZE,
            })
            videos.extend(normalize_video(item) for item in data.get("items", []))
        return videos

    async def search_videos(
        self,
        query: str,
        *,
        max_results: int = 25,
        order: str = "relevance",
        published_after: Optional[str] = None,
        video_duration: Optional[str] = None,
        video_category_id: Optional[str] = None,
        region_code: str = "KR",
        relevance_language: str = "ko",
        page_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """search.list followed by videos.list so results carry statistics and duration."""
        data = await self._call("search", {
            "part": "snippet",
            "q": query,
            "type": "video",
            "maxResults": min(max(max_results, 1), 50),
            "order": order,
            "publishedAfter": published_after,
            "videoDuration": video_duration,
            "videoCategoryId": video_category_id,
            "regionCode": region_code,
            "relevanceLanguage": relevance_language,
            "safeSearch": "moderate",
            "pageToken": page_token,
        })
        ids = [
            item["id"]["videoId"]
            for item in data.get("items", [])
            if isinstance(item.get("id"), dict) and item["id"].get("videoId")
        ]
        return {
            "items": await self.get_video_details(ids) if ids else [],
            "nextPageToken": data.get("nextPageToken"),
            "totalResults": (data.get("pageInfo") or {}).get("totalResults", 0),
        }

    async def get_popular_videos(
        self,
        region_code: str = "KR",
        category_id: Optional[str] = None,
        max_results: int = 50,
    ) -> List[Dict[str, Any]]:
        data = await self._call("videos", {
            "part": "snippet,statistics,contentDetails",
            "chart": "mostPopular",
            "regionCode": region_code,
            "videoCategoryId": category_id,
            "maxResults": min(max(max_results, 1), 50),
        })
        return [normalize_video(item) for item in data.get("items", [])]

    async def get_channels(self, channel_ids: List[str]) -> List[Dict[str, Any]]:
        """Raw channels.list items (snippet + statistics), fetched in batches of 50."""
        channels: List[Dict[str, Any]] = []
        ids = [c for c in dict.fromkeys(channel_ids) if c]
        for batch in chunked(ids):
            data = await self._call("channels", {
                "part": "statistics,snippet",
                "id": ",".join(batch),
                "maxResults": BATCH_SIZE,
            })
            channels.extend(data.get("items", []))
        return channels
