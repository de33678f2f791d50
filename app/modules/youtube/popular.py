"""Keyword-less discovery of trending Shorts across several search strategies."""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from app.core.time_utils import utcnow
from app.modules.youtube.client import YouTubeAPIError, YouTubeClient
from app.modules.youtube.metrics import engagement_rate, hours_since
from app.modules.youtube.shorts import parse_duration

logger = logging.getLogger(__name__)

PERIOD_HOURS = {"1h": 1, "6h": 6, "24h": 24, "7d": 24 * 7, "30d": 24 * 30}
STRATEGIES = ("popular", "category", "hashtag")
DEFAULT_CATEGORY_ID = "10"
MAX_SHORTS_SECONDS = 90


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) - timedelta(hours=PERIOD_HOURS.get(period, 24))


def shorts_viral_score(view_count: int, hours: float, vph: float, engagement: float) -> float:
    score = (
        min(vph / 1000, 100) * 0.4
        + min(engagement * 10, 100) * 0.3
        + min(view_count / 100000, 100) * 0.2
        + max(0.0, (168 - hours) / 168 * 100) * 0.1
    )
    if vph > 10000:
        score *= 1.5
    if engagement > 10:
        score *= 1.3
    if hours < 24 and view_count > 50000:
        score *= 1.4
    return min(score, 100.0)


def enrich_short(video: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    hours = hours_since(video.get("published_at"), now)
    views = int(video.get("view_count") or 0)
    vph = views / hours if hours > 0 else 0.0
    engagement = engagement_rate(views, int(video.get("like_count") or 0), int(video.get("comment_count") or 0))
    return {
        **video,
        "duration_seconds": parse_duration(video.get("duration") or ""),
        "is_short": True,
        "stats": {
            "view_count": views,
            "like_count": int(video.get("like_count") or 0),
            "comment_count": int(video.get("comment_count") or 0),
            "views_per_hour": vph,
            "engagement_rate": engagement,
            "viral_score": shorts_viral_score(views, hours, vph, engagement),
        },
    }


def is_short_duration(video: Dict[str, Any]) -> bool:
    seconds = parse_duration(video.get("duration") or "")
    return 0 < seconds <= MAX_SHORTS_SECONDS


class PopularShortsFinder:
    def __init__(self, client: YouTubeClient):
        self.client = client

    async def _run_strategy(
        self,
        strategy: str,
        region_code: str,
        category_id: Optional[str],
        max_results: int,
        published_after: str,
    ) -> List[Dict[str, Any]]:
        try:
            if strategy == "popular":
                return await self.client.get_popular_videos(region_code, category_id, max_results * 2)
            search = {
                "max_results": max_results,
                "order": "viewCount",
                "published_after": published_after,
                "video_duration": "short",
                "region_code": region_code,
            }
            if strategy == "category":
                result = await self.client.search_videos(
                    "", video_category_id=category_id or DEFAULT_CATEGORY_ID, **search
                )
            else:
                result = await self.client.search_videos("#", video_category_id=category_id, **search)
            return result["items"]
        except YouTubeAPIError as e:
            if e.code == "quotaExceeded":
                raise
            logger.warning("Popular shorts strategy %s failed: %s", strategy, e.message)
            return []

    async def find(
        self,
        region_code: str = "KR",
        category_id: Optional[str] = None,
        period: str = "24h",
        min_views: int = 1000,
        min_vph: float = 100,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        now = utcnow()
        published_after = period_start(period, now).strftime("%Y-%m-%dT%H:%M:%SZ")
        per_strategy = max(1, -(-limit // len(STRATEGIES)))

        seen = set()
        candidates = []
        for strategy in STRATEGIES:
            for video in await self._run_strategy(strategy, region_code, category_id, per_strategy, published_after):
                if video.get("id") in seen:
                    continue
                seen.add(video.get("id"))
                candidates.append(video)

        enriched = [enrich_short(v, now) for v in candidates if is_short_duration(v)]
        filtered = [
            v for v in enriched
            if v["stats"]["view_count"] >= min_views and v["stats"]["views_per_hour"] >= min_vph
        ]
        filtered.sort(key=lambda v: v["stats"]["viral_score"], reverse=True)
        return filtered[:limit]
