from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_current_user_id
from app.database.supabase_client import get_supabase
from app.modules.youtube.schemas import MetricsRequest
from app.modules.youtube.service import YouTubeService
from supabase import Client
from typing import Dict, Literal, Optional

router = APIRouter(prefix="/youtube", tags=["youtube"])


def get_youtube_service(supabase: Client = Depends(get_supabase)) -> YouTubeService:
    return YouTubeService(supabase)


@router.get("/search")
async def search_videos(
    q: str = Query(..., min_length=1, max_length=200),
    max_results: int = Query(25, alias="maxResults", ge=1, le=50),
    order: Literal["relevance", "date", "viewCount", "rating", "title"] = Query("relevance"),
    published_after: Optional[str] = Query(None, alias="publishedAfter"),
    duration: Optional[Literal["any", "short", "medium", "long"]] = Query(None),
    page_token: Optional[str] = Query(None, alias="pageToken"),
    current_user: Dict = Depends(get_current_user_id),
    service: YouTubeService = Depends(get_youtube_service)
):
    return await service.search(
        current_user["id"],
        q,
        max_results=max_results,
        order=order,
        published_after=published_after,
        video_duration=duration,
        page_token=page_token,
    )


@router.get("/popular")
async def popular_shorts(
    region: str = Query("KR", pattern=r"^[A-Z]{2}$"),
    period: Literal["1h", "6h", "24h", "7d", "30d"] = Query("7d"),
    limit: int = Query(50, ge=1, le=100),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    current_user: Dict = Depends(get_current_user_id),
    service: YouTubeService = Depends(get_youtube_service)
):
    return await service.popular(current_user["id"], region, period, limit, category_id)


@router.post("/metrics")
async def video_metrics(
    body: MetricsRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: YouTubeService = Depends(get_youtube_service)
):
    return await service.metrics(current_user["id"], body.video_ids, body.subscriber_count)


@router.get("/analysis/{video_id}")
async def analyze_video(
    video_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: YouTubeService = Depends(get_youtube_service)
):
    return await service.analyze_video(current_user["id"], video_id)
