from fastapi import APIRouter, Depends, HTTPException, Query
from app.core.dependencies import get_current_user_id, require_admin
from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.youtube.client import YouTubeClient
from app.modules.youtube_lens.batch import run_daily_batch
from app.modules.youtube_lens.schemas import ChannelCreate, ChannelUpdate, KeywordAnalyzeRequest
from app.modules.youtube_lens.service import LensService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/youtube-lens", tags=["youtube-lens"])


def get_lens_service(supabase: Client = Depends(get_supabase)) -> LensService:
    return LensService(supabase)


def get_admin_youtube_client() -> YouTubeClient:
    try:
        return YouTubeClient()
    except ValueError:
        raise HTTPException(status_code=500, detail="YouTube admin API key is not configured")


@router.get("/admin/channels")
async def list_channels(
    status: Optional[str] = Query(None, pattern="^(all|pending|approved|rejected)$"),
    q: Optional[str] = Query(None, max_length=100),
    admin: Dict = Depends(require_admin),
    service: LensService = Depends(get_lens_service)
):
    return {"data": service.list_channels(status, q)}


@router.post("/admin/channels", status_code=201)
async def add_channel(
    body: ChannelCreate,
    admin: Dict = Depends(require_admin),
    client: YouTubeClient = Depends(get_admin_youtube_client),
    service: LensService = Depends(get_lens_service)
):
    return await service.add_channel(admin["id"], body.channel_id, client)


@router.put("/admin/channels/{channel_id}")
async def update_channel(
    channel_id: str,
    body: ChannelUpdate,
    admin: Dict = Depends(require_admin),
    service: LensService = Depends(get_lens_service)
):
    return service.update_channel(admin["id"], channel_id, body)


@router.delete("/admin/channels/{channel_id}")
async def delete_channel(
    channel_id: str,
    admin: Dict = Depends(require_admin),
    service: LensService = Depends(get_lens_service)
):
    return service.delete_channel(admin["id"], channel_id)


@router.get("/admin/channel-stats")
async def channel_stats(
    admin: Dict = Depends(require_admin),
    service: LensService = Depends(get_lens_service)
):
    return {"data": service.channel_stats()}


@router.post("/admin/batch")
async def trigger_batch(
    admin: Dict = Depends(require_admin),
    client: YouTubeClient = Depends(get_admin_youtube_client),
    supabase: Client = Depends(get_service_supabase)
):
    """Run the daily snapshot/delta batch now."""
    return await run_daily_batch(supabase, client)


@router.get("/trending-summary")
async def trending_summary(
    date: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    limit: int = Query(10, ge=1, le=100),
    current_user: Dict = Depends(get_current_user_id),
    service: LensService = Depends(get_lens_service)
):
    return service.trending_summary(date, limit)


@router.get("/categories")
async def list_categories(
    current_user: Dict = Depends(get_current_user_id),
    service: LensService = Depends(get_lens_service)
):
    return {"data": service.categories()}


@router.get("/keywords/trends")
async def keyword_trends(
    days: int = Query(1, ge=1, le=30),
    category: Optional[str] = None,
    current_user: Dict = Depends(get_current_user_id),
    service: LensService = Depends(get_lens_service)
):
    return service.keyword_trends(days, category)


@router.post("/keywords/trends")
async def analyze_keyword_trends(
    body: KeywordAnalyzeRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: LensService = Depends(get_lens_service)
):
    return service.analyze_keywords(body.channel_ids, body.analyze)
