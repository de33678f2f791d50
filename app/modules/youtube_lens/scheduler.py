import asyncio
import logging
from app.config import settings
from app.database.supabase_client import get_service_supabase
from app.modules.youtube.client import YouTubeClient
from app.modules.youtube_lens.batch import run_daily_batch

logger = logging.getLogger(__name__)


async def collect_channel_stats():
    """Run the daily lens batch with the server's YouTube key."""
    try:
        if not settings.youtube_api_key:
            logger.warning("Skipping lens batch: YOUTUBE_API_KEY is not configured")
            return
        result = await run_daily_batch(get_service_supabase(), YouTubeClient())
        if not result["success"]:
            logger.warning(f"Lens batch completed with errors: {result['errors']}")
    except Exception as e:
        logger.error(f"Error in lens batch: {str(e)}")


async def lens_batch_loop():
    """Background task that refreshes channel snapshots once per interval"""
    while True:
        try:
            await collect_channel_stats()
        except Exception as e:
            logger.error(f"Error in lens batch loop: {str(e)}")

        await asyncio.sleep(settings.lens_batch_interval_seconds)
