"""Daily snapshot of approved channels' statistics and the day-over-day deltas."""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from supabase import Client

from app.core.time_utils import utcnow
from app.modules.youtube.client import YouTubeAPIError, YouTubeClient, chunked

logger = logging.getLogger(__name__)

BATCH_NAME = "yl-daily-batch"
CHUNK_SIZE = 50
RETENTION_DAYS = 30


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def build_snapshot(item: Dict[str, Any], day: date) -> Dict[str, Any]:
    statistics = item.get("statistics") or {}
    return {
        "channel_id": item["id"],
        "date": day.isoformat(),
        "view_count_total": _int(statistics.get("viewCount")),
        "subscriber_count": _int(statistics.get("subscriberCount")),
        "video_count": _int(statistics.get("videoCount")),
    }


def compute_delta(today: Dict[str, Any], previous: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    delta_views = 0
    delta_subscribers = 0
    growth_rate = 0.0
    if previous:
        previous_views = _int(previous.get("view_count_total"))
        delta_views = max(0, today["view_count_total"] - previous_views)
        delta_subscribers = today["subscriber_count"] - _int(previous.get("subscriber_count"))
        if previous_views > 0:
            growth_rate = round(delta_views / previous_views * 100, 2)
    return {
        "channel_id": today["channel_id"],
        "date": today["date"],
        "delta_views": delta_views,
        "delta_subscribers": delta_subscribers,
        "growth_rate": growth_rate,
    }


async def run_daily_batch(
    supabase: Client,
    client: YouTubeClient,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or utcnow()
    today = now.date()
    result: Dict[str, Any] = {
        "success": False,
        "processed": 0,
        "errors": [],
        "timestamp": now.isoformat(),
    }

    channels = supabase.table("yl_channels")\
        .select("channel_id")\
        .eq("approval_status", "approved")\
        .execute().data or []
    if not channels:
        result["success"] = True
        result["errors"].append("No approved channels to process")
        return result

    items: List[Dict[str, Any]] = []
    for chunk in chunked([c["channel_id"] for c in channels], CHUNK_SIZE):
        try:
            items.extend(await client.get_channels(chunk))
        except YouTubeAPIError as e:
            logger.error(f"YouTube API error during lens batch: {e.message}")
            result["errors"].append(f"YouTube API error: {e.message}")

    snapshots = [build_snapshot(item, today) for item in items if item.get("id")]
    if snapshots:
        try:
            supabase.table("yl_channel_daily_snapshot")\
                .upsert(snapshots, on_conflict="channel_id,date")\
                .execute()
        except Exception as e:
            result["errors"].append(f"Failed to save snapshots: {str(e)}")

    yesterday = (today - timedelta(days=1)).isoformat()
    previous_rows = supabase.table("yl_channel_daily_snapshot")\
        .select("*")\
        .eq("date", yesterday)\
        .execute().data or []
    if previous_rows and snapshots:
        previous = {row["channel_id"]: row for row in previous_rows}
        deltas = [compute_delta(s, previous.get(s["channel_id"])) for s in snapshots]
        try:
            supabase.table("yl_channel_daily_delta")\
                .upsert(deltas, on_conflict="channel_id,date")\
                .execute()
        except Exception as e:
            result["errors"].append(f"Failed to save deltas: {str(e)}")

    cutoff = (today - timedelta(days=RETENTION_DAYS)).isoformat()
    try:
        supabase.table("yl_channel_daily_snapshot").delete().lt("date", cutoff).execute()
        supabase.table("yl_channel_daily_delta").delete().lt("date", cutoff).execute()
    except Exception as e:
        logger.warning(f"Lens batch cleanup failed: {str(e)}")
        result["errors"].append("Some cleanup operations failed")

    result["processed"] = len(snapshots)
    result["success"] = not result["errors"]

    try:
        supabase.table("yl_batch_logs").insert({
            "function_name": BATCH_NAME,
            "success": result["success"],
            "processed_count": result["processed"],
            "errors": result["errors"],
            "executed_at": result["timestamp"],
        }).execute()
    except Exception as e:
        logger.warning(f"Failed to write lens batch log: {str(e)}")

    logger.info(f"Lens batch finished: processed={result['processed']} errors={len(result['errors'])}")
    return result
