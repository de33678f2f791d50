import asyncio
import logging
from app.config import settings
from app.database.supabase_client import get_service_supabase
from app.modules.pubsub.service import PubSubService

logger = logging.getLogger(__name__)


async def renew_subscriptions():
    """Renew hub subscriptions that are about to lapse and expire the lapsed ones."""
    try:
        service = PubSubService(get_service_supabase())
        result = await service.renew_expiring()
        if result["renewed"] or result["expired"]:
            logger.info(f"PubSub maintenance: renewed={result['renewed']} expired={result['expired']}")
        else:
            logger.debug("No subscriptions to renew")
    except Exception as e:
        logger.error(f"Error in PubSub renewal: {str(e)}")


async def pubsub_renewal_loop():
    """Background task that periodically renews hub subscriptions"""
    while True:
        try:
            await renew_subscriptions()
        except Exception as e:
            logger.error(f"Error in PubSub renewal loop: {str(e)}")

        await asyncio.sleep(settings.pubsub_renewal_interval_seconds)
