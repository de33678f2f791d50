import json
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from app.config import settings
from app.core.dependencies import get_current_user_id
from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.payments.schemas import PaymentIntentCreate, PaymentIntentResponse, PaymentConfirm
from app.modules.payments.service import PaymentService, StripeWebhookService
from app.modules.payments.stripe_signature import SignatureVerificationError, verify_signature
from app.modules.payments.toss_client import TossPaymentsClient
from supabase import Client
from typing import Dict, Optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["payments"])


def get_toss_client() -> Optional[TossPaymentsClient]:
    if not settings.toss_secret_key:
        return None
    return TossPaymentsClient()


def get_payment_service(
    supabase: Client = Depends(get_supabase),
    toss: Optional[TossPaymentsClient] = Depends(get_toss_client)
) -> PaymentService:
    return PaymentService(supabase, toss)


def get_webhook_service(supabase: Client = Depends(get_service_supabase)) -> StripeWebhookService:
    return StripeWebhookService(supabase)


@router.post("/create-intent", response_model=PaymentIntentResponse)
async def create_intent(
    body: PaymentIntentCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: PaymentService = Depends(get_payment_service)
):
    return service.create_intent(current_user, body)


@router.post("/confirm")
async def confirm_payment(
    body: PaymentConfirm,
    current_user: Dict = Depends(get_current_user_id),
    service: PaymentService = Depends(get_payment_service)
):
    return await service.confirm(current_user["id"], body)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    service: StripeWebhookService = Depends(get_webhook_service)
):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(status_code=400, detail="Missing stripe signature")
    try:
        verify_signature(
            payload,
            signature,
            settings.stripe_webhook_secret,
            tolerance=settings.stripe_webhook_tolerance_seconds,
        )
    except SignatureVerificationError as e:
        logger.warning("Stripe signature verification failed: %s", e)
        raise HTTPException(status_code=400, detail="Invalid signature")
    try:
        event = json.loads(payload)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")

    try:
        return service.handle_event(event)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Webhook processing error for %s: %s", event.get("id"), e)
        raise HTTPException(status_code=500, detail="Webhook processing failed")
