import logging
from supabase import Client
from app.core.time_utils import utcnow
from app.database.supabase_client import first_row
from app.modules.coupons.service import CouponService
from app.modules.courses.service import CourseService
from app.modules.payments.schemas import PaymentIntentCreate, PaymentConfirm
from app.modules.payments.toss_client import TossPaymentsClient, TossPaymentsError
from typing import Any, Dict, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

CANCEL_REASON = "Order processing failed"
ALREADY_PROCESSED = "ALREADY_PROCESSED_PAYMENT"
SUBSCRIPTION_EVENTS = {
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
}


def build_order_id(course_id: str, user_id: str, now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(utcnow().timestamp() * 1000)
    return f"ORDER_{now_ms}_{course_id}_{user_id[:8]}"


class PaymentService:
    def __init__(self, supabase: Client, toss: Optional[TossPaymentsClient] = None):
        self.supabase = supabase
        self.toss = toss
        self.courses = CourseService(supabase)
        self.coupons = CouponService(supabase)

    def _completed_purchase(self, user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
        return first_row(
            self.supabase.table("purchases")
            .select("id")
            .eq("user_id", user_id)
            .eq("course_id", course_id)
            .eq("status", "completed")
            .limit(1)
            .execute()
        )

    def create_intent(self, user: Dict[str, Any], body: PaymentIntentCreate) -> Dict[str, Any]:
        user_id = user["id"]
        course = self.courses.find_course(body.course_id)
        if not course:
            raise HTTPException(status_code=404, detail="Course not found")
        if self._completed_purchase(user_id, body.course_id):
            raise HTTPException(status_code=400, detail="Course already purchased")

        price = int(course.get("price") or 0)
        final_price = price
        applied_coupon = None
        if body.coupon_code:
            validation = self.coupons.validate(user_id, body.coupon_code, body.course_id)
            applied_coupon = validation["coupon"]
            final_price = validation["discount"]["finalPrice"]
        if final_price <= 0:
            raise HTTPException(status_code=400, detail="Free courses use the free enrollment flow")

        order_id = build_order_id(body.course_id, user_id)
        try:
            result = self.supabase.table("purchases").insert({
                "user_id": user_id,
                "course_id": body.course_id,
                "amount": price,
                "final_amount": final_price,
                "coupon_id": applied_coupon["id"] if applied_coupon else None,
                "payment_method": "tosspayments",
                "payment_intent_id": order_id,
                "status": "pending",
                "created_at": utcnow().isoformat(),
            }).execute()
        except Exception as e:
            logger.error("Failed to create purchase for %s: %s", order_id, e)
            raise HTTPException(status_code=500, detail="Failed to create purchase")
        purchase = first_row(result)
        if not purchase:
            raise HTTPException(status_code=500, detail="Failed to create purchase")

        profile = first_row(
            self.supabase.table("profiles").select("username").eq("id", user_id).limit(1).execute()
        ) or {}
        return {
            "orderId": order_id,
            "amount": final_price,
            "orderName": course.get("title") or "",
            "customerName": profile.get("username") or "Customer",
            "customerEmail": user.get("email"),
            "purchaseId": purchase["id"],
            "appliedCoupon": applied_coupon,
        }

    async def _settled_payment(self, body: PaymentConfirm) -> Optional[Dict[str, Any]]:
        """The Toss payment for this order if an earlier confirm already approved it."""
        try:
            payment = await self.toss.get_payment(body.payment_key)
        except TossPaymentsError as e:
            logger.error("Toss lookup failed for %s: %s (%s)", body.payment_key, e.message, e.code)
            return None
        if payment.get("status") != "DONE" or payment.get("orderId") != body.order_id:
            return None
        if int(payment.get("totalAmount") or 0) != body.amount:
            return None
        return payment

    async def confirm(self, user_id: str, body: PaymentConfirm) -> Dict[str, Any]:
        if self.toss is None:
            raise HTTPException(status_code=500, detail="Payment provider is not configured")
        purchase = first_row(
            self.supabase.table("purchases")
            .select("*")
            .eq("payment_intent_id", body.order_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not purchase:
            raise HTTPException(status_code=404, detail="Order not found")
        if purchase.get("status") == "completed":
            raise HTTPException(status_code=409, detail="Payment already processed")
        expected = purchase.get("final_amount")
        if expected is None:
            expected = purchase.get("amount")
        if int(expected or 0) != body.amount:
            raise HTTPException(status_code=400, detail="Payment amount does not match the order")

        try:
            payment = await self.toss.confirm_payment(body.payment_key, body.order_id, body.amount)
        except TossPaymentsError as e:
            payment = None
            if e.code == ALREADY_PROCESSED:
                payment = await self._settled_payment(body)
            if payment is None:
                logger.warning("Toss confirm failed for %s: %s (%s)", body.order_id, e.message, e.code)
                raise HTTPException(status_code=400, detail={"error": e.message, "code": e.code})
            logger.info("Order %s was already approved by Toss, completing it", body.order_id)

        now = utcnow().isoformat()
        receipt = payment.get("receipt") or {}
        try:
            result = self.supabase.table("purchases")\
                .update({
                    "status": "completed",
                    "payment_key": body.payment_key,
                    "approved_at": payment.get("approvedAt") or now,
                    "completed_at": now,
                    "receipt_url": receipt.get("url"),
                    "updated_at": now,
                })\
                .eq("id", purchase["id"])\
                .execute()
            updated = first_row(result)
            if not updated:
                raise RuntimeError("purchase update returned no rows")
        except Exception as e:
            logger.error("Purchase update failed for %s, cancelling payment: %s", body.order_id, e)
            try:
                await self.toss.cancel_payment(body.payment_key, CANCEL_REASON)
            except TossPaymentsError as cancel_error:
                logger.error("Compensating cancel failed for %s: %s", body.payment_key, cancel_error)
            raise HTTPException(status_code=500, detail="Order processing failed")

        self.courses.enroll(updated["user_id"], updated["course_id"], updated["id"])
        self.courses.adjust_student_count(updated["course_id"], 1)
        if updated.get("coupon_id"):
            self.coupons.record_usage(updated["coupon_id"])
        logger.info("Payment confirmed: order=%s user=%s", body.order_id, user_id)

        return {
            "success": True,
            "purchase": updated,
            "payment": {
                "method": payment.get("method"),
                "approvedAt": payment.get("approvedAt"),
                "receipt": payment.get("receipt"),
            },
        }


class StripeWebhookService:
    """Applies Stripe events to purchases; each event id is processed once."""

    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.courses = CourseService(supabase)

    def is_duplicate(self, event_id: str) -> bool:
        result = self.supabase.table("webhook_events")\
            .select("id")\
            .eq("provider", "stripe")\
            .eq("event_id", event_id)\
            .limit(1)\
            .execute()
        return bool(result.data)

    def _record(self, event: Dict[str, Any]) -> None:
        self.supabase.table("webhook_events").insert({
            "provider": "stripe",
            "event_id": event["id"],
            "event_type": event.get("type"),
            "payload": event,
            "processed_at": utcnow().isoformat(),
        }).execute()

    def _purchase_by_intent(self, intent_id: str) -> Optional[Dict[str, Any]]:
        return first_row(
            self.supabase.table("purchases")
            .select("*")
            .eq("payment_intent_id", intent_id)
            .limit(1)
            .execute()
        )

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        event_id = event.get("id")
        event_type = event.get("type")
        if not event_id or not event_type:
            raise HTTPException(status_code=400, detail="Malformed event")
        if self.is_duplicate(event_id):
            logger.info("Skipping duplicate Stripe event %s", event_id)
            return {"received": True, "duplicate": True}

        obj = (event.get("data") or {}).get("object") or {}
        if event_type == "payment_intent.succeeded":
            self._payment_succeeded(obj)
        elif event_type == "payment_intent.payment_failed":
            self._payment_failed(obj)
        elif event_type == "charge.refunded":
            self._charge_refunded(obj)
        elif event_type in SUBSCRIPTION_EVENTS:
            logger.info("Subscription event: %s", event_type)
        else:
            logger.info("Unhandled Stripe event type: %s", event_type)

        self._record(event)
        return {"received": True}

    def _payment_succeeded(self, intent: Dict[str, Any]) -> None:
        now = utcnow().isoformat()
        result = self.supabase.table("purchases")\
            .update({"status": "completed", "completed_at": now, "updated_at": now})\
            .eq("payment_intent_id", intent.get("id"))\
            .execute()
        purchase = first_row(result) or self._purchase_by_intent(intent.get("id"))
        if not purchase:
            logger.warning("No purchase for PaymentIntent %s", intent.get("id"))
            return
        self.courses.enroll(purchase["user_id"], purchase["course_id"], purchase["id"])
        self.courses.adjust_student_count(purchase["course_id"], 1)

    def _payment_failed(self, intent: Dict[str, Any]) -> None:
        now = utcnow().isoformat()
        self.supabase.table("purchases")\
            .update({"status": "failed", "failed_at": now, "updated_at": now})\
            .eq("payment_intent_id", intent.get("id"))\
            .execute()

    def _charge_refunded(self, charge: Dict[str, Any]) -> None:
        intent_id = charge.get("payment_intent")
        if not intent_id:
            return
        purchase = self._purchase_by_intent(intent_id)
        if not purchase:
            logger.warning("Refund for unknown PaymentIntent %s", intent_id)
            return
        now = utcnow().isoformat()
        updates = {"refund_amount": charge.get("amount_refunded"), "updated_at": now}
        # Stripe sends charge.refunded for every partial refund; only the full one revokes access
        fully_refunded = bool(charge.get("refunded"))
        first_full_refund = fully_refunded and purchase.get("status") != "refunded"
        if first_full_refund:
            updates.update({"status": "refunded", "refunded_at": now})
        self.supabase.table("purchases")\
            .update(updates)\
            .eq("id", purchase["id"])\
            .execute()
        if not first_full_refund:
            logger.info("Refund amount updated for purchase %s", purchase["id"])
            return
        self.courses.deactivate_enrollment(purchase["user_id"], purchase["course_id"])
        self.courses.adjust_student_count(purchase["course_id"], -1)
