import logging
import math
from supabase import Client
from app.core.time_utils import utcnow, parse_timestamp
from app.database.supabase_client import first_row
from app.modules.coupons.schemas import CouponCreate, CouponUpdate
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_discount(coupon: Dict[str, Any], price: int) -> Dict[str, int]:
    """Price breakdown for a coupon; the final price never goes below zero."""
    value = coupon.get("discount_value") or 0
    if coupon.get("discount_type") == "percentage":
        discount = round_half_up(price * value / 100)
    else:
        discount = min(int(value), price)
    discount = max(0, min(discount, price))
    return {
        "originalPrice": price,
        "discountAmount": discount,
        "finalPrice": max(0, price - discount),
        "discountPercentage": round_half_up(discount / price * 100) if price else 0,
    }


def public_coupon(coupon: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": coupon.get("id"),
        "code": coupon.get("code"),
        "description": coupon.get("description"),
        "discountType": coupon.get("discount_type"),
        "discountValue": coupon.get("discount_value"),
        "validUntil": coupon.get("valid_until"),
    }


class CouponService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def find_active(self, code: str) -> Optional[Dict[str, Any]]:
        return first_row(
            self.supabase.table("coupons")
            .select("*")
            .eq("code", code.strip().upper())
            .eq("is_active", True)
            .limit(1)
            .execute()
        )

    def check_usable(self, coupon: Dict[str, Any], user_id: str, course_id: str) -> None:
        """Raise 400 with the first rule the coupon breaks."""
        now = utcnow()
        valid_from = parse_timestamp(coupon.get("valid_from"))
        valid_until = parse_timestamp(coupon.get("valid_until"))
        if valid_from and now < valid_from:
            raise HTTPException(status_code=400, detail="This coupon is not valid yet")
        if valid_until and now > valid_until:
            raise HTTPException(status_code=400, detail="This coupon has expired")
        max_usage = coupon.get("max_usage")
        if max_usage and int(coupon.get("usage_count") or 0) >= int(max_usage):
            raise HTTPException(status_code=400, detail="This coupon has reached its usage limit")
        if coupon.get("course_id") and coupon["course_id"] != course_id:
            raise HTTPException(status_code=400, detail="This coupon cannot be used for this course")
        used = self.supabase.table("purchases")\
            .select("id")\
            .eq("user_id", user_id)\
            .eq("coupon_id", coupon["id"])\
            .eq("status", "completed")\
            .limit(1)\
            .execute()
        if used.data:
            raise HTTPException(status_code=400, detail="You have already used this coupon")

    def validate(self, user_id: str, code: str, course_id: str) -> Dict[str, Any]:
        coupon = self.find_active(code)
        if not coupon:
            raise HTTPException(status_code=400, detail="Invalid coupon code")
        self.check_usable(coupon, user_id, course_id)
        course = first_row(
            self.supabase.table("courses")
            .select("id, price")
            .eq("id", course_id)
            .limit(1)
            .execute()
        )
        if not course:
            raise HTTPException(status_code=404, detail="Course not found")
        return {
            "valid": True,
            "coupon": public_coupon(coupon),
            "discount": calculate_discount(coupon, int(course.get("price") or 0)),
        }

    def record_usage(self, coupon_id: str) -> None:
        coupon = first_row(
            self.supabase.table("coupons").select("id, usage_count").eq("id", coupon_id).limit(1).execute()
        )
        if not coupon:
            return
        self.supabase.table("coupons")\
            .update({"usage_count": int(coupon.get("usage_count") or 0) + 1})\
            .eq("id", coupon_id)\
            .execute()

    # Admin

    def list_all(self) -> List[Dict[str, Any]]:
        return self.supabase.table("coupons")\
            .select("*")\
            .order("created_at", desc=True)\
            .execute().data or []

    def create(self, admin_id: str, body: CouponCreate) -> Dict[str, Any]:
        code = body.code.strip().upper()
        existing = self.supabase.table("coupons").select("id").eq("code", code).limit(1).execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="Coupon code already exists")
        now = utcnow().isoformat()
        result = self.supabase.table("coupons").insert({
            "code": code,
            "description": body.description,
            "discount_type": body.discount_type,
            "discount_value": body.discount_value,
            "course_id": body.course_id,
            "max_usage": body.max_usage,
            "usage_count": 0,
            "valid_from": body.valid_from.isoformat() if body.valid_from else now,
            "valid_until": body.valid_until.isoformat(),
            "is_active": body.is_active,
            "created_by": admin_id,
            "created_at": now,
        }).execute()
        logger.info("Coupon %s created by %s", code, admin_id)
        return first_row(result)

    def update(self, coupon_id: str, body: CouponUpdate) -> Dict[str, Any]:
        updates = body.model_dump(exclude_none=True, mode="json")
        if "code" in updates:
            updates["code"] = updates["code"].strip().upper()
        updates["updated_at"] = utcnow().isoformat()
        result = self.supabase.table("coupons").update(updates).eq("id", coupon_id).execute()
        coupon = first_row(result)
        if not coupon:
            raise HTTPException(status_code=404, detail="Coupon not found")
        return coupon

    def deactivate(self, coupon_id: str) -> Dict[str, str]:
        result = self.supabase.table("coupons")\
            .update({"is_active": False, "updated_at": utcnow().isoformat()})\
            .eq("id", coupon_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Coupon not found")
        return {"message": "Coupon deactivated"}
