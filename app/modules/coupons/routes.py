from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_current_user_id, require_admin
from app.database.supabase_client import get_supabase
from app.modules.coupons.schemas import CouponValidateRequest, CouponCreate, CouponUpdate
from app.modules.coupons.service import CouponService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/coupons", tags=["coupons"])
admin_router = APIRouter(prefix="/admin/coupons", tags=["admin"])


def get_coupon_service(supabase: Client = Depends(get_supabase)) -> CouponService:
    return CouponService(supabase)


@router.post("/validate")
async def validate_coupon(
    body: CouponValidateRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: CouponService = Depends(get_coupon_service)
):
    return service.validate(current_user["id"], body.coupon_code, body.course_id)


@admin_router.get("")
async def list_coupons(
    admin: Dict = Depends(require_admin),
    service: CouponService = Depends(get_coupon_service)
):
    return service.list_all()


@admin_router.post("", status_code=201)
async def create_coupon(
    body: CouponCreate,
    admin: Dict = Depends(require_admin),
    service: CouponService = Depends(get_coupon_service)
):
    return service.create(admin["id"], body)


@admin_router.patch("/{coupon_id}")
async def update_coupon(
    coupon_id: str,
    body: CouponUpdate,
    admin: Dict = Depends(require_admin),
    service: CouponService = Depends(get_coupon_service)
):
    return service.update(coupon_id, body)


@admin_router.delete("")
async def deactivate_coupon(
    coupon_id: str = Query(..., alias="id"),
    admin: Dict = Depends(require_admin),
    service: CouponService = Depends(get_coupon_service)
):
    return service.deactivate(coupon_id)
