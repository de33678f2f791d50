from pydantic import BaseModel, Field, model_validator
from typing import Optional, Literal
from datetime import datetime

DiscountType = Literal["percentage", "fixed"]


class CouponValidateRequest(BaseModel):
    coupon_code: str = Field(..., alias="couponCode", min_length=1, max_length=50)
    course_id: str

    model_config = {"populate_by_name": True}


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    description: Optional[str] = Field(None, max_length=500)
    discount_type: DiscountType
    discount_value: int = Field(..., gt=0)
    course_id: Optional[str] = None
    max_usage: Optional[int] = Field(None, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: datetime
    is_active: bool = True

    @model_validator(mode="after")
    def check_percentage(self):
        if self.discount_type == "percentage" and self.discount_value > 100:
            raise ValueError("percentage discounts cannot exceed 100")
        return self


class CouponUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    description: Optional[str] = Field(None, max_length=500)
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[int] = Field(None, gt=0)
    course_id: Optional[str] = None
    max_usage: Optional[int] = Field(None, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None
