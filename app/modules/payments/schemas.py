from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class PaymentIntentCreate(BaseModel):
    course_id: str = Field(..., alias="courseId")
    coupon_code: Optional[str] = Field(None, alias="couponCode", max_length=50)

    model_config = {"populate_by_name": True}


class PaymentIntentResponse(BaseModel):
    orderId: str
    amount: int
    orderName: str
    customerName: str
    customerEmail: Optional[str] = None
    purchaseId: str
    appliedCoupon: Optional[Dict[str, Any]] = None


class PaymentConfirm(BaseModel):
    payment_key: str = Field(..., alias="paymentKey", min_length=1)
    order_id: str = Field(..., alias="orderId", min_length=1)
    amount: int = Field(..., gt=0)

    model_config = {"populate_by_name": True}
