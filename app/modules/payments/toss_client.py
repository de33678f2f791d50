"""TossPayments server API client (payment confirmation, cancellation, lookup)."""
import base64
import logging
from typing import Any, Dict, Optional, Tuple

from app.config import settings
from app.core.http_client import ExternalAPIError, RetryingAPIClient

logger = logging.getLogger(__name__)


class TossPaymentsError(ExternalAPIError):
    pass


class TossPaymentsClient(RetryingAPIClient):
    service_name = "TOSS"
    error_class = TossPaymentsError
    STATUS_MESSAGES = {
        400: "Invalid payment request",
        401: "TossPayments authentication failed",
        403: "Payment is not allowed",
        404: "Payment not found",
        409: "Payment already processed",
        429: "TossPayments rate limit exceeded",
    }

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 15.0,
        *,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
    ) -> None:
        super().__init__(
            base_url or settings.toss_api_base,
            timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
        )
        self.secret_key = secret_key or settings.toss_secret_key
        if not self.secret_key:
            raise ValueError("TOSS_SECRET_KEY is not configured")

    def _headers(self) -> Dict[str, str]:
        token = base64.b64encode(f"{self.secret_key}:".encode()).decode()
        return {
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _resolve_error(self, payload: Dict[str, Any], status_code: int) -> Tuple[str, Optional[str]]:
        message, code = super()._resolve_error(payload, status_code)
        return message, code or f"HTTP_{status_code}"

    async def confirm_payment(self, payment_key: str, order_id: str, amount: int) -> Dict[str, Any]:
        # one key per order, shared by every retry
        return await self._request(
            "POST",
            "/v1/payments/confirm",
            json={"paymentKey": payment_key, "orderId": order_id, "amount": amount},
            headers={"Idempotency-Key": order_id},
        )

    async def cancel_payment(
        self,
        payment_key: str,
        cancel_reason: str,
        cancel_amount: Optional[int] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"cancelReason": cancel_reason}
        if cancel_amount is not None:
            body["cancelAmount"] = cancel_amount
        logger.info("Cancelling Toss payment %s: %s", payment_key, cancel_reason)
        return await self._request(
            "POST",
            f"/v1/payments/{payment_key}/cancel",
            json=body,
            headers={"Idempotency-Key": f"cancel-{payment_key}-{cancel_amount or 'full'}"},
        )

    async def get_payment(self, payment_key: str) -> Dict[str, Any]:
        return await self._request("GET", f"/v1/payments/{payment_key}")
