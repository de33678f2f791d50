"""Shared async HTTP client with retry and exponential backoff for third-party APIs."""
import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class ExternalAPIError(RuntimeError):
    """Error raised by an outbound API call"""

    def __init__(
        self,
        message: str,
        status_code: int,
        payload: Optional[Dict[str, Any]] = None,
        *,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}
        self.code = code


class RetryingAPIClient:
    """Base class: subclasses set ``service_name``/``error_class`` and resolve error payloads."""

    service_name = "external"
    error_class = ExternalAPIError
    RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}
    STATUS_MESSAGES: Dict[int, str] = {}

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        *,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(0, int(max_retries))
        self.backoff_factor = max(0.0, float(backoff_factor))

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        request_headers = {**self._headers(), **(headers or {})}

        for attempt in range(self.max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(
                        method, url, params=params, json=json, headers=request_headers
                    )
            except httpx.RequestError as exc:
                logger.warning(
                    "[%s] network error: %s %s attempt=%s error=%s",
                    self.service_name, method, path, attempt + 1, exc,
                )
                if attempt == self.max_retries:
                    raise self.error_class(
                        f"{self.service_name} network error",
                        status_code=0,
                        payload={"message": str(exc)},
                        code="network_error",
                    ) from exc
                await self._sleep_backoff(attempt)
                continue

            if response.status_code >= 400:
                payload = self._safe_json(response)
                message, code = self._resolve_error(payload, response.status_code)
                if response.status_code in self.RETRYABLE_STATUS and attempt < self.max_retries:
                    logger.warning(
                        "[%s] retrying: %s %s status=%s code=%s attempt=%s",
                        self.service_name, method, path, response.status_code, code, attempt + 1,
                    )
                    await self._sleep_backoff(attempt)
                    continue
                logger.error(
                    "[%s] request failed: %s %s status=%s code=%s",
                    self.service_name, method, path, response.status_code, code,
                )
                raise self.error_class(message, response.status_code, payload, code=code)

            if response.status_code == 204 or not response.content:
                return {}
            return self._safe_json(response)

        raise self.error_class(f"{self.service_name} request failed repeatedly", status_code=0)

    async def _sleep_backoff(self, attempt: int) -> None:
        delay = self.backoff_factor * (2 ** attempt)
        if delay > 0:
            await asyncio.sleep(delay)

    def _resolve_error(self, payload: Dict[str, Any], status_code: int) -> Tuple[str, Optional[str]]:
        message = payload.get("message") if isinstance(payload, dict) else None
        code = payload.get("code") if isinstance(payload, dict) else None
        if isinstance(message, str) and message.strip():
            return message, code
        return self.STATUS_MESSAGES.get(status_code, f"{self.service_name} request failed"), code

    @staticmethod
    def _safe_json(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
            return payload if isinstance(payload, dict) else {"data": payload}
        except ValueError:
            return {"message": response.text}
