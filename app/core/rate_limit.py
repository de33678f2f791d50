from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from app.config import settings


def client_ip(request: Request) -> str:
    """Client address behind a proxy: X-Forwarded-For (first hop), X-Real-IP, then the peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return get_remote_address(request)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    response = _rate_limit_exceeded_handler(request, exc)
    if "Retry-After" not in response.headers:
        response.headers["Retry-After"] = str(exc.limit.limit.get_expiry())
    return response


limiter = Limiter(key_func=client_ip, default_limits=[settings.rate_limit])
