import asyncio
import logging
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import settings
from app.core.rate_limit import limiter, rate_limit_exceeded_handler
from app.database.supabase_client import get_supabase
from app.modules.auth import routes as auth_routes
from app.modules.users import routes as users_routes
from app.modules.api_keys import routes as api_keys_routes
from app.modules.community import routes as community_routes
from app.modules.revenue_proofs import routes as revenue_proofs_routes
from app.modules.courses import routes as courses_routes
from app.modules.certificates import routes as certificates_routes
from app.modules.coupons import routes as coupons_routes
from app.modules.payments import routes as payments_routes
from app.modules.notifications import routes as notifications_routes
from app.modules.uploads import routes as uploads_routes
from app.modules.collections import routes as collections_routes
from app.modules.folders import routes as folders_routes
from app.modules.pubsub import routes as pubsub_routes
from app.modules.youtube import routes as youtube_routes
from app.modules.youtube_lens import routes as youtube_lens_routes
from supabase import Client

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                    (b"Referrer-Policy", b"strict-origin-when-cross-origin"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(users_routes.router, prefix="/api/v1")
app.include_router(users_routes.account_router, prefix="/api/v1")
app.include_router(users_routes.admin_router, prefix="/api/v1")
app.include_router(api_keys_routes.router, prefix="/api/v1")
app.include_router(community_routes.router, prefix="/api/v1")
app.include_router(revenue_proofs_routes.router, prefix="/api/v1")
app.include_router(courses_routes.router, prefix="/api/v1")
app.include_router(certificates_routes.router, prefix="/api/v1")
app.include_router(coupons_routes.router, prefix="/api/v1")
app.include_router(coupons_routes.admin_router, prefix="/api/v1")
app.include_router(payments_routes.router, prefix="/api/v1")
app.include_router(notifications_routes.router, prefix="/api/v1")
app.include_router(uploads_routes.router, prefix="/api/v1")
app.include_router(collections_routes.router, prefix="/api/v1")
app.include_router(folders_routes.router, prefix="/api/v1")
app.include_router(pubsub_routes.router, prefix="/api/v1")
app.include_router(youtube_routes.router, prefix="/api/v1")
app.include_router(youtube_lens_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")

    if settings.lens_batch_enabled:
        from app.modules.youtube_lens.scheduler import lens_batch_loop
        asyncio.create_task(lens_batch_loop())
        logger.info(f"Lens batch loop started - every {settings.lens_batch_interval_seconds}s")

    if settings.pubsub_renewal_enabled:
        from app.modules.pubsub.scheduler import pubsub_renewal_loop
        asyncio.create_task(pubsub_renewal_loop())
        logger.info(f"PubSub renewal loop started - every {settings.pubsub_renewal_interval_seconds}s")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to creator-platform-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready(supabase: Client = Depends(get_supabase)):
    """Readiness check: the database must answer a trivial query."""
    try:
        supabase.table("profiles").select("id").limit(1).execute()
    except Exception as e:
        logger.error(f"Readiness check failed: {str(e)}")
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ready"}
