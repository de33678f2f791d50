from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations and background jobs

    # API key encryption (AES-256-CBC, 64 hex chars)
    encryption_key: Optional[str] = None

    # TossPayments
    toss_secret_key: Optional[str] = None
    toss_api_base: str = "https://api.tosspayments.com"

    # Stripe
    stripe_webhook_secret: Optional[str] = None
    stripe_webhook_tolerance_seconds: int = 300

    # YouTube Data API / PubSubHubbub
    youtube_api_key: Optional[str] = None
    youtube_daily_quota: int = 10000
    pubsub_hub_url: str = "https://pubsubhubbub.appspot.com/"
    pubsub_callback_url: Optional[str] = None  # e.g. https://api.example.com/api/v1/youtube/webhook

    # Object storage (S3-compatible; Supabase Storage S3 endpoint or AWS)
    storage_endpoint_url: Optional[str] = None
    storage_access_key_id: Optional[str] = None
    storage_secret_access_key: Optional[str] = None
    storage_region: str = "ap-northeast-2"
    storage_public_base_url: Optional[str] = None  # public URL prefix, bucket is appended
    storage_default_bucket: str = "revenue-proofs"

    # Background jobs
    lens_batch_enabled: bool = False
    lens_batch_interval_seconds: int = 86400
    pubsub_renewal_enabled: bool = False
    pubsub_renewal_interval_seconds: int = 3600

    # App
    app_name: str = "creator-platform-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    admin_emails: str = ""
    rate_limit: str = "60/minute"  # slowapi format, e.g. "60/minute"
    auth_rate_limit: str = "5/15minutes"
    upload_rate_limit: str = "10/hour"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_admin_emails(self) -> List[str]:
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
