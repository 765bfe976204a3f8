from typing import List, Optional

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

from app.core.constants import DEFAULT_NOTIFICATION_OFFSETS_HOURS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(env_file=".env", case_sensitive=True)

    DATABASE_URL: str
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Redis: real-time push bus and stats cache
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CACHE_TTL: int = 300  # 5 minutes default for notification stats

    # Background dispatchers
    ENABLE_BACKGROUND_DISPATCHERS: bool = True
    TASK_NOTIFICATION_INTERVAL_SECONDS: int = 60
    TASK_NOTIFICATION_OFFSETS_HOURS: List[int] = DEFAULT_NOTIFICATION_OFFSETS_HOURS
    LEAD_FOLLOW_UP_INTERVAL_SECONDS: int = 86400  # daily

    # Email channel (SendGrid v3 REST API)
    SENDGRID_API_KEY: Optional[str] = None
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"
    DEFAULT_FROM_EMAIL: str = "noreply@profieldmanager.com"
    DEFAULT_FROM_NAME: str = "Pro Field Manager"

    # SMS channel (Twilio REST API, credentials are per organization)
    TWILIO_API_BASE_URL: str = "https://api.twilio.com/2010-04-01"

    CHANNEL_TIMEOUT_SECONDS: float = 10.0

    # CORS configuration: comma-separated origins
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5000"


settings = Settings()
