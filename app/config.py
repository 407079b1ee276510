from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Database Connection Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "Fulfillment Tracker"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Local calendar used for daily trend buckets and "shipped today"
    TIMEZONE: str = "UTC"

    # Order numbers look like FI-2410-0001
    ORDER_NUMBER_PREFIX: str = "FI"

    # Alert policy thresholds
    FULFILLMENT_THRESHOLD_DAYS: int = 5  # ASSIGNED/NOTIFIED older than this -> OVERDUE candidate
    DELAY_THRESHOLD_DAYS: int = 3  # DELAYED older than this -> DELAY candidate

    # Urgency classification (hours since assignment, strictly greater than)
    URGENCY_APPROACHING_HOURS: int = 24
    URGENCY_OVERDUE_HOURS: int = 48

    # Metrics
    TREND_DAYS: int = 14  # Points in the daily trend series
    RESPONSE_TIME_SAMPLE_SIZE: int = 100  # Most recent shipped orders sampled for response time

    # Periodic alert scan
    ALERT_SCAN_ENABLED: bool = False
    ALERT_SCAN_INTERVAL_MINUTES: int = 60

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
