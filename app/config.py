import os
import uuid
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/document_control"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _resolve_system_actor_id() -> uuid.UUID:
    # Fixed fallback so scheduled runs are attributable in the audit log.
    raw = os.getenv("SYSTEM_ACTOR_ID", "00000000-0000-0000-0000-000000000001")
    return uuid.UUID(raw)


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    celery_result_backend: str = os.getenv(
        "CELERY_RESULT_BACKEND", "redis://localhost:6379/1"
    )
    overdue_review_cron_hour: int = int(os.getenv("OVERDUE_REVIEW_CRON_HOUR", "2"))

    # Review scheduling
    default_review_frequency_days: int = int(
        os.getenv("DEFAULT_REVIEW_FREQUENCY_DAYS", "90")
    )
    review_upcoming_days: int = int(os.getenv("REVIEW_UPCOMING_DAYS", "30"))
    recent_activity_limit: int = int(os.getenv("RECENT_ACTIVITY_LIMIT", "50"))
    system_actor_id: uuid.UUID = _resolve_system_actor_id()

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = os.getenv("LOG_JSON", "false").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    # Branding
    brand_name: str = os.getenv("BRAND_NAME", "Document Control")


settings = Settings()
