import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/visitgate"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    # "sql" or "memory"; picked once at startup
    storage_backend: str = os.getenv("STORAGE_BACKEND", "sql").strip().lower()

    # Admission policy
    facility_timezone: str = os.getenv("FACILITY_TIMEZONE", "UTC")
    near_capacity_percent: int = int(os.getenv("NEAR_CAPACITY_PERCENT", "80"))
    min_visitor_age: int = int(os.getenv("MIN_VISITOR_AGE", "18"))
    immediate_authorization_days: int = int(
        os.getenv("IMMEDIATE_AUTHORIZATION_DAYS", "1")
    )
    enforce_single_active_visit: bool = _env_bool("ENFORCE_SINGLE_ACTIVE_VISIT")

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    app_name: str = os.getenv("APP_NAME", "VisitGate")


settings = Settings()
