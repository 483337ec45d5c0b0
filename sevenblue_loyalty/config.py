import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv(encoding="utf-8")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    timezone: str
    refund_on_cancel: bool
    admin_api_token: str | None
    public_base_url: str
    cors_origins: list[str]
    log_level: str


@lru_cache
def get_settings() -> Settings:
    origins = os.getenv("CORS_ORIGINS") or "http://localhost:3000,http://127.0.0.1:3000"
    return Settings(
        database_url=os.getenv("DATABASE_URL") or "sqlite:///./sevenblue_loyalty.db",
        # calendar-day boundary for the daily bonus
        timezone=os.getenv("LOYALTY_TIMEZONE") or "Africa/Cairo",
        refund_on_cancel=_env_bool("LOYALTY_REFUND_ON_CANCEL", False),
        admin_api_token=os.getenv("ADMIN_API_TOKEN") or None,
        public_base_url=(os.getenv("PUBLIC_BASE_URL") or "").rstrip("/"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
