import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_TSHEETS_BASE_URL = "https://rest.tsheets.com/api/v1"


class Settings(BaseModel):
    """Process-wide configuration, resolved once at startup"""

    database_url: str = "sqlite:///./work_schedules.db"

    # Connection pool (ignored by SQLite)
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 300
    db_log_slow_queries: bool = True
    db_slow_query_threshold: float = 1.0

    # QuickBooks Time (TSheets) configuration
    tsheets_base_url: str = DEFAULT_TSHEETS_BASE_URL
    qbtime_pm_group: str = "PROJECT MANAGERS"
    qbtime_tech_group: str = "TECHNICIANS"
    # Server-side token; never returned by any endpoint
    qbtime_token: Optional[str] = None
    qbtime_timeout: float = 30.0

    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    log_level: str = "INFO"

    # Client-side settings (workspace / local cache)
    schedule_api_url: str = "http://localhost:8000"
    schedule_cache_dir: str = ".schedule-cache"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        origins = os.getenv("ALLOWED_ORIGINS")
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", str(defaults.db_pool_size))),
            db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", str(defaults.db_max_overflow))),
            db_pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", str(defaults.db_pool_timeout))),
            db_pool_recycle=int(os.getenv("DB_POOL_RECYCLE", str(defaults.db_pool_recycle))),
            db_log_slow_queries=os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true",
            db_slow_query_threshold=float(
                os.getenv("DB_SLOW_QUERY_THRESHOLD", str(defaults.db_slow_query_threshold))
            ),
            tsheets_base_url=os.getenv("TSHEETS_BASE_URL", DEFAULT_TSHEETS_BASE_URL).rstrip("/"),
            qbtime_pm_group=os.getenv("QBTIME_PM_GROUP", defaults.qbtime_pm_group),
            qbtime_tech_group=os.getenv("QBTIME_TECH_GROUP", defaults.qbtime_tech_group),
            qbtime_token=os.getenv("QBTIME_TOKEN") or None,
            qbtime_timeout=float(os.getenv("QBTIME_TIMEOUT", str(defaults.qbtime_timeout))),
            allowed_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins
                else defaults.allowed_origins
            ),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            schedule_api_url=os.getenv("SCHEDULE_API_URL", defaults.schedule_api_url).rstrip("/"),
            schedule_cache_dir=os.getenv("SCHEDULE_CACHE_DIR", defaults.schedule_cache_dir),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
