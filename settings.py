import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file (real env wins)
load_dotenv(override=False)


def _get_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")


def _get_list(key: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(key, default).split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    # Service side
    database_url: Optional[str] = os.getenv("DATABASE_URL")
    sql_echo: bool = _get_bool("LAB_SQL_ECHO", False)
    token_ttl_hours: int = int(os.getenv("LAB_TOKEN_TTL_HOURS", "24"))
    systems_file: Optional[str] = os.getenv("LAB_SYSTEMS_FILE")
    cors_origins: List[str] = field(default_factory=lambda: _get_list("LAB_CORS_ORIGINS", "*"))

    # Client side
    api_url: str = os.getenv("LAB_API_URL", "http://localhost:8000")
    http_timeout: float = float(os.getenv("LAB_HTTP_TIMEOUT", "10"))

    log_level: str = os.getenv("LAB_LOG_LEVEL", "INFO").upper()


settings = Settings()
