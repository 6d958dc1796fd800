"""Centralized environment-driven settings.

Keep this module lightweight: stdlib and dotenv only, no app imports, to avoid circular deps.
"""

from __future__ import annotations

import logging
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _list_env(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


def get_timezone() -> ZoneInfo:
    """Timezone used to bucket view and visit timestamps into calendar days."""
    name = os.getenv("INKWELL_TIMEZONE", "UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown INKWELL_TIMEZONE {name!r}; bucketing stats by UTC instead.")
        return ZoneInfo("UTC")


# Trailing window (days) used by the stats endpoints when the client does not pass ?days=
# Configured via .env: INKWELL_STATS_WINDOW_DAYS=30
STATS_WINDOW_DAYS: int = _int_env("INKWELL_STATS_WINDOW_DAYS", 30)

# Upper bound accepted for ?days= on stats endpoints
STATS_WINDOW_MAX_DAYS: int = _int_env("INKWELL_STATS_WINDOW_MAX_DAYS", 365)

FALLBACK_LOCALE: str = os.getenv("INKWELL_FALLBACK_LOCALE", "en")

AVAILABLE_LOCALES: list[str] = _list_env(
    "INKWELL_AVAILABLE_LOCALES",
    ["ar", "de", "en", "es", "fa", "fr", "hi", "hu", "it", "nl", "pl", "pt", "ro", "ru", "tr", "zh-CN"],
)

# Page size for cursor-paginated listings
DEFAULT_PAGE_SIZE: int = _int_env("INKWELL_PAGE_SIZE", 15)

# Bearer tokens
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = _int_env("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", 60)

# Browser origins allowed to call the API
CORS_ORIGINS: list[str] = _list_env("CORS_ORIGINS", ["http://localhost:3000", "http://localhost"])


def require_jwt_secret() -> str:
    """The token signing key; refuse to start without a long enough one."""
    secret = os.getenv("JWT_SECRET_KEY")
    if not secret or len(secret) < 32:
        raise RuntimeError(
            "JWT_SECRET_KEY must be set to at least 32 characters. "
            "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )
    return secret
