# voucherbook/settings.py
"""
Runtime configuration.

Everything is read from the environment (a local ``.env`` is loaded first),
so the same code runs against SQLite in development and Postgres in
production without edits.
"""
from __future__ import annotations

import os
from datetime import date, datetime
from typing import List
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def database_url() -> str:
    return os.getenv("DATABASE_URL", "sqlite:///./voucherbook.db")


def sql_echo() -> bool:
    return _env_flag("SQL_ECHO")


def auth_enforced() -> bool:
    """True if callers must identify themselves with X-User-Id."""
    return _env_flag("AUTH_ENFORCE")


def dev_user_id() -> str:
    return os.getenv("DEV_USER_ID", "dev-user")


def timezone_name() -> str:
    return os.getenv("TZ", "UTC")


def expiring_soon_days() -> int:
    return _env_int("EXPIRING_SOON_DAYS", 30)


def new_voucher_days() -> int:
    return _env_int("NEW_VOUCHER_DAYS", 7)


def cors_origins() -> List[str]:
    raw = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    )
    return [o.strip() for o in raw.split(",") if o.strip()]


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def now_local() -> datetime:
    return datetime.now(ZoneInfo(timezone_name()))


def today() -> date:
    """Calendar date used for expiry comparisons."""
    return now_local().date()
