# voucherbook/api/system.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from voucherbook import __version__, settings
from voucherbook.dependencies import get_db

router = APIRouter(tags=["ops"])


def _db_driver_from_url(url: str | None) -> str | None:
    if not url or "://" not in url:
        return None
    scheme = url.split("://", 1)[0]  # e.g., "postgresql+psycopg2"
    if "+" in scheme:
        return scheme.split("+", 1)[1]  # "psycopg2"
    return scheme  # fallback


@router.get("/health")
def health(db: Session = Depends(get_db)):
    """Liveness check with a lightweight DB probe and local time."""
    probe = {"status": "ok", "driver": _db_driver_from_url(settings.database_url())}
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        probe["status"] = f"error: {type(e).__name__}"

    return {
        "status": "ok",
        "time": {"tz": settings.timezone_name(), "now": settings.now_local().isoformat()},
        "db": probe,
    }


@router.get("/version")
def version():
    """Minimal runtime info; confirms DB driver for the UI."""
    return {
        "app": "voucherbook",
        "version": __version__,
        "db_driver": _db_driver_from_url(settings.database_url()),
        "tz": settings.timezone_name(),
    }
