from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint

from voucherbook.db import Base

DEFAULT_VOUCHER_CATEGORIES = (
    "retail",
    "restaurants",
    "entertainment",
    "travel",
    "services",
    "other",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VoucherCategory(Base):
    """A user-defined category on top of the built-in defaults."""

    __tablename__ = "voucher_categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_voucher_categories_user_name"),
    )
