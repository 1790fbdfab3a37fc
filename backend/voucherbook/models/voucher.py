from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Date, Numeric, Boolean, DateTime, Text,
    Index, false, true,
)
from sqlalchemy.orm import relationship

from voucherbook.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Voucher(Base):
    __tablename__ = "vouchers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)

    # Descriptive
    name = Column(String(200), nullable=False)
    code = Column(String(200), nullable=False)
    category = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    eligible_businesses_url = Column(String(500), nullable=True)
    voucher_url = Column(String(500), nullable=True)

    # Ledger: balance is always original_balance + sum(transactions.amount)
    original_balance = Column(Numeric(12, 2), nullable=False)
    balance = Column(Numeric(12, 2), nullable=False)
    expiry_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())

    # Offer-for-sale side channel
    offer_for_sale = Column(Boolean, nullable=False, default=False, server_default=false())
    sale_price = Column(Numeric(12, 2), nullable=True)
    contact_info = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    # Optimistic concurrency counter, bumped by the ORM on every UPDATE
    version = Column(Integer, nullable=False, default=1)

    transactions = relationship(
        "Transaction",
        back_populates="voucher",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_vouchers_user_updated", "user_id", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<Voucher {self.id} {self.name!r} balance={self.balance}>"
