from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Date, Numeric, Enum, ForeignKey, DateTime,
)
from sqlalchemy.orm import relationship

from voucherbook.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---- Enums -------------------------------------------------------------------
class TransactionKind(str, enum.Enum):
    purchase = "purchase"      # amount < 0
    refund = "refund"          # amount > 0
    adjustment = "adjustment"  # signed, from an administrative balance overwrite; never edited or deleted


# ---- Model -------------------------------------------------------------------
class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    voucher_id = Column(
        Integer,
        ForeignKey("vouchers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    voucher = relationship("Voucher", back_populates="transactions")

    kind = Column(Enum(TransactionKind, name="transaction_kind"), nullable=False, default=TransactionKind.purchase)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String(500), nullable=False)
    purchase_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Advisory snapshot taken when the row was written; never re-derived.
    previous_balance = Column(Numeric(12, 2), nullable=False)
    new_balance = Column(Numeric(12, 2), nullable=False)

    def __repr__(self) -> str:
        return f"<Transaction {self.id} voucher={self.voucher_id} amount={self.amount}>"
