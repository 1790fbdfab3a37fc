# voucherbook/schemas/transactions.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_serializer

from voucherbook.models.transactions import TransactionKind
from voucherbook.schemas.vouchers import VoucherRead


class EntryCreate(BaseModel):
    """Purchase or refund. ``amount`` is a positive magnitude; the sign is implied by the endpoint."""

    amount: Decimal
    description: Optional[str] = None
    purchase_date: Optional[date] = None


class TransactionEdit(BaseModel):
    amount: Decimal
    description: Optional[str] = None
    purchase_date: Optional[date] = None


class BalanceSnapshotRead(BaseModel):
    """Balance around this entry when it was written. Historical; not kept in sync."""

    previous_balance: Decimal
    new_balance: Decimal

    @field_serializer("previous_balance", "new_balance")
    def _serialize_money(self, v: Decimal):
        return float(v)


class TransactionRead(BaseModel):
    id: int
    voucher_id: int
    kind: TransactionKind
    amount: Decimal
    description: str
    purchase_date: Optional[date] = None
    created_at: datetime
    snapshot: BalanceSnapshotRead


    @classmethod
    def from_model(cls, tx) -> "TransactionRead":
        return cls(
            id=tx.id,
            voucher_id=tx.voucher_id,
            kind=tx.kind,
            amount=tx.amount,
            description=tx.description,
            purchase_date=tx.purchase_date,
            created_at=tx.created_at,
            snapshot=BalanceSnapshotRead(
                previous_balance=tx.previous_balance,
                new_balance=tx.new_balance,
            ),
        )

    @field_serializer("amount")
    def _serialize_amount(self, v: Decimal):
        return float(v)


class LedgerResult(BaseModel):
    voucher: VoucherRead
    transaction: Optional[TransactionRead] = None
