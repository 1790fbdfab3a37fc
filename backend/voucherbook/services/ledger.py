# voucherbook/services/ledger.py
"""
Pure ledger rules for a single voucher.

A voucher's balance is never patched incrementally. After any change to its
transaction set it is re-derived as a fold over the complete set:

    balance = original_balance + sum(t.amount for t in transactions)

The fold is order-independent, so display order and out-of-order edits cannot
affect it. The ``previous_balance``/``new_balance`` pair stored on each
transaction is a historical snapshot only (see ``BalanceSnapshot``).

Nothing in here touches the database; callers in ``services.transactions``
load rows, call these helpers and persist the result inside one unit of work.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional, Tuple

from voucherbook.errors import ValidationError

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
# largest value a NUMERIC(12, 2) money column holds
MAX_AMOUNT = Decimal("9999999999.99")


class VoucherStatus(str, enum.Enum):
    new = "new"
    unused = "unused"
    partially_used = "partially_used"
    fully_used = "fully_used"
    expired = "expired"


@dataclass(frozen=True)
class BalanceSnapshot:
    """
    Balance before/after a transaction at the moment it was written.

    Advisory and display-only: later edits or deletes of other transactions
    do not update it, so it must never be used to derive the current balance.
    """

    previous_balance: Decimal
    new_balance: Decimal

    @classmethod
    def after(cls, previous_balance: Decimal, amount: Decimal) -> "BalanceSnapshot":
        previous = to_money(previous_balance)
        return cls(previous_balance=previous, new_balance=to_money(previous + amount))


# ---- money -------------------------------------------------------------------

def to_money(value: Any) -> Decimal:
    """Coerce a stored/numeric value to a 2-place Decimal."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_amount(value: Any) -> Decimal:
    """
    Validate a user-supplied positive magnitude (purchase, refund or sale price).

    Raises ValidationError("invalid amount") for booleans, non-numbers, NaN,
    infinities, anything that is not > 0 once rounded to cents and anything
    above MAX_AMOUNT.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("invalid amount")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        if not amount.is_finite() or amount > MAX_AMOUNT:
            raise ValidationError("invalid amount")
        amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("invalid amount") from None
    if amount <= ZERO or amount > MAX_AMOUNT:
        raise ValidationError("invalid amount")
    return amount


def format_money(value: Any) -> str:
    return f"${to_money(value):.2f}"


# ---- the fold ----------------------------------------------------------------

def recompute_balance(original_balance: Any, amounts: Iterable[Any]) -> Decimal:
    """Authoritative balance: original balance plus every signed amount."""
    total = to_money(original_balance)
    for amount in amounts:
        total += to_money(amount)
    return to_money(total)


def check_balance_bounds(balance: Decimal, original_balance: Any) -> None:
    """Reject a balance outside [0, original_balance]."""
    if balance < ZERO:
        raise ValidationError("insufficient balance")
    if balance > to_money(original_balance):
        raise ValidationError("balance exceeds original balance")


# ---- voucher state -------------------------------------------------------------

def is_expired(expiry_date: date, today: date) -> bool:
    """A voucher is expired on its expiry date and after."""
    return expiry_date <= today


def voucher_status(
    *,
    balance: Any,
    original_balance: Any,
    expiry_date: date,
    created_at: Optional[datetime],
    has_transactions: bool,
    today: date,
    new_days: int = 7,
) -> VoucherStatus:
    if is_expired(expiry_date, today):
        return VoucherStatus.expired

    balance = to_money(balance)
    if balance <= ZERO:
        return VoucherStatus.fully_used
    if balance < to_money(original_balance) or has_transactions:
        return VoucherStatus.partially_used
    if created_at is not None and (today - created_at.date()) <= timedelta(days=new_days):
        return VoucherStatus.new
    return VoucherStatus.unused


# ---- ordering ----------------------------------------------------------------

def _naive_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.min
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def display_date(purchase_date: Optional[date], created_at: Optional[datetime]) -> date:
    if purchase_date is not None:
        return purchase_date
    if created_at is not None:
        return created_at.date()
    return date.min


def sort_key(tx: Any) -> Tuple[date, datetime, int]:
    """Key for most-recent-first listing (use with reverse=True)."""
    return (
        display_date(tx.purchase_date, tx.created_at),
        _naive_utc(tx.created_at),
        tx.id or 0,
    )
