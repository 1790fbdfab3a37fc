# voucherbook/services/transactions.py
"""
Ledger reconciliation engine.

Every mutation of a voucher's transaction set goes through the same steps
inside one unit of work:

1. lock the voucher row,
2. write the transaction change,
3. reload the complete transaction set and fold it into a balance
   (``ledger.recompute_balance``),
4. check the balance stays within [0, original_balance],
5. write the balance back to the voucher.

Only the ``balance`` and ``updated_at`` columns of the voucher are written, so
sale fields set by ``vouchers.offer_for_sale`` are never clobbered.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from voucherbook import settings
from voucherbook.errors import NotFoundError, ValidationError
from voucherbook.models.transactions import Transaction, TransactionKind
from voucherbook.models.voucher import Voucher
from voucherbook.services import ledger
from voucherbook.services.unit_of_work import atomic, lock_voucher

logger = logging.getLogger(__name__)

DEFAULT_PURCHASE_DESCRIPTION = "Purchase recorded"
DEFAULT_REFUND_DESCRIPTION = "Refund recorded"

# passed as purchase_date to edit_transaction to leave the stored date alone
KEEP = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean_description(description: Optional[str], default: str) -> str:
    text = (description or "").strip()
    return text or default


# --- recomputation -------------------------------------------------------------

def recompute_voucher_balance(db: Session, voucher: Voucher) -> Decimal:
    """
    Re-derive ``voucher.balance`` from the complete transaction set.

    Flushes pending changes first so the reloaded set includes them. Raises
    ValidationError when the result leaves [0, original_balance]; the caller's
    unit of work then rolls everything back.
    """
    db.flush()
    amounts = (
        db.execute(select(Transaction.amount).where(Transaction.voucher_id == voucher.id))
        .scalars()
        .all()
    )
    balance = ledger.recompute_balance(voucher.original_balance, amounts)
    ledger.check_balance_bounds(balance, voucher.original_balance)

    logger.debug(
        "recompute voucher=%s original=%s entries=%s balance=%s",
        voucher.id, voucher.original_balance, len(amounts), balance,
    )
    voucher.balance = balance
    voucher.updated_at = _utcnow()
    return balance


def append_entry(
    db: Session,
    voucher: Voucher,
    *,
    kind: TransactionKind,
    amount: Decimal,
    description: str,
    purchase_date: Optional[date] = None,
) -> Transaction:
    """Add a signed entry to a locked voucher and recompute its balance."""
    snapshot = ledger.BalanceSnapshot.after(voucher.balance, amount)
    tx = Transaction(
        voucher_id=voucher.id,
        kind=kind,
        amount=amount,
        description=description,
        purchase_date=purchase_date,
        created_at=_utcnow(),
        previous_balance=snapshot.previous_balance,
        new_balance=snapshot.new_balance,
    )
    db.add(tx)
    recompute_voucher_balance(db, voucher)
    return tx


def _get_transaction(db: Session, transaction_id: int) -> Transaction:
    tx = db.get(Transaction, transaction_id)
    if tx is None:
        raise NotFoundError("Transaction not found")
    return tx


# --- public API -----------------------------------------------------------------

def record_purchase(
    db: Session,
    voucher_id: int,
    amount,
    description: Optional[str] = None,
    purchase_date: Optional[date] = None,
    *,
    owner_id: Optional[str] = None,
    today: Optional[date] = None,
) -> Tuple[Voucher, Transaction]:
    """Spend ``amount`` (a positive magnitude) from a voucher."""
    magnitude = ledger.parse_amount(amount)
    today = today or settings.today()

    with atomic(db, "record_purchase"):
        voucher = lock_voucher(db, voucher_id, owner_id)
        if ledger.is_expired(voucher.expiry_date, today):
            raise ValidationError("voucher expired")
        current = ledger.to_money(voucher.balance)
        if current <= ledger.ZERO or magnitude > current:
            raise ValidationError("insufficient balance")

        tx = append_entry(
            db,
            voucher,
            kind=TransactionKind.purchase,
            amount=-magnitude,
            description=_clean_description(description, DEFAULT_PURCHASE_DESCRIPTION),
            purchase_date=purchase_date,
        )

    logger.info("purchase recorded voucher=%s tx=%s amount=%s", voucher.id, tx.id, magnitude)
    return voucher, tx


def record_refund(
    db: Session,
    voucher_id: int,
    amount,
    description: Optional[str] = None,
    purchase_date: Optional[date] = None,
    *,
    owner_id: Optional[str] = None,
    today: Optional[date] = None,
) -> Tuple[Voucher, Transaction]:
    """Credit ``amount`` back to a voucher, never above its original balance."""
    magnitude = ledger.parse_amount(amount)
    today = today or settings.today()

    with atomic(db, "record_refund"):
        voucher = lock_voucher(db, voucher_id, owner_id)
        if ledger.is_expired(voucher.expiry_date, today):
            raise ValidationError("voucher expired")

        tx = append_entry(
            db,
            voucher,
            kind=TransactionKind.refund,
            amount=magnitude,
            description=_clean_description(description, DEFAULT_REFUND_DESCRIPTION),
            purchase_date=purchase_date,
        )

    logger.info("refund recorded voucher=%s tx=%s amount=%s", voucher.id, tx.id, magnitude)
    return voucher, tx


def edit_transaction(
    db: Session,
    transaction_id: int,
    amount,
    description: Optional[str] = None,
    purchase_date: Any = KEEP,
    *,
    owner_id: Optional[str] = None,
) -> Tuple[Voucher, Transaction]:
    """
    Replace a purchase/refund's amount, description and purchase date.

    A blank description keeps the old one. ``purchase_date`` left as KEEP
    keeps the stored date; an explicit None clears it.

    Only the edited row's snapshot is refreshed (previous_balance is kept,
    new_balance follows the new amount); snapshots of later rows stay as
    they were. The voucher balance is recomputed from the full set.
    """
    magnitude = ledger.parse_amount(amount)

    with atomic(db, "edit_transaction"):
        tx = _get_transaction(db, transaction_id)
        voucher = lock_voucher(db, tx.voucher_id, owner_id)
        if tx.kind == TransactionKind.adjustment:
            raise ValidationError("adjustments cannot be edited")

        signed = -magnitude if tx.kind == TransactionKind.purchase else magnitude
        tx.amount = signed
        tx.new_balance = ledger.BalanceSnapshot.after(tx.previous_balance, signed).new_balance
        tx.description = _clean_description(description, tx.description)
        if purchase_date is not KEEP:
            tx.purchase_date = purchase_date

        recompute_voucher_balance(db, voucher)

    logger.info("transaction edited voucher=%s tx=%s amount=%s", voucher.id, tx.id, signed)
    return voucher, tx


def delete_transaction(
    db: Session,
    transaction_id: int,
    *,
    owner_id: Optional[str] = None,
) -> Voucher:
    """Remove a transaction and recompute its voucher over the remaining set."""
    with atomic(db, "delete_transaction"):
        tx = _get_transaction(db, transaction_id)
        voucher = lock_voucher(db, tx.voucher_id, owner_id)
        if tx.kind == TransactionKind.adjustment:
            raise ValidationError("adjustments cannot be deleted")
        db.delete(tx)
        recompute_voucher_balance(db, voucher)

    logger.info("transaction deleted voucher=%s tx=%s", voucher.id, transaction_id)
    return voucher


def get_transaction(db: Session, transaction_id: int, *, owner_id: Optional[str] = None) -> Transaction:
    tx = _get_transaction(db, transaction_id)
    if owner_id is not None and tx.voucher.user_id != owner_id:
        raise NotFoundError("Transaction not found")
    return tx


def list_transactions(db: Session, voucher_id: int, *, owner_id: Optional[str] = None) -> List[Transaction]:
    """Transactions of one voucher, most recent first (purchase_date, then created_at)."""
    voucher = db.get(Voucher, voucher_id)
    if voucher is None or (owner_id is not None and voucher.user_id != owner_id):
        raise NotFoundError("Voucher not found")

    rows = (
        db.execute(select(Transaction).where(Transaction.voucher_id == voucher_id))
        .scalars()
        .all()
    )
    return sorted(rows, key=ledger.sort_key, reverse=True)
