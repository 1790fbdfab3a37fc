from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from voucherbook import settings
from voucherbook.errors import NotFoundError, ValidationError
from voucherbook.models.transactions import Transaction, TransactionKind
from voucherbook.models.voucher import Voucher
from voucherbook.services import ledger
from voucherbook.services.categories import ensure_category_allowed
from voucherbook.services.transactions import append_entry
from voucherbook.services.unit_of_work import atomic, lock_voucher

logger = logging.getLogger(__name__)

# Fields a plain PATCH may change. Ledger and sale fields go through their own paths.
_EDITABLE_FIELDS = (
    "name",
    "code",
    "category",
    "notes",
    "eligible_businesses_url",
    "voucher_url",
    "expiry_date",
    "is_active",
)

ADJUSTMENT_DESCRIPTION = "Balance adjusted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_text(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required")
    return text


# --- reads ----------------------------------------------------------------------

def get_voucher(db: Session, voucher_id: int, *, owner_id: Optional[str] = None) -> Voucher:
    voucher = db.get(Voucher, voucher_id)
    if voucher is None or (owner_id is not None and voucher.user_id != owner_id):
        raise NotFoundError("Voucher not found")
    return voucher


def list_vouchers(
    db: Session,
    owner_id: str,
    *,
    category: Optional[str] = None,
    active_only: bool = False,
) -> List[Voucher]:
    stmt = select(Voucher).where(Voucher.user_id == owner_id)
    if category:
        stmt = stmt.where(Voucher.category == category.strip().lower())
    if active_only:
        stmt = stmt.where(Voucher.is_active.is_(True))
    stmt = stmt.order_by(Voucher.updated_at.desc(), Voucher.id.desc())
    return db.execute(stmt).scalars().all()


def has_transactions(db: Session, voucher_id: int) -> bool:
    return bool(db.execute(select(exists().where(Transaction.voucher_id == voucher_id))).scalar())


def status_of(db: Session, voucher: Voucher, *, today: Optional[date] = None) -> ledger.VoucherStatus:
    return ledger.voucher_status(
        balance=voucher.balance,
        original_balance=voucher.original_balance,
        expiry_date=voucher.expiry_date,
        created_at=voucher.created_at,
        has_transactions=has_transactions(db, voucher.id),
        today=today or settings.today(),
        new_days=settings.new_voucher_days(),
    )


# --- writes ---------------------------------------------------------------------

def create_voucher(db: Session, owner_id: str, data: Mapping[str, Any]) -> Voucher:
    """Create a voucher whose balance starts at its face value."""
    original = ledger.parse_amount(data.get("original_balance"))
    expiry_date = data.get("expiry_date")
    if not isinstance(expiry_date, date):
        raise ValidationError("expiry_date is required")

    with atomic(db, "create_voucher"):
        category = ensure_category_allowed(db, owner_id, data.get("category"))
        voucher = Voucher(
            user_id=owner_id,
            name=_require_text(data.get("name"), "name"),
            code=_require_text(data.get("code"), "code"),
            category=category,
            notes=data.get("notes"),
            eligible_businesses_url=data.get("eligible_businesses_url"),
            voucher_url=data.get("voucher_url"),
            original_balance=original,
            balance=original,
            expiry_date=expiry_date,
            is_active=bool(data.get("is_active", True)),
            offer_for_sale=False,
            created_at=_utcnow(),
            updated_at=_utcnow(),
        )
        db.add(voucher)

    logger.info("voucher created id=%s owner=%s original=%s", voucher.id, owner_id, original)
    return voucher


def update_voucher(
    db: Session,
    voucher_id: int,
    patch: Mapping[str, Any],
    *,
    owner_id: Optional[str] = None,
) -> Voucher:
    """
    Apply a partial update.

    ``original_balance`` is immutable. A ``balance`` key is an administrative
    overwrite: it is recorded as an adjustment entry for the difference so the
    balance stays equal to the fold over the transaction set.
    """
    if "original_balance" in patch and patch["original_balance"] is not None:
        raise ValidationError("original balance cannot be changed")

    with atomic(db, "update_voucher"):
        voucher = lock_voucher(db, voucher_id, owner_id)

        for field in _EDITABLE_FIELDS:
            if field not in patch:
                continue
            value = patch[field]
            if field in ("name", "code"):
                value = _require_text(value, field)
            elif field == "category":
                value = ensure_category_allowed(db, voucher.user_id, value)
            elif field == "expiry_date" and not isinstance(value, date):
                raise ValidationError("expiry_date is required")
            elif field == "is_active":
                if value is None:
                    continue
                value = bool(value)
            setattr(voucher, field, value)
        voucher.updated_at = _utcnow()

        if patch.get("balance") is not None:
            _overwrite_balance(db, voucher, patch["balance"])

    logger.info("voucher updated id=%s fields=%s", voucher_id, sorted(patch))
    return voucher


def _overwrite_balance(db: Session, voucher: Voucher, target) -> None:
    try:
        target = ledger.to_money(target)
    except (ArithmeticError, ValueError, TypeError):
        raise ValidationError("invalid amount") from None
    if not target.is_finite():
        raise ValidationError("invalid amount")
    ledger.check_balance_bounds(target, voucher.original_balance)

    delta = target - ledger.to_money(voucher.balance)
    if delta == ledger.ZERO:
        return
    append_entry(
        db,
        voucher,
        kind=TransactionKind.adjustment,
        amount=delta,
        description=ADJUSTMENT_DESCRIPTION,
    )


def delete_voucher(db: Session, voucher_id: int, *, owner_id: Optional[str] = None) -> bool:
    """Remove a voucher and, by cascade, all of its transactions. Irreversible."""
    with atomic(db, "delete_voucher"):
        voucher = lock_voucher(db, voucher_id, owner_id)
        db.delete(voucher)

    logger.info("voucher deleted id=%s", voucher_id)
    return True


# --- offer for sale -------------------------------------------------------------

def _contact_payload(contact: Mapping[str, Any]) -> Dict[str, str]:
    phone = (contact.get("phone") or "").strip()
    email = (contact.get("email") or "").strip()
    if not phone and not email:
        raise ValidationError("contact information required")
    preferred = (contact.get("preferred_contact") or ("email" if email else "phone")).strip()
    return {
        "phone": phone,
        "email": email,
        "preferred_contact": preferred,
        "notes": (contact.get("notes") or "").strip(),
    }


def offer_for_sale(
    db: Session,
    voucher_id: int,
    sale_price,
    contact: Mapping[str, Any],
    *,
    owner_id: Optional[str] = None,
    today: Optional[date] = None,
) -> Voucher:
    """
    List a voucher for sale below its current balance.

    Writes only the sale columns; the balance is untouched.
    """
    payload = _contact_payload(contact)
    today = today or settings.today()

    with atomic(db, "offer_for_sale"):
        voucher = lock_voucher(db, voucher_id, owner_id)
        if ledger.is_expired(voucher.expiry_date, today):
            raise ValidationError("voucher expired")

        balance = ledger.to_money(voucher.balance)
        range_message = f"Sale price must be between $0.01 and {ledger.format_money(balance)}"
        try:
            price = ledger.parse_amount(sale_price)
        except ValidationError:
            raise ValidationError(range_message) from None
        if price >= balance:
            raise ValidationError(range_message)

        voucher.offer_for_sale = True
        voucher.sale_price = price
        voucher.contact_info = json.dumps(payload)

    logger.info("voucher listed for sale id=%s price=%s", voucher_id, price)
    return voucher


def withdraw_from_sale(db: Session, voucher_id: int, *, owner_id: Optional[str] = None) -> Voucher:
    with atomic(db, "withdraw_from_sale"):
        voucher = lock_voucher(db, voucher_id, owner_id)
        voucher.offer_for_sale = False
        voucher.sale_price = None
        voucher.contact_info = None

    logger.info("voucher withdrawn from sale id=%s", voucher_id)
    return voucher


# --- dashboard ------------------------------------------------------------------

def voucher_stats(db: Session, owner_id: str, *, today: Optional[date] = None) -> Dict[str, Any]:
    """Totals shown on the dashboard. Only active, unexpired vouchers carry value."""
    today = today or settings.today()
    horizon = today + timedelta(days=settings.expiring_soon_days())

    vouchers = list_vouchers(db, owner_id)
    active = [
        v for v in vouchers
        if v.is_active and not ledger.is_expired(v.expiry_date, today)
    ]
    expiring = [v for v in active if v.expiry_date <= horizon]

    value_by_name: Dict[str, Decimal] = {}
    for v in active:
        value_by_name[v.name] = value_by_name.get(v.name, ledger.ZERO) + ledger.to_money(v.balance)

    return {
        "total_vouchers": len(vouchers),
        "active_count": len(active),
        "expiring_count": len(expiring),
        "total_value": sum((ledger.to_money(v.balance) for v in active), ledger.ZERO),
        "value_by_name": value_by_name,
    }
