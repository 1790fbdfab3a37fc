from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from voucherbook.errors import NotFoundError, ValidationError
from voucherbook.models.categories import DEFAULT_VOUCHER_CATEGORIES, VoucherCategory
from voucherbook.models.voucher import Voucher
from voucherbook.services.unit_of_work import atomic

logger = logging.getLogger(__name__)


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def _custom_categories(db: Session, owner_id: str) -> List[VoucherCategory]:
    stmt = (
        select(VoucherCategory)
        .where(VoucherCategory.user_id == owner_id)
        .order_by(VoucherCategory.name.asc())
    )
    return db.execute(stmt).scalars().all()


def _get_custom(db: Session, owner_id: str, category_id: int) -> VoucherCategory:
    cat = db.get(VoucherCategory, category_id)
    if cat is None or cat.user_id != owner_id:
        raise NotFoundError("Category not found")
    return cat


def _ensure_unique(db: Session, owner_id: str, name: str) -> None:
    if not name:
        raise ValidationError("category name is required")
    if name in DEFAULT_VOUCHER_CATEGORIES:
        raise ValidationError(f"category '{name}' already exists")
    taken = db.execute(
        select(VoucherCategory.id).where(
            VoucherCategory.user_id == owner_id,
            VoucherCategory.name == name,
        )
    ).first()
    if taken is not None:
        raise ValidationError(f"category '{name}' already exists")


def ensure_category_allowed(db: Session, owner_id: str, name: Optional[str]) -> Optional[str]:
    """Normalize a voucher's category; it must be a default or one of the owner's own."""
    name = normalize_name(name)
    if not name:
        return None
    if name in DEFAULT_VOUCHER_CATEGORIES:
        return name
    known = db.execute(
        select(VoucherCategory.id).where(
            VoucherCategory.user_id == owner_id,
            VoucherCategory.name == name,
        )
    ).first()
    if known is None:
        raise ValidationError(f"unknown category '{name}'")
    return name


def list_categories(db: Session, owner_id: str) -> List[Dict[str, Any]]:
    """Defaults first, then the owner's custom categories."""
    rows: List[Dict[str, Any]] = [
        {"id": name, "name": name, "is_default": True, "created_at": None}
        for name in DEFAULT_VOUCHER_CATEGORIES
    ]
    rows.extend(
        {"id": str(c.id), "name": c.name, "is_default": False, "created_at": c.created_at}
        for c in _custom_categories(db, owner_id)
    )
    return rows


def add_category(db: Session, owner_id: str, name: str) -> VoucherCategory:
    name = normalize_name(name)
    with atomic(db, "add_category"):
        _ensure_unique(db, owner_id, name)
        cat = VoucherCategory(user_id=owner_id, name=name)
        db.add(cat)

    logger.info("category added owner=%s name=%s", owner_id, name)
    return cat


def rename_category(db: Session, owner_id: str, category_id: int, new_name: str) -> VoucherCategory:
    """Rename a custom category and carry the owner's vouchers along."""
    new_name = normalize_name(new_name)
    with atomic(db, "rename_category"):
        cat = _get_custom(db, owner_id, category_id)
        if new_name == cat.name:
            return cat
        _ensure_unique(db, owner_id, new_name)

        old_name = cat.name
        for voucher in _vouchers_in(db, owner_id, old_name):
            voucher.category = new_name
        cat.name = new_name

    logger.info("category renamed owner=%s %s -> %s", owner_id, old_name, new_name)
    return cat


def delete_category(db: Session, owner_id: str, category_id: int) -> None:
    """Delete a custom category; vouchers filed under it become uncategorized."""
    with atomic(db, "delete_category"):
        cat = _get_custom(db, owner_id, category_id)
        for voucher in _vouchers_in(db, owner_id, cat.name):
            voucher.category = None
        db.delete(cat)

    logger.info("category deleted owner=%s id=%s", owner_id, category_id)


def _vouchers_in(db: Session, owner_id: str, name: str) -> List[Voucher]:
    stmt = select(Voucher).where(Voucher.user_id == owner_id, Voucher.category == name)
    return db.execute(stmt).scalars().all()
