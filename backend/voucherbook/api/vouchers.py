# voucherbook/api/vouchers.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from voucherbook.dependencies import get_current_user_id, get_db
from voucherbook.models.voucher import Voucher
from voucherbook.schemas.transactions import EntryCreate, LedgerResult, TransactionRead
from voucherbook.schemas.vouchers import (
    DeleteResult,
    SaleOffer,
    VoucherCreate,
    VoucherRead,
    VoucherStats,
    VoucherUpdate,
)
from voucherbook.services import transactions as tx_service
from voucherbook.services import vouchers as voucher_service

router = APIRouter(prefix="/vouchers", tags=["Vouchers"])


# --- helpers -----------------------------------------------------------------
def voucher_read(db: Session, voucher: Voucher) -> VoucherRead:
    out = VoucherRead.model_validate(voucher)
    return out.model_copy(update={"status": voucher_service.status_of(db, voucher)})


# --- endpoints ---------------------------------------------------------------
@router.get("/", response_model=List[VoucherRead], summary="List the caller's vouchers")
def list_vouchers(
    db: Session = Depends(get_db),
    owner: str = Depends(get_current_user_id),
    category: Optional[str] = Query(None, description="Filter by category name"),
    active_only: bool = Query(False, description="Only vouchers with is_active=true"),
):
    rows = voucher_service.list_vouchers(db, owner, category=category, active_only=active_only)
    return [voucher_read(db, v) for v in rows]


@router.get("/stats", response_model=VoucherStats, summary="Dashboard totals")
def voucher_stats(db: Session = Depends(get_db), owner: str = Depends(get_current_user_id)):
    return voucher_service.voucher_stats(db, owner)


@router.post("/", response_model=VoucherRead, status_code=status.HTTP_201_CREATED)
def create_voucher(
    payload: VoucherCreate,
    db: Session = Depends(get_db),
    owner: str = Depends(get_current_user_id),
):
    voucher = voucher_service.create_voucher(db, owner, payload.model_dump())
    return voucher_read(db, voucher)


@router.get("/{voucher_id}", response_model=VoucherRead)
def get_voucher(voucher_id: int, db: Session = Depends(get_db), owner: str = Depends(get_current_user_id)):
    return voucher_read(db, voucher_service.get_voucher(db, voucher_id, owner_id=owner))


@router.patch("/{voucher_id}", response_model=VoucherRead)
def update_voucher(
    voucher_id: int,
    payload: VoucherUpdate,
    db: Session = Depends(get_db),
    owner: str = Depends(get_current_user_id),
):
    voucher = voucher_service.update_voucher(
        db, voucher_id, payload.model_dump(exclude_unset=True), owner_id=owner
    )
    return voucher_read(db, voucher)


@router.delete("/{voucher_id}", response_model=DeleteResult, summary="Delete a voucher and all its transactions")
def delete_voucher(voucher_id: int, db: Session = Depends(get_db), owner: str = Depends(get_current_user_id)):
    return DeleteResult(deleted=voucher_service.delete_voucher(db, voucher_id, owner_id=owner))


# --- ledger ------------------------------------------------------------------
@router.get("/{voucher_id}/transactions", response_model=List[TransactionRead], summary="Most recent first")
def list_transactions(voucher_id: int, db: Session = Depends(get_db), owner: str = Depends(get_current_user_id)):
    rows = tx_service.list_transactions(db, voucher_id, owner_id=owner)
    return [TransactionRead.from_model(r) for r in rows]


@router.post(
    "/{voucher_id}/purchases",
    response_model=LedgerResult,
    status_code=status.HTTP_201_CREATED,
    summary="Record a purchase against the voucher balance",
)
def record_purchase(
    voucher_id: int,
    payload: EntryCreate,
    db: Session = Depends(get_db),
    owner: str = Depends(get_current_user_id),
):
    voucher, tx = tx_service.record_purchase(
        db, voucher_id, payload.amount, payload.description, payload.purchase_date, owner_id=owner
    )
    return LedgerResult(voucher=voucher_read(db, voucher), transaction=TransactionRead.from_model(tx))


@router.post(
    "/{voucher_id}/refunds",
    response_model=LedgerResult,
    status_code=status.HTTP_201_CREATED,
    summary="Credit an amount back to the voucher",
)
def record_refund(
    voucher_id: int,
    payload: EntryCreate,
    db: Session = Depends(get_db),
    owner: str = Depends(get_current_user_id),
):
    voucher, tx = tx_service.record_refund(
        db, voucher_id, payload.amount, payload.description, payload.purchase_date, owner_id=owner
    )
    return LedgerResult(voucher=voucher_read(db, voucher), transaction=TransactionRead.from_model(tx))


# --- offer for sale ------------------------------------------------------------
@router.post("/{voucher_id}/sale", response_model=VoucherRead, summary="List the voucher for sale")
def offer_for_sale(
    voucher_id: int,
    payload: SaleOffer,
    db: Session = Depends(get_db),
    owner: str = Depends(get_current_user_id),
):
    voucher = voucher_service.offer_for_sale(
        db, voucher_id, payload.sale_price, payload.contact(), owner_id=owner
    )
    return voucher_read(db, voucher)


@router.delete("/{voucher_id}/sale", response_model=VoucherRead, summary="Withdraw a sale listing")
def withdraw_from_sale(voucher_id: int, db: Session = Depends(get_db), owner: str = Depends(get_current_user_id)):
    return voucher_read(db, voucher_service.withdraw_from_sale(db, voucher_id, owner_id=owner))
