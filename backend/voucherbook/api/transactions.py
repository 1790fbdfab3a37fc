from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from voucherbook.dependencies import get_current_user_id, get_db
from voucherbook.schemas.transactions import LedgerResult, TransactionEdit, TransactionRead
from voucherbook.api.vouchers import voucher_read
from voucherbook.services import transactions as tx_service

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.get("/{tx_id}", response_model=TransactionRead)
def get_transaction(tx_id: int, db: Session = Depends(get_db), owner: str = Depends(get_current_user_id)):
    return TransactionRead.from_model(tx_service.get_transaction(db, tx_id, owner_id=owner))


@router.patch("/{tx_id}", response_model=LedgerResult, summary="Edit a transaction and recompute the voucher balance")
def edit_transaction(
    tx_id: int,
    payload: TransactionEdit,
    db: Session = Depends(get_db),
    owner: str = Depends(get_current_user_id),
):
    # an omitted purchase_date keeps the stored one; an explicit null clears it
    purchase_date = payload.purchase_date if "purchase_date" in payload.model_fields_set else tx_service.KEEP
    voucher, tx = tx_service.edit_transaction(
        db, tx_id, payload.amount, payload.description, purchase_date, owner_id=owner
    )
    return LedgerResult(voucher=voucher_read(db, voucher), transaction=TransactionRead.from_model(tx))


@router.delete("/{tx_id}", response_model=LedgerResult, summary="Delete a transaction and recompute the voucher balance")
def delete_transaction(tx_id: int, db: Session = Depends(get_db), owner: str = Depends(get_current_user_id)):
    voucher = tx_service.delete_transaction(db, tx_id, owner_id=owner)
    return LedgerResult(voucher=voucher_read(db, voucher))
