from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from voucherbook.dependencies import get_current_user_id, get_db
from voucherbook.schemas.categories import CategoryCreate, CategoryRead, CategoryRename
from voucherbook.services import categories as category_service

router = APIRouter(prefix="/categories", tags=["Categories"])


def _read(cat) -> CategoryRead:
    return CategoryRead(id=str(cat.id), name=cat.name, is_default=False, created_at=cat.created_at)


@router.get("/", response_model=List[CategoryRead], summary="Default and custom voucher categories")
def list_categories(db: Session = Depends(get_db), owner: str = Depends(get_current_user_id)):
    return category_service.list_categories(db, owner)


@router.post("/", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def add_category(payload: CategoryCreate, db: Session = Depends(get_db), owner: str = Depends(get_current_user_id)):
    return _read(category_service.add_category(db, owner, payload.name))


@router.patch("/{category_id}", response_model=CategoryRead)
def rename_category(
    category_id: int,
    payload: CategoryRename,
    db: Session = Depends(get_db),
    owner: str = Depends(get_current_user_id),
):
    return _read(category_service.rename_category(db, owner, category_id, payload.name))


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: Session = Depends(get_db), owner: str = Depends(get_current_user_id)) -> Response:
    category_service.delete_category(db, owner, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
