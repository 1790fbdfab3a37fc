# voucherbook/schemas/vouchers.py
from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from voucherbook.services.ledger import VoucherStatus


def _money(v: Optional[Decimal]):
    return float(v) if v is not None else v


class VoucherBase(BaseModel):
    name: str = Field(..., max_length=200)
    code: str = Field(..., max_length=200)
    category: Optional[str] = None
    expiry_date: date
    notes: Optional[str] = None
    eligible_businesses_url: Optional[str] = None
    voucher_url: Optional[str] = None
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)


class VoucherCreate(VoucherBase):
    # validated as a positive amount by the service, so bad input gets the same message everywhere
    original_balance: Decimal


class VoucherUpdate(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None
    category: Optional[str] = None
    expiry_date: Optional[date] = None
    notes: Optional[str] = None
    eligible_businesses_url: Optional[str] = None
    voucher_url: Optional[str] = None
    is_active: Optional[bool] = None
    # administrative overwrite, recorded as an adjustment entry
    balance: Optional[Decimal] = None
    # rejected if present: face value is immutable
    original_balance: Optional[Decimal] = None

    model_config = ConfigDict(str_strip_whitespace=True)


class VoucherRead(VoucherBase):
    id: int
    user_id: str
    original_balance: Decimal
    balance: Decimal
    offer_for_sale: bool = False
    sale_price: Optional[Decimal] = None
    contact_info: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime
    version: int
    status: Optional[VoucherStatus] = None

    @field_validator("contact_info", mode="before")
    @classmethod
    def _parse_contact_info(cls, v):
        if v is None or isinstance(v, dict):
            return v
        try:
            return json.loads(v)
        except ValueError:
            return None

    @field_serializer("original_balance", "balance", "sale_price")
    def _serialize_money(self, v: Optional[Decimal]):
        return _money(v)


class SaleOffer(BaseModel):
    sale_price: Decimal
    phone: Optional[str] = None
    email: Optional[str] = None
    preferred_contact: Optional[str] = None
    notes: Optional[str] = None

    def contact(self) -> Dict[str, Optional[str]]:
        return self.model_dump(exclude={"sale_price"})


class VoucherStats(BaseModel):
    total_vouchers: int
    active_count: int
    expiring_count: int
    total_value: Decimal
    value_by_name: Dict[str, Decimal]

    @field_serializer("total_value")
    def _serialize_total(self, v: Decimal):
        return _money(v)

    @field_serializer("value_by_name")
    def _serialize_by_name(self, v: Dict[str, Decimal]):
        return {k: _money(x) for k, x in v.items()}


class DeleteResult(BaseModel):
    deleted: bool
