import json
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from voucherbook.errors import NotFoundError, ValidationError
from voucherbook.models.transactions import Transaction, TransactionKind
from voucherbook.models.voucher import Voucher
from voucherbook.services import transactions as tx_service
from voucherbook.services import vouchers as voucher_service
from voucherbook.services.ledger import VoucherStatus

CONTACT = {"phone": "", "email": "seller@example.com", "notes": "evenings"}


def test_create_requires_positive_face_value(db):
    with pytest.raises(ValidationError, match="invalid amount"):
        voucher_service.create_voucher(
            db, "u", {"name": "x", "code": "y", "original_balance": 0, "expiry_date": date(2030, 1, 1)}
        )
    with pytest.raises(ValidationError, match="name is required"):
        voucher_service.create_voucher(
            db, "u", {"name": " ", "code": "y", "original_balance": 5, "expiry_date": date(2030, 1, 1)}
        )


def test_create_rejects_unknown_category(db, make_voucher):
    with pytest.raises(ValidationError, match="unknown category"):
        make_voucher(category="spaceships")
    v = make_voucher(category=" Retail ")
    assert v.category == "retail"


def test_original_balance_is_immutable(db, make_voucher):
    v = make_voucher("80")
    with pytest.raises(ValidationError, match="original balance"):
        voucher_service.update_voucher(db, v.id, {"original_balance": Decimal("90")})


def test_plain_update_touches_descriptive_fields_only(db, make_voucher):
    v = make_voucher("80")
    tx_service.record_purchase(db, v.id, "10")
    updated = voucher_service.update_voucher(db, v.id, {"name": "Cinema", "is_active": False, "notes": "gift"})
    assert updated.name == "Cinema"
    assert updated.is_active is False
    assert updated.balance == Decimal("70.00")


def test_admin_balance_overwrite_is_recorded_as_adjustment(db, make_voucher):
    v = make_voucher("100")
    tx_service.record_purchase(db, v.id, "30")

    updated = voucher_service.update_voucher(db, v.id, {"balance": "55.50"})
    assert updated.balance == Decimal("55.50")

    adjustments = db.execute(
        select(Transaction).where(Transaction.voucher_id == v.id, Transaction.kind == TransactionKind.adjustment)
    ).scalars().all()
    assert len(adjustments) == 1
    assert adjustments[0].amount == Decimal("-14.50")

    total = db.execute(select(func.sum(Transaction.amount)).where(Transaction.voucher_id == v.id)).scalar()
    assert Decimal("100.00") + Decimal(str(total)).quantize(Decimal("0.01")) == Decimal("55.50")

    with pytest.raises(ValidationError, match="adjustments cannot be edited"):
        tx_service.edit_transaction(db, adjustments[0].id, "1", "x", None)
    with pytest.raises(ValidationError, match="adjustments cannot be deleted"):
        tx_service.delete_transaction(db, adjustments[0].id)
    db.expire_all()
    assert db.get(Voucher, v.id).balance == Decimal("55.50")


@pytest.mark.parametrize("target", ["-1", "100.01"])
def test_admin_balance_overwrite_out_of_range(db, make_voucher, target):
    v = make_voucher("100")
    with pytest.raises(ValidationError):
        voucher_service.update_voucher(db, v.id, {"balance": target, "name": "renamed"})
    db.expire_all()
    voucher = db.get(Voucher, v.id)
    assert voucher.balance == Decimal("100.00")
    assert voucher.name == "Book Store"  # whole update rolled back


def test_delete_voucher_cascades(db, make_voucher):
    v = make_voucher()
    tx_service.record_purchase(db, v.id, "1")
    tx_service.record_purchase(db, v.id, "2")

    assert voucher_service.delete_voucher(db, v.id) is True
    assert db.get(Voucher, v.id) is None
    remaining = db.execute(select(func.count(Transaction.id)).where(Transaction.voucher_id == v.id)).scalar()
    assert remaining == 0

    with pytest.raises(NotFoundError):
        voucher_service.delete_voucher(db, v.id)


def test_offer_for_sale_sets_only_sale_fields(db, make_voucher):
    v = make_voucher("100")
    tx_service.record_purchase(db, v.id, "20")

    listed = voucher_service.offer_for_sale(db, v.id, "60", CONTACT)
    assert listed.offer_for_sale is True
    assert listed.sale_price == Decimal("60.00")
    assert listed.balance == Decimal("80.00")
    info = json.loads(listed.contact_info)
    assert info["email"] == "seller@example.com"
    assert info["preferred_contact"] == "email"


def test_recomputation_keeps_sale_listing(db, make_voucher):
    v = make_voucher("100")
    voucher_service.offer_for_sale(db, v.id, "90", CONTACT)
    voucher, _ = tx_service.record_purchase(db, v.id, "5")
    assert voucher.offer_for_sale is True
    assert voucher.sale_price == Decimal("90.00")
    assert voucher.contact_info is not None


@pytest.mark.parametrize("price", ["0", "80", "80.01", "abc"])
def test_sale_price_must_be_a_real_discount(db, make_voucher, price):
    v = make_voucher("100")
    tx_service.record_purchase(db, v.id, "20")
    with pytest.raises(ValidationError) as exc:
        voucher_service.offer_for_sale(db, v.id, price, CONTACT)
    assert exc.value.message == "Sale price must be between $0.01 and $80.00"
    db.expire_all()
    assert db.get(Voucher, v.id).offer_for_sale is False


def test_sale_needs_a_contact_channel(db, make_voucher):
    v = make_voucher("100")
    with pytest.raises(ValidationError, match="contact information required"):
        voucher_service.offer_for_sale(db, v.id, "50", {"phone": " ", "email": ""})


def test_withdraw_from_sale(db, make_voucher):
    v = make_voucher("100")
    voucher_service.offer_for_sale(db, v.id, "50", {"phone": "555-0100"})
    withdrawn = voucher_service.withdraw_from_sale(db, v.id)
    assert withdrawn.offer_for_sale is False
    assert withdrawn.sale_price is None
    assert withdrawn.contact_info is None


def test_status_follows_the_ledger(db, make_voucher):
    v = make_voucher("10")
    later = date.today() + timedelta(days=1)
    assert voucher_service.status_of(db, v) is VoucherStatus.new
    assert voucher_service.status_of(db, v, today=later + timedelta(days=30)) is VoucherStatus.unused

    _, tx = tx_service.record_purchase(db, v.id, "10")
    assert voucher_service.status_of(db, v) is VoucherStatus.fully_used

    # deleting the zeroing purchase moves the voucher back
    tx_service.delete_transaction(db, tx.id)
    tx_service.record_purchase(db, v.id, "4")
    assert voucher_service.status_of(db, v) is VoucherStatus.partially_used


def test_stats_count_only_active_unexpired(db, make_voucher):
    today = date.today()
    make_voucher("100", name="A", expiry_date=today + timedelta(days=10))
    make_voucher("50", name="A", expiry_date=today + timedelta(days=200))
    make_voucher("70", name="B", expiry_date=today - timedelta(days=1))
    make_voucher("20", name="C", is_active=False)
    make_voucher("999", name="D", owner="other-user")

    stats = voucher_service.voucher_stats(db, "user-1", today=today)
    assert stats["total_vouchers"] == 4
    assert stats["active_count"] == 2
    assert stats["expiring_count"] == 1
    assert stats["total_value"] == Decimal("150.00")
    assert stats["value_by_name"] == {"A": Decimal("150.00")}
