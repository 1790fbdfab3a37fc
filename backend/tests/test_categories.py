import pytest

from voucherbook.errors import NotFoundError, ValidationError
from voucherbook.models.categories import DEFAULT_VOUCHER_CATEGORIES
from voucherbook.services import categories as category_service
from voucherbook.services import vouchers as voucher_service


def test_defaults_come_first(db):
    category_service.add_category(db, "user-1", "  Groceries ")
    rows = category_service.list_categories(db, "user-1")
    assert [r["name"] for r in rows[: len(DEFAULT_VOUCHER_CATEGORIES)]] == list(DEFAULT_VOUCHER_CATEGORIES)
    assert rows[-1]["name"] == "groceries"
    assert rows[-1]["is_default"] is False


def test_custom_categories_are_per_user(db):
    category_service.add_category(db, "user-1", "books")
    names = [r["name"] for r in category_service.list_categories(db, "user-2")]
    assert "books" not in names


@pytest.mark.parametrize("name", ["", "   ", "Retail", "books"])
def test_duplicate_or_blank_names_rejected(db, name):
    category_service.add_category(db, "user-1", "books")
    with pytest.raises(ValidationError):
        category_service.add_category(db, "user-1", name)


def test_rename_moves_vouchers(db, make_voucher):
    cat = category_service.add_category(db, "user-1", "books")
    v = make_voucher(category="books")

    renamed = category_service.rename_category(db, "user-1", cat.id, "Comics")
    assert renamed.name == "comics"
    assert voucher_service.get_voucher(db, v.id).category == "comics"


def test_delete_uncategorizes_vouchers(db, make_voucher):
    cat = category_service.add_category(db, "user-1", "books")
    v = make_voucher(category="books")

    category_service.delete_category(db, "user-1", cat.id)
    assert voucher_service.get_voucher(db, v.id).category is None
    with pytest.raises(NotFoundError):
        category_service.delete_category(db, "user-1", cat.id)


def test_foreign_category_is_not_found(db):
    cat = category_service.add_category(db, "user-1", "books")
    with pytest.raises(NotFoundError):
        category_service.rename_category(db, "user-2", cat.id, "mine")
