# voucherbook/models/__init__.py
"""
Central model registry.

Import this once at startup (e.g., in main.py) so SQLAlchemy sees all mapped
classes before relationships are resolved.
"""
from voucherbook.db import Base  # re-export Base

from .voucher import Voucher  # noqa: F401
from .transactions import Transaction, TransactionKind  # noqa: F401
from .categories import VoucherCategory, DEFAULT_VOUCHER_CATEGORIES  # noqa: F401
