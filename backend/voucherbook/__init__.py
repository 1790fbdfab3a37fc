"""voucherbook: voucher and gift-card balance tracking backend."""

__version__ = "0.1.0"
