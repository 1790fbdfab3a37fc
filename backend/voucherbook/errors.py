# voucherbook/errors.py
"""
Error taxonomy for ledger operations.

Services raise these; the HTTP layer recovers them at the call boundary and
turns them into user-facing messages. Only ``ValidationError`` messages are
shown verbatim. ``PersistenceError`` always carries a generic message and the
real cause is logged, never returned.
"""
from __future__ import annotations


class LedgerError(Exception):
    status_code = 400
    code = "ledger_error"
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LedgerError):
    status_code = 422
    code = "validation_error"
    default_message = "The information you entered is not valid. Please check and try again."


class NotFoundError(LedgerError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ConflictError(LedgerError):
    status_code = 409
    code = "conflict"
    default_message = "This voucher was modified elsewhere. Please reload and try again."


class PersistenceError(LedgerError):
    status_code = 503
    code = "persistence_error"
    default_message = "Unable to process your request. Please try again later."
