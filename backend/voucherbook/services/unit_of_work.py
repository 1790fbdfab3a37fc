from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from voucherbook.errors import ConflictError, LedgerError, NotFoundError, PersistenceError
from voucherbook.models.voucher import Voucher

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session, action: str = "ledger operation") -> Iterator[Session]:
    """
    Run one logical mutation as a single database transaction.

    Commits on success. On any failure everything written inside the block is
    rolled back, so a transaction row is never left behind without its voucher
    balance update (or the other way round).
    """
    try:
        yield db
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    except StaleDataError as exc:
        db.rollback()
        logger.warning("%s: concurrent modification detected (%s)", action, exc)
        raise ConflictError() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("%s: persistence failure", action)
        raise PersistenceError() from exc


def lock_voucher(db: Session, voucher_id: int, owner_id: Optional[str] = None) -> Voucher:
    """
    Load a voucher row for update inside the current unit of work.

    Postgres takes a row lock (SELECT ... FOR UPDATE); SQLite ignores the
    clause and relies on the version counter instead. Vouchers owned by
    someone else are reported as missing.
    """
    stmt = (
        select(Voucher)
        .where(Voucher.id == voucher_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    voucher = db.execute(stmt).scalar_one_or_none()
    if voucher is None or (owner_id is not None and voucher.user_id != owner_id):
        raise NotFoundError("Voucher not found")
    return voucher
