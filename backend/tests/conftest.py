# tests/conftest.py
import os

# Point the app engine at a throwaway database before anything imports voucherbook.db
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import voucherbook.models  # noqa: E402,F401
from voucherbook.db import Base  # noqa: E402
from voucherbook.dependencies import get_db  # noqa: E402
from voucherbook.main import app  # noqa: E402
from voucherbook.services import vouchers as voucher_service  # noqa: E402

OWNER = "user-1"


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def make_voucher(db):
    """Create a voucher owned by OWNER with a far-away expiry unless told otherwise."""

    def _make(original_balance="100.00", *, owner=OWNER, expiry_date=None, **extra):
        data = {
            "name": extra.pop("name", "Book Store"),
            "code": extra.pop("code", "GC-0001"),
            "original_balance": original_balance,
            "expiry_date": expiry_date or date.today() + timedelta(days=365),
        }
        data.update(extra)
        return voucher_service.create_voucher(db, owner, data)

    return _make
