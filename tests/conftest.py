# tests/conftest.py
# ---------------------------------------------------------------------
# - Fresh in-memory SQLite per test (StaticPool keeps one connection)
# - Schema from pos.db.schema.metadata
# - API tests go through TestClient with get_engine/get_settings overridden
# - Factory fixtures seed customers, products and credit notes; they open
#   their own transaction, so seed before opening one in a test
# ---------------------------------------------------------------------

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import insert, select, update
from sqlalchemy.pool import StaticPool

from pos.config import Settings, get_settings
from pos.db.engine import create_engine_from_url, get_engine
from pos.db.schema import credits, customers, metadata, products
from pos.main import app

_UNSET = object()


@pytest.fixture
def settings():
    return Settings(db_url="sqlite://", timezone="UTC")


@pytest.fixture
def engine():
    engine = create_engine_from_url(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def client(engine, settings):
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def use_settings():
    """Swap the settings the API sees for the rest of the test."""

    def _use(**overrides):
        new = Settings(**{"db_url": "sqlite://", "timezone": "UTC", **overrides})
        app.dependency_overrides[get_settings] = lambda: new
        return new

    return _use


# ---------- Seeding ----------

@pytest.fixture
def make_customer(engine):
    def _make(name: str = "Ana", balance: Decimal = Decimal("0")) -> int:
        with engine.begin() as c:
            result = c.execute(insert(customers).values(name=name, balance=balance))
            return result.inserted_primary_key[0]

    return _make


@pytest.fixture
def make_product(engine):
    def _make(
        name: str = "Refresco",
        price: Decimal = Decimal("20.00"),
        cost: Optional[Decimal] = Decimal("12.00"),
        stock: Decimal = Decimal("50"),
        sku: Optional[str] = None,
        low_stock_threshold: Optional[Decimal] = None,
    ) -> int:
        with engine.begin() as c:
            result = c.execute(
                insert(products).values(
                    name=name,
                    price=price,
                    cost=cost,
                    stock=stock,
                    sku=sku,
                    low_stock_threshold=low_stock_threshold,
                )
            )
            return result.inserted_primary_key[0]

    return _make


@pytest.fixture
def make_note(engine):
    """
    Insert a weekly credit note and add its outstanding amount to the
    customer balance, as the ledger would have.
    """

    def _make(
        customer_id: int,
        total: Decimal,
        outstanding=_UNSET,
        status: str = "open",
        week_start: Optional[date] = date(2024, 6, 15),
        week_end: Optional[date] = _UNSET,
        created_at: Optional[datetime] = None,
    ) -> int:
        if outstanding is _UNSET:
            outstanding = total
        if week_end is _UNSET:
            week_end = date.fromordinal(week_start.toordinal() + 6) if week_start else None
        values = dict(
            customer_id=customer_id,
            total_amount=total,
            outstanding_amount=outstanding,
            status=status,
            week_start=week_start,
            week_end=week_end,
            due_date=week_end,
        )
        if created_at is not None:
            values["created_at"] = created_at
        with engine.begin() as c:
            note_id = c.execute(insert(credits).values(**values)).inserted_primary_key[0]
            if status != "closed":
                c.execute(
                    update(customers)
                    .where(customers.c.id == customer_id)
                    .values(balance=customers.c.balance + (total if outstanding is None else outstanding))
                )
        return note_id

    return _make


@pytest.fixture
def fetch(engine):
    """Read back a single row as a mapping."""

    def _fetch(table, row_id):
        with engine.connect() as c:
            return c.execute(select(table).where(table.c.id == row_id)).mappings().first()

    return _fetch
