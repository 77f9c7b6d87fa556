from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from pos.checkout import CartLine, complete_sale
from pos.config import Settings
from pos.db.schema import credits, customers, payments, products, sale_items, sales
from pos.exceptions import (
    CreditCustomerRequiredError,
    EmptyCartError,
    InsufficientStockError,
    ProductNotFoundError,
)

SETTINGS = Settings(timezone="UTC")
WEDNESDAY = datetime(2024, 6, 19, 11, 30)


def test_cash_sale_records_payment_and_stock(engine, make_product, fetch):
    soda = make_product(price=Decimal("20"), cost=Decimal("12"), stock=Decimal("10"))
    chips = make_product(name="Papas", price=Decimal("15.50"), cost=Decimal("9"), stock=Decimal("4"))

    with engine.begin() as conn:
        result = complete_sale(
            conn,
            [CartLine(soda, Decimal("2")), CartLine(chips, Decimal("1"))],
            payment_method="cash",
            settings=SETTINGS,
            now=WEDNESDAY,
        )

    assert result.status == "paid"
    assert result.total_amount == Decimal("55.50")
    assert result.total_cost == Decimal("33.00")
    assert result.credit_note is None
    assert fetch(payments, result.payment_id)["amount"] == Decimal("55.50")
    assert fetch(products, soda)["stock"] == Decimal("8")
    assert fetch(products, chips)["stock"] == Decimal("3")
    assert fetch(sales, result.sale_id)["created_at"] == WEDNESDAY


def test_unit_price_override(engine, make_product):
    bulk = make_product(name="Frijol", price=Decimal("30"), stock=Decimal("5"))
    with engine.begin() as conn:
        result = complete_sale(
            conn,
            [CartLine(bulk, Decimal("0.5"), unit_price=Decimal("28"))],
            settings=SETTINGS,
        )
        line = conn.execute(select(sale_items)).mappings().one()

    assert result.total_amount == Decimal("14.00")
    assert line["unit_price"] == Decimal("28.00")


def test_credit_sale_posts_to_weekly_note(engine, make_customer, make_product, fetch):
    customer_id = make_customer()
    soda = make_product(price=Decimal("20"))

    with engine.begin() as conn:
        first = complete_sale(
            conn, [CartLine(soda, Decimal("1"))], "credit", customer_id, SETTINGS, now=WEDNESDAY
        )
    with engine.begin() as conn:
        second = complete_sale(
            conn, [CartLine(soda, Decimal("2"))], "credit", customer_id, SETTINGS,
            now=datetime(2024, 6, 21, 20, 0),
        )

    assert first.status == "credit"
    assert first.payment_id is None
    assert first.credit_note.id == second.credit_note.id
    note = fetch(credits, second.credit_note.id)
    assert note["total_amount"] == Decimal("60.00")
    assert note["week_start"] == date(2024, 6, 15)
    assert fetch(customers, customer_id)["balance"] == Decimal("60.00")

    with engine.connect() as conn:
        assert conn.execute(select(func.count()).select_from(payments)).scalar_one() == 0


def test_credit_sale_requires_customer(engine, make_product):
    soda = make_product()
    with pytest.raises(CreditCustomerRequiredError):
        with engine.begin() as conn:
            complete_sale(conn, [CartLine(soda, Decimal("1"))], "credit", settings=SETTINGS)


def test_empty_cart(engine):
    with pytest.raises(EmptyCartError):
        with engine.begin() as conn:
            complete_sale(conn, [], settings=SETTINGS)


def test_insufficient_stock_writes_nothing(engine, make_product, fetch):
    soda = make_product(stock=Decimal("1"))
    with pytest.raises(InsufficientStockError):
        with engine.begin() as conn:
            complete_sale(conn, [CartLine(soda, Decimal("3"))], settings=SETTINGS)

    assert fetch(products, soda)["stock"] == Decimal("1")
    with engine.connect() as conn:
        assert conn.execute(select(func.count()).select_from(sales)).scalar_one() == 0


def test_same_product_on_two_lines_cannot_oversell(engine, make_product, fetch):
    soda = make_product(stock=Decimal("5"))
    with pytest.raises(InsufficientStockError) as excinfo:
        with engine.begin() as conn:
            complete_sale(
                conn,
                [CartLine(soda, Decimal("4")), CartLine(soda, Decimal("4"))],
                settings=SETTINGS,
            )

    assert excinfo.value.available == Decimal("1")
    assert fetch(products, soda)["stock"] == Decimal("5")


def test_same_product_on_two_lines_within_stock(engine, make_product, fetch):
    soda = make_product(stock=Decimal("5"))
    with engine.begin() as conn:
        complete_sale(
            conn,
            [CartLine(soda, Decimal("2")), CartLine(soda, Decimal("3"))],
            settings=SETTINGS,
        )

    assert fetch(products, soda)["stock"] == Decimal("0")


def test_store_refuses_negative_stock(engine, make_product):
    soda = make_product(stock=Decimal("2"))
    with pytest.raises(IntegrityError):
        with engine.begin() as conn:
            conn.execute(
                update(products).where(products.c.id == soda).values(stock=products.c.stock - 3)
            )


def test_unknown_product(engine):
    with pytest.raises(ProductNotFoundError):
        with engine.begin() as conn:
            complete_sale(conn, [CartLine(404, Decimal("1"))], settings=SETTINGS)
