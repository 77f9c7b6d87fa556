from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, insert, select

from pos.config import Settings
from pos.credits.ledger import CreditLedger
from pos.credits.poster import SaleCreditPoster
from pos.db.schema import credit_sales, credits, customers, sales
from pos.exceptions import CustomerNotFoundError, InvalidAmountError

SETTINGS = Settings(timezone="UTC")


def new_sale(conn, customer_id, amount):
    return conn.execute(
        insert(sales).values(
            customer_id=customer_id,
            total_amount=amount,
            status="credit",
            created_by=SETTINGS.operator_id,
        )
    ).inserted_primary_key[0]


def post(engine, customer_id, amount, now):
    with engine.begin() as conn:
        sale_id = new_sale(conn, customer_id, amount)
        return SaleCreditPoster(conn, SETTINGS).post(sale_id, customer_id, amount, now=now)


def test_sales_in_same_week_roll_into_one_note(engine, make_customer, fetch):
    customer_id = make_customer()
    amounts = [Decimal("12.50"), Decimal("7.25"), Decimal("30")]
    moments = [datetime(2024, 6, 15, 9), datetime(2024, 6, 18, 13), datetime(2024, 6, 21, 22)]

    notes = [post(engine, customer_id, a, m) for a, m in zip(amounts, moments)]

    assert len({n.id for n in notes}) == 1
    note = fetch(credits, notes[-1].id)
    assert note["total_amount"] == sum(amounts)
    assert note["outstanding_amount"] == sum(amounts)
    assert note["week_start"] == date(2024, 6, 15)
    assert note["week_end"] == date(2024, 6, 21)
    assert note["due_date"] == date(2024, 6, 21)
    assert fetch(customers, customer_id)["balance"] == sum(amounts)

    with engine.connect() as conn:
        assert len(CreditLedger(conn).sales_for_note(note["id"])) == 3


def test_new_week_opens_new_note(engine, make_customer):
    customer_id = make_customer()
    friday = post(engine, customer_id, Decimal("10"), datetime(2024, 6, 21, 23, 59))
    saturday = post(engine, customer_id, Decimal("10"), datetime(2024, 6, 22, 0, 1))

    assert friday.id != saturday.id
    assert saturday.week_start == date(2024, 6, 22)


def test_customers_get_separate_notes(engine, make_customer):
    ana = make_customer("Ana")
    beto = make_customer("Beto")
    moment = datetime(2024, 6, 19, 12)
    assert post(engine, ana, Decimal("10"), moment).id != post(engine, beto, Decimal("10"), moment).id


def test_sale_after_week_note_was_paid_opens_fresh_note(engine, make_customer, make_note):
    customer_id = make_customer()
    closed = make_note(customer_id, Decimal("10"), outstanding=Decimal("0"), status="closed")
    note = post(engine, customer_id, Decimal("5"), datetime(2024, 6, 19, 12))

    assert note.id != closed
    assert note.total_amount == Decimal("5.00")


def test_invalid_amount_writes_nothing(engine, make_customer):
    customer_id = make_customer()
    with pytest.raises(InvalidAmountError):
        post(engine, customer_id, Decimal("0"), datetime(2024, 6, 19, 12))

    with engine.connect() as conn:
        assert conn.execute(select(func.count()).select_from(credits)).scalar_one() == 0
        assert conn.execute(select(func.count()).select_from(credit_sales)).scalar_one() == 0


def test_unknown_customer(engine):
    with pytest.raises(CustomerNotFoundError):
        with engine.begin() as conn:
            SaleCreditPoster(conn, SETTINGS).post(1, 999, Decimal("10"), now=datetime(2024, 6, 19))
