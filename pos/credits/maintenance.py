# pos/credits/maintenance.py
"""
Batch jobs over the credit ledger: overdue marking, legacy backfill and
balance reconciliation. Each takes a connection inside a transaction.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List

from sqlalchemy import and_, func, select, update
from sqlalchemy.engine import Connection

from pos.db.schema import (
    CREDIT_CLOSED,
    CREDIT_OPEN,
    CREDIT_OVERDUE,
    ELIGIBLE_CREDIT_STATUSES,
    credits,
    customers,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceDrift:
    customer_id: int
    stored: Decimal
    computed: Decimal


def mark_overdue_notes(conn: Connection, today: date) -> int:
    """Move open notes whose due date has passed to overdue."""
    result = conn.execute(
        update(credits)
        .where(
            and_(
                credits.c.status == CREDIT_OPEN,
                credits.c.due_date.is_not(None),
                credits.c.due_date < today,
            )
        )
        .values(status=CREDIT_OVERDUE)
    )
    if result.rowcount:
        logger.info("Marked %s credit note(s) overdue as of %s", result.rowcount, today)
    return result.rowcount


def backfill_outstanding_amounts(conn: Connection) -> int:
    """
    One-off normalization of legacy rows: a missing outstanding amount means
    nothing was ever paid, so it equals the total. Notes left at zero are closed.
    """
    filled = conn.execute(
        update(credits)
        .where(credits.c.outstanding_amount.is_(None))
        .values(outstanding_amount=credits.c.total_amount)
    ).rowcount
    closed = conn.execute(
        update(credits)
        .where(
            and_(
                credits.c.outstanding_amount == 0,
                credits.c.status != CREDIT_CLOSED,
            )
        )
        .values(status=CREDIT_CLOSED)
    ).rowcount
    logger.info("Backfilled %s credit note(s), closed %s zero note(s)", filled, closed)
    return filled


def _outstanding_by_customer():
    return (
        select(
            credits.c.customer_id,
            func.coalesce(func.sum(credits.c.outstanding_amount), 0).label("outstanding"),
        )
        .where(credits.c.status.in_(ELIGIBLE_CREDIT_STATUSES))
        .group_by(credits.c.customer_id)
    )


def compute_customer_balance(conn: Connection, customer_id: int) -> Decimal:
    stmt = select(
        func.coalesce(func.sum(credits.c.outstanding_amount), 0)
    ).where(
        credits.c.customer_id == customer_id,
        credits.c.status.in_(ELIGIBLE_CREDIT_STATUSES),
    )
    return Decimal(str(conn.execute(stmt).scalar_one())).quantize(Decimal("0.01"))


def reconcile_balances(conn: Connection) -> List[BalanceDrift]:
    """
    Reset every stored customer balance that differs from the sum of its
    open and overdue notes. Returns the customers that were corrected.
    """
    outstanding = {
        row.customer_id: Decimal(str(row.outstanding)).quantize(Decimal("0.01"))
        for row in conn.execute(_outstanding_by_customer())
    }
    drifts = []
    for row in conn.execute(select(customers.c.id, customers.c.balance)).all():
        stored = row.balance or Decimal("0")
        computed = outstanding.get(row.id, Decimal("0.00"))
        if stored != computed:
            drifts.append(BalanceDrift(customer_id=row.id, stored=stored, computed=computed))

    for drift in drifts:
        conn.execute(
            update(customers)
            .where(customers.c.id == drift.customer_id)
            .values(balance=drift.computed)
        )
        logger.warning(
            "Customer %s balance %s did not match outstanding credit %s; corrected",
            drift.customer_id, drift.stored, drift.computed,
        )
    return drifts
