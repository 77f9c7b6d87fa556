# pos/credits/audit.py
"""
Audit trail of how each payment was distributed.

``credit_payments`` rows are authoritative and written in the caller's
transaction. The JSON summary copied onto ``payments.notes`` is informational:
it is written inside a SAVEPOINT and a failure there is logged, not raised.
"""

import json
import logging
from typing import List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection, RowMapping
from sqlalchemy.exc import SQLAlchemyError

from pos.db.schema import credit_payments, credits, payments

logger = logging.getLogger(__name__)


def summary_notes(plan, original_notes: Optional[str] = None) -> str:
    """
    JSON text listing which weekly notes a payment paid and how much.
    """
    payload = {}
    if original_notes:
        payload["originalNotes"] = original_notes
    payload["allocations"] = [
        {
            "credit_id": line.credit_id,
            "week_start": line.note.week_start.isoformat() if line.note.week_start else None,
            "paid": f"{line.applied:.2f}",
        }
        for line in plan.lines
    ]
    return json.dumps(payload)


class AuditTrailWriter:
    def __init__(self, conn: Connection):
        self.conn = conn

    def write_allocations(self, payment_id: int, plan) -> int:
        if not plan.lines:
            return 0
        self.conn.execute(
            insert(credit_payments),
            [
                {
                    "credit_id": line.credit_id,
                    "payment_id": payment_id,
                    "amount": line.applied,
                }
                for line in plan.lines
            ],
        )
        return len(plan.lines)

    def attach_summary(self, payment_id: int, plan, original_notes: Optional[str] = None) -> bool:
        try:
            with self.conn.begin_nested():
                self.conn.execute(
                    update(payments)
                    .where(payments.c.id == payment_id)
                    .values(notes=summary_notes(plan, original_notes))
                )
        except SQLAlchemyError:
            logger.warning(
                "Could not attach allocation summary to payment %s",
                payment_id,
                exc_info=True,
            )
            return False
        return True

    def allocations_for_payment(self, payment_id: int) -> List[RowMapping]:
        stmt = (
            select(
                credit_payments.c.credit_id,
                credit_payments.c.payment_id,
                credit_payments.c.amount,
                credit_payments.c.created_at,
                credits.c.week_start,
                credits.c.week_end,
            )
            .select_from(credit_payments.join(credits))
            .where(credit_payments.c.payment_id == payment_id)
            .order_by(credit_payments.c.id)
        )
        return self.conn.execute(stmt).mappings().all()

    def allocations_for_credit(self, credit_id: int) -> List[RowMapping]:
        stmt = (
            select(
                credit_payments.c.credit_id,
                credit_payments.c.payment_id,
                credit_payments.c.amount,
                credit_payments.c.created_at,
                credits.c.week_start,
                credits.c.week_end,
            )
            .select_from(credit_payments.join(credits))
            .where(credit_payments.c.credit_id == credit_id)
            .order_by(credit_payments.c.id)
        )
        return self.conn.execute(stmt).mappings().all()
