# pos/credits/ledger.py
"""
Row-level access to weekly credit notes and the customer balance they feed.

All methods run on the caller's connection; the caller owns the transaction
(``engine.begin()``) so a sale posting or a payment allocation commits or
rolls back as a whole.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection, RowMapping

from pos.db.schema import (
    CREDIT_CLOSED,
    CREDIT_OPEN,
    ELIGIBLE_CREDIT_STATUSES,
    credit_sales,
    credits,
    customers,
)
from pos.exceptions import (
    CreditNoteNotFoundError,
    CustomerNotFoundError,
    InvalidAmountError,
    LedgerIntegrityError,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class CreditNote:
    id: int
    customer_id: int
    total_amount: Decimal
    outstanding_amount: Optional[Decimal]
    status: str
    due_date: Optional[date] = None
    week_start: Optional[date] = None
    week_end: Optional[date] = None
    created_at: Optional[datetime] = None
    sale_id: Optional[int] = None

    @classmethod
    def from_row(cls, row) -> "CreditNote":
        return cls(
            id=row["id"],
            customer_id=row["customer_id"],
            total_amount=row["total_amount"],
            outstanding_amount=row["outstanding_amount"],
            status=row["status"],
            due_date=row["due_date"],
            week_start=row["week_start"],
            week_end=row["week_end"],
            created_at=row["created_at"],
            sale_id=row["sale_id"],
        )

    def require_outstanding(self) -> Decimal:
        if self.outstanding_amount is None:
            raise LedgerIntegrityError(self.id)
        return self.outstanding_amount


class CreditLedger:
    def __init__(self, conn: Connection):
        self.conn = conn

    # ---- customers ----

    def get_customer(self, customer_id: int, for_update: bool = False) -> RowMapping:
        stmt = select(customers).where(customers.c.id == customer_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = self.conn.execute(stmt).mappings().first()
        if row is None:
            raise CustomerNotFoundError(customer_id)
        return row

    def increase_customer_balance(self, customer_id: int, amount: Decimal) -> RowMapping:
        self.conn.execute(
            update(customers)
            .where(customers.c.id == customer_id)
            .values(balance=customers.c.balance + amount)
        )
        return self.get_customer(customer_id)

    def reduce_customer_balance(self, customer_id: int, amount: Decimal) -> RowMapping:
        """
        Subtract ``amount`` from the stored balance, never going below zero.
        """
        customer = self.get_customer(customer_id, for_update=True)
        new_balance = max(ZERO, (customer["balance"] or ZERO) - amount)
        self.conn.execute(
            update(customers)
            .where(customers.c.id == customer_id)
            .values(balance=new_balance)
        )
        return self.get_customer(customer_id)

    # ---- notes ----

    def get_note(self, note_id: int) -> CreditNote:
        row = self.conn.execute(
            select(credits).where(credits.c.id == note_id)
        ).mappings().first()
        if row is None:
            raise CreditNoteNotFoundError(note_id)
        return CreditNote.from_row(row)

    def list_notes(
        self,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
    ) -> List[CreditNote]:
        stmt = select(credits).order_by(credits.c.created_at.desc(), credits.c.id.desc())
        if status is not None:
            stmt = stmt.where(credits.c.status == status)
        if customer_id is not None:
            stmt = stmt.where(credits.c.customer_id == customer_id)
        rows = self.conn.execute(stmt).mappings().all()
        return [CreditNote.from_row(row) for row in rows]

    def list_eligible_notes(self, customer_id: int) -> List[CreditNote]:
        """Open and overdue notes of a customer, oldest first."""
        stmt = (
            select(credits)
            .where(
                credits.c.customer_id == customer_id,
                credits.c.status.in_(ELIGIBLE_CREDIT_STATUSES),
            )
            .order_by(credits.c.created_at, credits.c.id)
        )
        rows = self.conn.execute(stmt).mappings().all()
        return [CreditNote.from_row(row) for row in rows]

    def find_or_create_open_note(
        self, customer_id: int, week_start: date, week_end: date
    ) -> CreditNote:
        stmt = (
            select(credits)
            .where(
                credits.c.customer_id == customer_id,
                credits.c.week_start == week_start,
                credits.c.status == CREDIT_OPEN,
            )
            .order_by(credits.c.id)
            .limit(1)
        )
        row = self.conn.execute(stmt).mappings().first()
        if row is not None:
            return CreditNote.from_row(row)

        result = self.conn.execute(
            insert(credits).values(
                customer_id=customer_id,
                sale_id=None,
                total_amount=ZERO,
                outstanding_amount=ZERO,
                status=CREDIT_OPEN,
                week_start=week_start,
                week_end=week_end,
                due_date=week_end,
            )
        )
        note_id = result.inserted_primary_key[0]
        logger.info(
            "Opened credit note %s for customer %s, week %s..%s",
            note_id, customer_id, week_start, week_end,
        )
        return self.get_note(note_id)

    def post_credit_sale(self, note: CreditNote, amount: Decimal) -> CreditNote:
        """
        Add a credit sale to ``note``: total, outstanding and the customer
        balance all grow by ``amount``.
        """
        if amount is None or amount <= ZERO:
            raise InvalidAmountError(amount)
        note.require_outstanding()

        self.conn.execute(
            update(credits)
            .where(credits.c.id == note.id)
            .values(
                total_amount=credits.c.total_amount + amount,
                outstanding_amount=credits.c.outstanding_amount + amount,
            )
        )
        self.increase_customer_balance(note.customer_id, amount)
        return self.get_note(note.id)

    def link_sale(self, note: CreditNote, sale_id: int) -> None:
        self.conn.execute(
            insert(credit_sales).values(credit_id=note.id, sale_id=sale_id)
        )

    def sales_for_note(self, note_id: int) -> List[int]:
        rows = self.conn.execute(
            select(credit_sales.c.sale_id)
            .where(credit_sales.c.credit_id == note_id)
            .order_by(credit_sales.c.sale_id)
        ).all()
        return [row.sale_id for row in rows]

    def apply_payment_to_note(self, note: CreditNote, amount: Decimal) -> CreditNote:
        """
        Reduce the note's outstanding amount. A note reaching exactly zero is
        closed; otherwise its status is left alone (overdue stays overdue).
        """
        if amount is None or amount <= ZERO:
            raise InvalidAmountError(amount)

        outstanding = note.require_outstanding()
        new_outstanding = max(ZERO, outstanding - amount)
        new_status = CREDIT_CLOSED if new_outstanding == ZERO else note.status

        self.conn.execute(
            update(credits)
            .where(credits.c.id == note.id)
            .values(outstanding_amount=new_outstanding, status=new_status)
        )
        return self.get_note(note.id)
