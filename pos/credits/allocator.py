# pos/credits/allocator.py
"""
Distribute a customer payment across weekly credit notes.

Planning is pure: ``plan_allocation`` walks the notes in priority order
(overdue before open, then oldest week first) and caps each line at the
note's outstanding amount. ``PaymentAllocator`` turns a plan into writes on
one connection: the payment row, the note updates, the customer balance and
the audit rows, all inside the caller's transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import insert
from sqlalchemy.engine import Connection

from pos.config import SURPLUS_REJECT, Settings, get_settings
from pos.credits.audit import AuditTrailWriter
from pos.credits.ledger import ZERO, CreditLedger, CreditNote
from pos.db.schema import CREDIT_OVERDUE, payments
from pos.exceptions import (
    IneligibleCreditNoteError,
    InvalidAmountError,
    InvalidPaymentMethodError,
    NoCreditNotesSelectedError,
    PaymentExceedsOutstandingError,
)

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cash", "card", "other")


@dataclass(frozen=True)
class AllocationLine:
    note: CreditNote
    applied: Decimal

    @property
    def credit_id(self) -> int:
        return self.note.id


@dataclass(frozen=True)
class AllocationPlan:
    amount: Decimal
    lines: tuple
    unallocated: Decimal

    @property
    def allocated(self) -> Decimal:
        return sum((line.applied for line in self.lines), ZERO)


@dataclass
class PaymentResult:
    payment_id: int
    customer_id: int
    amount: Decimal
    allocations: List[AllocationLine]
    unallocated: Decimal
    notes: List[CreditNote]
    balance: Decimal
    warnings: List[str] = field(default_factory=list)


def _note_outstanding(note: CreditNote) -> Decimal:
    if note.outstanding_amount is not None:
        return note.outstanding_amount
    return note.total_amount or ZERO


def _priority_key(note: CreditNote):
    if note.week_start is not None:
        week = note.week_start
    elif note.created_at is not None:
        week = note.created_at.date()
    else:
        week = date.max
    return (0 if note.status == CREDIT_OVERDUE else 1, week, note.id)


def sort_notes_by_priority(notes: Iterable[CreditNote]) -> List[CreditNote]:
    return sorted(notes, key=_priority_key)


def plan_allocation(notes: Sequence[CreditNote], amount: Decimal) -> AllocationPlan:
    """
    Split ``amount`` over ``notes``.

    Deterministic for a given note set: the same notes and amount always
    produce the same lines. Whatever exceeds the notes' total outstanding is
    reported as ``unallocated``.
    """
    if amount is None or amount <= ZERO:
        raise InvalidAmountError(amount)

    remaining = amount
    lines = []
    for note in sort_notes_by_priority(notes):
        if remaining <= ZERO:
            break
        outstanding = _note_outstanding(note)
        if outstanding <= ZERO:
            continue
        applied = min(remaining, outstanding)
        lines.append(AllocationLine(note=note, applied=applied))
        remaining -= applied

    return AllocationPlan(amount=amount, lines=tuple(lines), unallocated=remaining)


class PaymentAllocator:
    def __init__(self, conn: Connection, settings: Optional[Settings] = None):
        self.conn = conn
        self.settings = settings or get_settings()
        self.ledger = CreditLedger(conn)
        self.audit = AuditTrailWriter(conn)

    def select_notes(
        self, customer_id: int, credit_ids: Optional[Sequence[int]] = None
    ) -> List[CreditNote]:
        """
        The customer's eligible notes, restricted to ``credit_ids`` when given.
        """
        eligible = self.ledger.list_eligible_notes(customer_id)
        if not credit_ids:
            return eligible

        by_id = {note.id: note for note in eligible}
        selected = []
        for credit_id in dict.fromkeys(credit_ids):
            if credit_id not in by_id:
                raise IneligibleCreditNoteError(credit_id, customer_id)
            selected.append(by_id[credit_id])
        return selected

    def record_payment(
        self,
        customer_id: int,
        amount: Decimal,
        method: str = "cash",
        notes: Optional[str] = None,
        credit_ids: Optional[Sequence[int]] = None,
    ) -> PaymentResult:
        if amount is None or amount <= ZERO:
            raise InvalidAmountError(amount)
        if method not in PAYMENT_METHODS:
            raise InvalidPaymentMethodError(method)

        # Lock the customer first so concurrent sales/payments serialize.
        self.ledger.get_customer(customer_id, for_update=True)

        selected = self.select_notes(customer_id, credit_ids)
        for note in selected:
            note.require_outstanding()

        if not selected:
            raise NoCreditNotesSelectedError(customer_id)

        plan = plan_allocation(selected, amount)
        if self.settings.surplus_policy == SURPLUS_REJECT and plan.unallocated > ZERO:
            raise PaymentExceedsOutstandingError(amount, plan.allocated)

        result = self.conn.execute(
            insert(payments).values(
                customer_id=customer_id,
                amount=amount,
                method=method,
                notes=notes or None,
                received_by=self.settings.operator_id,
            )
        )
        payment_id = result.inserted_primary_key[0]

        updated = [
            self.ledger.apply_payment_to_note(line.note, line.applied)
            for line in plan.lines
        ]
        customer = self.ledger.reduce_customer_balance(customer_id, amount)

        warnings = []
        self.audit.write_allocations(payment_id, plan)
        if not self.audit.attach_summary(payment_id, plan, notes):
            warnings.append("Allocation summary could not be attached to the payment notes")

        if plan.unallocated > ZERO:
            logger.warning(
                "Payment %s for customer %s left %s unallocated",
                payment_id, customer_id, plan.unallocated,
            )
        logger.info(
            "Payment %s of %s for customer %s applied to %d credit note(s)",
            payment_id, amount, customer_id, len(plan.lines),
        )

        return PaymentResult(
            payment_id=payment_id,
            customer_id=customer_id,
            amount=amount,
            allocations=list(plan.lines),
            unallocated=plan.unallocated,
            notes=updated,
            balance=customer["balance"],
            warnings=warnings,
        )
