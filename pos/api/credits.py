# pos/api/credits.py

from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import case, func, select
from sqlalchemy.engine import Engine

from pos.config import Settings, get_settings
from pos.credits.audit import AuditTrailWriter
from pos.credits.ledger import CreditLedger, CreditNote
from pos.credits.maintenance import mark_overdue_notes
from pos.credits.weeks import format_week_range, now_local
from pos.db.engine import get_engine
from pos.db.schema import CREDIT_CLOSED, CREDIT_OPEN, CREDIT_OVERDUE, credits, customers
from pos.exceptions import CreditNoteNotFoundError
from pos.models.credits import (
    CreditDetailOut,
    CreditOut,
    CreditSummaryOut,
    MarkOverdueIn,
    MarkOverdueOut,
)
from pos.models.payments import AllocationOut

router = APIRouter(prefix="/credits", tags=["credits"])


def note_to_out(note: CreditNote, customer_name: Optional[str] = None) -> CreditOut:
    return CreditOut(
        id=note.id,
        customer_id=note.customer_id,
        customer_name=customer_name,
        total_amount=note.total_amount,
        outstanding_amount=note.outstanding_amount,
        status=note.status,
        due_date=note.due_date,
        week_start=note.week_start,
        week_end=note.week_end,
        week_label=format_week_range(note.week_start) if note.week_start else None,
        created_at=note.created_at,
    )


def _customer_names(conn) -> dict:
    rows = conn.execute(select(customers.c.id, customers.c.name)).all()
    return {row.id: row.name for row in rows}


@router.get("/", response_model=List[CreditOut])
def list_credits(
    status: Optional[Literal["open", "overdue", "closed"]] = Query(
        default=None, description="open | overdue | closed; all when omitted"
    ),
    customer_id: Optional[int] = Query(default=None),
    engine: Engine = Depends(get_engine),
) -> List[CreditOut]:
    """
    Credit notes, newest first, with customer name and week label.
    """
    with engine.connect() as conn:
        notes = CreditLedger(conn).list_notes(status=status, customer_id=customer_id)
        names = _customer_names(conn)

    return [note_to_out(note, names.get(note.customer_id)) for note in notes]


@router.get("/summary", response_model=CreditSummaryOut)
def credits_summary(engine: Engine = Depends(get_engine)) -> CreditSummaryOut:
    """
    Totals per status: outstanding for open and overdue notes, billed total
    for closed ones and overall.
    """
    outstanding = func.coalesce(credits.c.outstanding_amount, credits.c.total_amount)

    def _sum_where(status, column):
        return func.coalesce(
            func.sum(case((credits.c.status == status, column), else_=0)), 0
        )

    def _count_where(status):
        return func.coalesce(
            func.sum(case((credits.c.status == status, 1), else_=0)), 0
        )

    stmt = select(
        _sum_where(CREDIT_OPEN, outstanding).label("open_outstanding"),
        _sum_where(CREDIT_OVERDUE, outstanding).label("overdue_outstanding"),
        _sum_where(CREDIT_CLOSED, credits.c.total_amount).label("closed_total"),
        func.coalesce(func.sum(credits.c.total_amount), 0).label("grand_total"),
        _count_where(CREDIT_OPEN).label("count_open"),
        _count_where(CREDIT_OVERDUE).label("count_overdue"),
        _count_where(CREDIT_CLOSED).label("count_closed"),
    )

    with engine.connect() as conn:
        row = conn.execute(stmt).first()

    def _money(value) -> Decimal:
        return Decimal(str(value or 0)).quantize(Decimal("0.01"))

    return CreditSummaryOut(
        open_outstanding=_money(row.open_outstanding),
        overdue_outstanding=_money(row.overdue_outstanding),
        closed_total=_money(row.closed_total),
        grand_total=_money(row.grand_total),
        count_open=int(row.count_open or 0),
        count_overdue=int(row.count_overdue or 0),
        count_closed=int(row.count_closed or 0),
    )


@router.post("/mark-overdue", response_model=MarkOverdueOut)
def mark_overdue(
    body: Optional[MarkOverdueIn] = None,
    engine: Engine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> MarkOverdueOut:
    """
    Flag open notes whose due date is before ``as_of`` (default: store today).
    """
    as_of: date = (body.as_of if body else None) or now_local(settings).date()
    with engine.begin() as conn:
        marked = mark_overdue_notes(conn, as_of)
    return MarkOverdueOut(as_of=as_of, marked=marked)


@router.get("/{credit_id}", response_model=CreditDetailOut)
def get_credit(credit_id: int, engine: Engine = Depends(get_engine)) -> CreditDetailOut:
    """
    One credit note with the sales rolled into it and the payments applied to it.
    """
    with engine.connect() as conn:
        ledger = CreditLedger(conn)
        try:
            note = ledger.get_note(credit_id)
        except CreditNoteNotFoundError:
            raise HTTPException(status_code=404, detail="Credit note not found")
        sale_ids = ledger.sales_for_note(credit_id)
        allocations = AuditTrailWriter(conn).allocations_for_credit(credit_id)
        customer_name = conn.execute(
            select(customers.c.name).where(customers.c.id == note.customer_id)
        ).scalar_one_or_none()

    base = note_to_out(note, customer_name)
    return CreditDetailOut(
        **base.model_dump(),
        sale_ids=sale_ids,
        allocations=[AllocationOut(**row) for row in allocations],
    )
