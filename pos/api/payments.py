# pos/api/payments.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from pos.credits.audit import AuditTrailWriter
from pos.db.engine import get_engine
from pos.db.schema import customers, payments
from pos.models.payments import AllocationOut, PaymentDetailOut, PaymentOut, PaymentsPage

router = APIRouter(prefix="/payments", tags=["payments"])


def _payment_columns():
    return (
        select(
            payments.c.id,
            payments.c.sale_id,
            payments.c.customer_id,
            customers.c.name.label("customer_name"),
            payments.c.amount,
            payments.c.method,
            payments.c.notes,
            payments.c.received_by,
            payments.c.created_at,
        )
        .select_from(payments.outerjoin(customers))
    )


@router.get("/", response_model=PaymentsPage)
def list_payments(
    customer_id: Optional[int] = Query(default=None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    engine: Engine = Depends(get_engine),
) -> PaymentsPage:
    count_stmt = select(func.count()).select_from(payments)
    stmt = (
        _payment_columns()
        .order_by(payments.c.created_at.desc(), payments.c.id.desc())
        .limit(limit)
        .offset(offset)
    )
    if customer_id is not None:
        count_stmt = count_stmt.where(payments.c.customer_id == customer_id)
        stmt = stmt.where(payments.c.customer_id == customer_id)

    with engine.connect() as conn:
        total = conn.execute(count_stmt).scalar_one()
        rows = conn.execute(stmt).mappings().all()

    return PaymentsPage(
        items=[PaymentOut(**row) for row in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{payment_id}", response_model=PaymentDetailOut)
def get_payment(payment_id: int, engine: Engine = Depends(get_engine)) -> PaymentDetailOut:
    """
    A payment with the credit notes it was applied to.
    """
    with engine.connect() as conn:
        row = conn.execute(
            _payment_columns().where(payments.c.id == payment_id)
        ).mappings().first()
        if row is None:
            raise HTTPException(status_code=404, detail="Payment not found")
        allocations = AuditTrailWriter(conn).allocations_for_payment(payment_id)

    return PaymentDetailOut(
        **row,
        allocations=[AllocationOut(**alloc) for alloc in allocations],
    )
