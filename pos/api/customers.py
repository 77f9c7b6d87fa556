# pos/api/customers.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from pos.api.credits import note_to_out
from pos.config import Settings, get_settings
from pos.credits.allocator import PaymentAllocator, sort_notes_by_priority
from pos.credits.ledger import CreditLedger
from pos.db.engine import get_engine
from pos.db.schema import customers
from pos.exceptions import CustomerHasOpenCreditError, CustomerNotFoundError
from pos.models.credits import CreditOut
from pos.models.customers import (
    CustomerIn,
    CustomerOut,
    PaymentIn,
    PaymentResultOut,
)
from pos.models.payments import AllocationOut

router = APIRouter(prefix="/customers", tags=["customers"])


def _row_to_customer(row) -> CustomerOut:
    return CustomerOut(
        id=row["id"],
        name=row["name"],
        phone=row["phone"],
        email=row["email"],
        address=row["address"],
        balance=row["balance"],
        created_at=row["created_at"],
    )


def _fetch_customer(conn, customer_id: int):
    row = conn.execute(
        select(customers).where(customers.c.id == customer_id)
    ).mappings().first()
    if row is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return row


@router.get("/", response_model=List[CustomerOut])
def list_customers(engine: Engine = Depends(get_engine)) -> List[CustomerOut]:
    """
    Return all customers with their current balance, by name.
    """
    with engine.connect() as conn:
        rows = conn.execute(
            select(customers).order_by(customers.c.name, customers.c.id)
        ).mappings().all()

    return [_row_to_customer(row) for row in rows]


@router.post("/", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(body: CustomerIn, engine: Engine = Depends(get_engine)) -> CustomerOut:
    with engine.begin() as conn:
        result = conn.execute(insert(customers).values(**body.model_dump()))
        row = _fetch_customer(conn, result.inserted_primary_key[0])

    return _row_to_customer(row)


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: int, engine: Engine = Depends(get_engine)) -> CustomerOut:
    """
    Return a single customer by ID.
    """
    with engine.connect() as conn:
        row = _fetch_customer(conn, customer_id)

    return _row_to_customer(row)


@router.put("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: int,
    body: CustomerIn,
    engine: Engine = Depends(get_engine),
) -> CustomerOut:
    # balance is owned by the credit ledger, never by this form
    with engine.begin() as conn:
        _fetch_customer(conn, customer_id)
        conn.execute(
            update(customers)
            .where(customers.c.id == customer_id)
            .values(**body.model_dump())
        )
        row = _fetch_customer(conn, customer_id)

    return _row_to_customer(row)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(customer_id: int, engine: Engine = Depends(get_engine)) -> None:
    try:
        with engine.begin() as conn:
            _fetch_customer(conn, customer_id)
            if CreditLedger(conn).list_eligible_notes(customer_id):
                raise CustomerHasOpenCreditError(customer_id)
            conn.execute(delete(customers).where(customers.c.id == customer_id))
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="Customer has sales, payments or credit history on record",
        )


@router.get("/{customer_id}/credits", response_model=List[CreditOut])
def list_customer_credits(
    customer_id: int, engine: Engine = Depends(get_engine)
) -> List[CreditOut]:
    """
    Open and overdue notes in the order a payment would pay them down.
    """
    with engine.connect() as conn:
        customer = _fetch_customer(conn, customer_id)
        notes = sort_notes_by_priority(CreditLedger(conn).list_eligible_notes(customer_id))

    return [note_to_out(note, customer["name"]) for note in notes]


@router.post(
    "/{customer_id}/payments",
    response_model=PaymentResultOut,
    status_code=status.HTTP_201_CREATED,
)
def record_customer_payment(
    customer_id: int,
    body: PaymentIn,
    engine: Engine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> PaymentResultOut:
    """
    Receive a payment and apply it to the customer's credit notes: the
    selected ones, or every open and overdue note when none are selected.
    """
    try:
        with engine.begin() as conn:
            result = PaymentAllocator(conn, settings).record_payment(
                customer_id,
                body.amount,
                method=body.method,
                notes=body.notes,
                credit_ids=body.credit_ids,
            )
    except CustomerNotFoundError:
        raise HTTPException(status_code=404, detail="Customer not found")

    return PaymentResultOut(
        payment_id=result.payment_id,
        customer_id=result.customer_id,
        amount=result.amount,
        allocated=result.amount - result.unallocated,
        unallocated=result.unallocated,
        balance=result.balance,
        allocations=[
            AllocationOut(
                credit_id=line.credit_id,
                payment_id=result.payment_id,
                amount=line.applied,
                week_start=line.note.week_start,
                week_end=line.note.week_end,
            )
            for line in result.allocations
        ],
        credits=[note_to_out(note) for note in result.notes],
        warnings=result.warnings,
    )
