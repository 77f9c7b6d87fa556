# pos/models/payments.py

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class AllocationOut(BaseModel):
    credit_id: int
    payment_id: Optional[int] = None
    amount: Decimal
    week_start: Optional[date] = None
    week_end: Optional[date] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentOut(BaseModel):
    id: int
    sale_id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    amount: Decimal
    method: str
    notes: Optional[str] = None
    received_by: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentDetailOut(PaymentOut):
    allocations: List[AllocationOut]


class PaymentsPage(BaseModel):
    items: List[PaymentOut]
    total: int
    limit: int
    offset: int
