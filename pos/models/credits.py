# pos/models/credits.py

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from pos.models.payments import AllocationOut


class CreditOut(BaseModel):
    id: int
    customer_id: int
    customer_name: Optional[str] = None
    total_amount: Decimal
    outstanding_amount: Optional[Decimal] = None
    status: str
    due_date: Optional[date] = None
    week_start: Optional[date] = None
    week_end: Optional[date] = None
    week_label: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreditDetailOut(CreditOut):
    sale_ids: List[int]
    allocations: List[AllocationOut]


class CreditSummaryOut(BaseModel):
    open_outstanding: Decimal
    overdue_outstanding: Decimal
    closed_total: Decimal
    grand_total: Decimal
    count_open: int
    count_overdue: int
    count_closed: int


class MarkOverdueIn(BaseModel):
    as_of: Optional[date] = None


class MarkOverdueOut(BaseModel):
    as_of: date
    marked: int
