# pos/models/customers.py

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from pos.models.credits import CreditOut
from pos.models.payments import AllocationOut


class CustomerIn(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None


class CustomerOut(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    balance: Decimal
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentIn(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    method: Literal["cash", "card", "other"] = "cash"
    notes: Optional[str] = None
    credit_ids: List[int] = Field(
        default_factory=list,
        description="Credit notes to pay; empty means every open or overdue note",
    )


class PaymentResultOut(BaseModel):
    payment_id: int
    customer_id: int
    amount: Decimal
    allocated: Decimal
    unallocated: Decimal
    balance: Decimal
    allocations: List[AllocationOut]
    credits: List[CreditOut]
    warnings: List[str] = []
