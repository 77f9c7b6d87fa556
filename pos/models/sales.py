# pos/models/sales.py

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from pos.models.credits import CreditOut


class SaleItemIn(BaseModel):
    product_id: int
    quantity: Decimal = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)


class SaleIn(BaseModel):
    customer_id: Optional[int] = None
    payment_method: Literal["cash", "card", "credit"] = "cash"
    items: List[SaleItemIn]


class SaleItemOut(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal


class SaleOut(BaseModel):
    id: int
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    total_amount: Decimal
    total_cost: Optional[Decimal] = None
    status: str
    created_by: str
    created_at: Optional[datetime] = None
    items: List[SaleItemOut] = []


class SaleCreatedOut(BaseModel):
    sale: SaleOut
    payment_id: Optional[int] = None
    credit: Optional[CreditOut] = None


class SalesPage(BaseModel):
    items: List[SaleOut]
    total: int
    limit: int
    offset: int
