# pos/models/products.py

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ProductIn(BaseModel):
    sku: Optional[str] = None
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    cost: Optional[Decimal] = Field(default=None, ge=0)
    stock: Decimal = Field(default=Decimal("0"), ge=0)
    low_stock_threshold: Optional[Decimal] = None
    active: bool = True


class ProductOut(BaseModel):
    id: int
    sku: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: Decimal
    cost: Optional[Decimal] = None
    stock: Decimal
    low_stock_threshold: Optional[Decimal] = None
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
