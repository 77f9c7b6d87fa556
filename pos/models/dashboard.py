# pos/models/dashboard.py

from datetime import date
from decimal import Decimal
from typing import List

from pydantic import BaseModel

from pos.models.sales import SaleOut


class DashboardSummaryOut(BaseModel):
    as_of: date
    sales_today_count: int
    sales_today_total: Decimal
    product_count: int
    low_stock_count: int
    customers_with_balance: int
    total_receivable: Decimal
    recent_sales: List[SaleOut]
