# pos/api/dashboard.py

from datetime import datetime, time, timedelta
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from pos.api.products import low_stock_condition
from pos.api.sales import recent_sales
from pos.config import Settings, get_settings
from pos.credits.weeks import now_local
from pos.db.engine import get_engine
from pos.db.schema import customers, products, sales
from pos.models.dashboard import DashboardSummaryOut

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardSummaryOut)
def dashboard_summary(
    engine: Engine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> DashboardSummaryOut:
    today = now_local(settings).date()
    start = datetime.combine(today, time.min)
    end = start + timedelta(days=1)

    with engine.connect() as conn:
        sales_row = conn.execute(
            select(
                func.count().label("n"),
                func.coalesce(func.sum(sales.c.total_amount), 0).label("total"),
            ).where(sales.c.created_at >= start, sales.c.created_at < end)
        ).first()
        product_count = conn.execute(
            select(func.count()).select_from(products).where(products.c.active.is_(True))
        ).scalar_one()
        low_stock_count = conn.execute(
            select(func.count())
            .select_from(products)
            .where(products.c.active.is_(True), low_stock_condition(settings))
        ).scalar_one()
        receivable_row = conn.execute(
            select(
                func.count().label("n"),
                func.coalesce(func.sum(customers.c.balance), 0).label("total"),
            ).where(customers.c.balance > 0)
        ).first()
        latest = recent_sales(conn, limit=10)

    return DashboardSummaryOut(
        as_of=today,
        sales_today_count=sales_row.n,
        sales_today_total=Decimal(str(sales_row.total)).quantize(Decimal("0.01")),
        product_count=product_count,
        low_stock_count=low_stock_count,
        customers_with_balance=receivable_row.n,
        total_receivable=Decimal(str(receivable_row.total)).quantize(Decimal("0.01")),
        recent_sales=latest,
    )
