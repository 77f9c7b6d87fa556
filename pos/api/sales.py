# pos/api/sales.py

from collections import defaultdict
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from pos.api.credits import note_to_out
from pos.checkout import CartLine, complete_sale
from pos.config import Settings, get_settings
from pos.db.engine import get_engine
from pos.db.schema import customers, products, sale_items, sales
from pos.models.sales import SaleCreatedOut, SaleIn, SaleItemOut, SaleOut, SalesPage

router = APIRouter(prefix="/sales", tags=["sales"])


def _sale_columns():
    return (
        select(
            sales.c.id,
            sales.c.customer_id,
            customers.c.name.label("customer_name"),
            sales.c.total_amount,
            sales.c.total_cost,
            sales.c.status,
            sales.c.created_by,
            sales.c.created_at,
        )
        .select_from(sales.outerjoin(customers))
    )


def _items_by_sale(conn, sale_ids: List[int]) -> Dict[int, List[SaleItemOut]]:
    grouped: Dict[int, List[SaleItemOut]] = defaultdict(list)
    if not sale_ids:
        return grouped
    stmt = (
        select(
            sale_items.c.sale_id,
            sale_items.c.product_id,
            products.c.name.label("product_name"),
            sale_items.c.quantity,
            sale_items.c.unit_price,
            sale_items.c.total_price,
        )
        .select_from(sale_items.join(products))
        .where(sale_items.c.sale_id.in_(sale_ids))
        .order_by(sale_items.c.id)
    )
    for row in conn.execute(stmt).mappings():
        grouped[row["sale_id"]].append(
            SaleItemOut(
                product_id=row["product_id"],
                product_name=row["product_name"],
                quantity=row["quantity"],
                unit_price=row["unit_price"],
                total_price=row["total_price"],
            )
        )
    return grouped


def _row_to_sale(row, items: List[SaleItemOut]) -> SaleOut:
    return SaleOut(
        id=row["id"],
        customer_id=row["customer_id"],
        customer_name=row["customer_name"],
        total_amount=row["total_amount"],
        total_cost=row["total_cost"],
        status=row["status"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        items=items,
    )


def recent_sales(conn, limit: int, offset: int = 0) -> List[SaleOut]:
    stmt = (
        _sale_columns()
        .order_by(sales.c.created_at.desc(), sales.c.id.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = conn.execute(stmt).mappings().all()
    items = _items_by_sale(conn, [row["id"] for row in rows])
    return [_row_to_sale(row, items[row["id"]]) for row in rows]


def _fetch_sale(conn, sale_id: int) -> SaleOut:
    row = conn.execute(
        _sale_columns().where(sales.c.id == sale_id)
    ).mappings().first()
    if row is None:
        raise HTTPException(status_code=404, detail="Sale not found")
    return _row_to_sale(row, _items_by_sale(conn, [sale_id])[sale_id])


@router.post("/", response_model=SaleCreatedOut, status_code=status.HTTP_201_CREATED)
def create_sale(
    body: SaleIn,
    engine: Engine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> SaleCreatedOut:
    """
    Complete a sale. Credit sales are rolled into the customer's note for
    the current credit week; cash and card sales record a payment.
    """
    with engine.begin() as conn:
        result = complete_sale(
            conn,
            [
                CartLine(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )
                for item in body.items
            ],
            payment_method=body.payment_method,
            customer_id=body.customer_id,
            settings=settings,
        )
        sale = _fetch_sale(conn, result.sale_id)

    return SaleCreatedOut(
        sale=sale,
        payment_id=result.payment_id,
        credit=note_to_out(result.credit_note) if result.credit_note else None,
    )


@router.get("/", response_model=SalesPage)
def list_sales(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    engine: Engine = Depends(get_engine),
) -> SalesPage:
    """
    Sales newest first, with customer name and line items.
    """
    with engine.connect() as conn:
        total = conn.execute(select(func.count()).select_from(sales)).scalar_one()
        items = recent_sales(conn, limit, offset)

    return SalesPage(items=items, total=total, limit=limit, offset=offset)


@router.get("/{sale_id}", response_model=SaleOut)
def get_sale(sale_id: int, engine: Engine = Depends(get_engine)) -> SaleOut:
    with engine.connect() as conn:
        return _fetch_sale(conn, sale_id)
