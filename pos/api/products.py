# pos/api/products.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from pos.config import Settings, get_settings
from pos.db.engine import get_engine
from pos.db.schema import products
from pos.models.products import ProductIn, ProductOut

router = APIRouter(prefix="/products", tags=["products"])


def _row_to_product(row) -> ProductOut:
    return ProductOut(**row)


def _fetch_product(conn, product_id: int):
    row = conn.execute(
        select(products).where(products.c.id == product_id)
    ).mappings().first()
    if row is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return row


def low_stock_condition(settings: Settings):
    threshold = func.coalesce(products.c.low_stock_threshold, settings.low_stock_threshold)
    return products.c.stock <= threshold


@router.get("/", response_model=List[ProductOut])
def list_products(
    active_only: bool = Query(True),
    search: Optional[str] = Query(
        default=None, description="Case-insensitive match on name or SKU"
    ),
    engine: Engine = Depends(get_engine),
) -> List[ProductOut]:
    stmt = select(products).order_by(products.c.name, products.c.id)
    if active_only:
        stmt = stmt.where(products.c.active.is_(True))
    if search:
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(products.c.name).like(pattern),
                func.lower(products.c.sku).like(pattern),
            )
        )

    with engine.connect() as conn:
        rows = conn.execute(stmt).mappings().all()

    return [_row_to_product(row) for row in rows]


@router.get("/low-stock", response_model=List[ProductOut])
def list_low_stock(
    engine: Engine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> List[ProductOut]:
    """
    Active products at or below their low-stock threshold.
    """
    stmt = (
        select(products)
        .where(products.c.active.is_(True), low_stock_condition(settings))
        .order_by(products.c.stock, products.c.name)
    )
    with engine.connect() as conn:
        rows = conn.execute(stmt).mappings().all()

    return [_row_to_product(row) for row in rows]


@router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(body: ProductIn, engine: Engine = Depends(get_engine)) -> ProductOut:
    try:
        with engine.begin() as conn:
            result = conn.execute(insert(products).values(**body.model_dump()))
            row = _fetch_product(conn, result.inserted_primary_key[0])
    except IntegrityError:
        raise HTTPException(status_code=409, detail="A product with this SKU already exists")

    return _row_to_product(row)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, engine: Engine = Depends(get_engine)) -> ProductOut:
    with engine.connect() as conn:
        row = _fetch_product(conn, product_id)
    return _row_to_product(row)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    body: ProductIn,
    engine: Engine = Depends(get_engine),
) -> ProductOut:
    try:
        with engine.begin() as conn:
            _fetch_product(conn, product_id)
            conn.execute(
                update(products)
                .where(products.c.id == product_id)
                .values(**body.model_dump())
            )
            row = _fetch_product(conn, product_id)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="A product with this SKU already exists")

    return _row_to_product(row)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: int, engine: Engine = Depends(get_engine)) -> None:
    """
    Delete a product; products that appear on past sales are deactivated instead.
    """
    try:
        with engine.begin() as conn:
            _fetch_product(conn, product_id)
            conn.execute(delete(products).where(products.c.id == product_id))
    except IntegrityError:
        with engine.begin() as conn:
            conn.execute(
                update(products)
                .where(products.c.id == product_id)
                .values(active=False)
            )
