# pos/checkout.py
"""
Completing a sale at the register: sale row, line items, stock, and either an
immediate payment or a posting into the customer's weekly credit note.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection

from pos.config import Settings, get_settings
from pos.credits.ledger import CreditLedger, CreditNote
from pos.credits.poster import SaleCreditPoster
from pos.credits.weeks import now_local
from pos.db.schema import SALE_CREDIT, SALE_PAID, payments, products, sale_items, sales
from pos.exceptions import (
    CreditCustomerRequiredError,
    EmptyCartError,
    InsufficientStockError,
    InvalidAmountError,
    InvalidPaymentMethodError,
    ProductNotFoundError,
)

logger = logging.getLogger(__name__)

SALE_PAYMENT_METHODS = ("cash", "card", "credit")


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: Decimal
    unit_price: Optional[Decimal] = None


@dataclass
class SaleResult:
    sale_id: int
    status: str
    total_amount: Decimal
    total_cost: Decimal
    payment_id: Optional[int] = None
    credit_note: Optional[CreditNote] = None


def complete_sale(
    conn: Connection,
    items: Sequence[CartLine],
    payment_method: str = "cash",
    customer_id: Optional[int] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> SaleResult:
    settings = settings or get_settings()

    if not items:
        raise EmptyCartError()
    if payment_method not in SALE_PAYMENT_METHODS:
        raise InvalidPaymentMethodError(payment_method)
    if payment_method == "credit" and customer_id is None:
        raise CreditCustomerRequiredError()
    if customer_id is not None:
        CreditLedger(conn).get_customer(customer_id)

    priced: List[dict] = []
    remaining: Dict[int, Decimal] = {}
    total = Decimal("0")
    total_cost = Decimal("0")
    for line in items:
        if line.quantity is None or line.quantity <= 0:
            raise InvalidAmountError(line.quantity)
        product = conn.execute(
            select(products).where(products.c.id == line.product_id).with_for_update()
        ).mappings().first()
        if product is None or not product["active"]:
            raise ProductNotFoundError(line.product_id)
        # a product may appear on several lines of one cart
        available = remaining.get(line.product_id, product["stock"])
        if available < line.quantity:
            raise InsufficientStockError(line.product_id, line.quantity, available)
        remaining[line.product_id] = available - line.quantity

        unit_price = line.unit_price if line.unit_price is not None else product["price"]
        line_total = (unit_price * line.quantity).quantize(Decimal("0.01"))
        total += line_total
        total_cost += (product["cost"] or Decimal("0")) * line.quantity
        priced.append(
            {
                "product_id": line.product_id,
                "quantity": line.quantity,
                "unit_price": unit_price,
                "total_price": line_total,
            }
        )

    if total <= 0:
        raise InvalidAmountError(total)
    total_cost = total_cost.quantize(Decimal("0.01"))
    status = SALE_CREDIT if payment_method == "credit" else SALE_PAID

    now = now or now_local(settings)
    sale_id = conn.execute(
        insert(sales).values(
            customer_id=customer_id,
            total_amount=total,
            total_cost=total_cost,
            status=status,
            created_by=settings.operator_id,
            created_at=now,
        )
    ).inserted_primary_key[0]

    conn.execute(insert(sale_items), [dict(sale_id=sale_id, **row) for row in priced])
    for row in priced:
        conn.execute(
            update(products)
            .where(products.c.id == row["product_id"])
            .values(stock=products.c.stock - row["quantity"])
        )

    result = SaleResult(
        sale_id=sale_id,
        status=status,
        total_amount=total,
        total_cost=total_cost,
    )

    if status == SALE_CREDIT:
        result.credit_note = SaleCreditPoster(conn, settings).post(
            sale_id, customer_id, total, now=now
        )
    else:
        result.payment_id = conn.execute(
            insert(payments).values(
                sale_id=sale_id,
                customer_id=customer_id,
                amount=total,
                method=payment_method,
                received_by=settings.operator_id,
            )
        ).inserted_primary_key[0]

    logger.info("Sale %s completed: %s %s", sale_id, status, total)
    return result
