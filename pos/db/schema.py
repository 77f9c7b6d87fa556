# pos/db/schema.py

from sqlalchemy import (
    MetaData, Table, Column, Integer, String, Boolean,
    Numeric, Date, DateTime, ForeignKey, CheckConstraint, Text,
    UniqueConstraint, func, true,
)

metadata = MetaData()

MONEY = Numeric(12, 2)
QUANTITY = Numeric(12, 3)

CREDIT_OPEN = "open"
CREDIT_OVERDUE = "overdue"
CREDIT_CLOSED = "closed"
ELIGIBLE_CREDIT_STATUSES = (CREDIT_OPEN, CREDIT_OVERDUE)

SALE_PAID = "paid"
SALE_CREDIT = "credit"

customers = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("phone", String, nullable=True),
    Column("email", String, nullable=True),
    Column("address", String, nullable=True),
    Column("balance", MONEY, nullable=False, server_default="0"),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    CheckConstraint("balance >= 0", name="ck_customers_balance_nonneg"),
)

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sku", String, nullable=True, unique=True),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("price", MONEY, nullable=False),
    Column("cost", MONEY, nullable=True),
    Column("stock", QUANTITY, nullable=False, server_default="0"),
    Column("low_stock_threshold", QUANTITY, nullable=True),
    Column("active", Boolean, nullable=False, server_default=true()),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column(
        "updated_at",
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    ),
    CheckConstraint("price >= 0", name="ck_products_price_nonneg"),
    CheckConstraint("stock >= 0", name="ck_products_stock_nonneg"),
)

sales = Table(
    "sales",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=True),
    Column("total_amount", MONEY, nullable=False),
    Column("total_cost", MONEY, nullable=True),
    Column("status", Text, nullable=False),
    Column("created_by", Text, nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    CheckConstraint("total_amount >= 0", name="ck_sales_total_nonneg"),
    CheckConstraint("status IN ('paid', 'credit')", name="ck_sales_status"),
)

sale_items = Table(
    "sale_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sale_id", Integer, ForeignKey("sales.id"), nullable=False),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("quantity", QUANTITY, nullable=False),
    Column("unit_price", MONEY, nullable=False),
    Column("total_price", MONEY, nullable=False),
    CheckConstraint("quantity > 0", name="ck_sale_items_quantity_pos"),
)

payments = Table(
    "payments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sale_id", Integer, ForeignKey("sales.id"), nullable=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=True),
    Column("amount", MONEY, nullable=False),
    Column("method", Text, nullable=False),
    Column("notes", Text, nullable=True),
    Column("received_by", Text, nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    CheckConstraint("amount > 0", name="ck_payments_amount_pos"),
)

# One note per customer per credit week (Saturday..Friday).
credits = Table(
    "credits",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
    # legacy per-sale credits; weekly notes link sales through credit_sales
    Column("sale_id", Integer, ForeignKey("sales.id"), nullable=True),
    Column("total_amount", MONEY, nullable=False),
    # NULL only on legacy rows, see credits.maintenance.backfill_outstanding_amounts
    Column("outstanding_amount", MONEY, nullable=True),
    Column("status", Text, nullable=False, server_default=CREDIT_OPEN),
    Column("due_date", Date, nullable=True),
    Column("week_start", Date, nullable=True),
    Column("week_end", Date, nullable=True),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    CheckConstraint("total_amount >= 0", name="ck_credits_total_nonneg"),
    CheckConstraint("outstanding_amount >= 0", name="ck_credits_outstanding_nonneg"),
    CheckConstraint(
        "outstanding_amount <= total_amount", name="ck_credits_outstanding_le_total"
    ),
    CheckConstraint(
        "status IN ('open', 'overdue', 'closed')", name="ck_credits_status"
    ),
)

credit_sales = Table(
    "credit_sales",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("credit_id", Integer, ForeignKey("credits.id"), nullable=False),
    Column("sale_id", Integer, ForeignKey("sales.id"), nullable=False),
    UniqueConstraint("credit_id", "sale_id", name="uq_credit_sales_pair"),
)

# Append-only allocation audit rows: how much of a payment went to a note.
credit_payments = Table(
    "credit_payments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("credit_id", Integer, ForeignKey("credits.id"), nullable=False),
    Column("payment_id", Integer, ForeignKey("payments.id"), nullable=False),
    Column("amount", MONEY, nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    CheckConstraint("amount > 0", name="ck_credit_payments_amount_pos"),
    UniqueConstraint("credit_id", "payment_id", name="uq_credit_payments_pair"),
)
