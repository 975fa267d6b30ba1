"""
Relational schema shared by the three services.

Each service only ever touches its own table: orders belong to the order
service, payments to the payment service, inventory to the inventory service.
"""

from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    func,
    insert,
    select,
)
from sqlalchemy.ext.asyncio import AsyncEngine

metadata = MetaData()

# SQLite only autoincrements INTEGER primary keys
_BigId = BigInteger().with_variant(Integer(), "sqlite")

orders_tbl = Table(
    "orders",
    metadata,
    Column("id", _BigId, primary_key=True, autoincrement=True),
    Column("customer_name", String(100), nullable=False),
    Column("product_id", BigInteger, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("total_amount", Numeric(10, 2), nullable=False),
    Column("status", String(50), nullable=False, default="CREATED"),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
)

payments_tbl = Table(
    "payments",
    metadata,
    Column("id", _BigId, primary_key=True, autoincrement=True),
    Column("order_id", BigInteger, nullable=False),
    Column("amount", Numeric(10, 2), nullable=False),
    Column("payment_method", String(50), nullable=False),
    Column("status", String(50), nullable=False, default="PENDING"),
    Column("transaction_id", String(100)),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
)

inventory_tbl = Table(
    "inventory",
    metadata,
    Column("id", _BigId, primary_key=True, autoincrement=True),
    Column("product_id", BigInteger, nullable=False, unique=True),
    Column("product_name", String(100), nullable=False),
    Column("quantity_available", Integer, nullable=False, default=0),
    Column("reserved_quantity", Integer, nullable=False, default=0),
    Column("unit_price", Numeric(10, 2), nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
)

SAMPLE_INVENTORY = [
    {"product_id": 1, "product_name": "Laptop", "quantity_available": 50, "unit_price": Decimal("999.99")},
    {"product_id": 2, "product_name": "Mouse", "quantity_available": 100, "unit_price": Decimal("29.99")},
    {"product_id": 3, "product_name": "Keyboard", "quantity_available": 75, "unit_price": Decimal("79.99")},
    {"product_id": 4, "product_name": "Monitor", "quantity_available": 25, "unit_price": Decimal("299.99")},
    {"product_id": 5, "product_name": "Headphones", "quantity_available": 80, "unit_price": Decimal("149.99")},
]


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


async def seed_inventory(engine: AsyncEngine, rows: list[dict] | None = None) -> int:
    """Insert the sample products if the inventory table is empty."""
    rows = SAMPLE_INVENTORY if rows is None else rows
    async with engine.begin() as conn:
        existing = (await conn.execute(select(func.count()).select_from(inventory_tbl))).scalar_one()
        if existing:
            return 0
        await conn.execute(
            insert(inventory_tbl),
            [{"reserved_quantity": 0, **row} for row in rows],
        )
    return len(rows)
