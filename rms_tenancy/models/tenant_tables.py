"""
Fixed table set created inside every tenant schema

The tables are declared without a schema. The tenant schema is supplied at
execution time through ``schema_translate_map``, so every foreign key resolves
inside the same schema and no cross-schema reference can be created.
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB

tenant_metadata = MetaData()

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _timestamps():
    return [
        Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
        Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    ]


outlets = Table(
    "outlets",
    tenant_metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("name", String(255), nullable=False),
    Column("address", Text, nullable=False),
    Column("phone", String(20)),
    Column("email", String(255)),
    Column("operating_hours", JSONType, nullable=False, default=dict),
    Column("tax_config", JSONType, nullable=False, default=dict),
    Column("is_active", Boolean, nullable=False, server_default="true"),
    *_timestamps(),
)

menu_categories = Table(
    "menu_categories",
    tenant_metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("sort_order", Integer, nullable=False, server_default="0"),
    Column("is_active", Boolean, nullable=False, server_default="true"),
    *_timestamps(),
)

menu_items = Table(
    "menu_items",
    tenant_metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("category_id", Uuid, ForeignKey("menu_categories.id")),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("price", Numeric(10, 2), nullable=False),
    Column("preparation_time", Integer, nullable=False, server_default="0"),
    Column("ingredients", JSONType, nullable=False, default=list),
    Column("is_available", Boolean, nullable=False, server_default="true"),
    Column("outlet_ids", JSONType, nullable=False, default=list),
    *_timestamps(),
    Index("idx_menu_items_category", "category_id"),
)

tables = Table(
    "tables",
    tenant_metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("outlet_id", Uuid, ForeignKey("outlets.id")),
    Column("table_number", String(50), nullable=False),
    Column("capacity", Integer, nullable=False),
    Column("status", String(50), nullable=False, server_default="AVAILABLE"),
    *_timestamps(),
    Index("idx_tables_outlet", "outlet_id"),
)

customers = Table(
    "customers",
    tenant_metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("name", String(255), nullable=False),
    Column("email", String(255)),
    Column("phone", String(20)),
    Column("address", JSONType),
    Column("loyalty_points", Integer, nullable=False, server_default="0"),
    Column("total_orders", Integer, nullable=False, server_default="0"),
    Column("total_spent", Numeric(10, 2), nullable=False, server_default="0"),
    *_timestamps(),
)

orders = Table(
    "orders",
    tenant_metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("outlet_id", Uuid, ForeignKey("outlets.id")),
    Column("order_number", String(100), nullable=False, unique=True),
    Column("table_id", Uuid, ForeignKey("tables.id")),
    Column("customer_id", Uuid, ForeignKey("customers.id")),
    Column("order_type", String(50), nullable=False),
    Column("subtotal", Numeric(10, 2), nullable=False, server_default="0"),
    Column("tax", Numeric(10, 2), nullable=False, server_default="0"),
    Column("discount", Numeric(10, 2), nullable=False, server_default="0"),
    Column("total", Numeric(10, 2), nullable=False, server_default="0"),
    Column("status", String(50), nullable=False, server_default="PENDING"),
    Column("payment_status", String(50), nullable=False, server_default="PENDING"),
    *_timestamps(),
    Index("idx_orders_outlet_created", "outlet_id", "created_at"),
    Index("idx_orders_status", "status"),
)

order_items = Table(
    "order_items",
    tenant_metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("order_id", Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
    Column("menu_item_id", Uuid, ForeignKey("menu_items.id")),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Numeric(10, 2), nullable=False),
    Column("total_price", Numeric(10, 2), nullable=False),
    Column("special_instructions", Text),
    Column("status", String(50), nullable=False, server_default="PENDING"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

inventory_items = Table(
    "inventory_items",
    tenant_metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("outlet_id", Uuid, ForeignKey("outlets.id")),
    Column("name", String(255), nullable=False),
    Column("category", String(100)),
    Column("unit", String(50), nullable=False),
    Column("current_stock", Numeric(10, 3), nullable=False, server_default="0"),
    Column("minimum_stock", Numeric(10, 3), nullable=False, server_default="0"),
    Column("maximum_stock", Numeric(10, 3)),
    Column("unit_cost", Numeric(10, 2)),
    Column("supplier_id", Uuid),
    Column("last_restocked", DateTime(timezone=True)),
    *_timestamps(),
)

Index(
    "idx_inventory_low_stock",
    inventory_items.c.outlet_id,
    postgresql_where=inventory_items.c.current_stock <= inventory_items.c.minimum_stock,
)

staff = Table(
    "staff",
    tenant_metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("outlet_id", Uuid, ForeignKey("outlets.id")),
    Column("employee_id", String(100), nullable=False, unique=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("email", String(255), unique=True),
    Column("phone", String(20)),
    Column("role", String(50), nullable=False),
    Column("password_hash", String(255)),
    Column("permissions", JSONType, nullable=False, default=dict),
    Column("is_active", Boolean, nullable=False, server_default="true"),
    *_timestamps(),
    Index("idx_staff_outlet", "outlet_id"),
)

TENANT_TABLE_NAMES = tuple(table.name for table in tenant_metadata.sorted_tables)
