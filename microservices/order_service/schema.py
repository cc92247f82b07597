"""
Order Service Database Schema

DDL for the ``store`` schema. Applied at startup when AUTO_MIGRATE is set;
every statement is idempotent.
"""

import logging

logger = logging.getLogger(__name__)

SCHEMA = "store"

SCHEMA_STATEMENTS = [
    f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}",
    f"""
    CREATE TABLE IF NOT EXISTS {SCHEMA}.products (
        product_id VARCHAR(64) PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        category VARCHAR(100),
        description TEXT,
        price NUMERIC(12, 2) NOT NULL CHECK (price >= 0),
        current_stock INTEGER NOT NULL DEFAULT 0 CHECK (current_stock >= 0),
        min_stock INTEGER NOT NULL DEFAULT 5 CHECK (min_stock >= 0),
        unit VARCHAR(32) NOT NULL DEFAULT 'item',
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {SCHEMA}.carts (
        cart_id VARCHAR(64) PRIMARY KEY,
        user_id VARCHAR(64) NOT NULL UNIQUE,
        items JSONB NOT NULL DEFAULT '[]'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {SCHEMA}.orders (
        order_id VARCHAR(64) PRIMARY KEY,
        user_id VARCHAR(64) NOT NULL,
        items JSONB NOT NULL,
        total_price NUMERIC(12, 2) NOT NULL,
        billing_info JSONB NOT NULL,
        shipping_address TEXT NOT NULL,
        payment_method VARCHAR(32) NOT NULL,
        status VARCHAR(32) NOT NULL DEFAULT 'pending',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        cancelled_at TIMESTAMPTZ
    )
    """,
    f"CREATE INDEX IF NOT EXISTS idx_orders_user_id ON {SCHEMA}.orders (user_id, created_at DESC)",
    f"CREATE INDEX IF NOT EXISTS idx_orders_status ON {SCHEMA}.orders (status)",
    f"""
    CREATE TABLE IF NOT EXISTS {SCHEMA}.stock_history (
        entry_id VARCHAR(64) PRIMARY KEY,
        product_id VARCHAR(64) NOT NULL REFERENCES {SCHEMA}.products (product_id) ON DELETE CASCADE,
        change_type VARCHAR(16) NOT NULL,
        quantity INTEGER NOT NULL CHECK (quantity >= 0),
        previous_stock INTEGER NOT NULL,
        new_stock INTEGER NOT NULL,
        notes TEXT,
        performed_by VARCHAR(64) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    f"CREATE INDEX IF NOT EXISTS idx_stock_history_product ON {SCHEMA}.stock_history (product_id, created_at DESC)",
    f"CREATE INDEX IF NOT EXISTS idx_stock_history_created_at ON {SCHEMA}.stock_history (created_at DESC)",
]


async def apply_schema(db) -> None:
    """Create the store schema and tables in one transaction"""
    async with db.begin() as tx:
        for statement in SCHEMA_STATEMENTS:
            await tx.execute(statement)
    logger.info(f"Schema '{SCHEMA}' is up to date")
