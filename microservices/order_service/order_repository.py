"""
Order Repository

Data access layer for products, carts, orders and stock history on asyncpg.
Repositories hold no connection of their own: every call runs on the
transaction handle the service passes in.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
import json
import uuid
import logging
from decimal import Decimal

from .models import (
    BillingInfo, Cart, CartItem, Order, OrderItem, OrderStatus, PaymentMethod,
    Product, StockChangeType, StockHistoryEntry,
)
from .schema import SCHEMA

logger = logging.getLogger(__name__)


def _json_value(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


def _lock_clause(for_update: bool) -> str:
    return " FOR UPDATE" if for_update else ""


class ProductRepository:
    """Product reads and stock writes"""

    def __init__(self, schema: str = SCHEMA):
        self.schema = schema
        self.table = f"{schema}.products"

    async def get_product(self, tx, product_id: str, for_update: bool = False) -> Optional[Product]:
        """Get product by ID"""
        row = await tx.fetchrow(
            f"SELECT * FROM {self.table} WHERE product_id = $1{_lock_clause(for_update)}",
            product_id,
        )
        return self._dict_to_product(row) if row else None

    async def update_stock(self, tx, product_id: str, new_stock: int) -> None:
        await tx.execute(
            f"UPDATE {self.table} SET current_stock = $1, updated_at = NOW() WHERE product_id = $2",
            new_stock, product_id,
        )

    async def list_low_stock_products(self, tx) -> List[Product]:
        rows = await tx.fetch(
            f"""
            SELECT * FROM {self.table}
            WHERE is_active AND current_stock <= min_stock
            ORDER BY current_stock ASC, name ASC
            """
        )
        return [self._dict_to_product(row) for row in rows]

    def _dict_to_product(self, data: Dict[str, Any]) -> Product:
        return Product(
            product_id=data["product_id"],
            name=data["name"],
            category=data.get("category"),
            description=data.get("description"),
            price=Decimal(str(data["price"])),
            current_stock=data["current_stock"],
            min_stock=data["min_stock"],
            unit=data.get("unit") or "item",
            is_active=data.get("is_active", True),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class CartRepository:
    """Cart persistence; lines are stored as a JSONB array"""

    def __init__(self, schema: str = SCHEMA):
        self.schema = schema
        self.table = f"{schema}.carts"

    async def get_cart(self, tx, user_id: str, for_update: bool = False) -> Optional[Cart]:
        row = await tx.fetchrow(
            f"SELECT * FROM {self.table} WHERE user_id = $1{_lock_clause(for_update)}",
            user_id,
        )
        return self._dict_to_cart(row) if row else None

    async def create_cart(self, tx, user_id: str) -> Cart:
        cart_id = f"cart_{uuid.uuid4().hex[:12]}"
        row = await tx.fetchrow(
            f"""
            INSERT INTO {self.table} (cart_id, user_id, items)
            VALUES ($1, $2, '[]'::jsonb)
            RETURNING *
            """,
            cart_id, user_id,
        )
        return self._dict_to_cart(row)

    async def save_cart(self, tx, cart: Cart) -> Cart:
        items = [item.model_dump(mode='json') for item in cart.items]
        row = await tx.fetchrow(
            f"""
            UPDATE {self.table}
            SET items = $1::jsonb, updated_at = NOW()
            WHERE cart_id = $2
            RETURNING *
            """,
            json.dumps(items), cart.cart_id,
        )
        return self._dict_to_cart(row)

    async def clear_cart(self, tx, cart_id: str) -> None:
        await tx.execute(
            f"UPDATE {self.table} SET items = '[]'::jsonb, updated_at = NOW() WHERE cart_id = $1",
            cart_id,
        )

    def _dict_to_cart(self, data: Dict[str, Any]) -> Cart:
        items = _json_value(data.get("items"), [])
        return Cart(
            cart_id=data["cart_id"],
            user_id=data["user_id"],
            items=[CartItem(**item) for item in items],
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class OrderRepository:
    """
    Repository for order data operations

    Order lines and billing details are stored as JSONB snapshots.
    """

    def __init__(self, schema: str = SCHEMA):
        self.schema = schema
        self.table = f"{schema}.orders"

    async def create_order(
        self,
        tx,
        user_id: str,
        items: List[OrderItem],
        total_price: Decimal,
        billing_info: BillingInfo,
        shipping_address: str,
        payment_method: PaymentMethod,
        status: OrderStatus = OrderStatus.PENDING,
    ) -> Order:
        """Create a new order"""
        order_id = f"order_{uuid.uuid4().hex[:12]}"
        now = datetime.now(timezone.utc)

        row = await tx.fetchrow(
            f"""
            INSERT INTO {self.table} (
                order_id, user_id, items, total_price, billing_info,
                shipping_address, payment_method, status, created_at, updated_at
            )
            VALUES ($1, $2, $3::jsonb, $4, $5::jsonb, $6, $7, $8, $9, $9)
            RETURNING *
            """,
            order_id,
            user_id,
            json.dumps([item.model_dump(mode='json') for item in items]),
            total_price,
            json.dumps(billing_info.model_dump(mode='json')),
            shipping_address,
            payment_method.value,
            status.value,
            now,
        )
        return self._dict_to_order(row)

    async def get_order(self, tx, order_id: str, for_update: bool = False) -> Optional[Order]:
        """Get order by ID"""
        row = await tx.fetchrow(
            f"SELECT * FROM {self.table} WHERE order_id = $1{_lock_clause(for_update)}",
            order_id,
        )
        return self._dict_to_order(row) if row else None

    async def update_order_status(self, tx, order_id: str, status: OrderStatus) -> Optional[Order]:
        row = await tx.fetchrow(
            f"""
            UPDATE {self.table}
            SET status = $1,
                updated_at = NOW(),
                cancelled_at = CASE WHEN $3 THEN NOW() ELSE cancelled_at END
            WHERE order_id = $2
            RETURNING *
            """,
            status.value, order_id, status == OrderStatus.CANCELLED,
        )
        return self._dict_to_order(row) if row else None

    async def delete_order(self, tx, order_id: str) -> bool:
        result = await tx.execute(f"DELETE FROM {self.table} WHERE order_id = $1", order_id)
        return result.endswith(" 1")

    async def list_orders(
        self,
        tx,
        user_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Order]:
        """List orders with filtering"""
        conditions = []
        params: List[Any] = []
        param_count = 0

        if user_id:
            param_count += 1
            conditions.append(f"user_id = ${param_count}")
            params.append(user_id)

        if status:
            param_count += 1
            conditions.append(f"status = ${param_count}")
            params.append(status.value)

        where_clause = " AND ".join(conditions) if conditions else "TRUE"
        params.extend([limit, offset])
        query = f'''
            SELECT * FROM {self.table}
            WHERE {where_clause}
            ORDER BY created_at DESC
            LIMIT ${param_count + 1} OFFSET ${param_count + 2}
        '''

        rows = await tx.fetch(query, *params)
        return [self._dict_to_order(row) for row in rows]

    def _dict_to_order(self, data: Dict[str, Any]) -> Order:
        """Convert row to Order model"""
        items = _json_value(data.get("items"), [])
        billing_info = _json_value(data.get("billing_info"), {})

        return Order(
            order_id=data["order_id"],
            user_id=data["user_id"],
            items=[OrderItem(**item) for item in items],
            total_price=Decimal(str(data["total_price"])),
            billing_info=BillingInfo(**billing_info),
            shipping_address=data["shipping_address"],
            payment_method=PaymentMethod(data["payment_method"]),
            status=OrderStatus(data["status"]),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            cancelled_at=data.get("cancelled_at"),
        )


class StockHistoryRepository:
    """Append-only stock movement ledger"""

    def __init__(self, schema: str = SCHEMA):
        self.schema = schema
        self.table = f"{schema}.stock_history"

    async def append_entry(self, tx, entry: StockHistoryEntry) -> StockHistoryEntry:
        await tx.execute(
            f"""
            INSERT INTO {self.table} (
                entry_id, product_id, change_type, quantity, previous_stock,
                new_stock, notes, performed_by, created_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            """,
            entry.entry_id,
            entry.product_id,
            entry.change_type.value,
            entry.quantity,
            entry.previous_stock,
            entry.new_stock,
            entry.notes,
            entry.performed_by,
            entry.created_at,
        )
        return entry

    async def list_entries(self, tx, product_id: str, limit: int = 50) -> List[StockHistoryEntry]:
        rows = await tx.fetch(
            f"""
            SELECT * FROM {self.table}
            WHERE product_id = $1
            ORDER BY created_at DESC
            LIMIT $2
            """,
            product_id, limit,
        )
        return [self._dict_to_entry(row) for row in rows]

    async def list_all_entries(self, tx, limit: int = 50, offset: int = 0) -> List[StockHistoryEntry]:
        rows = await tx.fetch(
            f"""
            SELECT * FROM {self.table}
            ORDER BY created_at DESC
            LIMIT $1 OFFSET $2
            """,
            limit, offset,
        )
        return [self._dict_to_entry(row) for row in rows]

    def _dict_to_entry(self, data: Dict[str, Any]) -> StockHistoryEntry:
        return StockHistoryEntry(
            entry_id=data["entry_id"],
            product_id=data["product_id"],
            change_type=StockChangeType(data["change_type"]),
            quantity=data["quantity"],
            previous_stock=data["previous_stock"],
            new_stock=data["new_stock"],
            notes=data.get("notes"),
            performed_by=data["performed_by"],
            created_at=data["created_at"],
        )
