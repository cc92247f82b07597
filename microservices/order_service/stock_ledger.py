"""
Stock Ledger

Applies stock movements inside an open transaction. Each movement re-reads
the product with a row lock, rejects anything that would drive stock below
zero and appends a stock history entry in the same transaction.

Callers touching several products lock them up front with
``lock_products`` so every transaction takes product row locks in
ascending product_id order.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .models import StockChangeType, StockHistoryEntry, StockMovement
from .protocols import (
    InsufficientStockError,
    InvalidQuantityError,
    InvalidStockChangeTypeError,
    ProductNotFoundError,
    ProductRepositoryProtocol,
    StockHistoryRepositoryProtocol,
)

logger = logging.getLogger(__name__)

ORDER_STOCK_REMOVED_NOTE = "Stock removed for order"
ORDER_STOCK_RESTORED_NOTE = "Stock restored due to order cancellation"


def parse_change_type(value: Optional[str]) -> StockChangeType:
    """Map a raw change type onto StockChangeType"""
    if not value:
        raise InvalidStockChangeTypeError(value)
    try:
        return StockChangeType(value.strip().lower())
    except ValueError:
        raise InvalidStockChangeTypeError(value)


def validate_adjustment_quantity(change_type: StockChangeType, quantity: Optional[int]) -> None:
    """Movements need at least one unit; adjust accepts zero as the new level"""
    if quantity is None:
        raise InvalidQuantityError("Quantity and change type are required")
    minimum = 0 if change_type == StockChangeType.ADJUST else 1
    if quantity < minimum:
        raise InvalidQuantityError(f"Quantity must be at least {minimum}")


def compute_new_stock(change_type: StockChangeType, previous_stock: int, quantity: int) -> int:
    """Stock level after a movement; ``adjust`` sets the level outright"""
    if change_type == StockChangeType.ADD:
        return previous_stock + quantity
    if change_type in (StockChangeType.REMOVE, StockChangeType.EXPIRE):
        return previous_stock - quantity
    return quantity


class StockLedger:
    """Stock mutations paired with their audit trail"""

    def __init__(
        self,
        product_repository: ProductRepositoryProtocol,
        stock_history_repository: StockHistoryRepositoryProtocol,
    ):
        self.products = product_repository
        self.history = stock_history_repository

    async def lock_products(self, tx: Any, product_ids: Iterable[str]) -> None:
        """Row-lock the given products in ascending id order"""
        for product_id in sorted(set(product_ids)):
            await self.products.get_product(tx, product_id, for_update=True)

    async def remove_stock(
        self, tx: Any, product_id: str, quantity: int, performed_by: str,
        notes: str = ORDER_STOCK_REMOVED_NOTE,
    ) -> StockMovement:
        return await self.apply(tx, product_id, StockChangeType.REMOVE, quantity, performed_by, notes)

    async def add_stock(
        self, tx: Any, product_id: str, quantity: int, performed_by: str,
        notes: str = ORDER_STOCK_RESTORED_NOTE,
    ) -> StockMovement:
        return await self.apply(tx, product_id, StockChangeType.ADD, quantity, performed_by, notes)

    async def apply(
        self,
        tx: Any,
        product_id: str,
        change_type: StockChangeType,
        quantity: int,
        performed_by: str,
        notes: Optional[str] = None,
    ) -> StockMovement:
        """
        Apply one movement and record it.

        The recorded quantity is the absolute difference between the old and
        new level, so ``adjust`` entries replay like add/remove entries.

        Raises:
            InvalidQuantityError: negative quantity
            ProductNotFoundError: product does not exist
            InsufficientStockError: movement would drive stock below zero
        """
        if quantity < 0:
            raise InvalidQuantityError("Quantity cannot be negative")

        product = await self.products.get_product(tx, product_id, for_update=True)
        if product is None:
            raise ProductNotFoundError(product_id)

        previous_stock = product.current_stock
        new_stock = compute_new_stock(change_type, previous_stock, quantity)
        if new_stock < 0:
            raise InsufficientStockError(
                product_id=product_id,
                product_name=product.name,
                available=previous_stock,
                requested=quantity,
            )
        moved = abs(new_stock - previous_stock)

        await self.products.update_stock(tx, product_id, new_stock)
        await self.history.append_entry(
            tx,
            StockHistoryEntry(
                entry_id=f"stk_{uuid.uuid4().hex[:16]}",
                product_id=product_id,
                change_type=change_type,
                quantity=moved,
                previous_stock=previous_stock,
                new_stock=new_stock,
                notes=notes,
                performed_by=performed_by,
                created_at=datetime.now(timezone.utc),
            ),
        )

        logger.debug(f"Stock {change_type.value} {product_id}: {previous_stock} -> {new_stock}")
        return StockMovement(
            product_id=product_id,
            product_name=product.name,
            change_type=change_type,
            quantity=moved,
            previous_stock=previous_stock,
            new_stock=new_stock,
            min_stock=product.min_stock,
        )
