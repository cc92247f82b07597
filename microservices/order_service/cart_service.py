"""
Cart Service Business Logic

Per-user shopping cart. Each line snapshots the product's name and price at
the moment it is added; checkout uses that snapshot.
"""

import logging
from typing import Any, Optional

from .models import Cart, CartItem, CartResponse
from .protocols import (
    CartItemNotFoundError,
    CartNotFoundError,
    CartRepositoryProtocol,
    InsufficientStockError,
    InvalidQuantityError,
    OrderServiceError,
    ProductNotFoundError,
    ProductRepositoryProtocol,
    TransactionManagerProtocol,
)

logger = logging.getLogger(__name__)


class CartService:
    """Cart management business logic service"""

    def __init__(
        self,
        tx_manager: TransactionManagerProtocol,
        product_repository: ProductRepositoryProtocol,
        cart_repository: CartRepositoryProtocol,
    ):
        self.tx_manager = tx_manager
        self.products = product_repository
        self.carts = cart_repository
        logger.info("✅ CartService initialized")

    async def get_cart(self, user_id: str) -> CartResponse:
        """Get the user's cart, empty if none exists yet"""
        try:
            async with self.tx_manager.begin() as tx:
                cart = await self.carts.get_cart(tx, user_id)
            if cart is None:
                cart = Cart(cart_id="", user_id=user_id)
            return CartResponse(success=True, cart=cart, message="Cart retrieved")
        except Exception as e:
            logger.error(f"Failed to get cart for user {user_id}: {e}")
            return CartResponse(success=False, message="Failed to get cart", error_code="CART_ERROR")

    async def add_item(self, user_id: str, product_id: str, quantity: int = 1) -> CartResponse:
        """
        Add a product to the cart, merging with an existing line.

        Stock is checked against the merged quantity but not reserved.
        """
        async def apply(tx: Any, cart: Cart) -> None:
            if quantity < 1:
                raise InvalidQuantityError()

            product = await self.products.get_product(tx, product_id)
            if product is None:
                raise ProductNotFoundError(product_id)

            existing = cart.find_item(product_id)
            requested = quantity + (existing.quantity if existing else 0)
            if requested > product.current_stock:
                raise InsufficientStockError(
                    product_id=product_id,
                    product_name=product.name,
                    available=product.current_stock,
                    requested=requested,
                )

            if existing:
                existing.quantity = requested
            else:
                cart.items.append(CartItem(
                    product_id=product_id,
                    product_name=product.name,
                    quantity=quantity,
                    price=product.price,
                ))

        return await self._mutate(user_id, apply, "Item added to cart", create=True)

    async def update_item(self, user_id: str, product_id: str, quantity: int) -> CartResponse:
        """Set a line's quantity; zero or less removes the line"""
        async def apply(tx: Any, cart: Cart) -> None:
            existing = cart.find_item(product_id)
            if existing is None:
                raise CartItemNotFoundError(product_id)

            if quantity <= 0:
                cart.items.remove(existing)
                return

            product = await self.products.get_product(tx, product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            if quantity > product.current_stock:
                raise InsufficientStockError(
                    product_id=product_id,
                    product_name=product.name,
                    available=product.current_stock,
                    requested=quantity,
                )
            existing.quantity = quantity

        return await self._mutate(user_id, apply, "Cart updated")

    async def remove_item(self, user_id: str, product_id: str) -> CartResponse:
        async def apply(tx: Any, cart: Cart) -> None:
            existing = cart.find_item(product_id)
            if existing is None:
                raise CartItemNotFoundError(product_id)
            cart.items.remove(existing)

        return await self._mutate(user_id, apply, "Item removed from cart")

    async def clear_cart(self, user_id: str) -> CartResponse:
        async def apply(tx: Any, cart: Cart) -> None:
            cart.items.clear()

        return await self._mutate(user_id, apply, "Cart cleared")

    async def _mutate(self, user_id: str, apply, message: str, create: bool = False) -> CartResponse:
        """Run one cart change in its own transaction"""
        try:
            async with self.tx_manager.begin() as tx:
                cart: Optional[Cart] = await self.carts.get_cart(tx, user_id, for_update=True)
                if cart is None:
                    if not create:
                        raise CartNotFoundError()
                    cart = await self.carts.create_cart(tx, user_id)

                await apply(tx, cart)
                cart = await self.carts.save_cart(tx, cart)

            return CartResponse(success=True, cart=cart, message=message)

        except OrderServiceError as e:
            logger.warning(f"Cart change rejected for user {user_id}: {e}")
            return CartResponse(success=False, message=str(e), error_code=e.error_code)
        except Exception as e:
            logger.error(f"Cart change failed for user {user_id}: {e}", exc_info=True)
            return CartResponse(success=False, message="Server error, please try again", error_code="CART_ERROR")
