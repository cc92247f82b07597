"""
Order Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.

Every repository method takes the open transaction handle (``tx``) as its
first argument; the service decides the transaction boundaries.
"""
from typing import Any, AsyncContextManager, List, Optional, Protocol, runtime_checkable
from decimal import Decimal

# Import only models (no I/O dependencies)
from .models import (
    Actor, BillingInfo, Cart, Order, OrderItem, OrderStatus, PaymentMethod,
    Product, StockHistoryEntry,
)


# ============================================================================
# Custom Exceptions - defined here to avoid importing repository
# ============================================================================

class OrderServiceError(Exception):
    """Base exception for order service errors"""
    error_code = "ORDER_SERVICE_ERROR"


class CheckoutValidationError(OrderServiceError):
    """Checkout input rejected before any stock is touched"""
    error_code = "VALIDATION_ERROR"


class EmptyCartError(CheckoutValidationError):
    error_code = "EMPTY_CART"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class MissingCheckoutFieldsError(CheckoutValidationError):
    error_code = "MISSING_CHECKOUT_FIELDS"

    def __init__(self, missing: Optional[List[str]] = None):
        self.missing = missing or []
        super().__init__("Missing required checkout information")


class InvalidPaymentMethodError(CheckoutValidationError):
    error_code = "INVALID_PAYMENT_METHOD"

    def __init__(self, payment_method: Optional[str] = None):
        self.payment_method = payment_method
        super().__init__("Invalid payment method")


class ProductNotFoundError(OrderServiceError):
    """Product referenced by a cart line or order no longer exists"""
    error_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class InsufficientStockError(OrderServiceError):
    """Requested quantity exceeds current stock"""
    error_code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, product_name: str, available: int, requested: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product: {product_name} ({product_id}), "
            f"available {available}, requested {requested}"
        )


class OrderNotFoundError(OrderServiceError):
    """Order not found error"""
    error_code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class OrderAccessDeniedError(OrderServiceError):
    """Caller does not own the order"""
    error_code = "ORDER_ACCESS_DENIED"


class OrderNotCancellableError(OrderServiceError):
    """Order already left the pending state"""
    error_code = "ORDER_NOT_CANCELLABLE"

    def __init__(self, status: OrderStatus):
        self.status = status
        super().__init__(f"Order cannot be cancelled, its status is {status.value}")


class InvalidOrderStatusError(OrderServiceError):
    error_code = "INVALID_ORDER_STATUS"

    def __init__(self, value: Optional[str]):
        self.value = value
        super().__init__("Invalid status value")


class InvalidStatusTransitionError(OrderServiceError):
    error_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: OrderStatus, target: OrderStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change order status from {current.value} to {target.value}")


class StatusUpdateForbiddenError(OrderServiceError):
    error_code = "STATUS_UPDATE_FORBIDDEN"

    def __init__(self, message: str = "Not authorized to update order status"):
        super().__init__(message)


class CartNotFoundError(OrderServiceError):
    error_code = "CART_NOT_FOUND"

    def __init__(self, message: str = "Cart not found"):
        super().__init__(message)


class CartItemNotFoundError(OrderServiceError):
    error_code = "ITEM_NOT_IN_CART"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__("Product not found in cart")


class InvalidQuantityError(OrderServiceError):
    error_code = "INVALID_QUANTITY"

    def __init__(self, message: str = "Quantity must be at least 1"):
        super().__init__(message)


class InvalidStockChangeTypeError(OrderServiceError):
    error_code = "INVALID_CHANGE_TYPE"

    def __init__(self, value: Optional[str]):
        self.value = value
        super().__init__(f"Invalid stock change type: {value}")


class StockUpdateForbiddenError(OrderServiceError):
    error_code = "STOCK_UPDATE_FORBIDDEN"

    def __init__(self, message: str = "Not authorized to change stock"):
        super().__init__(message)


class EmailDeliveryError(Exception):
    """Email provider rejected or failed a send"""
    pass


# ============================================================================
# Transaction Protocol
# ============================================================================

@runtime_checkable
class TransactionManagerProtocol(Protocol):
    """
    Opens units of work.

    ``begin()`` yields a transaction handle; leaving the block normally
    commits, leaving it with an exception rolls back.
    """

    def begin(self) -> AsyncContextManager[Any]:
        ...


# ============================================================================
# Repository Protocols
# ============================================================================

@runtime_checkable
class ProductRepositoryProtocol(Protocol):
    """Interface for product reads and stock writes"""

    async def get_product(self, tx: Any, product_id: str, for_update: bool = False) -> Optional[Product]:
        """Get product by ID; ``for_update`` locks the row until commit"""
        ...

    async def update_stock(self, tx: Any, product_id: str, new_stock: int) -> None:
        """Persist a new stock level"""
        ...

    async def list_low_stock_products(self, tx: Any) -> List[Product]:
        """Products whose current stock is at or below their minimum"""
        ...


@runtime_checkable
class CartRepositoryProtocol(Protocol):
    """Interface for cart persistence"""

    async def get_cart(self, tx: Any, user_id: str, for_update: bool = False) -> Optional[Cart]:
        ...

    async def create_cart(self, tx: Any, user_id: str) -> Cart:
        ...

    async def save_cart(self, tx: Any, cart: Cart) -> Cart:
        """Replace the cart's lines"""
        ...

    async def clear_cart(self, tx: Any, cart_id: str) -> None:
        ...


@runtime_checkable
class OrderRepositoryProtocol(Protocol):
    """Interface for order persistence"""

    async def create_order(
        self,
        tx: Any,
        user_id: str,
        items: List[OrderItem],
        total_price: Decimal,
        billing_info: BillingInfo,
        shipping_address: str,
        payment_method: PaymentMethod,
        status: OrderStatus = OrderStatus.PENDING,
    ) -> Order:
        """Create a new order"""
        ...

    async def get_order(self, tx: Any, order_id: str, for_update: bool = False) -> Optional[Order]:
        """Get order by ID"""
        ...

    async def update_order_status(self, tx: Any, order_id: str, status: OrderStatus) -> Optional[Order]:
        ...

    async def delete_order(self, tx: Any, order_id: str) -> bool:
        ...

    async def list_orders(
        self,
        tx: Any,
        user_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Order]:
        """Newest first"""
        ...


@runtime_checkable
class StockHistoryRepositoryProtocol(Protocol):
    """Append-only stock movement ledger"""

    async def append_entry(self, tx: Any, entry: StockHistoryEntry) -> StockHistoryEntry:
        ...

    async def list_entries(self, tx: Any, product_id: str, limit: int = 50) -> List[StockHistoryEntry]:
        """Newest first"""
        ...

    async def list_all_entries(self, tx: Any, limit: int = 50, offset: int = 0) -> List[StockHistoryEntry]:
        """Entries of every product, newest first"""
        ...


# ============================================================================
# Client Protocols
# ============================================================================

@runtime_checkable
class EmailClientProtocol(Protocol):
    """Interface for the transactional email provider"""

    async def send_email(self, to: str, subject: str, html: str) -> Optional[str]:
        """Send one message, returns the provider message id"""
        ...


@runtime_checkable
class EventBusProtocol(Protocol):
    """Interface for Event Bus"""

    async def publish_event(self, event: Any) -> bool:
        ...


@runtime_checkable
class StatusAuthorizerProtocol(Protocol):
    """Decides which callers may change order statuses and stock levels"""

    def can_update_status(self, actor: Actor) -> bool:
        ...

    def can_adjust_stock(self, actor: Actor) -> bool:
        ...
