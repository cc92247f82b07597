"""
Order Service Business Logic

Checkout, cancellation, status management and manual stock changes for
SuperMart orders.

Every mutating operation runs as one unit of work: stock decrements, stock
history entries, the order row and the cart reset either all commit or none
do. Typed errors are raised inside the transaction so it rolls back, and
converted to response objects outside of it. Emails and events are side
effects of a committed order only.
"""

import asyncio
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from core.config import OrderConfig

from .models import (
    Actor, BillingInfo, CheckoutRequest, CheckoutResponse, Order, OrderFilter,
    OrderItem, OrderListResponse, OrderResponse, OrderStatus, PaymentMethod,
    Product, StockAdjustmentResponse, StockChangeType, StockHistoryEntry, StockMovement,
)
from .protocols import (
    CartRepositoryProtocol,
    EmptyCartError,
    EventBusProtocol,
    InvalidPaymentMethodError,
    InvalidStatusTransitionError,
    MissingCheckoutFieldsError,
    OrderAccessDeniedError,
    OrderNotCancellableError,
    OrderNotFoundError,
    OrderRepositoryProtocol,
    OrderServiceError,
    ProductRepositoryProtocol,
    StatusAuthorizerProtocol,
    StatusUpdateForbiddenError,
    StockHistoryRepositoryProtocol,
    StockUpdateForbiddenError,
    TransactionManagerProtocol,
)
from .notifications import OrderNotifier
from .status_policy import RoleStatusAuthorizer, is_transition_allowed, parse_status
from .stock_ledger import (
    ORDER_STOCK_REMOVED_NOTE,
    ORDER_STOCK_RESTORED_NOTE,
    StockLedger,
    parse_change_type,
    validate_adjustment_quantity,
)
from .events.publishers import (
    publish_order_created,
    publish_order_canceled,
    publish_order_status_updated,
    publish_stock_changed,
)

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Server error, please try again"
TRANSACTION_TIMEOUT_MESSAGE = "Order could not be completed in time, please try again"

CHECKOUT_FIELDS = ("full_name", "email", "shipping_address", "payment_method")


def calculate_total(items: List[OrderItem]) -> Decimal:
    """Sum of price * quantity over the order lines"""
    return sum((item.subtotal for item in items), Decimal("0"))


def validate_checkout_request(request: CheckoutRequest) -> PaymentMethod:
    """
    Check the checkout form and return the parsed payment method.

    Raises:
        MissingCheckoutFieldsError: a required field is absent or blank
        InvalidPaymentMethodError: payment method is not accepted
    """
    missing = [
        name for name in CHECKOUT_FIELDS
        if not (getattr(request, name) or "").strip()
    ]
    if missing:
        raise MissingCheckoutFieldsError(missing)

    try:
        return PaymentMethod(request.payment_method.strip())
    except ValueError:
        raise InvalidPaymentMethodError(request.payment_method)


class OrderService:
    """
    Order management business logic service

    Owns the checkout and cancellation transactions, back-office status
    updates and the read side used by the order and inventory screens.
    """

    def __init__(
        self,
        tx_manager: TransactionManagerProtocol,
        product_repository: ProductRepositoryProtocol,
        cart_repository: CartRepositoryProtocol,
        order_repository: OrderRepositoryProtocol,
        stock_history_repository: StockHistoryRepositoryProtocol,
        notifier: Optional[OrderNotifier] = None,
        event_bus: Optional[EventBusProtocol] = None,
        status_authorizer: Optional[StatusAuthorizerProtocol] = None,
        config: Optional[OrderConfig] = None,
    ):
        """
        Initialize Order Service

        Args:
            tx_manager: Opens transactions (``begin()``)
            product_repository: Product reads and stock writes
            cart_repository: Cart persistence
            order_repository: Order persistence
            stock_history_repository: Stock movement ledger
            notifier: Order email notifier (optional)
            event_bus: NATS event bus instance (optional)
            status_authorizer: Role check for status updates and stock changes
            config: Order behaviour settings
        """
        self.tx_manager = tx_manager
        self.products = product_repository
        self.carts = cart_repository
        self.orders = order_repository
        self.stock_history = stock_history_repository
        self.ledger = StockLedger(product_repository, stock_history_repository)
        self.notifier = notifier
        self.event_bus = event_bus
        self.config = config or OrderConfig()
        self.status_authorizer = status_authorizer or RoleStatusAuthorizer(self.config.status_roles)

        logger.info("✅ OrderService initialized")

    # Checkout

    async def checkout(self, user_id: str, request: CheckoutRequest) -> CheckoutResponse:
        """
        Convert the user's cart into a pending order.

        Args:
            user_id: Authenticated user
            request: Billing, shipping and payment details

        Returns:
            Checkout response with the new order id or a classified error
        """
        try:
            order, movements = await asyncio.wait_for(
                self._checkout_transaction(user_id, request),
                timeout=self.config.transaction_timeout,
            )
        except OrderServiceError as e:
            logger.warning(f"Checkout rejected for user {user_id}: {e}")
            return CheckoutResponse(success=False, message=str(e), error_code=e.error_code)
        except asyncio.TimeoutError:
            logger.error(f"Checkout transaction timed out for user {user_id}")
            return CheckoutResponse(
                success=False,
                message=TRANSACTION_TIMEOUT_MESSAGE,
                error_code="TRANSACTION_TIMEOUT"
            )
        except Exception as e:
            logger.error(f"Checkout failed for user {user_id}: {e}", exc_info=True)
            return CheckoutResponse(success=False, message=SERVER_ERROR_MESSAGE, error_code="CHECKOUT_ERROR")

        logger.info(f"Order created: {order.order_id} for user {user_id}, total {order.total_price}")

        if order.payment_method == PaymentMethod.IN_STORE_PAYMENT:
            self._notify_order_placed(order)

        await publish_order_created(self.event_bus, order)
        for movement in movements:
            await publish_stock_changed(self.event_bus, movement, order_id=order.order_id, performed_by=user_id)

        return CheckoutResponse(
            success=True,
            order_id=order.order_id,
            message="Order placed successfully"
        )

    async def _checkout_transaction(
        self, user_id: str, request: CheckoutRequest
    ) -> Tuple[Order, List[StockMovement]]:
        async with self.tx_manager.begin() as tx:
            cart = await self.carts.get_cart(tx, user_id, for_update=True)
            if cart is None or cart.is_empty:
                raise EmptyCartError()

            payment_method = validate_checkout_request(request)

            await self.ledger.lock_products(tx, (item.product_id for item in cart.items))

            order_items: List[OrderItem] = []
            movements: List[StockMovement] = []
            for item in cart.items:
                movement = await self.ledger.remove_stock(
                    tx, item.product_id, item.quantity,
                    performed_by=user_id, notes=ORDER_STOCK_REMOVED_NOTE,
                )
                movements.append(movement)
                order_items.append(OrderItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=item.price,
                ))

            order = await self.orders.create_order(
                tx,
                user_id=user_id,
                items=order_items,
                total_price=calculate_total(order_items),
                billing_info=BillingInfo(
                    full_name=request.full_name.strip(),
                    email=request.email.strip(),
                ),
                shipping_address=request.shipping_address.strip(),
                payment_method=payment_method,
                status=OrderStatus.PENDING,
            )

            await self.carts.clear_cart(tx, cart.cart_id)

        return order, movements

    # Cancellation

    async def cancel_order(self, user_id: str, order_id: str) -> OrderResponse:
        """
        Cancel a pending order owned by the caller and restore its stock.

        Args:
            user_id: Authenticated user, must own the order
            order_id: Order to cancel

        Returns:
            Order response; ``order`` holds the cancelled order
        """
        try:
            order, movements = await asyncio.wait_for(
                self._cancel_transaction(user_id, order_id),
                timeout=self.config.transaction_timeout,
            )
        except OrderServiceError as e:
            logger.warning(f"Cancellation of order {order_id} rejected: {e}")
            return OrderResponse(success=False, message=str(e), error_code=e.error_code)
        except asyncio.TimeoutError:
            logger.error(f"Cancellation transaction timed out for order {order_id}")
            return OrderResponse(
                success=False,
                message=TRANSACTION_TIMEOUT_MESSAGE,
                error_code="TRANSACTION_TIMEOUT"
            )
        except Exception as e:
            logger.error(f"Failed to cancel order {order_id}: {e}", exc_info=True)
            return OrderResponse(success=False, message=SERVER_ERROR_MESSAGE, error_code="CANCEL_ERROR")

        retained = self.config.cancel_retain_record
        logger.info(f"Order cancelled: {order_id} by user {user_id} (record retained: {retained})")

        await publish_order_canceled(self.event_bus, order, record_retained=retained)
        for movement in movements:
            await publish_stock_changed(self.event_bus, movement, order_id=order_id, performed_by=user_id)

        return OrderResponse(
            success=True,
            order=order,
            message="Order cancelled successfully"
        )

    async def _cancel_transaction(self, user_id: str, order_id: str) -> Tuple[Order, List[StockMovement]]:
        async with self.tx_manager.begin() as tx:
            order = await self.orders.get_order(tx, order_id, for_update=True)
            if order is None:
                raise OrderNotFoundError(order_id)
            if order.user_id != user_id:
                raise OrderAccessDeniedError("Not authorized to cancel this order")
            if order.status != OrderStatus.PENDING:
                raise OrderNotCancellableError(order.status)

            await self.ledger.lock_products(tx, (item.product_id for item in order.items))

            movements: List[StockMovement] = []
            for item in order.items:
                movement = await self.ledger.add_stock(
                    tx, item.product_id, item.quantity,
                    performed_by=user_id, notes=ORDER_STOCK_RESTORED_NOTE,
                )
                movements.append(movement)

            if self.config.cancel_retain_record:
                order = await self.orders.update_order_status(tx, order_id, OrderStatus.CANCELLED)
            else:
                await self.orders.delete_order(tx, order_id)
                order = order.model_copy(update={"status": OrderStatus.CANCELLED})

        return order, movements

    # Status management

    async def update_order_status(self, actor: Actor, order_id: str, status: Optional[str]) -> OrderResponse:
        """
        Set an order's status (back-office).

        Stock is never touched here; cancellation through this path does not
        restore stock.

        Args:
            actor: Caller identity and role
            order_id: Target order
            status: Raw status value

        Returns:
            Order response with the updated order
        """
        try:
            target = parse_status(status)
            if not self.status_authorizer.can_update_status(actor):
                raise StatusUpdateForbiddenError()

            async with self.tx_manager.begin() as tx:
                order = await self.orders.get_order(tx, order_id, for_update=True)
                if order is None:
                    raise OrderNotFoundError(order_id)

                previous = order.status
                if not is_transition_allowed(previous, target, strict=self.config.strict_status_transitions):
                    raise InvalidStatusTransitionError(previous, target)

                updated = await self.orders.update_order_status(tx, order_id, target)

        except OrderServiceError as e:
            logger.warning(f"Status update of order {order_id} rejected: {e}")
            return OrderResponse(success=False, message=str(e), error_code=e.error_code)
        except Exception as e:
            logger.error(f"Failed to update status of order {order_id}: {e}", exc_info=True)
            return OrderResponse(success=False, message=SERVER_ERROR_MESSAGE, error_code="UPDATE_ERROR")

        logger.info(f"Order {order_id} status {previous.value} -> {target.value} by {actor.user_id}")
        await publish_order_status_updated(self.event_bus, updated, old_status=previous, updated_by=actor.user_id)

        return OrderResponse(
            success=True,
            order=updated,
            message="Order status updated successfully"
        )

    # Stock management

    async def adjust_stock(
        self,
        actor: Actor,
        product_id: str,
        change_type: Optional[str],
        quantity: Optional[int],
        notes: Optional[str] = None,
    ) -> StockAdjustmentResponse:
        """
        Manual stock change (back-office): receive, remove, expire or set a
        product's stock. The new level and its history entry commit together.

        Args:
            actor: Caller identity and role
            product_id: Product to change
            change_type: add, remove, expire or adjust (sets the level)
            quantity: Units moved, or the new level for adjust
            notes: Free text stored with the history entry

        Returns:
            Adjustment response with the applied movement
        """
        try:
            parsed_type = parse_change_type(change_type)
            validate_adjustment_quantity(parsed_type, quantity)
            if not self.status_authorizer.can_adjust_stock(actor):
                raise StockUpdateForbiddenError()

            movement = await asyncio.wait_for(
                self._adjust_transaction(actor, product_id, parsed_type, quantity, notes),
                timeout=self.config.transaction_timeout,
            )
        except OrderServiceError as e:
            logger.warning(f"Stock change of {product_id} rejected: {e}")
            return StockAdjustmentResponse(success=False, message=str(e), error_code=e.error_code)
        except asyncio.TimeoutError:
            logger.error(f"Stock change transaction timed out for {product_id}")
            return StockAdjustmentResponse(
                success=False,
                message=TRANSACTION_TIMEOUT_MESSAGE,
                error_code="TRANSACTION_TIMEOUT"
            )
        except Exception as e:
            logger.error(f"Failed to change stock of {product_id}: {e}", exc_info=True)
            return StockAdjustmentResponse(success=False, message=SERVER_ERROR_MESSAGE, error_code="ADJUST_ERROR")

        logger.info(
            f"Stock {parsed_type.value} {product_id}: {movement.previous_stock} -> {movement.new_stock} "
            f"by {actor.user_id}"
        )
        await publish_stock_changed(self.event_bus, movement, performed_by=actor.user_id)

        return StockAdjustmentResponse(
            success=True,
            movement=movement,
            message="Stock updated successfully"
        )

    async def _adjust_transaction(
        self, actor: Actor, product_id: str, change_type: StockChangeType, quantity: int, notes: Optional[str]
    ) -> StockMovement:
        async with self.tx_manager.begin() as tx:
            return await self.ledger.apply(
                tx, product_id, change_type, quantity, performed_by=actor.user_id, notes=notes,
            )

    # Queries

    async def get_order(self, actor: Actor, order_id: str) -> Order:
        """
        Get order by ID; owners and back-office roles only.

        Raises:
            OrderNotFoundError, OrderAccessDeniedError
        """
        async with self.tx_manager.begin() as tx:
            order = await self.orders.get_order(tx, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.user_id != actor.user_id and not self.status_authorizer.can_update_status(actor):
            raise OrderAccessDeniedError("Not authorized to view this order")
        return order

    async def get_user_orders(self, user_id: str, limit: int = 50, offset: int = 0) -> OrderListResponse:
        """Orders placed by one user, newest first"""
        async with self.tx_manager.begin() as tx:
            orders = await self.orders.list_orders(tx, user_id=user_id, limit=limit, offset=offset)
        return OrderListResponse(orders=orders, count=len(orders), limit=limit, offset=offset)

    async def list_orders(self, actor: Actor, order_filter: OrderFilter) -> OrderListResponse:
        """All orders, filtered (back-office)"""
        if not self.status_authorizer.can_update_status(actor):
            raise OrderAccessDeniedError("Not authorized to list all orders")
        async with self.tx_manager.begin() as tx:
            orders = await self.orders.list_orders(
                tx,
                user_id=order_filter.user_id,
                status=order_filter.status,
                limit=order_filter.limit,
                offset=order_filter.offset,
            )
        return OrderListResponse(
            orders=orders, count=len(orders), limit=order_filter.limit, offset=order_filter.offset
        )

    async def get_stock_history(self, product_id: str, limit: int = 50) -> List[StockHistoryEntry]:
        """Stock movements of a product, newest first"""
        async with self.tx_manager.begin() as tx:
            return await self.stock_history.list_entries(tx, product_id, limit=limit)

    async def get_all_stock_history(self, limit: int = 50, offset: int = 0) -> List[StockHistoryEntry]:
        """Stock movements of every product, newest first"""
        async with self.tx_manager.begin() as tx:
            return await self.stock_history.list_all_entries(tx, limit=limit, offset=offset)

    async def get_low_stock_products(self) -> List[Product]:
        async with self.tx_manager.begin() as tx:
            return await self.products.list_low_stock_products(tx)

    # Notifications

    async def notify_payment_captured(self, order_id: str) -> bool:
        """
        Send the order emails for an online-payment order whose payment was
        captured. In-store orders were notified at checkout.
        """
        async with self.tx_manager.begin() as tx:
            order = await self.orders.get_order(tx, order_id)
        if order is None:
            logger.warning(f"Payment captured for unknown order {order_id}")
            return False
        if order.payment_method != PaymentMethod.ONLINE_PAYMENT:
            return False
        if self.notifier is None:
            return False
        try:
            return self.notifier.notify_payment_captured(order) > 0
        except Exception as e:
            logger.error(f"Failed to schedule payment emails for order {order_id}: {e}")
            return False

    def _notify_order_placed(self, order: Order) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify_order_placed(order)
        except Exception as e:
            logger.error(f"Failed to schedule order emails for {order.order_id}: {e}")
