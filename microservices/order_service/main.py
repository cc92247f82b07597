"""
Order Microservice

Responsibilities:
- Cart management
- Checkout: cart to order with atomic stock decrement
- Order cancellation with stock restoration
- Back-office order status management
- Manual stock adjustments, stock history and low-stock reporting
- Order confirmation emails
"""

from fastapi import FastAPI, HTTPException, Depends, status, Query, Path, Body
from fastapi.responses import JSONResponse
import uvicorn
from contextlib import asynccontextmanager
from typing import Optional, List
from datetime import datetime

from core.config import get_settings
from core.config_manager import ConfigManager
from core.logger import setup_service_logger
from core.auth_dependencies import require_auth_or_internal_service, get_request_role
from core.nats_client import get_event_bus
from core.postgres_client import get_postgres_client

from .cart_service import CartService
from .events.handlers import get_event_handlers
from .factory import create_cart_service, create_notifier, create_order_service
from .models import (
    Actor, CartItemRequest, CartItemUpdateRequest, CartResponse, CheckoutRequest,
    CheckoutResponse, Order, OrderFilter, OrderListResponse, OrderResponse,
    OrderServiceStatus, OrderStatus, OrderStatusUpdateRequest, LowStockProduct,
    StockAdjustmentRequest, StockAdjustmentResponse, StockHistoryEntry,
)
from .order_service import OrderService
from .protocols import OrderServiceError
from .routes_registry import SERVICE_METADATA, get_route_summary
from .schema import apply_schema

# Initialize configuration
config_manager = ConfigManager("order_service")
config = config_manager.get_service_config()

# Setup loggers (use actual service name)
app_logger = setup_service_logger("order_service")
logger = app_logger

# Error code -> HTTP status
ERROR_STATUS_CODES = {
    "EMPTY_CART": status.HTTP_400_BAD_REQUEST,
    "MISSING_CHECKOUT_FIELDS": status.HTTP_400_BAD_REQUEST,
    "INVALID_PAYMENT_METHOD": status.HTTP_400_BAD_REQUEST,
    "INVALID_ORDER_STATUS": status.HTTP_400_BAD_REQUEST,
    "INVALID_QUANTITY": status.HTTP_400_BAD_REQUEST,
    "INVALID_CHANGE_TYPE": status.HTTP_400_BAD_REQUEST,
    "STATUS_UPDATE_FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "ORDER_ACCESS_DENIED": status.HTTP_403_FORBIDDEN,
    "STOCK_UPDATE_FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "PRODUCT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ORDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CART_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ITEM_NOT_IN_CART": status.HTTP_404_NOT_FOUND,
    "INSUFFICIENT_STOCK": status.HTTP_409_CONFLICT,
    "ORDER_NOT_CANCELLABLE": status.HTTP_409_CONFLICT,
    "INVALID_STATUS_TRANSITION": status.HTTP_409_CONFLICT,
    "TRANSACTION_TIMEOUT": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(error_code: Optional[str]) -> int:
    return ERROR_STATUS_CODES.get(error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _respond(response, success_code: int = status.HTTP_200_OK):
    """Return the response model as-is on success, with a mapped status on failure"""
    if response.success:
        if success_code == status.HTTP_200_OK:
            return response
        return JSONResponse(status_code=success_code, content=response.model_dump(mode="json"))
    return JSONResponse(
        status_code=status_code_for(response.error_code),
        content=response.model_dump(mode="json")
    )


class OrderMicroservice:
    """Order microservice core class"""

    def __init__(self):
        self.db = None
        self.event_bus = None
        self.notifier = None
        self.order_service: Optional[OrderService] = None
        self.cart_service: Optional[CartService] = None

    async def initialize(self, db, event_bus=None):
        """Initialize the microservice"""
        settings = get_settings()
        try:
            self.db = db
            self.event_bus = event_bus
            self.notifier = create_notifier(settings.mail)
            self.order_service = create_order_service(
                db, event_bus=event_bus, notifier=self.notifier, config=settings.orders
            )
            self.cart_service = create_cart_service(db)
            logger.info("Order microservice initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize order microservice: {e}")
            raise

    async def shutdown(self):
        """Shutdown the microservice"""
        try:
            if self.notifier:
                await self.notifier.drain()
                if self.notifier.email_client is not None:
                    await self.notifier.email_client.close()
            if self.event_bus:
                await self.event_bus.close()
                logger.info("Event bus closed")
            if self.db:
                await self.db.close()
            logger.info("Order microservice shutdown completed")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")


# Global microservice instance
order_microservice = OrderMicroservice()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    settings = get_settings()

    db = await get_postgres_client("order_service", config=settings.infrastructure)
    if settings.auto_migrate:
        await apply_schema(db)

    # Initialize event bus
    event_bus = None
    if settings.infrastructure.nats_enabled:
        try:
            event_bus = await get_event_bus("order_service", config=settings.infrastructure)
            logger.info("✅ Event bus initialized successfully")
        except Exception as e:
            logger.warning(f"⚠️  Failed to initialize event bus: {e}. Continuing without event publishing.")
            event_bus = None

    await order_microservice.initialize(db, event_bus=event_bus)

    # Subscribe to events
    if event_bus:
        try:
            for pattern, handler in get_event_handlers(order_microservice.order_service).items():
                durable = "order-" + pattern.split(".", 1)[1].replace(".", "-") + "-consumer"
                await event_bus.subscribe_to_events(pattern=pattern, handler=handler, durable=durable)
                logger.info(f"✅ Subscribed to {pattern}")
        except Exception as e:
            logger.warning(f"⚠️  Failed to subscribe to events: {e}")

    yield

    await order_microservice.shutdown()


# Create FastAPI application
app = FastAPI(
    title="Order Service",
    description="Cart, checkout, order lifecycle and stock history microservice",
    version="1.0.0",
    lifespan=lifespan
)

# CORS handled by Gateway


# Dependency injection
def get_order_service() -> OrderService:
    """Get order service instance"""
    if not order_microservice.order_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Order service not initialized"
        )
    return order_microservice.order_service


def get_cart_service() -> CartService:
    """Get cart service instance"""
    if not order_microservice.cart_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cart service not initialized"
        )
    return order_microservice.cart_service


async def get_actor(
    user_id: str = Depends(require_auth_or_internal_service),
    role: Optional[str] = Depends(get_request_role),
) -> Actor:
    """Caller identity with role"""
    return Actor(user_id=user_id, role=role)


# Health check endpoints
@app.get("/")
async def root():
    """Root health check"""
    return {
        "service": SERVICE_METADATA["service_name"],
        "version": SERVICE_METADATA["version"],
        "status": "operational",
        "capabilities": SERVICE_METADATA["capabilities"],
        "routes": get_route_summary(),
    }


@app.get("/health", response_model=OrderServiceStatus)
async def health_check():
    """Service health check with database connectivity"""
    database_connected = False
    if order_microservice.db is not None:
        health = await order_microservice.db.health_check()
        database_connected = health.get("healthy", False)

    event_bus = order_microservice.event_bus
    return OrderServiceStatus(
        status="operational" if database_connected else "degraded",
        port=config.service_port,
        database_connected=database_connected,
        event_bus_connected=bool(event_bus and event_bus.is_connected),
        timestamp=datetime.utcnow()
    )


# Order endpoints

@app.post("/api/v1/orders/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def checkout(
    request: CheckoutRequest,
    user_id: str = Depends(require_auth_or_internal_service),
    order_service: OrderService = Depends(get_order_service)
):
    """Place an order from the caller's cart"""
    return _respond(await order_service.checkout(user_id, request), success_code=status.HTTP_201_CREATED)


@app.get("/api/v1/orders", response_model=OrderListResponse)
async def get_my_orders(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(require_auth_or_internal_service),
    order_service: OrderService = Depends(get_order_service)
):
    """Orders of the caller, newest first"""
    return await order_service.get_user_orders(user_id, limit=limit, offset=offset)


@app.get("/api/v1/orders/all", response_model=OrderListResponse)
async def list_all_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    user_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """List all orders (back-office)"""
    order_filter = OrderFilter(user_id=user_id, status=status_filter, limit=limit, offset=offset)
    return await order_service.list_orders(actor, order_filter)


@app.get("/api/v1/orders/{order_id}", response_model=Order)
async def get_order(
    order_id: str = Path(..., description="Order ID"),
    actor: Actor = Depends(get_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """Get order details"""
    return await order_service.get_order(actor, order_id)


@app.put("/api/v1/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str = Path(..., description="Order ID"),
    user_id: str = Depends(require_auth_or_internal_service),
    order_service: OrderService = Depends(get_order_service)
):
    """Cancel a pending order and restore its stock"""
    return _respond(await order_service.cancel_order(user_id, order_id))


@app.put("/api/v1/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str = Path(..., description="Order ID"),
    request: OrderStatusUpdateRequest = Body(...),
    actor: Actor = Depends(get_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """Set an order's status (back-office)"""
    return _respond(await order_service.update_order_status(actor, order_id, request.status))


# Cart endpoints

@app.get("/api/v1/cart", response_model=CartResponse)
async def get_cart(
    user_id: str = Depends(require_auth_or_internal_service),
    cart_service: CartService = Depends(get_cart_service)
):
    """Get the caller's cart"""
    return _respond(await cart_service.get_cart(user_id))


@app.post("/api/v1/cart", response_model=CartResponse)
async def add_to_cart(
    request: CartItemRequest,
    user_id: str = Depends(require_auth_or_internal_service),
    cart_service: CartService = Depends(get_cart_service)
):
    """Add a product to the cart"""
    return _respond(await cart_service.add_item(user_id, request.product_id, request.quantity))


@app.put("/api/v1/cart/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: str = Path(..., description="Product ID"),
    request: CartItemUpdateRequest = Body(...),
    user_id: str = Depends(require_auth_or_internal_service),
    cart_service: CartService = Depends(get_cart_service)
):
    """Set the quantity of a cart line"""
    return _respond(await cart_service.update_item(user_id, product_id, request.quantity))


@app.delete("/api/v1/cart/{product_id}", response_model=CartResponse)
async def remove_cart_item(
    product_id: str = Path(..., description="Product ID"),
    user_id: str = Depends(require_auth_or_internal_service),
    cart_service: CartService = Depends(get_cart_service)
):
    """Remove a cart line"""
    return _respond(await cart_service.remove_item(user_id, product_id))


@app.delete("/api/v1/cart", response_model=CartResponse)
async def clear_cart(
    user_id: str = Depends(require_auth_or_internal_service),
    cart_service: CartService = Depends(get_cart_service)
):
    """Empty the cart"""
    return _respond(await cart_service.clear_cart(user_id))


# Inventory endpoints

@app.get("/api/v1/products/low-stock", response_model=List[LowStockProduct])
async def get_low_stock_products(
    user_id: str = Depends(require_auth_or_internal_service),
    order_service: OrderService = Depends(get_order_service)
):
    """Products at or below their minimum stock"""
    products = await order_service.get_low_stock_products()
    return [
        LowStockProduct(
            product_id=p.product_id,
            name=p.name,
            current_stock=p.current_stock,
            min_stock=p.min_stock,
        )
        for p in products
    ]


@app.get("/api/v1/products/stock-history", response_model=List[StockHistoryEntry])
async def get_all_stock_history(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(require_auth_or_internal_service),
    order_service: OrderService = Depends(get_order_service)
):
    """Stock movements of every product, newest first"""
    return await order_service.get_all_stock_history(limit=limit, offset=offset)


@app.put("/api/v1/products/{product_id}/stock", response_model=StockAdjustmentResponse)
async def adjust_stock(
    product_id: str = Path(..., description="Product ID"),
    request: StockAdjustmentRequest = Body(...),
    actor: Actor = Depends(get_actor),
    order_service: OrderService = Depends(get_order_service)
):
    """Receive, remove, expire or set a product's stock (back-office)"""
    return _respond(await order_service.adjust_stock(
        actor, product_id, request.change_type, request.quantity, request.notes
    ))


@app.get("/api/v1/products/{product_id}/stock-history", response_model=List[StockHistoryEntry])
async def get_stock_history(
    product_id: str = Path(..., description="Product ID"),
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(require_auth_or_internal_service),
    order_service: OrderService = Depends(get_order_service)
):
    """Stock movements of a product, newest first"""
    return await order_service.get_stock_history(product_id, limit=limit)


# Error handlers
@app.exception_handler(OrderServiceError)
async def service_error_handler(request, exc: OrderServiceError):
    return JSONResponse(
        status_code=status_code_for(exc.error_code),
        content={"detail": str(exc), "error_code": exc.error_code}
    )


if __name__ == "__main__":
    # Print configuration summary for debugging
    config_manager.print_config_summary()

    uvicorn.run(
        "microservices.order_service.main:app",
        host=config.service_host,
        port=config.service_port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
