"""
Order Service Events Module

Exports all event-related functionality for order service
"""

from .models import (
    OrderCreatedEvent,
    OrderCanceledEvent,
    OrderStatusUpdatedEvent,
    StockChangedEvent,
    PaymentCompletedEvent,
)

from .publishers import (
    publish_order_created,
    publish_order_canceled,
    publish_order_status_updated,
    publish_stock_changed,
)

from .handlers import get_event_handlers

__all__ = [
    # Event Models
    "OrderCreatedEvent",
    "OrderCanceledEvent",
    "OrderStatusUpdatedEvent",
    "StockChangedEvent",
    "PaymentCompletedEvent",
    # Publishers
    "publish_order_created",
    "publish_order_canceled",
    "publish_order_status_updated",
    "publish_stock_changed",
    # Handlers
    "get_event_handlers",
]
