"""
Order Service Event Publishers

Functions to publish events from order service. All of them are called after
the owning transaction has committed and never raise.
"""

import logging
from typing import Optional

from core.nats_client import Event, EventType, ServiceSource
from ..models import Order, OrderStatus, StockMovement
from .models import (
    OrderCreatedEvent,
    OrderCanceledEvent,
    OrderStatusUpdatedEvent,
    StockChangedEvent,
)

logger = logging.getLogger(__name__)


def _order_items(order: Order):
    return [item.model_dump(mode='json') for item in order.items]


async def publish_order_created(event_bus, order: Order) -> bool:
    """Publish order.created event"""
    if not event_bus:
        logger.warning("Event bus not available, skipping order.created event")
        return False

    try:
        event_data = OrderCreatedEvent(
            order_id=order.order_id,
            user_id=order.user_id,
            total_price=float(order.total_price),
            payment_method=order.payment_method.value,
            status=order.status.value,
            items=_order_items(order),
        )

        event = Event(
            event_type=EventType.ORDER_CREATED,
            source=ServiceSource.ORDER_SERVICE,
            data=event_data.model_dump(mode='json')
        )

        await event_bus.publish_event(event)
        logger.info(f"✅ Published order.created event for order {order.order_id}")
        return True

    except Exception as e:
        logger.error(f"❌ Failed to publish order.created event: {e}")
        return False


async def publish_order_canceled(event_bus, order: Order, record_retained: bool = True) -> bool:
    """Publish order.canceled event"""
    if not event_bus:
        logger.warning("Event bus not available, skipping order.canceled event")
        return False

    try:
        event_data = OrderCanceledEvent(
            order_id=order.order_id,
            user_id=order.user_id,
            total_price=float(order.total_price),
            record_retained=record_retained,
            restored_items=_order_items(order),
        )

        event = Event(
            event_type=EventType.ORDER_CANCELED,
            source=ServiceSource.ORDER_SERVICE,
            data=event_data.model_dump(mode='json')
        )

        await event_bus.publish_event(event)
        logger.info(f"✅ Published order.canceled event for order {order.order_id}")
        return True

    except Exception as e:
        logger.error(f"❌ Failed to publish order.canceled event: {e}")
        return False


async def publish_order_status_updated(
    event_bus,
    order: Order,
    old_status: OrderStatus,
    updated_by: str
) -> bool:
    """Publish order.status_updated event"""
    if not event_bus:
        logger.warning("Event bus not available, skipping order.status_updated event")
        return False

    try:
        event_data = OrderStatusUpdatedEvent(
            order_id=order.order_id,
            user_id=order.user_id,
            old_status=old_status.value,
            new_status=order.status.value,
            updated_by=updated_by,
        )

        event = Event(
            event_type=EventType.ORDER_STATUS_UPDATED,
            source=ServiceSource.ORDER_SERVICE,
            data=event_data.model_dump(mode='json')
        )

        await event_bus.publish_event(event)
        logger.info(f"✅ Published order.status_updated event for order {order.order_id}")
        return True

    except Exception as e:
        logger.error(f"❌ Failed to publish order.status_updated event: {e}")
        return False


async def publish_stock_changed(
    event_bus,
    movement: StockMovement,
    order_id: Optional[str] = None,
    performed_by: Optional[str] = None
) -> bool:
    """Publish inventory.stock_changed event"""
    if not event_bus:
        return False

    try:
        event_data = StockChangedEvent(
            product_id=movement.product_id,
            product_name=movement.product_name,
            change_type=movement.change_type.value,
            quantity=movement.quantity,
            previous_stock=movement.previous_stock,
            new_stock=movement.new_stock,
            is_low_stock=movement.is_low_stock,
            order_id=order_id,
            performed_by=performed_by,
        )

        event = Event(
            event_type=EventType.STOCK_CHANGED,
            source=ServiceSource.ORDER_SERVICE,
            data=event_data.model_dump(mode='json')
        )

        await event_bus.publish_event(event)
        if movement.is_low_stock:
            logger.warning(
                f"Product {movement.product_id} is low on stock: {movement.new_stock} <= {movement.min_stock}"
            )
        return True

    except Exception as e:
        logger.error(f"❌ Failed to publish inventory.stock_changed event: {e}")
        return False
