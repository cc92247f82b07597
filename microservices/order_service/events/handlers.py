"""
Order Service Event Handlers

Handlers for events from other services
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .models import PaymentCompletedEvent

logger = logging.getLogger(__name__)

# Idempotency tracking
processed_event_ids = set()


def is_event_processed(event_id: str) -> bool:
    """Check if event has already been processed (idempotency)"""
    return event_id in processed_event_ids


def mark_event_processed(event_id: str):
    """Mark event as processed"""
    global processed_event_ids
    processed_event_ids.add(event_id)
    # Bounded
    if len(processed_event_ids) > 10000:
        processed_event_ids = set(list(processed_event_ids)[5000:])


async def handle_payment_completed(
    event_data: Dict[str, Any], order_service, event_id: Optional[str] = None
) -> None:
    """
    Handle payment.completed event

    Online payments are captured by the payment service; once it reports the
    capture, the order confirmation and admin alert go out.

    A malformed payload is dropped. Lookup failures propagate so the bus
    redelivers the event; the event is only marked processed once handled.
    """
    if event_id and is_event_processed(event_id):
        logger.debug(f"Event {event_id} already processed, skipping")
        return

    try:
        payload = PaymentCompletedEvent(**event_data)
    except ValidationError as e:
        logger.error(f"❌ Invalid payment.completed payload: {e}")
        return
    if not payload.order_id:
        logger.warning("payment.completed event missing order_id")
        return

    try:
        sent = await order_service.notify_payment_captured(payload.order_id)
    except Exception as e:
        logger.error(f"❌ Failed to handle payment.completed for order {payload.order_id}: {e}")
        raise
    if sent:
        logger.info(f"Payment confirmation queued for order {payload.order_id}")

    if event_id:
        mark_event_processed(event_id)


def get_event_handlers(order_service):
    """
    Get all event handlers for order service.

    Returns a dict mapping event patterns to handler functions.
    This is used by main.py to register all event subscriptions.

    Args:
        order_service: OrderService instance

    Returns:
        Dict[str, callable]: Event pattern -> handler function mapping
    """
    return {
        "payment_service.payment.completed": lambda event: handle_payment_completed(
            event.data, order_service, event.id
        ),
    }
