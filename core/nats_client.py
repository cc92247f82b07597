"""
NATS JetStream Client for Python Microservices
Provides event-driven communication between SuperMart services

Events are published to the subject ``<source>.<event type>`` (for example
``order_service.order.created``) on a JetStream stream owned by the
publishing service.
"""

import json
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import nats
from nats.aio.client import Client as NATS
from nats.js import JetStreamContext

from core.config import InfraConfig, get_settings

logger = logging.getLogger(__name__)


class DecimalEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles Decimal types"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


class EventType(Enum):
    """Event types published on the platform"""

    # Order Events
    ORDER_CREATED = "order.created"
    ORDER_CANCELED = "order.canceled"
    ORDER_STATUS_UPDATED = "order.status_updated"

    # Inventory Events
    STOCK_CHANGED = "inventory.stock_changed"

    # Payment Events
    PAYMENT_COMPLETED = "payment.completed"


class ServiceSource(Enum):
    """Publishing services"""
    ORDER_SERVICE = "order_service"
    PAYMENT_SERVICE = "payment_service"


class Event:
    """Event model"""

    def __init__(
        self,
        event_type: EventType,
        source: ServiceSource,
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = event_type.value
        self.source = source.value
        self.data = data
        self.subject = subject
        self.timestamp = datetime.utcnow().isoformat()
        self.metadata = metadata or {}
        self.version = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        event = cls.__new__(cls)
        event.id = data.get("id")
        event.type = data.get("type")
        event.source = data.get("source")
        event.subject = data.get("subject")
        event.timestamp = data.get("timestamp")
        event.data = data.get("data", {})
        event.metadata = data.get("metadata", {})
        event.version = data.get("version", "1.0.0")
        return event


class NATSEventBus:
    """
    NATS JetStream event bus on top of nats-py.

    Publishing returns False instead of raising so that callers can treat
    events as best-effort side effects.
    """

    def __init__(self, service_name: str, config: Optional[InfraConfig] = None):
        """
        Initialize NATS Event Bus.

        Args:
            service_name: Name of the service, also the stream subject prefix
            config: Optional infrastructure config (defaults to global settings)
        """
        self.service_name = service_name
        self.config = config or get_settings().infrastructure
        self.servers = self.config.nats_servers
        self.stream_name = service_name.upper()

        self._nc: Optional[NATS] = None
        self._js: Optional[JetStreamContext] = None
        self._subscriptions: List[Any] = []

        logger.info(f"NATS EventBus initialized: {self.servers}")

    async def connect(self):
        """Connect to NATS and make sure the service stream exists"""
        try:
            self._nc = await nats.connect(servers=[self.servers], name=self.service_name)
            self._js = self._nc.jetstream()

            try:
                await self._js.add_stream(name=self.stream_name, subjects=[f"{self.service_name}.>"])
            except Exception as e:
                # Stream already exists with a compatible config
                logger.debug(f"Stream {self.stream_name} not created: {e}")

            logger.info(f"Connected to NATS as {self.service_name}")
        except Exception as e:
            logger.error(f"Failed to connect to NATS: {e}")
            raise

    async def publish_event(self, event: Event) -> bool:
        """Publish an event to JetStream"""
        if not self.is_connected:
            logger.warning(f"NATS not connected, dropping event {event.type}")
            return False

        subject = event.subject or f"{event.source}.{event.type}"
        try:
            payload = json.dumps(event.to_dict(), cls=DecimalEncoder).encode()
            ack = await self._js.publish(subject, payload)
            logger.debug(f"Published {event.type} ({event.id}) to {subject}, seq={ack.seq}")
            return True
        except Exception as e:
            logger.error(f"Error publishing event {event.id} to {subject}: {e}")
            return False

    async def subscribe_to_events(
        self, pattern: str, handler: Callable, durable: Optional[str] = None
    ) -> Optional[str]:
        """
        Subscribe to events with a JetStream push consumer.

        Args:
            pattern: Subject pattern (e.g. "payment_service.payment.completed")
            handler: Async callback receiving an Event
            durable: Optional durable consumer name
        """
        if not self.is_connected:
            logger.error("Not connected to NATS")
            return None

        async def _on_message(msg):
            try:
                event = Event.from_dict(json.loads(msg.data.decode()))
            except ValueError as e:
                logger.error(f"Dropping undecodable message on {msg.subject}: {e}")
                await msg.term()
                return

            try:
                await handler(event)
            except Exception as e:
                # Handler failed: redeliver
                logger.error(f"Error handling message on {msg.subject}: {e}")
                await msg.nak()
                return
            await msg.ack()

        try:
            subscription = await self._js.subscribe(pattern, durable=durable, cb=_on_message)
            self._subscriptions.append(subscription)
            logger.info(f"Subscribed to {pattern} (JetStream consumer)")
            return durable or pattern
        except Exception as e:
            logger.error(f"Error subscribing to {pattern}: {e}")
            return None

    async def close(self):
        """Drain subscriptions and close the connection"""
        for subscription in self._subscriptions:
            try:
                await subscription.unsubscribe()
            except Exception as e:
                logger.debug(f"Unsubscribe failed: {e}")
        self._subscriptions.clear()

        if self._nc is not None:
            await self._nc.drain()
            self._nc = None
            self._js = None

        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        """Check if connected to NATS"""
        return self._nc is not None and self._nc.is_connected


# Singleton instance
_event_bus: Optional[NATSEventBus] = None


async def get_event_bus(service_name: str, config: Optional[InfraConfig] = None) -> NATSEventBus:
    """
    Get or create event bus instance.

    Args:
        service_name: Name of the service using the event bus
        config: Optional infrastructure config

    Returns:
        Connected NATSEventBus instance
    """
    global _event_bus

    if _event_bus is None:
        event_bus = NATSEventBus(service_name=service_name, config=config)
        await event_bus.connect()
        _event_bus = event_bus

    return _event_bus
