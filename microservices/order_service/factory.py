"""
Order Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that imports I/O-dependent modules.

Usage:
    from .factory import create_order_service
    service = create_order_service(db, event_bus=event_bus)
"""
from typing import Optional

from core.config import MailConfig, OrderConfig

from .cart_service import CartService
from .notifications import OrderNotifier
from .order_service import OrderService
from .status_policy import RoleStatusAuthorizer


def create_notifier(mail_config: MailConfig) -> OrderNotifier:
    """
    Create the order email notifier.

    Without a Resend API key the notifier is built without a client and
    only logs that emails are disabled.
    """
    email_client = None
    if mail_config.resend_api_key:
        from .clients import ResendEmailClient

        email_client = ResendEmailClient(
            api_key=mail_config.resend_api_key,
            mail_from=mail_config.mail_from,
            base_url=mail_config.resend_base_url,
            timeout=mail_config.timeout,
        )

    return OrderNotifier(email_client=email_client, admin_email=mail_config.admin_email)


def create_order_service(
    db,
    event_bus=None,
    notifier: Optional[OrderNotifier] = None,
    config: Optional[OrderConfig] = None,
) -> OrderService:
    """
    Create OrderService with real dependencies.

    This function imports the real repositories (which issue SQL).
    Use this in production, NOT in tests.

    Args:
        db: PostgresClientWrapper, the transaction manager
        event_bus: Event bus for publishing events
        notifier: Order email notifier
        config: Order behaviour settings

    Returns:
        Configured OrderService instance
    """
    # Import real repositories here (not at module level)
    from .order_repository import (
        CartRepository,
        OrderRepository,
        ProductRepository,
        StockHistoryRepository,
    )

    config = config or OrderConfig()

    return OrderService(
        tx_manager=db,
        product_repository=ProductRepository(),
        cart_repository=CartRepository(),
        order_repository=OrderRepository(),
        stock_history_repository=StockHistoryRepository(),
        notifier=notifier,
        event_bus=event_bus,
        status_authorizer=RoleStatusAuthorizer(config.status_roles),
        config=config,
    )


def create_cart_service(db) -> CartService:
    """Create CartService with real dependencies."""
    from .order_repository import CartRepository, ProductRepository

    return CartService(
        tx_manager=db,
        product_repository=ProductRepository(),
        cart_repository=CartRepository(),
    )
