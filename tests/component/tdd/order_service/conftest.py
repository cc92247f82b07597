"""
Order Service component fixtures

Wires OrderService and CartService to the in-memory repositories.
"""
from decimal import Decimal

import pytest

from core.config import OrderConfig
from tests.component.tdd.order_service.mocks import (
    ADMIN_EMAIL,
    MockCartRepository,
    MockEmailClient,
    MockOrderRepository,
    MockProductRepository,
    MockStockHistoryRepository,
)


@pytest.fixture
def product_repo(store) -> MockProductRepository:
    return MockProductRepository(store)

@pytest.fixture
def cart_repo(store) -> MockCartRepository:
    return MockCartRepository(store)

@pytest.fixture
def order_repo(store) -> MockOrderRepository:
    return MockOrderRepository(store)

@pytest.fixture
def history_repo(store) -> MockStockHistoryRepository:
    return MockStockHistoryRepository(store)

@pytest.fixture
def email_client() -> MockEmailClient:
    return MockEmailClient()

@pytest.fixture
def notifier(email_client):
    from microservices.order_service.notifications import OrderNotifier
    return OrderNotifier(email_client=email_client, admin_email=ADMIN_EMAIL)

@pytest.fixture
def order_config() -> OrderConfig:
    return OrderConfig(transaction_timeout=5.0)

@pytest.fixture
def order_service(
    tx_manager, product_repo, cart_repo, order_repo, history_repo,
    notifier, mock_event_bus, order_config
):
    """OrderService with in-memory dependencies"""
    from microservices.order_service.order_service import OrderService
    return OrderService(
        tx_manager=tx_manager,
        product_repository=product_repo,
        cart_repository=cart_repo,
        order_repository=order_repo,
        stock_history_repository=history_repo,
        notifier=notifier,
        event_bus=mock_event_bus,
        config=order_config,
    )

@pytest.fixture
def cart_service(tx_manager, product_repo, cart_repo):
    """CartService with in-memory dependencies"""
    from microservices.order_service.cart_service import CartService
    return CartService(
        tx_manager=tx_manager,
        product_repository=product_repo,
        cart_repository=cart_repo,
    )

@pytest.fixture
def checkout_request():
    """Complete in-store checkout form"""
    from microservices.order_service.models import CheckoutRequest
    return CheckoutRequest(
        full_name="Alice Shopper",
        email="alice@example.com",
        shipping_address="12 Market Street",
        payment_method="in-store-payment",
    )

@pytest.fixture
def stocked_products(product_repo):
    """Two products: A (stock 10, 3.50) and B (stock 1, 2.00)"""
    product_repo.add_product("prod_a", "Apples", price=Decimal("3.50"), current_stock=10, min_stock=2)
    product_repo.add_product("prod_b", "Bread", price=Decimal("2.00"), current_stock=1, min_stock=1)
    return product_repo
