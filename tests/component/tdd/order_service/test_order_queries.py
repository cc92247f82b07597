"""
Order Service Query Component Tests

Order lookups, listings, stock history and low-stock reporting.

Usage:
    pytest tests/component/tdd/order_service/test_order_queries.py -v
"""
from decimal import Decimal

import pytest

from tests.component.tdd.order_service.mocks import ADMIN_EMAIL, USER_ID, OTHER_USER_ID

pytestmark = [pytest.mark.component, pytest.mark.asyncio]


class TestGetOrder:

    async def test_owner_can_read(self, order_service, stocked_products, order_repo):
        from microservices.order_service.models import Actor

        order = order_repo.add_order(USER_ID, [{"product_id": "prod_a", "quantity": 1, "price": Decimal("3.50")}])

        result = await order_service.get_order(Actor(user_id=USER_ID), order.order_id)

        assert result.order_id == order.order_id

    async def test_staff_can_read_any(self, order_service, stocked_products, order_repo):
        from microservices.order_service.models import Actor

        order = order_repo.add_order(USER_ID, [{"product_id": "prod_a", "quantity": 1, "price": Decimal("3.50")}])

        result = await order_service.get_order(Actor(user_id="usr_cashier", role="cashier"), order.order_id)

        assert result.user_id == USER_ID

    async def test_other_customer_denied(self, order_service, stocked_products, order_repo):
        from microservices.order_service.models import Actor
        from microservices.order_service.protocols import OrderAccessDeniedError

        order = order_repo.add_order(USER_ID, [{"product_id": "prod_a", "quantity": 1, "price": Decimal("3.50")}])

        with pytest.raises(OrderAccessDeniedError):
            await order_service.get_order(Actor(user_id=OTHER_USER_ID, role="customer"), order.order_id)

    async def test_missing_order(self, order_service):
        from microservices.order_service.models import Actor
        from microservices.order_service.protocols import OrderNotFoundError

        with pytest.raises(OrderNotFoundError):
            await order_service.get_order(Actor(user_id=USER_ID), "order_missing")


class TestListOrders:

    @pytest.fixture
    def orders(self, stocked_products, order_repo):
        from microservices.order_service.models import OrderStatus

        line = [{"product_id": "prod_a", "quantity": 1, "price": Decimal("3.50")}]
        return [
            order_repo.add_order(USER_ID, line),
            order_repo.add_order(USER_ID, line, status=OrderStatus.SHIPPED),
            order_repo.add_order(OTHER_USER_ID, line),
        ]

    async def test_user_orders_only_include_own(self, order_service, orders):
        result = await order_service.get_user_orders(USER_ID)

        assert result.count == 2
        assert {o.user_id for o in result.orders} == {USER_ID}

    async def test_staff_list_filters_by_status(self, order_service, orders):
        from microservices.order_service.models import Actor, OrderFilter, OrderStatus

        result = await order_service.list_orders(
            Actor(user_id="usr_admin", role="admin"), OrderFilter(status=OrderStatus.PENDING)
        )

        assert result.count == 2
        assert all(o.status == OrderStatus.PENDING for o in result.orders)

    async def test_customer_cannot_list_all(self, order_service, orders):
        from microservices.order_service.models import Actor, OrderFilter
        from microservices.order_service.protocols import OrderAccessDeniedError

        with pytest.raises(OrderAccessDeniedError):
            await order_service.list_orders(Actor(user_id=USER_ID, role="customer"), OrderFilter())


class TestInventoryQueries:

    async def test_stock_history_newest_first(
        self, order_service, stocked_products, cart_repo, checkout_request
    ):
        cart_repo.add_cart(USER_ID, [{"product_id": "prod_a", "quantity": 1, "price": Decimal("3.50")}])
        first = await order_service.checkout(USER_ID, checkout_request)
        await order_service.cancel_order(USER_ID, first.order_id)

        history = await order_service.get_stock_history("prod_a")

        assert [e.change_type.value for e in history] == ["add", "remove"]

    async def test_low_stock_products(self, order_service, product_repo):
        product_repo.add_product("prod_low", "Milk", current_stock=2, min_stock=5)
        product_repo.add_product("prod_edge", "Eggs", current_stock=5, min_stock=5)
        product_repo.add_product("prod_ok", "Rice", current_stock=50, min_stock=5)

        products = await order_service.get_low_stock_products()

        assert {p.product_id for p in products} == {"prod_low", "prod_edge"}


class TestPaymentCaptured:

    async def test_online_order_gets_emails(self, order_service, stocked_products, order_repo, email_client, notifier):
        from microservices.order_service.models import PaymentMethod

        order = order_repo.add_order(
            USER_ID, [{"product_id": "prod_a", "quantity": 1, "price": Decimal("3.50")}],
            payment_method=PaymentMethod.ONLINE_PAYMENT,
        )

        sent = await order_service.notify_payment_captured(order.order_id)
        await notifier.drain()

        assert sent is True
        assert len(email_client.sent_to("customer@example.com")) == 1
        assert len(email_client.sent_to(ADMIN_EMAIL)) == 1

    async def test_in_store_order_is_skipped(self, order_service, stocked_products, order_repo, email_client, notifier):
        order = order_repo.add_order(USER_ID, [{"product_id": "prod_a", "quantity": 1, "price": Decimal("3.50")}])

        sent = await order_service.notify_payment_captured(order.order_id)
        await notifier.drain()

        assert sent is False
        assert email_client.sent == []

    async def test_unknown_order(self, order_service):
        assert await order_service.notify_payment_captured("order_missing") is False
