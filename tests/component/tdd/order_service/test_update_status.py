"""
Order Service Status Update Component Tests

Usage:
    pytest tests/component/tdd/order_service/test_update_status.py -v
"""
from decimal import Decimal

import pytest

from tests.component.tdd.order_service.mocks import USER_ID

pytestmark = [pytest.mark.component, pytest.mark.asyncio]


@pytest.fixture
def admin():
    from microservices.order_service.models import Actor
    return Actor(user_id="usr_admin", role="admin")


@pytest.fixture
def customer():
    from microservices.order_service.models import Actor
    return Actor(user_id=USER_ID, role="customer")


@pytest.fixture
def order(stocked_products, order_repo):
    return order_repo.add_order(USER_ID, [{"product_id": "prod_a", "quantity": 2, "price": Decimal("3.50")}])


class TestUpdateStatus:

    async def test_admin_moves_order_to_processing(self, order_service, order, order_repo, admin):
        from microservices.order_service.models import OrderStatus

        response = await order_service.update_order_status(admin, order.order_id, "processing")

        assert response.success is True
        assert response.order.status == OrderStatus.PROCESSING
        assert order_repo.order_of(order.order_id).status == OrderStatus.PROCESSING

    @pytest.mark.parametrize("role", ["admin", "cashier", "storekeeper", "ADMIN"])
    async def test_back_office_roles_allowed(self, order_service, order, role):
        from microservices.order_service.models import Actor

        response = await order_service.update_order_status(
            Actor(user_id="usr_staff", role=role), order.order_id, "shipped"
        )

        assert response.success is True

    async def test_status_update_never_touches_stock(
        self, order_service, order, stocked_products, history_repo, admin
    ):
        response = await order_service.update_order_status(admin, order.order_id, "cancelled")

        assert response.success is True
        assert stocked_products.stock_of("prod_a") == 10
        assert history_repo.store.stock_history == []
        stocked_products.assert_not_called("update_stock")

    async def test_lenient_mode_allows_any_transition(self, order_service, order_repo, admin):
        from microservices.order_service.models import OrderStatus

        delivered = order_repo.add_order(
            USER_ID, [{"product_id": "prod_a", "quantity": 1, "price": Decimal("3.50")}],
            status=OrderStatus.DELIVERED,
        )

        response = await order_service.update_order_status(admin, delivered.order_id, "pending")

        assert response.success is True
        assert response.order.status == OrderStatus.PENDING

    async def test_publishes_status_updated_event(self, order_service, order, mock_event_bus, admin):
        await order_service.update_order_status(admin, order.order_id, "shipped")

        events = mock_event_bus.get_published("order.status_updated")
        assert len(events) == 1
        assert events[0]["data"]["old_status"] == "pending"
        assert events[0]["data"]["new_status"] == "shipped"
        assert events[0]["data"]["updated_by"] == "usr_admin"


class TestUpdateStatusRejected:

    async def test_unknown_status_value(self, order_service, order, order_repo, admin):
        from microservices.order_service.models import OrderStatus

        response = await order_service.update_order_status(admin, order.order_id, "lost-in-space")

        assert response.success is False
        assert response.error_code == "INVALID_ORDER_STATUS"
        assert order_repo.order_of(order.order_id).status == OrderStatus.PENDING

    async def test_missing_status_value(self, order_service, order, admin):
        response = await order_service.update_order_status(admin, order.order_id, None)

        assert response.error_code == "INVALID_ORDER_STATUS"

    async def test_customer_cannot_update(self, order_service, order, customer):
        response = await order_service.update_order_status(customer, order.order_id, "delivered")

        assert response.success is False
        assert response.error_code == "STATUS_UPDATE_FORBIDDEN"

    async def test_unknown_order(self, order_service, admin):
        response = await order_service.update_order_status(admin, "order_missing", "shipped")

        assert response.error_code == "ORDER_NOT_FOUND"

    async def test_storage_failure(self, order_service, order, order_repo, admin):
        order_repo.set_error("update_order_status", RuntimeError("db gone"))

        response = await order_service.update_order_status(admin, order.order_id, "shipped")

        assert response.error_code == "UPDATE_ERROR"
        assert response.message == "Server error, please try again"


class TestStrictTransitions:

    @pytest.fixture
    def strict_service(self, tx_manager, product_repo, cart_repo, order_repo, history_repo):
        from core.config import OrderConfig
        from microservices.order_service.order_service import OrderService

        return OrderService(
            tx_manager=tx_manager,
            product_repository=product_repo,
            cart_repository=cart_repo,
            order_repository=order_repo,
            stock_history_repository=history_repo,
            config=OrderConfig(strict_status_transitions=True),
        )

    async def test_forward_transition_allowed(self, strict_service, order, admin):
        response = await strict_service.update_order_status(admin, order.order_id, "processing")

        assert response.success is True

    async def test_skipping_ahead_rejected(self, strict_service, order, admin):
        response = await strict_service.update_order_status(admin, order.order_id, "delivered")

        assert response.success is False
        assert response.error_code == "INVALID_STATUS_TRANSITION"

    async def test_terminal_state_is_final(self, strict_service, order_repo, admin):
        from microservices.order_service.models import OrderStatus

        refunded = order_repo.add_order(
            USER_ID, [{"product_id": "prod_a", "quantity": 1, "price": Decimal("3.50")}],
            status=OrderStatus.REFUNDED,
        )

        response = await strict_service.update_order_status(admin, refunded.order_id, "processing")

        assert response.error_code == "INVALID_STATUS_TRANSITION"

    async def test_same_status_is_accepted(self, strict_service, order, admin):
        response = await strict_service.update_order_status(admin, order.order_id, "pending")

        assert response.success is True
