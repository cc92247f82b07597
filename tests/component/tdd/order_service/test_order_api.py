"""
Order Service HTTP Component Tests

Drives the FastAPI app through TestClient with the in-memory services
swapped in via dependency overrides. The lifespan is never entered, so no
database or NATS connection is attempted.

Usage:
    pytest tests/component/tdd/order_service/test_order_api.py -v
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from tests.component.tdd.order_service.mocks import USER_ID, OTHER_USER_ID

pytestmark = pytest.mark.component

CHECKOUT_BODY = {
    "fullName": "Alice Shopper",
    "email": "alice@example.com",
    "shippingAddress": "12 Market Street",
    "paymentMethod": "online-payment",
}


@pytest.fixture
def api_order_service(tx_manager, product_repo, cart_repo, order_repo, history_repo, order_config):
    """OrderService without notifier so no tasks outlive a request loop"""
    from microservices.order_service.order_service import OrderService
    return OrderService(
        tx_manager=tx_manager,
        product_repository=product_repo,
        cart_repository=cart_repo,
        order_repository=order_repo,
        stock_history_repository=history_repo,
        config=order_config,
    )


@pytest.fixture
def client(api_order_service, cart_service):
    from microservices.order_service.main import app, get_cart_service, get_order_service

    app.dependency_overrides[get_order_service] = lambda: api_order_service
    app.dependency_overrides[get_cart_service] = lambda: cart_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def user_headers(user_id: str = USER_ID, role: str = None):
    headers = {"X-User-Id": user_id}
    if role:
        headers["X-User-Role"] = role
    return headers


class TestCheckoutEndpoint:

    def test_checkout_returns_201(self, client, stocked_products, cart_repo):
        cart_repo.add_cart(USER_ID, [{"product_id": "prod_a", "quantity": 2, "price": Decimal("3.50")}])

        response = client.post("/api/v1/orders/checkout", json=CHECKOUT_BODY, headers=user_headers())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["order_id"]
        assert stocked_products.stock_of("prod_a") == 8

    def test_empty_cart_is_400(self, client, stocked_products):
        response = client.post("/api/v1/orders/checkout", json=CHECKOUT_BODY, headers=user_headers())

        assert response.status_code == 400
        assert response.json()["error_code"] == "EMPTY_CART"

    def test_insufficient_stock_is_409(self, client, stocked_products, cart_repo):
        cart_repo.add_cart(USER_ID, [{"product_id": "prod_b", "quantity": 5, "price": Decimal("2.00")}])

        response = client.post("/api/v1/orders/checkout", json=CHECKOUT_BODY, headers=user_headers())

        assert response.status_code == 409
        assert response.json()["message"] == "Insufficient stock for product: Bread (prod_b), available 1, requested 5"

    def test_missing_identity_is_401(self, client):
        response = client.post("/api/v1/orders/checkout", json=CHECKOUT_BODY)

        assert response.status_code == 401


class TestOrderEndpoints:

    @pytest.fixture
    def order(self, stocked_products, order_repo):
        return order_repo.add_order(USER_ID, [{"product_id": "prod_a", "quantity": 1, "price": Decimal("3.50")}])

    def test_owner_reads_order(self, client, order):
        response = client.get(f"/api/v1/orders/{order.order_id}", headers=user_headers())

        assert response.status_code == 200
        assert response.json()["order_id"] == order.order_id

    def test_other_customer_gets_403(self, client, order):
        response = client.get(f"/api/v1/orders/{order.order_id}", headers=user_headers(OTHER_USER_ID))

        assert response.status_code == 403
        assert response.json()["error_code"] == "ORDER_ACCESS_DENIED"

    def test_unknown_order_is_404(self, client):
        response = client.get("/api/v1/orders/order_missing", headers=user_headers())

        assert response.status_code == 404

    def test_cancel_restores_stock(self, client, order, stocked_products):
        response = client.put(f"/api/v1/orders/{order.order_id}/cancel", headers=user_headers())

        assert response.status_code == 200
        assert response.json()["order"]["status"] == "cancelled"
        assert stocked_products.stock_of("prod_a") == 11

    def test_status_update_requires_staff_role(self, client, order):
        response = client.put(
            f"/api/v1/orders/{order.order_id}/status", json={"status": "shipped"}, headers=user_headers()
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "STATUS_UPDATE_FORBIDDEN"

    def test_status_update_by_admin(self, client, order):
        response = client.put(
            f"/api/v1/orders/{order.order_id}/status",
            json={"status": "Shipped"},
            headers=user_headers("usr_admin", "admin"),
        )

        assert response.status_code == 200
        assert response.json()["order"]["status"] == "shipped"

    def test_invalid_status_is_400(self, client, order):
        response = client.put(
            f"/api/v1/orders/{order.order_id}/status",
            json={"status": "teleported"},
            headers=user_headers("usr_admin", "admin"),
        )

        assert response.status_code == 400

    def test_all_orders_route_is_not_shadowed(self, client, order):
        response = client.get("/api/v1/orders/all", headers=user_headers("usr_admin", "admin"))

        assert response.status_code == 200
        assert response.json()["count"] == 1


class TestCartEndpoints:

    def test_add_then_get(self, client, stocked_products):
        added = client.post("/api/v1/cart", json={"productId": "prod_a", "quantity": 3}, headers=user_headers())
        fetched = client.get("/api/v1/cart", headers=user_headers())

        assert added.status_code == 200
        assert fetched.json()["cart"]["items"][0]["quantity"] == 3

    def test_add_unknown_product_is_404(self, client, stocked_products):
        response = client.post("/api/v1/cart", json={"productId": "prod_nope"}, headers=user_headers())

        assert response.status_code == 404


class TestStockEndpoints:

    def test_admin_receives_stock(self, client, stocked_products):
        response = client.put(
            "/api/v1/products/prod_a/stock",
            json={"changeType": "add", "quantity": 5, "notes": "Delivery"},
            headers=user_headers("usr_admin", "admin"),
        )

        assert response.status_code == 200
        assert response.json()["movement"]["new_stock"] == 15
        assert stocked_products.stock_of("prod_a") == 15

    def test_customer_gets_403(self, client, stocked_products):
        response = client.put(
            "/api/v1/products/prod_a/stock", json={"changeType": "add", "quantity": 5}, headers=user_headers()
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "STOCK_UPDATE_FORBIDDEN"
        assert stocked_products.stock_of("prod_a") == 10

    def test_invalid_change_type_is_400(self, client, stocked_products):
        response = client.put(
            "/api/v1/products/prod_a/stock",
            json={"changeType": "restock", "quantity": 5},
            headers=user_headers("usr_admin", "admin"),
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_CHANGE_TYPE"

    def test_remove_beyond_stock_is_409(self, client, stocked_products):
        response = client.put(
            "/api/v1/products/prod_b/stock",
            json={"changeType": "remove", "quantity": 2},
            headers=user_headers("usr_admin", "admin"),
        )

        assert response.status_code == 409

    def test_all_stock_history_route_is_not_shadowed(self, client, stocked_products):
        client.put(
            "/api/v1/products/prod_a/stock",
            json={"changeType": "expire", "quantity": 1},
            headers=user_headers("usr_admin", "admin"),
        )

        response = client.get("/api/v1/products/stock-history", headers=user_headers("usr_admin", "admin"))

        assert response.status_code == 200
        [entry] = response.json()
        assert entry["product_id"] == "prod_a"
        assert entry["change_type"] == "expire"


class TestRoutes:

    def test_registry_matches_app(self):
        from microservices.order_service.main import app
        from microservices.order_service.routes_registry import SERVICE_ROUTES

        app_routes = {(r.path, m) for r in app.routes for m in getattr(r, "methods", None) or ()}
        for route in SERVICE_ROUTES:
            for method in route["methods"]:
                assert (route["path"], method) in app_routes, f"{method} {route['path']} not registered"
