"""
Order Service Unit Tests

Pure rules: checkout validation, totals, status parsing, transitions and
the back-office role check and manual stock change rules.

Usage:
    pytest tests/unit/tdd/order_service/test_order_rules.py -v
"""
from decimal import Decimal

import pytest

from microservices.order_service.models import (
    Actor, Cart, CartItem, CheckoutRequest, OrderItem, OrderStatus, PaymentMethod, Product,
    StockChangeType,
)
from microservices.order_service.order_service import calculate_total, validate_checkout_request
from microservices.order_service.protocols import (
    InvalidOrderStatusError,
    InvalidPaymentMethodError,
    InvalidQuantityError,
    InvalidStockChangeTypeError,
    MissingCheckoutFieldsError,
)
from microservices.order_service.status_policy import (
    RoleStatusAuthorizer,
    is_transition_allowed,
    parse_status,
)
from microservices.order_service.stock_ledger import (
    compute_new_stock,
    parse_change_type,
    validate_adjustment_quantity,
)

pytestmark = pytest.mark.unit


def make_request(**overrides) -> CheckoutRequest:
    data = {
        "full_name": "Alice Shopper",
        "email": "alice@example.com",
        "shipping_address": "12 Market Street",
        "payment_method": "online-payment",
    }
    data.update(overrides)
    return CheckoutRequest(**data)


class TestCheckoutValidation:

    def test_complete_request_returns_payment_method(self):
        assert validate_checkout_request(make_request()) == PaymentMethod.ONLINE_PAYMENT

    @pytest.mark.parametrize("field", ["full_name", "email", "shipping_address", "payment_method"])
    def test_missing_field(self, field):
        with pytest.raises(MissingCheckoutFieldsError):
            validate_checkout_request(make_request(**{field: None}))

    def test_blank_field_counts_as_missing(self):
        with pytest.raises(MissingCheckoutFieldsError):
            validate_checkout_request(make_request(shipping_address="   "))

    def test_unknown_payment_method(self):
        with pytest.raises(InvalidPaymentMethodError) as exc_info:
            validate_checkout_request(make_request(payment_method="crypto"))
        assert exc_info.value.error_code == "INVALID_PAYMENT_METHOD"

    def test_missing_fields_win_over_bad_payment_method(self):
        with pytest.raises(MissingCheckoutFieldsError):
            validate_checkout_request(make_request(email="", payment_method="crypto"))

    def test_camel_case_aliases(self):
        request = CheckoutRequest.model_validate({
            "fullName": "Alice", "email": "a@example.com",
            "shippingAddress": "1 Road", "paymentMethod": "in-store-payment",
        })
        assert validate_checkout_request(request) == PaymentMethod.IN_STORE_PAYMENT


class TestTotals:

    def test_order_total(self):
        items = [
            OrderItem(product_id="a", quantity=2, price=Decimal("3.50")),
            OrderItem(product_id="b", quantity=1, price=Decimal("2.00")),
        ]
        assert calculate_total(items) == Decimal("9.00")

    def test_empty_total_is_zero(self):
        assert calculate_total([]) == Decimal("0")

    def test_cart_helpers(self):
        cart = Cart(cart_id="cart_1", user_id="u1", items=[
            CartItem(product_id="a", quantity=3, price=Decimal("1.25")),
        ])
        assert cart.total_price == Decimal("3.75")
        assert cart.find_item("a").quantity == 3
        assert cart.find_item("z") is None
        assert Cart(cart_id="cart_2", user_id="u1").is_empty

    def test_low_stock_includes_threshold(self):
        assert Product(product_id="p", name="Milk", price=Decimal("1"), current_stock=5, min_stock=5).is_low_stock
        assert not Product(product_id="p", name="Milk", price=Decimal("1"), current_stock=6, min_stock=5).is_low_stock


class TestStatusParsing:

    @pytest.mark.parametrize("raw,expected", [
        ("pending", OrderStatus.PENDING),
        ("  Shipped ", OrderStatus.SHIPPED),
        ("REFUNDED", OrderStatus.REFUNDED),
    ])
    def test_known_values(self, raw, expected):
        assert parse_status(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "lost", "canceled"])
    def test_unknown_values(self, raw):
        with pytest.raises(InvalidOrderStatusError):
            parse_status(raw)


class TestTransitions:

    def test_lenient_allows_backwards(self):
        assert is_transition_allowed(OrderStatus.DELIVERED, OrderStatus.PENDING)

    def test_strict_forward_path(self):
        path = [OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED]
        for current, target in zip(path, path[1:]):
            assert is_transition_allowed(current, target, strict=True)

    def test_strict_rejects_leaving_terminal(self):
        assert not is_transition_allowed(OrderStatus.CANCELLED, OrderStatus.PENDING, strict=True)

    def test_strict_accepts_same_status(self):
        assert is_transition_allowed(OrderStatus.DELIVERED, OrderStatus.DELIVERED, strict=True)


class TestRoleAuthorizer:

    def test_default_roles(self):
        authorizer = RoleStatusAuthorizer()
        assert authorizer.can_update_status(Actor(user_id="u", role="Cashier"))
        assert not authorizer.can_update_status(Actor(user_id="u", role="customer"))
        assert not authorizer.can_update_status(Actor(user_id="u"))

    def test_configured_roles(self):
        authorizer = RoleStatusAuthorizer(["manager", " "])
        assert authorizer.can_update_status(Actor(user_id="u", role="manager"))
        assert not authorizer.can_update_status(Actor(user_id="u", role="admin"))

    def test_stock_changes_use_the_same_roles(self):
        authorizer = RoleStatusAuthorizer()
        assert authorizer.can_adjust_stock(Actor(user_id="u", role="storekeeper"))
        assert not authorizer.can_adjust_stock(Actor(user_id="u", role="customer"))
        assert not authorizer.can_adjust_stock(Actor(user_id="u"))


class TestStockChangeRules:

    @pytest.mark.parametrize("value,expected", [
        ("add", StockChangeType.ADD),
        (" Remove ", StockChangeType.REMOVE),
        ("EXPIRE", StockChangeType.EXPIRE),
        ("adjust", StockChangeType.ADJUST),
    ])
    def test_parse_change_type(self, value, expected):
        assert parse_change_type(value) == expected

    @pytest.mark.parametrize("value", [None, "", "restock"])
    def test_invalid_change_type(self, value):
        with pytest.raises(InvalidStockChangeTypeError):
            parse_change_type(value)

    def test_quantity_is_required(self):
        with pytest.raises(InvalidQuantityError, match="Quantity and change type are required"):
            validate_adjustment_quantity(StockChangeType.ADD, None)

    @pytest.mark.parametrize("change_type", [StockChangeType.ADD, StockChangeType.REMOVE, StockChangeType.EXPIRE])
    def test_movements_need_at_least_one_unit(self, change_type):
        with pytest.raises(InvalidQuantityError):
            validate_adjustment_quantity(change_type, 0)
        validate_adjustment_quantity(change_type, 1)

    def test_adjust_accepts_zero_but_not_negative(self):
        validate_adjustment_quantity(StockChangeType.ADJUST, 0)
        with pytest.raises(InvalidQuantityError):
            validate_adjustment_quantity(StockChangeType.ADJUST, -1)

    def test_compute_new_stock(self):
        assert compute_new_stock(StockChangeType.ADD, 10, 3) == 13
        assert compute_new_stock(StockChangeType.REMOVE, 10, 3) == 7
        assert compute_new_stock(StockChangeType.EXPIRE, 10, 3) == 7
        assert compute_new_stock(StockChangeType.ADJUST, 10, 3) == 3
        assert compute_new_stock(StockChangeType.REMOVE, 2, 3) == -1
