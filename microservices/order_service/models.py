"""
Order Service Data Models

Pydantic models for products, carts, orders, stock history and the
request/response payloads of the order service.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum


class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Accepted payment methods"""
    ONLINE_PAYMENT = "online-payment"
    IN_STORE_PAYMENT = "in-store-payment"


class StockChangeType(str, Enum):
    """Kind of stock movement recorded in the history ledger"""
    ADD = "add"
    REMOVE = "remove"
    ADJUST = "adjust"
    EXPIRE = "expire"


# Core Models

class Product(BaseModel):
    """Sellable product with its tracked stock level"""
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    current_stock: int = Field(default=0, ge=0)
    min_stock: int = Field(default=5, ge=0)
    unit: str = "item"
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock


class CartItem(BaseModel):
    """Cart line; price is captured when the product is added"""
    product_id: str
    product_name: Optional[str] = None
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class Cart(BaseModel):
    """Shopping cart owned by one user"""
    model_config = ConfigDict(from_attributes=True)

    cart_id: str
    user_id: str
    items: List[CartItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return len(self.items) == 0

    @property
    def total_price(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0"))

    def find_item(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None


class OrderItem(BaseModel):
    """Immutable order line copied from the cart at checkout"""
    product_id: str
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class BillingInfo(BaseModel):
    full_name: str
    email: str


class Order(BaseModel):
    """Core order model"""
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    user_id: str
    items: List[OrderItem]
    total_price: Decimal
    billing_info: BillingInfo
    shipping_address: str
    payment_method: PaymentMethod
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None


class StockHistoryEntry(BaseModel):
    """Audit record of a single stock movement"""
    model_config = ConfigDict(from_attributes=True)

    entry_id: str
    product_id: str
    change_type: StockChangeType
    quantity: int = Field(..., ge=0)
    previous_stock: int
    new_stock: int
    notes: Optional[str] = None
    performed_by: str
    created_at: datetime


class StockMovement(BaseModel):
    """Result of applying a stock change inside a transaction"""
    product_id: str
    product_name: str
    change_type: StockChangeType
    quantity: int
    previous_stock: int
    new_stock: int
    min_stock: int

    @property
    def is_low_stock(self) -> bool:
        return self.new_stock <= self.min_stock


class Actor(BaseModel):
    """Authenticated caller as forwarded by the gateway"""
    user_id: str
    role: Optional[str] = None


# Request Models

class CheckoutRequest(BaseModel):
    """
    Checkout form.

    Fields stay loosely typed so the service can report missing fields and an
    unknown payment method as distinct errors after the cart check.
    """
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(None, alias="fullName")
    email: Optional[str] = None
    shipping_address: Optional[str] = Field(None, alias="shippingAddress")
    payment_method: Optional[str] = Field(None, alias="paymentMethod")


class OrderStatusUpdateRequest(BaseModel):
    status: Optional[str] = None


class CartItemRequest(BaseModel):
    """Add product to cart"""
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    quantity: int = Field(default=1, description="Quantity to add")

    @field_validator("product_id")
    @classmethod
    def validate_product_id(cls, v):
        if not v or not v.strip():
            raise ValueError("product_id is required")
        return v.strip()


class CartItemUpdateRequest(BaseModel):
    """Set the quantity of a cart line; zero or less removes it"""
    quantity: int


class StockAdjustmentRequest(BaseModel):
    """Manual stock change (back-office)"""
    model_config = ConfigDict(populate_by_name=True)

    change_type: Optional[str] = Field(None, alias="changeType")
    quantity: Optional[int] = None
    notes: Optional[str] = None


class OrderFilter(BaseModel):
    """Back-office order listing filter"""
    user_id: Optional[str] = None
    status: Optional[OrderStatus] = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


# Response Models

class CheckoutResponse(BaseModel):
    """Checkout result"""
    success: bool
    order_id: Optional[str] = None
    message: str
    error_code: Optional[str] = None


class OrderResponse(BaseModel):
    """Order operation response"""
    success: bool
    order: Optional[Order] = None
    message: str
    error_code: Optional[str] = None


class OrderListResponse(BaseModel):
    """Order list response"""
    orders: List[Order]
    count: int
    limit: int
    offset: int


class CartResponse(BaseModel):
    """Cart operation response"""
    success: bool
    cart: Optional[Cart] = None
    message: str
    error_code: Optional[str] = None


class StockAdjustmentResponse(BaseModel):
    """Manual stock change result"""
    success: bool
    movement: Optional[StockMovement] = None
    message: str
    error_code: Optional[str] = None


class LowStockProduct(BaseModel):
    product_id: str
    name: str
    current_stock: int
    min_stock: int


class OrderServiceStatus(BaseModel):
    """Service health status"""
    service: str = "order_service"
    status: str = "operational"
    port: int = 8210
    version: str = "1.0.0"
    database_connected: bool
    event_bus_connected: bool = False
    timestamp: datetime
