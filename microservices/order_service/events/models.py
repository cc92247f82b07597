"""
Order Service Event Models

Pydantic models for events published by order service
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class OrderCreatedEvent(BaseModel):
    """Event published when checkout commits an order"""
    order_id: str
    user_id: str
    total_price: float
    payment_method: str
    status: str
    items: List[Dict[str, Any]] = []
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class OrderCanceledEvent(BaseModel):
    """Event published when an order is cancelled and its stock restored"""
    order_id: str
    user_id: str
    total_price: float
    record_retained: bool = True
    restored_items: List[Dict[str, Any]] = []
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class OrderStatusUpdatedEvent(BaseModel):
    """Event published when back-office staff change an order's status"""
    order_id: str
    user_id: str
    old_status: str
    new_status: str
    updated_by: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class StockChangedEvent(BaseModel):
    """Event published for each committed stock movement"""
    product_id: str
    product_name: str
    change_type: str
    quantity: int
    previous_stock: int
    new_stock: int
    is_low_stock: bool = False
    order_id: Optional[str] = None
    performed_by: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class PaymentCompletedEvent(BaseModel):
    """Inbound payment_service.payment.completed payload"""
    order_id: Optional[str] = None
    user_id: Optional[str] = None
    payment_id: Optional[str] = None
    amount: Optional[float] = None
