"""
Order Service Routes Registry
Defines all API routes exposed by the order service
"""

from typing import List, Dict, Any

SERVICE_ROUTES = [
    {
        "path": "/",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Root health check"
    },
    {
        "path": "/health",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Service health check"
    },
    # Orders
    {
        "path": "/api/v1/orders",
        "methods": ["GET"],
        "auth_required": True,
        "description": "List the caller's orders"
    },
    {
        "path": "/api/v1/orders/checkout",
        "methods": ["POST"],
        "auth_required": True,
        "description": "Place an order from the cart"
    },
    {
        "path": "/api/v1/orders/all",
        "methods": ["GET"],
        "auth_required": True,
        "description": "List all orders (back-office)"
    },
    {
        "path": "/api/v1/orders/{order_id}",
        "methods": ["GET"],
        "auth_required": True,
        "description": "Get order"
    },
    {
        "path": "/api/v1/orders/{order_id}/cancel",
        "methods": ["PUT"],
        "auth_required": True,
        "description": "Cancel a pending order"
    },
    {
        "path": "/api/v1/orders/{order_id}/status",
        "methods": ["PUT"],
        "auth_required": True,
        "description": "Update order status (back-office)"
    },
    # Cart
    {
        "path": "/api/v1/cart",
        "methods": ["GET", "POST", "DELETE"],
        "auth_required": True,
        "description": "Get cart, add item, clear cart"
    },
    {
        "path": "/api/v1/cart/{product_id}",
        "methods": ["PUT", "DELETE"],
        "auth_required": True,
        "description": "Update or remove a cart line"
    },
    # Inventory
    {
        "path": "/api/v1/products/low-stock",
        "methods": ["GET"],
        "auth_required": True,
        "description": "Products at or below minimum stock"
    },
    {
        "path": "/api/v1/products/stock-history",
        "methods": ["GET"],
        "auth_required": True,
        "description": "Stock movements of every product"
    },
    {
        "path": "/api/v1/products/{product_id}/stock",
        "methods": ["PUT"],
        "auth_required": True,
        "description": "Manual stock change (back-office)"
    },
    {
        "path": "/api/v1/products/{product_id}/stock-history",
        "methods": ["GET"],
        "auth_required": True,
        "description": "Stock movements of a product"
    },
]

SERVICE_METADATA = {
    "service_name": "order_service",
    "version": "1.0.0",
    "tags": ["v1", "order", "cart", "inventory"],
    "capabilities": [
        "checkout",
        "order_cancellation",
        "order_status_management",
        "cart_management",
        "stock_adjustment",
        "stock_history",
        "low_stock_alerts",
        "order_notifications"
    ]
}


def get_route_summary() -> Dict[str, Any]:
    """Compact route metadata for the root endpoint"""
    protected = [r["path"] for r in SERVICE_ROUTES if r["auth_required"]]
    return {
        "route_count": len(SERVICE_ROUTES),
        "base_path": "/api/v1",
        "protected_routes": len(protected),
        "public_routes": len(SERVICE_ROUTES) - len(protected),
    }


def get_all_routes() -> List[Dict[str, Any]]:
    return SERVICE_ROUTES
