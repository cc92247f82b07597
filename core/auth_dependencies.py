"""
FastAPI Identity Dependencies for Microservices

Authentication happens upstream (gateway / auth service). These dependencies
only read the identity the gateway forwards in request headers.
"""

from fastapi import Header, HTTPException, status, Request
from typing import Optional
import logging
import os

logger = logging.getLogger(__name__)

# Internal service authentication
INTERNAL_SERVICE_SECRET = os.getenv(
    "INTERNAL_SERVICE_SECRET",
    "dev-internal-secret-change-in-production"
)

INTERNAL_SERVICE_USER = "internal-service"


async def require_auth_or_internal_service(
    request: Request,
    user_id: Optional[str] = Header(None, alias="user-id"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_internal_service: Optional[str] = Header(None, alias="X-Internal-Service"),
    x_internal_service_secret: Optional[str] = Header(None, alias="X-Internal-Service-Secret"),
) -> str:
    """
    Identity dependency: a forwarded user id or an internal service call.

    Priority:
    1. Internal service (X-Internal-Service + X-Internal-Service-Secret)
    2. User id (user-id or X-User-Id)

    Returns:
        user_id, or "internal-service"

    Raises:
        HTTPException 401: no identity present
    """
    if x_internal_service == "true" and x_internal_service_secret:
        if x_internal_service_secret == INTERNAL_SERVICE_SECRET:
            logger.debug(f"Internal service request to {request.url.path}")
            return INTERNAL_SERVICE_USER
        else:
            client_host = request.client.host if request.client else "unknown"
            logger.warning(f"Invalid internal service secret from {client_host}")

    user_id_value = user_id or x_user_id
    if user_id_value:
        return user_id_value

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="User authentication required"
    )


async def get_request_role(
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> Optional[str]:
    """Role forwarded by the gateway (customer, cashier, storekeeper, admin)"""
    return x_user_role.strip().lower() if x_user_role else None


def is_internal_service_request(user_id: str) -> bool:
    """True if the identity dependency resolved to an internal service call"""
    return user_id == INTERNAL_SERVICE_USER


__all__ = [
    "INTERNAL_SERVICE_USER",
    "require_auth_or_internal_service",
    "get_request_role",
    "is_internal_service_request"
]
