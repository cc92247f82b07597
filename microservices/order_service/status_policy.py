"""
Order Status Policy

Status value parsing, the optional transition table and the role check used
for back-office status updates.
"""

from typing import Dict, FrozenSet, Iterable, Optional

from .models import Actor, OrderStatus
from .protocols import InvalidOrderStatusError

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
})

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.REFUNDED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

DEFAULT_STATUS_ROLES = ("admin", "cashier", "storekeeper")


def parse_status(value: Optional[str]) -> OrderStatus:
    """Map a raw status string onto OrderStatus, raising InvalidOrderStatusError"""
    if value is None:
        raise InvalidOrderStatusError(value)
    try:
        return OrderStatus(value.strip().lower())
    except ValueError:
        raise InvalidOrderStatusError(value)


def is_transition_allowed(current: OrderStatus, target: OrderStatus, strict: bool = False) -> bool:
    """
    Check a status change.

    Without ``strict`` every change is accepted. Re-applying the current
    status is always accepted.
    """
    if not strict or current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class RoleStatusAuthorizer:
    """Allows status updates and manual stock changes for a configured set of roles"""

    def __init__(self, roles: Optional[Iterable[str]] = None):
        self.roles = frozenset(r.strip().lower() for r in (roles or DEFAULT_STATUS_ROLES) if r.strip())

    def can_update_status(self, actor: Actor) -> bool:
        return bool(actor.role) and actor.role.lower() in self.roles

    def can_adjust_stock(self, actor: Actor) -> bool:
        return self.can_update_status(actor)
