"""Order lifecycle: legal status transitions and who may perform them.

    pending --> approved --> shipped --> delivered
       |
       +------> rejected

`approved`/`rejected` record a staff member's manual check of the payment
reference; `shipped`/`delivered` are physical fulfilment milestones entered by
staff. Nothing here verifies payment on its own.
"""

import logging

from .errors import ForbiddenError, IllegalTransitionError, UnknownStatusError
from .identity import Actor
from .models import ORDER_STATUSES, Order
from .orders import OrderRepository

logger = logging.getLogger(__name__)

TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"approved", "rejected"}),
    "approved": frozenset({"shipped"}),
    "shipped": frozenset({"delivered"}),
    "delivered": frozenset(),
    "rejected": frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

# Statuses whose payment has been verified by staff
PAID_STATUSES = frozenset({"approved", "shipped", "delivered"})


def _check_status(status: str) -> None:
    if status not in ORDER_STATUSES:
        raise UnknownStatusError(status)


def allowed_targets(status: str) -> list[str]:
    """Legal next statuses, in lifecycle order."""
    _check_status(status)
    return [s for s in ORDER_STATUSES if s in TRANSITIONS[status]]


def is_terminal(status: str) -> bool:
    _check_status(status)
    return status in TERMINAL_STATUSES


def is_legal(current: str, target: str) -> bool:
    """True if `current -> target` is an edge of the lifecycle graph."""
    _check_status(current)
    _check_status(target)
    return target in TRANSITIONS[current]


def can_view(actor: Actor | None, order: Order) -> bool:
    """Staff see every order; customers see only their own."""
    if actor is None:
        return False
    return actor.is_admin or actor.id == order.user_id


def can_transition(actor: Actor | None, order: Order, target: str) -> bool:
    """Only staff move orders, and only along the lifecycle graph."""
    if actor is None or not actor.is_admin:
        return False
    return is_legal(order.status, target)


def check_transition(actor: Actor | None, order: Order, target: str) -> None:
    """
    Raise unless `actor` may move `order` to `target`.

    Raises:
        ForbiddenError: Actor is not staff.
        UnknownStatusError: Target is not a lifecycle status.
        IllegalTransitionError: Target is not reachable from the current status.
    """
    if actor is None or not actor.is_admin:
        raise ForbiddenError(f"change status of order {order.id}")
    if not can_transition(actor, order, target):
        raise IllegalTransitionError(order.id, order.status, target)


def transition(
    repository: OrderRepository,
    actor: Actor | None,
    order_id: str,
    target: str,
) -> Order:
    """
    Move an order to `target` after checking the graph and the actor's role.

    The check runs against the stored status, then a single-row update writes
    the new one.

    Returns:
        The updated order.
    """
    order = repository.get_order(order_id)
    check_transition(actor, order, target)
    updated = repository.update_status(order.id, target)
    logger.info("Order %s: %s -> %s by %s", order.id, order.status, target, actor.id)
    return updated


def label_eligible(orders: list[Order]) -> list[Order]:
    """Orders ready for bulk label printing: exactly those in `approved`."""
    return [o for o in orders if o.status == "approved"]
