"""Live order lists for the staff dashboard and the customer's order history."""

import logging
from dataclasses import replace

from .data_store import ChangeEvent, DataStore
from .errors import NotAuthenticatedError, UnknownStatusError
from .identity import Actor
from .models import ORDER_STATUSES, Order
from .orders import OrderRepository
from .workflow import can_view, label_eligible, transition

logger = logging.getLogger(__name__)


class OrderBoard:
    """
    An order list that follows the `orders` change stream.

    Staff boards show every order; customer boards only the actor's own.
    Status changes update the local list right away, but the list is rebuilt
    from the store on every change notification, which wins over any local
    edit.
    """

    def __init__(self, store: DataStore, actor: Actor | None, status: str | None = None):
        if actor is None:
            raise NotAuthenticatedError()
        if status is not None and status not in ORDER_STATUSES:
            raise UnknownStatusError(status)
        self.store = store
        self.actor = actor
        self.status = status
        self.repository = OrderRepository(store)
        self.orders: list[Order] = []
        self._unsubscribe = None

    @property
    def scope_user_id(self) -> str | None:
        return None if self.actor.is_admin else self.actor.id

    def open(self) -> "OrderBoard":
        """Load the list and start following changes."""
        self.refresh()
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe("orders", self._on_change)
        return self

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> "OrderBoard":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def refresh(self) -> list[Order]:
        orders = self.repository.list_orders(user_id=self.scope_user_id, status=self.status)
        self.orders = [o for o in orders if can_view(self.actor, o)]
        return self.orders

    def _on_change(self, event: ChangeEvent) -> None:
        scope = self.scope_user_id
        if scope is not None and event.row.get("user_id") != scope:
            return
        logger.debug("orders %s %s; refreshing board", event.event, event.row.get("id"))
        self.refresh()

    def set_status(self, order_id: str, target: str) -> Order:
        """
        Move an order and reflect it in the local list.

        If the store rejects the change the local list is left untouched.
        """
        updated = transition(self.repository, self.actor, order_id, target)
        for i, order in enumerate(self.orders):
            if order.id == order_id:
                self.orders[i] = replace(order, status=updated.status, updated_at=updated.updated_at)
                break
        if self.status is not None:
            self.orders = [o for o in self.orders if o.status == self.status]
        return updated

    def get(self, order_id: str) -> Order | None:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def label_queue(self) -> list[Order]:
        """Orders on this board that are ready for label printing."""
        return label_eligible(self.orders)
