"""Order storage: headers in `orders`, lines in `order_items`."""

from typing import Any

from .data_store import DataStore
from .errors import OrderNotFoundError
from .models import Order, _utc_now, normalize_status


class OrderRepository:
    """Reads and writes orders and their line items."""

    def __init__(self, store: DataStore):
        self.store = store

    # --- Writes ---

    def insert_header(self, order: Order) -> None:
        self.store.insert("orders", order.header_dict())

    def insert_items(self, order: Order) -> None:
        """Write every line of `order` in one table write."""
        self.store.insert_many("order_items", [i.to_row(order.id) for i in order.items])

    def delete_header(self, order_id: str) -> None:
        self.store.delete("orders", order_id)

    def update_status(self, order_id: str, status: str) -> Order:
        """
        Persist a new status. Callers check the transition first.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        row = self.store.update("orders", order_id, {"status": status, "updated_at": _utc_now()})
        if row is None:
            raise OrderNotFoundError(order_id)
        return self._hydrate([row])[0]

    # --- Reads ---

    def get_order(self, order_id: str) -> Order:
        """
        Get an order with its items.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        row = self.store.get("orders", order_id)
        if row is None:
            raise OrderNotFoundError(order_id)
        return self._hydrate([row])[0]

    def list_orders(
        self,
        user_id: str | None = None,
        status: str | tuple[str, ...] | None = None,
    ) -> list[Order]:
        """List orders with items, newest first, optionally filtered by owner and status."""
        filters: dict[str, Any] = {}
        if user_id is not None:
            filters["user_id"] = user_id
        rows = self.store.select("orders", filters, order_by="created_at", descending=True)

        if status is not None:
            wanted = (status,) if isinstance(status, str) else tuple(status)
            rows = [r for r in rows if normalize_status(r.get("status", "")) in wanted]

        return self._hydrate(rows)

    def find_incomplete(self) -> list[Order]:
        """Orders whose header was written but which have no line items."""
        return [o for o in self.list_orders() if not o.items]

    def _hydrate(self, rows: list[dict[str, Any]]) -> list[Order]:
        """Attach line items to order header rows."""
        if not rows:
            return []

        order_ids = {r["id"] for r in rows}
        item_rows = self.store.select("order_items", {"order_id": order_ids})

        items_by_order: dict[str, list[dict[str, Any]]] = {}
        missing_names: set[str] = set()
        for item in item_rows:
            items_by_order.setdefault(item["order_id"], []).append(item)
            if not item.get("product_name"):
                missing_names.add(item["product_id"])

        # Rows written without a name snapshot fall back to the live catalog for display
        names: dict[str, str] = {}
        if missing_names:
            for product in self.store.select("products", {"id": missing_names}):
                names[product["id"]] = product.get("name", "")

        orders = []
        for row in rows:
            data = dict(row)
            data["items"] = [
                {**i, "product_name": i.get("product_name") or names.get(i["product_id"], "")}
                for i in items_by_order.get(row["id"], [])
            ]
            orders.append(Order.from_dict(data))
        return orders
