"""Cart ledger: the active visitor's product -> quantity mapping."""

from decimal import Decimal
from typing import Any

from .errors import InvalidQuantityError
from .models import CartItem, Product


class CartLedger:
    """
    In-memory cart owned by one session.

    Entries are keyed by product id. Stock is advisory and is never checked
    here. Every operation only touches the ledger's own state.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CartItem] = {}

    def add(self, product: Product) -> CartItem:
        """Increment the product's quantity, inserting it at 1 if absent."""
        entry = self._entries.get(product.id)
        if entry is None:
            entry = CartItem(product=product, quantity=1)
            self._entries[product.id] = entry
        else:
            entry.quantity += 1
        return entry

    def remove(self, product_id: str) -> None:
        """Delete the entry. Removing an absent product is a no-op."""
        self._entries.pop(product_id, None)

    def set_quantity(self, product_id: str, quantity: int) -> CartItem | None:
        """
        Set an entry's quantity; zero or less removes it.

        Returns the entry, or None if it was removed or never present.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidQuantityError(quantity)

        if quantity <= 0:
            self.remove(product_id)
            return None

        entry = self._entries.get(product_id)
        if entry is None:
            return None
        entry.quantity = quantity
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def total(self) -> Decimal:
        """Sum of price x quantity over all entries."""
        return sum((e.line_total for e in self._entries.values()), Decimal("0"))

    def count(self) -> int:
        """Sum of quantities (the cart badge number)."""
        return sum(e.quantity for e in self._entries.values())

    def get(self, product_id: str) -> CartItem | None:
        return self._entries.get(product_id)

    def items(self) -> list[CartItem]:
        """Snapshot of the entries; later ledger changes don't affect it."""
        return [CartItem(product=e.product, quantity=e.quantity) for e in self._entries.values()]

    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._entries

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [e.to_dict() for e in self._entries.values()],
            "total": str(self.total()),
            "count": self.count(),
        }
