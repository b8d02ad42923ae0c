"""
Shopping cart store.

Keeps an ordered list of line items (one per product name), writes it to the
durable cart slot after every change and notifies subscribers with a fresh
snapshot so the UI can re-render.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Tuple, Union

import structlog

logger = structlog.get_logger()

Price = Union[Decimal, float, int, str]


class CartError(Exception):
    """Base exception for cart misuse."""


class InvalidArgument(CartError, ValueError):
    """Raised when an item name or price is not acceptable."""


class IndexOutOfRange(CartError, IndexError):
    """Raised when removing a position the cart does not have."""


def to_price(value: Price) -> Decimal:
    if isinstance(value, bool):
        raise InvalidArgument(f"Invalid price: {value!r}")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidArgument(f"Invalid price: {value!r}")
    if not price.is_finite():
        raise InvalidArgument(f"Invalid price: {value!r}")
    return price


@dataclass(frozen=True)
class LineItem:
    name: str
    price: Decimal
    quantity: int = 1

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "price": str(self.price), "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        name = data["name"]
        quantity = data["quantity"]
        if not isinstance(name, str) or not name:
            raise ValueError("line item name must be a non-empty string")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError("line item quantity must be an integer >= 1")
        price = to_price(data["price"])
        if price < 0:
            raise ValueError("line item price must be >= 0")
        return cls(name=name, price=price, quantity=quantity)


@dataclass(frozen=True)
class CartSnapshot:
    """Point-in-time copy of the cart; totals are derived from the items."""

    items: Tuple[LineItem, ...] = ()

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_price(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0"))

    @property
    def is_empty(self) -> bool:
        return not self.items

    def to_list(self) -> List[Dict[str, Any]]:
        return [item.to_dict() for item in self.items]

    def __len__(self) -> int:
        return len(self.items)


Listener = Callable[[CartSnapshot], None]


class ShoppingCart:
    """
    Ordered cart of line items backed by a durable slot.

    ``storage`` is anything with ``load() -> list[LineItem]`` and
    ``save(items)``, normally a ``cart_storage.CartStorage``.
    """

    def __init__(self, storage):
        self._storage = storage
        self._items: List[LineItem] = list(storage.load())
        self._listeners: List[Listener] = []

    def add_item(self, name: str, price: Price) -> CartSnapshot:
        if not isinstance(name, str) or not name.strip():
            raise InvalidArgument("Item name is required")
        unit_price = to_price(price)
        if unit_price <= 0:
            raise InvalidArgument(f"Price must be > 0, got {unit_price}")

        items = list(self._items)
        for index, item in enumerate(items):
            if item.name == name:
                items[index] = LineItem(item.name, item.price, item.quantity + 1)
                quantity = item.quantity + 1
                break
        else:
            items.append(LineItem(name, unit_price, 1))
            quantity = 1

        snapshot = self._commit(items)
        logger.info("cart_item_added", name=name, quantity=quantity)
        return snapshot

    def remove_item(self, index: int) -> CartSnapshot:
        if not 0 <= index < len(self._items):
            raise IndexOutOfRange(f"No cart item at index {index} (size {len(self._items)})")
        items = list(self._items)
        removed = items.pop(index)
        snapshot = self._commit(items)
        logger.info("cart_item_removed", name=removed.name, index=index)
        return snapshot

    def clear(self) -> CartSnapshot:
        snapshot = self._commit([])
        logger.info("cart_cleared")
        return snapshot

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(tuple(self._items))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def total_items(self) -> int:
        return self.snapshot().total_items

    @property
    def total_price(self) -> Decimal:
        return self.snapshot().total_price

    def __len__(self) -> int:
        return len(self._items)

    def _commit(self, items: List[LineItem]) -> CartSnapshot:
        # the slot is written first; a failed save leaves the cart as it was
        self._storage.save(items)
        self._items = items
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot
