"""Shopping cart that receives confirmed designs."""

import logging
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)

FREE_SHIPPING_THRESHOLD = 200
SHIPPING_FEE = 50
MIN_ORDER_VALUE = 200


@dataclass
class LineItem:
    """One cart line; custom designs point back at their stored record."""
    id: str
    name: str
    price: int
    image_url: str
    quantity: int = 1
    size: str = ""
    is_custom: bool = False
    design_id: str | None = None
    is_borderless: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class Cart:
    def __init__(self):
        self.items: list[LineItem] = []

    def __len__(self):
        return len(self.items)

    def find(self, item_id: str) -> LineItem | None:
        return next((item for item in self.items if item.id == item_id), None)

    def add_to_cart(self, item: LineItem):
        """Add *item*, or bump the quantity of the line that already has its id."""
        existing = self.find(item.id)
        if existing is not None:
            existing.quantity += item.quantity
        else:
            self.items.append(item)
        logger.info("Cart: %s x%d", item.name, item.quantity)

    def remove(self, item_id: str):
        self.items = [item for item in self.items if item.id != item_id]

    def update_quantity(self, item_id: str, quantity: int):
        item = self.find(item_id)
        if item is None:
            raise KeyError(item_id)
        item.quantity = max(1, int(quantity))

    def clear(self):
        self.items.clear()

    @property
    def count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> int:
        return sum(item.price * item.quantity for item in self.items)

    @property
    def shipping_fee(self) -> int:
        if not self.items or self.subtotal >= FREE_SHIPPING_THRESHOLD:
            return 0
        return SHIPPING_FEE

    @property
    def total(self) -> int:
        return self.subtotal + self.shipping_fee

    @property
    def amount_to_minimum(self) -> int:
        """How much more the cart needs before it can be ordered."""
        return max(0, MIN_ORDER_VALUE - self.subtotal)

    @property
    def meets_minimum(self) -> bool:
        return self.subtotal >= MIN_ORDER_VALUE
