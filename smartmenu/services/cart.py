"""
Shopping Cart

Immutable value object: every mutation returns a new Cart, so a reader
holding the old one always sees a consistent snapshot.
"""

from dataclasses import dataclass, replace
from typing import Iterable, Optional

from smartmenu.services.catalog import CATALOG, MenuItem
from smartmenu.services.ai.set_generator import Bundle
from smartmenu.services.ai.ui_action import MenuPickerVariant


@dataclass(frozen=True)
class CartLine:
    item: MenuItem
    quantity: int

    @property
    def line_total(self) -> int:
        return self.item.price * self.quantity


@dataclass(frozen=True)
class Cart:
    lines: tuple[CartLine, ...] = ()

    @property
    def total(self) -> int:
        return sum(line.line_total for line in self.lines)

    @property
    def count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def get(self, item_id: str) -> Optional[CartLine]:
        for line in self.lines:
            if line.item.id == item_id:
                return line
        return None

    def add_item(self, item: MenuItem, quantity: int = 1) -> "Cart":
        if self.get(item.id) is not None:
            return Cart(tuple(
                replace(line, quantity=line.quantity + quantity) if line.item.id == item.id else line
                for line in self.lines
            ))
        return Cart(self.lines + (CartLine(item, quantity),))

    def remove_item(self, item_id: str) -> "Cart":
        return Cart(tuple(line for line in self.lines if line.item.id != item_id))

    def update_quantity(self, item_id: str, quantity: int) -> "Cart":
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            return self.remove_item(item_id)
        return Cart(tuple(
            replace(line, quantity=quantity) if line.item.id == item_id else line
            for line in self.lines
        ))

    def clear(self) -> "Cart":
        return Cart()

    def add_bundle(self, bundle: Bundle) -> "Cart":
        """Add every bundle item, plus its upsell suggestion if there is one."""
        cart = self
        for item in bundle.items:
            cart = cart.add_item(item)
        if bundle.upsell is not None:
            cart = cart.add_item(bundle.upsell)
        return cart

    def add_picker_variant(
        self,
        variant: MenuPickerVariant,
        catalog: Iterable[MenuItem] = CATALOG,
    ) -> "Cart":
        """Add a variant chosen in the picker modal; ids not on the menu are skipped."""
        by_id = {item.id: item for item in catalog}
        cart = self
        for picked in variant.items:
            item = by_id.get(picked.id)
            if item is not None:
                cart = cart.add_item(item)
        return cart
