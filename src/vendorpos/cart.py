from __future__ import annotations

from dataclasses import replace
from typing import Optional

from .domain import CartLine
from .errors import StockExceededError, ValidationError


class Cart:
    """Line items of one checkout session, keyed by item id in insertion order."""

    def __init__(self) -> None:
        self._lines: dict[str, CartLine] = {}
        self._stock: dict[str, int] = {}

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def products(self) -> list[CartLine]:
        return [ln for ln in self._lines.values() if ln.kind == "product"]

    @property
    def services(self) -> list[CartLine]:
        return [ln for ln in self._lines.values() if ln.kind == "service"]

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def get(self, item_id: str) -> Optional[CartLine]:
        return self._lines.get(item_id)

    def add(self, line: CartLine, stock: Optional[int] = None) -> CartLine:
        if line.kind == "product" and stock is not None:
            self._stock[line.item_id] = stock
        existing = self._lines.get(line.item_id)
        if existing is not None:
            return self._set_quantity(existing, existing.quantity + line.quantity)
        self._check_stock(line, line.quantity)
        self._lines[line.item_id] = line
        return line

    def increment(self, item_id: str, stock: Optional[int] = None) -> CartLine:
        line = self._require(item_id)
        if line.kind == "product" and stock is not None:
            self._stock[item_id] = stock
        return self._set_quantity(line, line.quantity + 1)

    def decrement(self, item_id: str) -> Optional[CartLine]:
        line = self._require(item_id)
        if line.quantity <= 1:
            self.remove(item_id)
            return None
        return self._set_quantity(line, line.quantity - 1)

    def remove(self, item_id: str) -> None:
        self._lines.pop(item_id, None)
        self._stock.pop(item_id, None)

    def clear(self) -> None:
        self._lines.clear()
        self._stock.clear()

    def _require(self, item_id: str) -> CartLine:
        line = self._lines.get(item_id)
        if line is None:
            raise ValidationError(f"Item {item_id} is not in the cart.")
        return line

    def _check_stock(self, line: CartLine, quantity: int) -> None:
        if line.kind != "product":
            return
        ceiling = self._stock.get(line.item_id)
        if ceiling is not None and quantity > ceiling:
            raise StockExceededError(line.item_id, ceiling)

    def _set_quantity(self, line: CartLine, quantity: int) -> CartLine:
        self._check_stock(line, quantity)
        updated = replace(line, quantity=quantity)
        self._lines[line.item_id] = updated
        return updated

    def __len__(self) -> int:
        return len(self._lines)
