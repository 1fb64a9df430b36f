# app/domain/stock.py
"""
Stock of a product is either one flat counter or a list of per-size counters.

The two shapes never coexist on one product, so every branch on stock is an
isinstance check over ``FlatStock | SizedStock``.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from app.domain.errors import InsufficientStock, OutOfStock, SizeNotFound, SizeRequired


@dataclass(frozen=True)
class SizeEntry:
    size: str
    quantity: int
    price: Decimal
    price_before_discount: Decimal | None = None
    discount_percent: int | None = None


@dataclass(frozen=True)
class FlatStock:
    quantity: int


@dataclass(frozen=True)
class SizedStock:
    entries: tuple[SizeEntry, ...]

    def find(self, size: str | None) -> SizeEntry | None:
        if size is None:
            return None
        wanted = str(size).lower()
        for entry in self.entries:
            if entry.size.lower() == wanted:
                return entry
        return None


StockModel = Union[FlatStock, SizedStock]


def same_size(a: str | None, b: str | None) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return a.lower() == b.lower()


def cheapest_size(entries) -> SizeEntry | None:
    """Lowest price wins, first one in order on ties."""
    best = None
    for entry in entries:
        if best is None or entry.price < best.price:
            best = entry
    return best


def check_availability(stock: StockModel, quantity: int, size: str | None) -> SizeEntry | None:
    """
    Raises the matching domain error when ``quantity`` cannot be taken from
    ``stock``. Returns the matched size entry for sized stock, None for flat.
    """
    if isinstance(stock, FlatStock):
        if stock.quantity <= 0:
            raise OutOfStock()
        if stock.quantity < quantity:
            raise InsufficientStock(f"Only {stock.quantity} item(s) are available in stock.")
        return None

    if isinstance(stock, SizedStock):
        if not size:
            raise SizeRequired()
        entry = stock.find(size)
        if entry is None:
            raise SizeNotFound()
        if entry.quantity <= 0:
            raise OutOfStock()
        if entry.quantity < quantity:
            raise InsufficientStock(
                f"Only {entry.quantity} item(s) are available for size {entry.size.upper()}."
            )
        return entry

    raise TypeError(f"Unknown stock model: {stock!r}")
