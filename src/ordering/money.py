"""Monetary helpers shared by carts, orders and the checkout session."""

from collections.abc import Iterable

DEFAULT_CURRENCY = "usd"


def line_amount(quantity: int, unit_price: float) -> float:
    return round(quantity * unit_price, 2)


def total_of(amounts: Iterable[float]) -> float:
    return round(sum(amounts, 0.0), 2)


def to_minor_units(amount: float) -> int:
    """Convert a decimal amount to integer minor units (cents), rounding half away from zero."""
    cents = abs(amount) * 100
    rounded = int(cents + 0.5 + 1e-9)
    return rounded if amount >= 0 else -rounded
