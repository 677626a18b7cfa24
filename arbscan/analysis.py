from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from .errors import InvalidInputError
from .models import Quote


@dataclass(frozen=True)
class PriceDifference:
    absolute: float
    percent: float


def find_extremes(quotes: Sequence[Quote]) -> Tuple[Quote, Quote]:
    """
    Return (min_quote, max_quote) by price.

    The first quote seeds both ends and comparisons are strict, so on equal
    prices the earliest quote in input order is kept.
    """
    if not quotes:
        raise InvalidInputError("Quotes list cannot be empty")
    lo = hi = quotes[0]
    for q in quotes[1:]:
        if q.price < lo.price:
            lo = q
        if q.price > hi.price:
            hi = q
    return lo, hi


def difference(min_price: float, max_price: float) -> PriceDifference:
    """
    Absolute and percentage difference relative to min_price.

    The result is signed: passing a max below min gives negative values.
    """
    if min_price <= 0:
        raise InvalidInputError("Minimum price must be greater than zero")
    absolute = max_price - min_price
    return PriceDifference(absolute=absolute, percent=absolute / min_price * 100.0)


def calculate_profit(buy_price: float, sell_price: float) -> float:
    if buy_price <= 0:
        raise InvalidInputError("Buy price must be greater than zero")
    return (sell_price - buy_price) / buy_price * 100.0
