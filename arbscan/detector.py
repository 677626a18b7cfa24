from __future__ import annotations

from typing import List, Mapping, Sequence

from .analysis import calculate_profit, find_extremes
from .errors import InvalidInputError
from .models import ArbitrageOpportunity, Quote
from .utils import get_logger

logger = get_logger("detector")


def find_opportunities(
    quotes_by_pair: Mapping[str, Sequence[Quote]],
    min_profit_pct: float = 0.1,
) -> List[ArbitrageOpportunity]:
    """
    Buy at the cheapest source, sell at the dearest one, for every pair.

    quotes_by_pair: {"BTC/USDT": [Quote, ...], ...}
    min_profit_pct: inclusive threshold in percent
    Returns: opportunities sorted by profit_percent, highest first; equal
    profits keep the input order of their pairs.
    """
    opportunities: List[ArbitrageOpportunity] = []

    for pair, quotes in quotes_by_pair.items():
        if len(quotes) < 2:
            continue

        lo, hi = find_extremes(quotes)
        if lo.source == hi.source:
            continue

        try:
            profit = calculate_profit(lo.price, hi.price)
        except InvalidInputError:
            logger.debug("Skipping %s: non-positive price %s from %s", pair, lo.price, lo.source)
            continue

        if profit >= min_profit_pct:
            opportunities.append(
                ArbitrageOpportunity(
                    pair=pair,
                    buy_source=lo.source,
                    sell_source=hi.source,
                    buy_price=lo.price,
                    sell_price=hi.price,
                    profit_percent=profit,
                )
            )

    opportunities.sort(key=lambda o: o.profit_percent, reverse=True)
    return opportunities
