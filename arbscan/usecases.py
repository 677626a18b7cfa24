from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .analysis import PriceDifference, difference, find_extremes
from .collect import fan_out
from .detector import find_opportunities
from .errors import AllSourcesUnavailableError, ConfigurationError, PairNotFoundError
from .exchanges.base import QuoteSource
from .models import ArbitrageOpportunity, Quote
from .pairs import CommonPairsResolver
from .retry import ResilientFetcher
from .utils import AsyncLimiter, get_logger

logger = get_logger("usecases")


@dataclass(frozen=True)
class PricePoint:
    source: str
    price: float
    timestamp: int


@dataclass(frozen=True)
class BestPriceResult:
    pair: str
    min: PricePoint
    max: PricePoint
    difference: PriceDifference
    sources_checked: int
    sources_failed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ArbitrageResult:
    opportunities: List[ArbitrageOpportunity]
    total_found: int
    pairs_checked: int
    min_profit_filter: float
    top_filter: Optional[int]
    sources_failed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BestPriceUseCase:
    """Lowest and highest price of one pair across all sources."""

    def __init__(
        self,
        sources: Sequence[QuoteSource],
        fetcher: Optional[ResilientFetcher] = None,
        concurrency: int = 16,
        timeout: Optional[float] = None,
    ) -> None:
        self.sources = list(sources)
        self.fetcher = fetcher or ResilientFetcher()
        self.concurrency = concurrency
        self.timeout = timeout

    async def execute(self, pair: str) -> BestPriceResult:
        if not self.sources:
            raise ConfigurationError("No exchanges configured")

        collected = await fan_out(
            self.sources,
            lambda s: s.fetch_one(pair),
            self.fetcher,
            limiter=AsyncLimiter(self.concurrency),
            timeout=self.timeout,
        )

        quotes: List[Quote] = []
        failed = list(collected.failed)
        for name, quote in collected.results:
            if quote.price <= 0:
                logger.warning("Ignoring %s quote for %s: non-positive price %s", name, pair, quote.price)
                failed.append(name)
                continue
            quotes.append(quote)

        if not quotes:
            raise PairNotFoundError(pair, failed)

        lo, hi = find_extremes(quotes)
        diff = difference(lo.price, hi.price)
        return BestPriceResult(
            pair=pair,
            min=PricePoint(source=lo.source, price=lo.price, timestamp=lo.timestamp),
            max=PricePoint(source=hi.source, price=hi.price, timestamp=hi.timestamp),
            difference=diff,
            sources_checked=len(quotes),
            sources_failed=failed,
        )


class FindArbitrageUseCase:
    """
    Scan every common pair for buy-low/sell-high spreads between sources.

    Tickers are fetched with one bulk call per source and then filtered to
    the common pairs, rather than one call per pair per source.
    """

    def __init__(
        self,
        sources: Sequence[QuoteSource],
        resolver: CommonPairsResolver,
        fetcher: Optional[ResilientFetcher] = None,
        concurrency: int = 16,
        timeout: Optional[float] = None,
    ) -> None:
        self.sources = list(sources)
        self.resolver = resolver
        self.fetcher = fetcher or ResilientFetcher()
        self.concurrency = concurrency
        self.timeout = timeout

    async def execute(self, min_profit: float = 0.1, top: Optional[int] = None) -> ArbitrageResult:
        if not self.sources:
            raise ConfigurationError("No exchanges configured")

        common_pairs = await self.resolver.resolve_common_pairs()

        collected = await fan_out(
            self.sources,
            lambda s: s.fetch_all(),
            self.fetcher,
            limiter=AsyncLimiter(self.concurrency),
            timeout=self.timeout,
        )
        if not collected.results:
            raise AllSourcesUnavailableError(collected.failed)

        # keyed in common-pairs order so ranking ties are deterministic
        by_pair: Dict[str, List[Quote]] = {p: [] for p in common_pairs}
        for _, quotes in collected.results:
            for q in quotes:
                bucket = by_pair.get(q.pair)
                if bucket is not None:
                    bucket.append(q)
        quotes_by_pair = {p: qs for p, qs in by_pair.items() if len(qs) >= 2}

        opportunities = find_opportunities(quotes_by_pair, min_profit)
        total_found = len(opportunities)
        if top is not None and top > 0:
            opportunities = opportunities[:top]

        logger.info(
            "Checked %d pairs (%d with 2+ quotes): %d opportunities >= %.3f%%",
            len(common_pairs),
            len(quotes_by_pair),
            total_found,
            min_profit,
        )
        return ArbitrageResult(
            opportunities=opportunities,
            total_found=total_found,
            pairs_checked=len(common_pairs),
            min_profit_filter=min_profit,
            top_filter=top,
            sources_failed=list(collected.failed),
        )
