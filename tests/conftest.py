"""Shared fixtures: in-memory quote sources, no network."""

import asyncio
from collections import Counter
from typing import Dict, Iterable, List, Optional

import pytest

from arbscan.cache import MemoryCache
from arbscan.errors import PermanentSourceError, TransientSourceError
from arbscan.exchanges.base import QuoteSource
from arbscan.models import Quote
from arbscan.retry import ResilientFetcher

TS = 1_700_000_000_000


class FakeSource(QuoteSource):
    def __init__(
        self,
        name: str,
        prices: Optional[Dict[str, float]] = None,
        pairs: Optional[Iterable[str]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self.prices = dict(prices or {})
        self.pairs = list(pairs) if pairs is not None else list(self.prices)
        self.error = error
        self.delay = delay
        self.calls: Counter = Counter()
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    async def _enter(self, op: str) -> None:
        self.calls[op] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def fetch_one(self, pair: str) -> Quote:
        await self._enter("fetch_one")
        if pair not in self.prices:
            raise PermanentSourceError(f"{self.name}: unknown symbol {pair}")
        return Quote(pair=pair, price=self.prices[pair], source=self.name, timestamp=TS)

    async def fetch_all(self) -> List[Quote]:
        await self._enter("fetch_all")
        return [Quote(pair=p, price=v, source=self.name, timestamp=TS) for p, v in self.prices.items()]

    async def list_available_pairs(self) -> List[str]:
        await self._enter("list_available_pairs")
        return list(self.pairs)

    async def close(self) -> None:
        self.closed = True


def quote(pair: str, price: float, source: str) -> Quote:
    return Quote(pair=pair, price=price, source=source, timestamp=TS)


@pytest.fixture
def fetcher():
    return ResilientFetcher(attempts=3, delay_ms=0)


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def abc_sources():
    """A and B quote two pairs, C is down for every call."""
    a = FakeSource("A", {"BTC/USDT": 100.0, "ETH/USDT": 10.0})
    b = FakeSource("B", {"BTC/USDT": 110.0, "ETH/USDT": 10.5})
    c = FakeSource("C", {"BTC/USDT": 105.0}, error=TransientSourceError("connection reset"))
    return [a, b, c]
