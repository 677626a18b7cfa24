from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from .cache import BaseCache
from .collect import fan_out
from .errors import AllSourcesUnavailableError, ConfigurationError, NoCommonPairsError
from .exchanges.base import QuoteSource
from .retry import ResilientFetcher
from .utils import AsyncLimiter, get_logger

logger = get_logger("pairs")

CACHE_KEY = "common_pairs"


@dataclass(frozen=True)
class PairCatalog:
    pairs_by_source: Dict[str, FrozenSet[str]]
    failed_sources: Tuple[str, ...]
    common: Tuple[str, ...]


def intersect_pairs(pair_lists: Sequence[Sequence[str]]) -> List[str]:
    if not pair_lists:
        return []
    common = set(pair_lists[0])
    for pairs in pair_lists[1:]:
        common &= set(pairs)
    return sorted(common)


class CommonPairsResolver:
    """Pairs listed by every reachable source, cached for ``ttl_seconds``."""

    def __init__(
        self,
        sources: Sequence[QuoteSource],
        cache: BaseCache,
        fetcher: Optional[ResilientFetcher] = None,
        ttl_seconds: int = 3600,
        concurrency: int = 16,
        timeout: Optional[float] = None,
    ) -> None:
        self.sources = list(sources)
        self.cache = cache
        self.fetcher = fetcher or ResilientFetcher()
        self.ttl_seconds = ttl_seconds
        self.concurrency = concurrency
        self.timeout = timeout

    async def resolve_common_pairs(self) -> List[str]:
        pairs = await self.cache.remember(CACHE_KEY, self.ttl_seconds, self._compute)
        return list(pairs)

    async def _compute(self) -> List[str]:
        catalog = await self.build_catalog()
        return list(catalog.common)

    async def build_catalog(self) -> PairCatalog:
        """Query every source (no cache) and intersect what the reachable ones list."""
        if not self.sources:
            raise ConfigurationError("No exchanges configured")

        collected = await fan_out(
            self.sources,
            lambda s: s.list_available_pairs(),
            self.fetcher,
            limiter=AsyncLimiter(self.concurrency),
            timeout=self.timeout,
        )
        if not collected.results:
            raise AllSourcesUnavailableError(collected.failed)

        common = intersect_pairs([pairs for _, pairs in collected.results])
        if not common:
            raise NoCommonPairsError([name for name, _ in collected.results])

        logger.info(
            "Common pairs across %d exchanges: %d%s",
            len(collected.results),
            len(common),
            f" (skipped: {', '.join(collected.failed)})" if collected.failed else "",
        )
        return PairCatalog(
            pairs_by_source={name: frozenset(pairs) for name, pairs in collected.results},
            failed_sources=tuple(collected.failed),
            common=tuple(common),
        )

    async def refresh(self) -> PairCatalog:
        """Rebuild the catalog now and store its intersection in the cache."""
        self.clear_cache()
        catalog = await self.build_catalog()
        self.cache.put(CACHE_KEY, list(catalog.common), self.ttl_seconds)
        return catalog

    def clear_cache(self) -> bool:
        return self.cache.forget(CACHE_KEY)
