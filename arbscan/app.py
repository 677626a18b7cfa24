from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

from .cache import BaseCache, create_cache
from .config import Settings
from .exchanges import QuoteSource, build_sources, close_sources
from .pairs import CommonPairsResolver
from .retry import ResilientFetcher
from .usecases import BestPriceUseCase, FindArbitrageUseCase


@dataclass
class App:
    sources: List[QuoteSource]
    cache: BaseCache
    resolver: CommonPairsResolver
    best_price: BestPriceUseCase
    find_arbitrage: FindArbitrageUseCase


def build_app(
    cfg: Settings,
    sources: Optional[List[QuoteSource]] = None,
    cache: Optional[BaseCache] = None,
) -> App:
    if sources is None:
        sources = build_sources(cfg)
    if cache is None:
        cache = create_cache(cfg.cache_backend, cfg.cache_db_path)
    fetcher = ResilientFetcher(attempts=cfg.retry_attempts, delay_ms=cfg.retry_delay_ms)
    resolver = CommonPairsResolver(
        sources,
        cache,
        fetcher,
        ttl_seconds=cfg.pairs_cache_ttl_seconds,
        concurrency=cfg.concurrency,
        timeout=cfg.fetch_deadline,
    )
    return App(
        sources=sources,
        cache=cache,
        resolver=resolver,
        best_price=BestPriceUseCase(sources, fetcher, cfg.concurrency, cfg.fetch_deadline),
        find_arbitrage=FindArbitrageUseCase(sources, resolver, fetcher, cfg.concurrency, cfg.fetch_deadline),
    )


@asynccontextmanager
async def open_app(cfg: Settings) -> AsyncIterator[App]:
    app = build_app(cfg)
    try:
        yield app
    finally:
        await close_sources(app.sources)
