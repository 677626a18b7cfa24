from __future__ import annotations

from typing import Iterable, List

from ..config import Settings
from ..errors import ConfigurationError
from ..utils import get_logger
from .base import QuoteSource
from .ccxt_client import CcxtQuoteSource, create_exchange
from .jbex import JbexQuoteSource

logger = get_logger("exchanges")


def build_sources(settings: Settings) -> List[QuoteSource]:
    if not settings.exchanges:
        raise ConfigurationError("No exchanges configured")

    sources: List[QuoteSource] = []
    for ex in settings.exchanges:
        ex = ex.lower()
        if ex == "jbex":
            sources.append(
                JbexQuoteSource(
                    api_url=settings.jbex_api_url,
                    api_key=settings.jbex_api_key,
                    timeout_ms=settings.api_timeout_ms,
                )
            )
        else:
            sources.append(CcxtQuoteSource(create_exchange(ex, settings)))
    return sources


async def close_sources(sources: Iterable[QuoteSource]) -> None:
    # Ensure HTTP sessions are closed
    for source in sources:
        try:
            await source.close()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed closing %s: %s", source.name, exc)


__all__ = [
    "QuoteSource",
    "CcxtQuoteSource",
    "JbexQuoteSource",
    "build_sources",
    "close_sources",
    "create_exchange",
]
