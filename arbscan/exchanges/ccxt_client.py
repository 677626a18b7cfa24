from __future__ import annotations

from typing import Any, Dict, List, Optional

import ccxt.async_support as ccxt  # type: ignore

from ..config import Settings, exchange_credentials
from ..errors import ConfigurationError, PermanentSourceError
from ..models import Quote
from ..utils import get_logger, now_ms
from .base import QuoteSource

logger = get_logger("exchanges")


def _maybe_get_exchange_class(exchange_id: str):
    if not hasattr(ccxt, exchange_id):
        raise ConfigurationError(f"Unsupported exchange id: {exchange_id}")
    return getattr(ccxt, exchange_id)


def create_exchange(exchange_id: str, settings: Settings) -> ccxt.Exchange:
    exchange_id = exchange_id.lower()
    exchange_class = _maybe_get_exchange_class(exchange_id)
    kwargs: Dict[str, Any] = {
        "enableRateLimit": True,
        "timeout": settings.api_timeout_ms,
        "options": {
            "adjustForTimeDifference": True,
        },
    }
    kwargs.update(exchange_credentials(exchange_id))
    return exchange_class(kwargs)


def _ticker_price(ticker: Dict[str, Any]) -> Optional[float]:
    price = ticker.get("last")
    if price is None:
        price = ticker.get("close")
    return float(price) if price is not None else None


class CcxtQuoteSource(QuoteSource):
    """Any exchange ccxt supports; ccxt already emits "BASE/QUOTE" symbols."""

    def __init__(self, exchange: ccxt.Exchange, name: Optional[str] = None) -> None:
        self.exchange = exchange
        self._name = name or getattr(exchange, "name", None) or exchange.id

    @property
    def name(self) -> str:
        return self._name

    async def _load_markets_if_needed(self) -> None:
        if not self.exchange.markets:
            await self.exchange.load_markets()

    def _to_quote(self, ticker: Dict[str, Any], symbol: str) -> Quote:
        price = _ticker_price(ticker)
        if price is None:
            raise PermanentSourceError(f"{self.name}: No price data available for {symbol}")
        return Quote(
            pair=symbol,
            price=price,
            source=self.name,
            timestamp=int(ticker.get("timestamp") or now_ms()),
        )

    async def fetch_one(self, pair: str) -> Quote:
        await self._load_markets_if_needed()
        ticker = await self.exchange.fetch_ticker(pair)
        return self._to_quote(ticker, pair)

    async def fetch_all(self) -> List[Quote]:
        await self._load_markets_if_needed()
        tickers = await self.exchange.fetch_tickers()
        quotes: List[Quote] = []
        for symbol, ticker in (tickers or {}).items():
            if _ticker_price(ticker) is None:
                continue
            quotes.append(self._to_quote(ticker, ticker.get("symbol") or symbol))
        logger.debug("%s: %d tickers", self.name, len(quotes))
        return quotes

    async def list_available_pairs(self) -> List[str]:
        await self._load_markets_if_needed()
        pairs: List[str] = []
        for market in self.exchange.markets.values():
            if not market.get("spot"):
                continue
            # None means the exchange does not report a status
            if market.get("active") is False:
                continue
            pairs.append(market["symbol"])
        return pairs

    async def close(self) -> None:
        await self.exchange.close()
