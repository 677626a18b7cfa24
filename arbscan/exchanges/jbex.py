from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from ..errors import PermanentSourceError, TransientSourceError
from ..models import Quote
from ..utils import get_logger, now_ms
from .base import QuoteSource

logger = get_logger("jbex")

BROKER_INFO = "/openapi/v1/brokerInfo"
TICKER_PRICE = "/openapi/quote/v1/ticker/price"

# Checked in order, longer quotes before their USD tail; JBEX symbols have no separator (BTCUSDT)
KNOWN_QUOTES = ("FDUSD", "BUSD", "TUSD", "USDT", "USDC", "BTC", "ETH", "BNB", "USD")


def normalize_symbol(symbol: str) -> str:
    for quote in KNOWN_QUOTES:
        if symbol.endswith(quote):
            base = symbol[: -len(quote)]
            if base:
                return f"{base}/{quote}"
    return symbol


def denormalize_symbol(pair: str) -> str:
    return pair.replace("/", "")


class JbexQuoteSource(QuoteSource):
    """JBEX public REST API; not available in ccxt."""

    def __init__(
        self,
        api_url: str = "https://api.jbex.com",
        api_key: str = "",
        timeout_ms: int = 5000,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout_ms = timeout_ms
        self._session = session
        self._owns_session = session is None
        self._markets: Optional[List[Dict[str, Any]]] = None

    @property
    def name(self) -> str:
        return "JBEX"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            headers = {"Accept": "application/json"}
            if self.api_key:
                headers["X-BH-APIKEY"] = self.api_key
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout_ms / 1000),
            )
        return self._session

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = self.api_url + path
        try:
            async with self._get_session().get(url, params=params) as resp:
                if resp.status == 429 or resp.status >= 500:
                    raise TransientSourceError(f"JBEX API error: HTTP {resp.status}")
                if resp.status >= 300:
                    logger.error("JBEX API error: HTTP %s for URL: %s", resp.status, url)
                    raise PermanentSourceError(f"JBEX API error: HTTP {resp.status}")
                return await resp.json(content_type=None)
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as exc:
            raise TransientSourceError(f"JBEX request failed: {exc}") from exc
        except (aiohttp.ContentTypeError, ValueError) as exc:
            raise PermanentSourceError(f"JBEX returned malformed JSON: {exc}") from exc

    async def fetch_one(self, pair: str) -> Quote:
        data = await self._get_json(TICKER_PRICE, {"symbol": denormalize_symbol(pair)})
        # {"symbol": "BTCUSDT", "price": "42150.50"}
        if not isinstance(data, dict) or data.get("price") is None:
            raise PermanentSourceError(f"JBEX: No price data available for {pair}")
        return Quote(pair=pair, price=float(data["price"]), source=self.name, timestamp=now_ms())

    async def fetch_all(self) -> List[Quote]:
        data = await self._get_json(TICKER_PRICE)
        if not isinstance(data, list):
            raise PermanentSourceError("JBEX: Invalid ticker price response format")
        ts = now_ms()
        quotes: List[Quote] = []
        for item in data:
            if not isinstance(item, dict) or item.get("symbol") is None or item.get("price") is None:
                continue
            quotes.append(
                Quote(
                    pair=normalize_symbol(item["symbol"]),
                    price=float(item["price"]),
                    source=self.name,
                    timestamp=ts,
                )
            )
        return quotes

    async def fetch_markets(self) -> List[Dict[str, Any]]:
        if self._markets is not None:
            return self._markets

        data = await self._get_json(BROKER_INFO)
        if not isinstance(data, dict) or not isinstance(data.get("symbols"), list):
            raise PermanentSourceError("JBEX: Invalid brokerInfo response format")

        markets: List[Dict[str, Any]] = []
        for item in data["symbols"]:
            if not isinstance(item, dict) or not item.get("symbol"):
                continue
            symbol = normalize_symbol(item["symbol"])
            parts = symbol.split("/")
            if len(parts) != 2:
                continue
            markets.append(
                {
                    "id": item["symbol"],
                    "symbol": symbol,
                    "base": parts[0],
                    "quote": parts[1],
                    "active": item.get("status", "TRADING") == "TRADING",
                    "spot": True,
                }
            )
        self._markets = markets
        return markets

    async def list_available_pairs(self) -> List[str]:
        markets = await self.fetch_markets()
        return [m["symbol"] for m in markets if m["active"] and m["spot"]]

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None
