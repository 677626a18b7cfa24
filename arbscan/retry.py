from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import aiohttp
import ccxt.async_support as ccxt  # type: ignore

from .errors import ExchangeProtocolError, ExchangeUnavailableError, TransientSourceError
from .utils import get_logger

logger = get_logger("fetch")

T = TypeVar("T")

# ccxt.NetworkError covers RequestTimeout, ExchangeNotAvailable and DDoSProtection/RateLimitExceeded
TRANSIENT_ERRORS = (
    ccxt.NetworkError,
    TransientSourceError,
    aiohttp.ClientConnectionError,
    asyncio.TimeoutError,
    ConnectionError,
)


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TRANSIENT_ERRORS)


class ResilientFetcher:
    """Runs one source call with a bounded, fixed-delay retry on network errors.

    Anything that is not a network-class error (unknown symbol, malformed
    payload, exchange rejection) is re-raised immediately as
    ExchangeProtocolError without spending the remaining attempts.
    """

    def __init__(self, attempts: int = 3, delay_ms: int = 200) -> None:
        self.attempts = max(1, attempts)
        self.delay_ms = max(0, delay_ms)

    async def call(self, source: str, operation: Callable[[], Awaitable[T]]) -> T:
        last_exc: Optional[BaseException] = None
        for attempt in range(1, self.attempts + 1):
            try:
                return await operation()
            except Exception as exc:  # noqa: BLE001
                if not is_transient(exc):
                    logger.error("%s API error: %s", source, exc)
                    raise ExchangeProtocolError(source, exc) from exc
                last_exc = exc
                if attempt < self.attempts:
                    logger.warning(
                        "%s network error on attempt %d/%d: %s", source, attempt, self.attempts, exc
                    )
                    await asyncio.sleep(self.delay_ms / 1000)
                else:
                    logger.error("%s network error after %d attempts: %s", source, self.attempts, exc)
        raise ExchangeUnavailableError(source, last_exc, self.attempts) from last_exc
