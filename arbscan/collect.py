from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from .errors import SourceFailure
from .exchanges.base import QuoteSource
from .retry import ResilientFetcher
from .utils import AsyncLimiter, get_logger

logger = get_logger("collect")

T = TypeVar("T")


@dataclass
class Collected(Generic[T]):
    # (source name, value) in configured source order
    results: List[Tuple[str, T]] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


async def fan_out(
    sources: Sequence[QuoteSource],
    operation: Callable[[QuoteSource], Awaitable[T]],
    fetcher: ResilientFetcher,
    limiter: Optional[AsyncLimiter] = None,
    timeout: Optional[float] = None,
) -> Collected[T]:
    """
    Run one wrapped call per source concurrently and wait for all of them.

    A source whose call fails, or is still running when ``timeout`` expires,
    is listed in ``failed``; the others land in ``results``. Results are
    ordered like ``sources`` regardless of completion order.
    """
    collected: Collected[T] = Collected()
    if not sources:
        return collected

    async def run(source: QuoteSource) -> T:
        if limiter is None:
            return await fetcher.call(source.name, lambda: operation(source))
        async with limiter:
            return await fetcher.call(source.name, lambda: operation(source))

    tasks = [asyncio.ensure_future(run(s)) for s in sources]
    try:
        _, pending = await asyncio.wait(tasks, timeout=timeout)
    except asyncio.CancelledError:
        # caller gave up: no per-source call may outlive this fan-out
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    for source, task in zip(sources, tasks):
        if task in pending:
            logger.warning("%s did not answer within %.1fs", source.name, timeout)
            collected.failed.append(source.name)
            continue
        exc = task.exception()
        if exc is None:
            collected.results.append((source.name, task.result()))
        elif isinstance(exc, SourceFailure):
            logger.warning("Skipping %s: %s", source.name, exc)
            collected.failed.append(source.name)
        else:
            raise exc
    return collected
