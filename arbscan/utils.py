import asyncio
import logging
import os
import time


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(f"arbscan.{name}")
    if not logger.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logger.setLevel(level)
        handler = logging.StreamHandler()
        fmt = logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(fmt)
        logger.addHandler(handler)
    return logger


class AsyncLimiter:
    def __init__(self, max_concurrency: int):
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def __aenter__(self):
        await self._semaphore.acquire()

    async def __aexit__(self, exc_type, exc, tb):
        self._semaphore.release()


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def now_ms() -> int:
    return int(time.time() * 1000)
