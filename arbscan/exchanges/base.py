from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from ..models import Quote


class QuoteSource(ABC):
    """One exchange or price provider. Pairs are always normalized "BASE/QUOTE"."""

    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def fetch_one(self, pair: str) -> Quote:
        raise NotImplementedError

    @abstractmethod
    async def fetch_all(self) -> List[Quote]:
        raise NotImplementedError

    @abstractmethod
    async def list_available_pairs(self) -> List[str]:
        """Active spot pairs only."""
        raise NotImplementedError

    async def close(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
