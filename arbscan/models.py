from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .errors import InvalidInputError


@dataclass(frozen=True)
class Quote:
    pair: str  # normalized "BASE/QUOTE"
    price: float
    source: str
    timestamp: int  # unix ms

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quote":
        missing = [f for f in ("pair", "price", "source", "timestamp") if data.get(f) is None]
        if missing:
            raise InvalidInputError(f"Missing required fields for Quote: {', '.join(missing)}")
        return cls(
            pair=str(data["pair"]),
            price=float(data["price"]),
            source=str(data["source"]),
            timestamp=int(data["timestamp"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ArbitrageOpportunity:
    pair: str
    buy_source: str
    sell_source: str
    buy_price: float
    sell_price: float
    profit_percent: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArbitrageOpportunity":
        required = ("pair", "buy_source", "sell_source", "buy_price", "sell_price", "profit_percent")
        for field in required:
            if data.get(field) is None:
                raise InvalidInputError(f"Missing required field: {field}")
        return cls(
            pair=str(data["pair"]),
            buy_source=str(data["buy_source"]),
            sell_source=str(data["sell_source"]),
            buy_price=float(data["buy_price"]),
            sell_price=float(data["sell_price"]),
            profit_percent=float(data["profit_percent"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
