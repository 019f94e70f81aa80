"""Domain records shaped from CoinGecko responses."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Cryptocurrency:
    """Market row for a single coin."""

    id: str
    symbol: str
    name: str
    current_price: float | None
    market_cap: float | None
    price_change_percentage_24h: float | None
    image: str | None = None
    market_cap_rank: int | None = None
    total_volume: float | None = None

    @classmethod
    def from_market(cls, coin: dict[str, Any]) -> "Cryptocurrency":
        """Build from a /coins/markets row."""
        return cls(
            id=coin["id"],
            symbol=coin["symbol"].upper(),
            name=coin["name"],
            current_price=coin.get("current_price"),
            market_cap=coin.get("market_cap"),
            price_change_percentage_24h=coin.get("price_change_percentage_24h"),
            image=coin.get("image"),
            market_cap_rank=coin.get("market_cap_rank"),
            total_volume=coin.get("total_volume"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "current_price": self.current_price,
            "market_cap": self.market_cap,
            "price_change_percentage_24h": self.price_change_percentage_24h,
            "image": self.image,
            "market_cap_rank": self.market_cap_rank,
            "total_volume": self.total_volume,
        }


@dataclass(frozen=True)
class PriceDataPoint:
    """Price at a millisecond epoch timestamp."""

    timestamp: int
    price: float

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "price": self.price}


@dataclass(frozen=True)
class PriceHistory:
    """Price series for every chart range of one coin."""

    crypto_id: str
    hourly: tuple[PriceDataPoint, ...] = field(default_factory=tuple)
    daily: tuple[PriceDataPoint, ...] = field(default_factory=tuple)
    weekly: tuple[PriceDataPoint, ...] = field(default_factory=tuple)
    monthly: tuple[PriceDataPoint, ...] = field(default_factory=tuple)
    is_synthetic: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "crypto_id": self.crypto_id,
            "hourly": [p.to_dict() for p in self.hourly],
            "daily": [p.to_dict() for p in self.daily],
            "weekly": [p.to_dict() for p in self.weekly],
            "monthly": [p.to_dict() for p in self.monthly],
            "is_synthetic": self.is_synthetic,
        }
