"""Market data fetchers - listings, search, prices, history."""

from .crypto_client import (
    get_api_stats,
    get_crypto_price_history,
    get_current_price,
    get_historical_data,
    get_popular_cryptos,
    search_cryptos,
)
from .models import Cryptocurrency, PriceDataPoint, PriceHistory

__all__ = [
    "Cryptocurrency",
    "PriceDataPoint",
    "PriceHistory",
    "get_api_stats",
    "get_crypto_price_history",
    "get_current_price",
    "get_historical_data",
    "get_popular_cryptos",
    "search_cryptos",
]
