"""Market-data constants and enumerations."""

from enum import Enum


class CacheType(str, Enum):
    """Cache TTL classes for outbound calls."""

    MARKET = "market"  # Top-N listings, batched market rows
    SEARCH = "search"  # Text search results
    HISTORICAL = "historical"  # Chart series, aggregated history
    PRICE = "price"  # Spot price


class Provenance(str, Enum):
    """Where a returned value came from."""

    FRESH = "fresh"  # Just fetched from the provider
    CACHED = "cached"  # Served from a non-expired cache entry
    STALE = "stale"  # Expired cache or derived from other cached data
    SYNTHETIC = "synthetic"  # Fabricated placeholder
    FAILED = "failed"  # Nothing available, empty value


# Per-call timeouts (seconds)
TIMEOUTS = {
    "market": 15.0,
    "search": 12.0,
    "historical": 15.0,
    "price": 8.0,
}

# Request-size buckets for the top-N listing
POPULAR_LIMIT_BUCKETS = (10, 50, 100)

# Coins requested from the search endpoint's hit list
SEARCH_RESULT_LIMIT = 10

# Windows (days) composed into an aggregated price history
HISTORY_WINDOWS = {
    "daily": 7,
    "weekly": 30,
    "monthly": 365,
}

API_KEY_HEADER = "x-cg-demo-api-key"

# Typical USD ranges used only for fabricated prices
TYPICAL_PRICE_RANGES = {
    "bitcoin": (40000.0, 70000.0),
    "ethereum": (2000.0, 4000.0),
    "binancecoin": (200.0, 600.0),
    "cardano": (0.3, 1.2),
    "solana": (20.0, 200.0),
    "polkadot": (4.0, 30.0),
    "dogecoin": (0.05, 0.3),
    "avalanche-2": (10.0, 100.0),
    "chainlink": (6.0, 25.0),
    "polygon": (0.5, 2.5),
}

DEFAULT_PRICE_RANGE = (0.1, 100.0)
