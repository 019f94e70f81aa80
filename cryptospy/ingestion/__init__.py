"""Resilient data ingestion for CryptoSpy."""

from .base import ApiContext, FetchResult, RequestConfig, get_default_context, resilient_fetch
from .cache import TTLCache
from .dedup import RequestDeduplicator
from .rate_limiter import SlidingWindowRateLimiter

__all__ = [
    "ApiContext",
    "FetchResult",
    "RequestConfig",
    "RequestDeduplicator",
    "SlidingWindowRateLimiter",
    "TTLCache",
    "get_default_context",
    "resilient_fetch",
]
