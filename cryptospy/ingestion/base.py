"""Resilient fetch orchestration: cache, dedup, rate limit, retry, fallback."""

import asyncio
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Awaitable, Callable, Generic, TypeVar

import httpx

from cryptospy.config.constants import API_KEY_HEADER, CacheType, Provenance
from cryptospy.config.settings import Settings, get_settings
from cryptospy.ingestion.cache import TTLCache
from cryptospy.ingestion.dedup import RequestDeduplicator
from cryptospy.ingestion.errors import (
    HttpError,
    MarketDataError,
    NoDataError,
    RateLimited,
    RequestTimeout,
    TransportError,
)
from cryptospy.ingestion.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Value tagged with its provenance."""

    value: T
    provenance: Provenance
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.provenance is not Provenance.FAILED

    @property
    def is_stale(self) -> bool:
        return self.provenance is Provenance.STALE

    @property
    def is_synthetic(self) -> bool:
        return self.provenance is Provenance.SYNTHETIC

    def map(self, func: Callable[[T], Any]) -> "FetchResult[Any]":
        """Shape the value, keeping provenance and error."""
        return FetchResult(func(self.value), self.provenance, self.error)


@dataclass
class RequestConfig:
    """Per-call policy. ``None`` fields fall back to settings."""

    cache_type: CacheType = CacheType.MARKET
    timeout: float | None = None
    retries: int | None = None


@dataclass
class ApiContext:
    """Shared state every outbound call runs against."""

    settings: Settings
    cache: TTLCache
    rate_limiter: SlidingWindowRateLimiter
    deduplicator: RequestDeduplicator
    client: httpx.AsyncClient
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep, repr=False)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        **kwargs: Any,
    ) -> "ApiContext":
        """Build a context with fresh cache, limiter and deduplicator."""
        settings = settings or get_settings()
        return cls(
            settings=settings,
            cache=TTLCache(max_size=settings.cache_max_size),
            rate_limiter=SlidingWindowRateLimiter(
                max_requests=settings.rate_limit_max_requests,
                window=settings.rate_limit_window_seconds,
                max_backoff_multiplier=settings.max_backoff_multiplier,
            ),
            deduplicator=RequestDeduplicator(),
            client=client or build_client(settings),
            **kwargs,
        )

    def ttl_for(self, cache_type: CacheType) -> float:
        return {
            CacheType.MARKET: self.settings.cache_ttl_market,
            CacheType.SEARCH: self.settings.cache_ttl_search,
            CacheType.HISTORICAL: self.settings.cache_ttl_historical,
            CacheType.PRICE: self.settings.cache_ttl_price,
        }[cache_type]

    def url(self, path: str) -> str:
        return f"{self.settings.coingecko_base_url.rstrip('/')}/{path.lstrip('/')}"

    def stats(self) -> dict[str, Any]:
        return {
            "cache": self.cache.stats(),
            "rate_limiter": self.rate_limiter.stats(),
        }

    async def aclose(self) -> None:
        await self.client.aclose()


def build_client(settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Create the HTTP client with default headers."""
    headers = {
        "Accept": "application/json",
        "User-Agent": settings.user_agent,
    }
    if settings.coingecko_api_key:
        headers[API_KEY_HEADER] = settings.coingecko_api_key.get_secret_value()
    return httpx.AsyncClient(headers=headers, timeout=settings.request_timeout, transport=transport)


@lru_cache
def get_default_context() -> ApiContext:
    """Get the process-wide context."""
    return ApiContext.from_settings()


async def reset_default_context() -> None:
    """Close and forget the process-wide context."""
    if get_default_context.cache_info().currsize:
        await get_default_context().aclose()
    get_default_context.cache_clear()


def backoff_delay(ctx: ApiContext, attempt: int) -> float:
    """Exponential delay before the next attempt, capped."""
    base = ctx.settings.backoff_base * (2 ** attempt)
    return min(base * ctx.rate_limiter.backoff_multiplier, ctx.settings.backoff_max)


async def _attempt(ctx: ApiContext, url: str, params: dict[str, Any] | None, timeout: float) -> Any:
    """Dispatch one GET and classify the outcome."""
    try:
        response = await ctx.client.get(url, params=params, timeout=timeout)
    except httpx.TimeoutException as e:
        raise RequestTimeout(url, timeout) from e
    except httpx.TransportError as e:
        raise TransportError(f"Network error: {e}", url=url) from e

    ctx.rate_limiter.record_request()

    if response.status_code == 429:
        ctx.rate_limiter.record_failure()
        raise RateLimited(url)
    if not response.is_success:
        raise HttpError(url, response.status_code, response.reason_phrase)

    try:
        return response.json()
    except ValueError as e:
        raise NoDataError(f"Invalid JSON payload: {e}", url=url, status_code=response.status_code) from e


async def resilient_fetch(
    ctx: ApiContext,
    url: str,
    cache_key: str | None = None,
    config: RequestConfig | None = None,
    params: dict[str, Any] | None = None,
    validate: Callable[[Any], None] | None = None,
) -> FetchResult[Any]:
    """Fetch JSON through cache, deduplication, rate limiting and retries.

    Args:
        ctx: Shared cache/limiter/deduplicator/client
        url: Absolute request URL
        cache_key: Cache and dedup key; the URL is used for dedup when absent
        config: Per-call TTL class, timeout and retry count
        params: Query parameters
        validate: Raises NoDataError for unusable payloads, before caching

    Returns:
        FetchResult tagged CACHED, FRESH or STALE

    Raises:
        HttpError, NoDataError: Immediately, without retry
        MarketDataError: Last retryable error when retries are exhausted
            and no stale value exists
    """
    config = config or RequestConfig()
    timeout = config.timeout if config.timeout is not None else ctx.settings.request_timeout
    retries = config.retries if config.retries is not None else ctx.settings.request_retries

    if cache_key:
        cached = ctx.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit: {cache_key}")
            return FetchResult(cached, Provenance.CACHED)

    async def _fetch() -> FetchResult[Any]:
        last_error: MarketDataError | None = None

        for attempt in range(retries + 1):
            if not ctx.rate_limiter.can_make_request():
                await ctx.rate_limiter.wait_for_next_slot()

            try:
                data = await _attempt(ctx, url, params, timeout)
                if validate is not None:
                    validate(data)
            except MarketDataError as e:
                if not e.retryable:
                    logger.error(f"Request failed for {url}: {e}")
                    raise
                last_error = e
                if attempt < retries:
                    delay = backoff_delay(ctx, attempt)
                    logger.warning(
                        f"Request failed ({e}), retrying in {delay:.1f}s "
                        f"(attempt {attempt + 1}/{retries + 1})"
                    )
                    await ctx.sleep(delay)
                continue

            ctx.rate_limiter.record_success()
            if cache_key:
                ttl = ctx.ttl_for(config.cache_type)
                ctx.cache.set(cache_key, data, ttl)
                logger.debug(f"Cached {cache_key} for {ttl:.0f}s")
            return FetchResult(data, Provenance.FRESH)

        ctx.rate_limiter.record_failure()

        if cache_key:
            stale = ctx.cache.get_stale(cache_key)
            if stale is not None:
                logger.warning(f"All attempts failed for {url}, serving stale {cache_key}")
                return FetchResult(stale, Provenance.STALE, last_error)

        logger.error(f"All {retries + 1} attempts failed for {url}: {last_error}")
        raise last_error or MarketDataError("All retry attempts failed", url=url)

    return await ctx.deduplicator.deduplicate(cache_key or url, _fetch)


Strategy = Callable[[], Awaitable["FetchResult[Any] | None"]]


async def resolve(label: str, *strategies: Strategy) -> FetchResult[Any]:
    """Evaluate recovery strategies in order; the first result wins.

    A strategy returns None when it does not apply and raises when it
    fails. If none yields a result, the last error is re-raised.
    """
    last_error: Exception | None = None
    for strategy in strategies:
        try:
            result = await strategy()
        except MarketDataError as e:
            logger.warning(f"{label}: {getattr(strategy, '__name__', 'strategy')} failed: {e}")
            last_error = e
            continue
        if result is not None:
            if result.provenance in (Provenance.STALE, Provenance.SYNTHETIC, Provenance.FAILED):
                logger.warning(f"{label}: serving {result.provenance.value} data")
            if last_error is not None and result.error is None:
                result = FetchResult(result.value, result.provenance, last_error)
            return result

    raise last_error or MarketDataError(f"{label}: no data available")
