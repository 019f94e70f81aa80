"""CoinGecko cryptocurrency data fetchers.

Each public function returns a ``FetchResult`` whose provenance tells the
caller whether the value is fresh, cached, stale or synthetic. Only
``get_popular_cryptos`` raises, and only when no fresh or stale listing
exists.
"""

import asyncio
import logging
import time
from typing import Any

from cryptospy.config.constants import (
    HISTORY_WINDOWS,
    POPULAR_LIMIT_BUCKETS,
    SEARCH_RESULT_LIMIT,
    TIMEOUTS,
    CacheType,
    Provenance,
)
from cryptospy.ingestion.base import (
    ApiContext,
    FetchResult,
    RequestConfig,
    get_default_context,
    resilient_fetch,
    resolve,
)
from cryptospy.ingestion.errors import MarketDataError, NoDataError
from cryptospy.ingestion.market_data import synthetic
from cryptospy.ingestion.market_data.models import Cryptocurrency, PriceDataPoint, PriceHistory

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


# ============================================================
# Cache keys and shaping
# ============================================================

def normalize_limit(limit: int) -> int:
    """Round a listing size up to a shared bucket to improve cache hits."""
    for bucket in POPULAR_LIMIT_BUCKETS:
        if limit <= bucket:
            return bucket
    return POPULAR_LIMIT_BUCKETS[-1]


def popular_key(bucket: int) -> str:
    return f"popular_cryptos_{bucket}"


def historical_key(coin_id: str, days: int) -> str:
    return f"historical_{coin_id}_{days}"


def price_key(coin_id: str) -> str:
    return f"current_price_{coin_id}"


def history_key(coin_id: str) -> str:
    return f"price_history_{coin_id}"


def chart_interval(days: int) -> str:
    if days <= 1:
        return "hourly"
    if days <= 90:
        return "daily"
    return "weekly"


def _shape_markets(data: Any) -> list[Cryptocurrency]:
    if not isinstance(data, list):
        raise NoDataError("Market payload is not a list")
    try:
        return [Cryptocurrency.from_market(coin) for coin in data]
    except (KeyError, TypeError, AttributeError) as e:
        raise NoDataError(f"Malformed market row: {e}") from e


def _require_market_list(data: Any) -> None:
    _shape_markets(data)


def _require_search(data: Any) -> None:
    if not isinstance(data, dict) or not isinstance(data.get("coins") or [], list):
        raise NoDataError("Malformed search payload")


def _shape_prices(data: Any) -> list[PriceDataPoint]:
    prices = data.get("prices") if isinstance(data, dict) else None
    if not prices:
        raise NoDataError("Empty price series")
    try:
        return [PriceDataPoint(timestamp=int(ts), price=float(price)) for ts, price in prices]
    except (TypeError, ValueError) as e:
        raise NoDataError(f"Malformed price point: {e}") from e


def _require_prices(data: Any) -> None:
    _shape_prices(data)


def _extract_price(data: Any, coin_id: str) -> float:
    entry = data.get(coin_id) if isinstance(data, dict) else None
    if not isinstance(entry, dict):
        raise NoDataError(f"No price entry for {coin_id}")
    price = entry.get("usd")
    if not isinstance(price, (int, float)) or price <= 0:
        raise NoDataError(f"Invalid price data for {coin_id}")
    return float(price)


def _combine(*provenances: Provenance) -> Provenance:
    """Least trustworthy provenance among parts of one result."""
    if Provenance.SYNTHETIC in provenances:
        return Provenance.SYNTHETIC
    if Provenance.STALE in provenances:
        return Provenance.STALE
    if Provenance.FRESH in provenances:
        return Provenance.FRESH
    return Provenance.CACHED


# ============================================================
# Market listing
# ============================================================

async def get_popular_cryptos(
    limit: int = 10,
    ctx: ApiContext | None = None,
) -> FetchResult[list[Cryptocurrency]]:
    """Top coins by market cap."""
    ctx = ctx or get_default_context()
    count = max(limit, 0)
    bucket = normalize_limit(limit)
    cache_key = popular_key(bucket)

    async def fetch() -> FetchResult[list[Cryptocurrency]]:
        result = await resilient_fetch(
            ctx,
            ctx.url("coins/markets"),
            cache_key,
            RequestConfig(cache_type=CacheType.MARKET, timeout=TIMEOUTS["market"]),
            params={
                "vs_currency": "usd",
                "order": "market_cap_desc",
                "per_page": bucket,
                "page": 1,
                "sparkline": "false",
                "price_change_percentage": "24h",
            },
            validate=_require_market_list,
        )
        return result.map(lambda data: _shape_markets(data)[:count])

    async def stale_cache() -> FetchResult[list[Cryptocurrency]] | None:
        data = ctx.cache.get_stale(cache_key)
        if data is None:
            return None
        return FetchResult(_shape_markets(data)[:count], Provenance.STALE)

    return await resolve(f"popular cryptos ({limit})", fetch, stale_cache)


# ============================================================
# Search
# ============================================================

async def search_cryptos(
    query: str,
    ctx: ApiContext | None = None,
) -> FetchResult[list[Cryptocurrency]]:
    """Search coins by name or symbol, with market rows for the top hits."""
    normalized = query.strip().lower()
    if len(normalized) < 2:
        return FetchResult([], Provenance.FRESH)

    ctx = ctx or get_default_context()
    results_key = f"search_results_{normalized}"

    async def fetch() -> FetchResult[list[Cryptocurrency]]:
        search = await resilient_fetch(
            ctx,
            ctx.url("search"),
            f"search_{normalized}",
            RequestConfig(cache_type=CacheType.SEARCH, timeout=TIMEOUTS["search"]),
            params={"query": normalized},
            validate=_require_search,
        )
        coins = search.value.get("coins") or []
        coin_ids = [c["id"] for c in coins[:SEARCH_RESULT_LIMIT] if isinstance(c, dict) and c.get("id")]
        if not coin_ids:
            return FetchResult([], search.provenance)

        markets = await resilient_fetch(
            ctx,
            ctx.url("coins/markets"),
            f"market_batch_{','.join(sorted(coin_ids))}",
            RequestConfig(cache_type=CacheType.MARKET, timeout=TIMEOUTS["search"]),
            params={
                "vs_currency": "usd",
                "ids": ",".join(coin_ids),
                "order": "market_cap_desc",
                "sparkline": "false",
                "price_change_percentage": "24h",
            },
            validate=_require_market_list,
        )
        coins_found = _shape_markets(markets.value)
        ctx.cache.set(results_key, coins_found, ctx.ttl_for(CacheType.SEARCH))
        return FetchResult(coins_found, _combine(search.provenance, markets.provenance))

    async def stale_cache() -> FetchResult[list[Cryptocurrency]] | None:
        cached = ctx.cache.get_stale(results_key)
        if cached is None:
            return None
        return FetchResult(cached, Provenance.STALE)

    async def nothing() -> FetchResult[list[Cryptocurrency]]:
        return FetchResult([], Provenance.FAILED)

    return await resolve(f"search '{normalized}'", fetch, stale_cache, nothing)


# ============================================================
# Prices
# ============================================================

async def _fetch_series(ctx: ApiContext, coin_id: str, days: int) -> FetchResult[list[PriceDataPoint]]:
    """Historical series with orchestrator-level stale fallback only."""
    result = await resilient_fetch(
        ctx,
        ctx.url(f"coins/{coin_id}/market_chart"),
        historical_key(coin_id, days),
        RequestConfig(cache_type=CacheType.HISTORICAL, timeout=TIMEOUTS["historical"]),
        params={"vs_currency": "usd", "days": days, "interval": chart_interval(days)},
        validate=_require_prices,
    )
    return result.map(_shape_prices)


async def get_historical_data(
    coin_id: str,
    days: int,
    ctx: ApiContext | None = None,
) -> FetchResult[list[PriceDataPoint]]:
    """Price series for the trailing number of days."""
    ctx = ctx or get_default_context()
    cache_key = historical_key(coin_id, days)

    async def fetch() -> FetchResult[list[PriceDataPoint]]:
        return await _fetch_series(ctx, coin_id, days)

    async def stale_cache() -> FetchResult[list[PriceDataPoint]] | None:
        data = ctx.cache.get_stale(cache_key)
        if data is None:
            return None
        return FetchResult(_shape_prices(data), Provenance.STALE)

    async def from_current_price() -> FetchResult[list[PriceDataPoint]]:
        price = await get_current_price(coin_id, ctx)
        logger.info(f"Generating placeholder history for {coin_id} from price {price.value}")
        return FetchResult(synthetic.historical_series(price.value, days), Provenance.SYNTHETIC)

    return await resolve(f"historical {coin_id} ({days}d)", fetch, stale_cache, from_current_price)


async def get_current_price(
    coin_id: str,
    ctx: ApiContext | None = None,
) -> FetchResult[float]:
    """Spot USD price."""
    ctx = ctx or get_default_context()
    cache_key = price_key(coin_id)

    async def fetch() -> FetchResult[float]:
        result = await resilient_fetch(
            ctx,
            ctx.url("simple/price"),
            cache_key,
            RequestConfig(cache_type=CacheType.PRICE, timeout=TIMEOUTS["price"]),
            params={"ids": coin_id, "vs_currencies": "usd"},
            validate=lambda data: _extract_price(data, coin_id),
        )
        return result.map(lambda data: _extract_price(data, coin_id))

    async def from_market_listing() -> FetchResult[float] | None:
        for bucket in reversed(POPULAR_LIMIT_BUCKETS):
            data = ctx.cache.get_stale(popular_key(bucket))
            for coin in data if isinstance(data, list) else []:
                if not isinstance(coin, dict):
                    continue
                price = coin.get("current_price")
                if coin.get("id") == coin_id and isinstance(price, (int, float)) and price > 0:
                    return FetchResult(float(price), Provenance.STALE)
        return None

    async def stale_cache() -> FetchResult[float] | None:
        data = ctx.cache.get_stale(cache_key)
        if data is None:
            return None
        return FetchResult(_extract_price(data, coin_id), Provenance.STALE)

    async def from_history() -> FetchResult[float] | None:
        for days in (1, HISTORY_WINDOWS["daily"]):
            data = ctx.cache.get_stale(historical_key(coin_id, days))
            if data is not None:
                return FetchResult(_shape_prices(data)[-1].price, Provenance.STALE)
        return None

    async def mock() -> FetchResult[float]:
        return FetchResult(synthetic.mock_price(coin_id), Provenance.SYNTHETIC)

    return await resolve(
        f"current price {coin_id}",
        fetch,
        from_market_listing,
        stale_cache,
        from_history,
        mock,
    )


# ============================================================
# Aggregated history
# ============================================================

async def get_crypto_price_history(
    coin_id: str,
    ctx: ApiContext | None = None,
) -> FetchResult[PriceHistory]:
    """Hourly, daily, weekly and monthly series for one coin."""
    ctx = ctx or get_default_context()
    cache_key = history_key(coin_id)

    async def cached() -> FetchResult[PriceHistory] | None:
        history = ctx.cache.get(cache_key)
        if history is None:
            return None
        return FetchResult(history, Provenance.CACHED)

    async def fetch_range(days: int) -> FetchResult[list[PriceDataPoint]]:
        try:
            return await _fetch_series(ctx, coin_id, days)
        except MarketDataError as e:
            data = ctx.cache.get_stale(historical_key(coin_id, days))
            if data is None:
                raise
            return FetchResult(_shape_prices(data), Provenance.STALE, e)

    async def fetch() -> FetchResult[PriceHistory]:
        windows = list(HISTORY_WINDOWS.values())
        results = await asyncio.gather(
            *(fetch_range(days) for days in windows),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, MarketDataError):
                raise result
        available = [r for r in results if isinstance(r, FetchResult)]
        if not available:
            raise results[-1]

        # Failed ranges are fabricated around the most recent real price
        base_price = available[0].value[-1].price
        parts = []
        for days, result in zip(windows, results):
            if isinstance(result, FetchResult):
                parts.append(result)
                continue
            logger.warning(f"Synthesizing {days}d series for {coin_id}: {result}")
            series = synthetic.historical_series(base_price, days)
            parts.append(FetchResult(series, Provenance.SYNTHETIC, result))
        daily, weekly, monthly = parts

        one_day_ago = int(time.time() * 1000) - DAY_MS
        hourly = tuple(p for p in daily.value if p.timestamp >= one_day_ago)

        provenance = _combine(*(part.provenance for part in parts))
        error = next((part.error for part in parts if part.error is not None), None)
        history = PriceHistory(
            crypto_id=coin_id,
            hourly=hourly or tuple(daily.value[-24:]),
            daily=tuple(daily.value),
            weekly=tuple(weekly.value),
            monthly=tuple(monthly.value),
            is_synthetic=provenance is Provenance.SYNTHETIC,
        )
        if provenance in (Provenance.FRESH, Provenance.CACHED):
            ctx.cache.set(cache_key, history, ctx.ttl_for(CacheType.HISTORICAL))
        return FetchResult(history, provenance, error)

    async def stale_cache() -> FetchResult[PriceHistory] | None:
        history = ctx.cache.get_stale(cache_key)
        if history is None:
            return None
        return FetchResult(history, Provenance.STALE)

    async def from_current_price() -> FetchResult[PriceHistory]:
        price = await get_current_price(coin_id, ctx)
        series = tuple(synthetic.hourly_series(price.value))
        history = PriceHistory(
            crypto_id=coin_id,
            hourly=series,
            daily=series,
            weekly=series,
            monthly=series,
            is_synthetic=True,
        )
        return FetchResult(history, Provenance.SYNTHETIC)

    return await resolve(
        f"price history {coin_id}",
        cached,
        fetch,
        stale_cache,
        from_current_price,
    )


def get_api_stats(ctx: ApiContext | None = None) -> dict[str, Any]:
    """Cache and rate limiter snapshot for status indicators."""
    return (ctx or get_default_context()).stats()
