"""Pytest configuration and fixtures."""

import asyncio
from typing import Any, Callable

import httpx
import pytest

from cryptospy.config.settings import Settings
from cryptospy.ingestion.base import ApiContext, build_client
from cryptospy.ingestion.cache import TTLCache
from cryptospy.ingestion.dedup import RequestDeduplicator
from cryptospy.ingestion.rate_limiter import SlidingWindowRateLimiter


class FakeClock:
    """Simulated monotonic clock; ``sleep`` advances it."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class MockApi:
    """Routes CoinGecko paths to scripted outcomes.

    Outcomes per path are consumed in order; the last one repeats. An
    outcome is a JSON-able payload, an ``httpx.Response``, an httpx
    exception class to raise, or a function of the request returning one
    of those.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, *outcomes: Any) -> "MockApi":
        self.routes.setdefault(path, []).extend(outcomes)
        return self

    def calls(self, path: str | None = None) -> int:
        if path is None:
            return len(self.requests)
        return sum(1 for r in self.requests if self._path(r) == path)

    @staticmethod
    def _path(request: httpx.Request) -> str:
        return request.url.path.split("/api/v3/", 1)[-1]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcomes = self.routes.get(self._path(request))
        if not outcomes:
            return httpx.Response(404, json={"error": "Cryptocurrency not found"})

        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if callable(outcome) and not isinstance(outcome, type):
            outcome = outcome(request)
        if isinstance(outcome, type) and issubclass(outcome, Exception):
            raise outcome("simulated failure", request=request)
        if isinstance(outcome, httpx.Response):
            return outcome
        return httpx.Response(200, json=outcome)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api() -> MockApi:
    return MockApi()


@pytest.fixture
def make_context(clock: FakeClock, api: MockApi) -> Callable[..., ApiContext]:
    """Build an isolated context on the fake clock and mock transport."""

    def _make(**overrides: Any) -> ApiContext:
        settings = Settings(_env_file=None, **overrides)
        client = build_client(settings, transport=httpx.MockTransport(api))
        return ApiContext(
            settings=settings,
            cache=TTLCache(max_size=settings.cache_max_size, clock=clock),
            rate_limiter=SlidingWindowRateLimiter(
                max_requests=settings.rate_limit_max_requests,
                window=settings.rate_limit_window_seconds,
                max_backoff_multiplier=settings.max_backoff_multiplier,
                clock=clock,
                sleep=clock.sleep,
            ),
            deduplicator=RequestDeduplicator(),
            client=client,
            sleep=clock.sleep,
        )

    return _make


@pytest.fixture
def ctx(make_context: Callable[..., ApiContext]) -> ApiContext:
    return make_context()
