"""Failure taxonomy for outbound market-data calls."""


class MarketDataError(Exception):
    """Base exception for provider calls.

    Attributes:
        url: Request URL that failed
        status_code: HTTP status, when a response was received
        retryable: Whether the orchestrator retries this failure
    """

    retryable: bool = False

    def __init__(self, message: str, url: str = "", status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RateLimited(MarketDataError):
    """Provider answered HTTP 429."""

    retryable = True

    def __init__(self, url: str = ""):
        super().__init__(
            "Rate limit exceeded. Please wait before making more requests.",
            url=url,
            status_code=429,
        )


class RequestTimeout(MarketDataError):
    """Client-side deadline elapsed."""

    retryable = True

    def __init__(self, url: str = "", timeout: float | None = None):
        super().__init__(f"Request timeout after {timeout}s", url=url)
        self.timeout = timeout


class TransportError(MarketDataError):
    """Network failure before a response arrived."""

    retryable = True


class HttpError(MarketDataError):
    """Non-2xx response other than 429."""

    def __init__(self, url: str, status_code: int, reason: str = ""):
        super().__init__(f"API Error {status_code}: {reason}".rstrip(": "), url=url, status_code=status_code)


class NoDataError(MarketDataError):
    """Successful response carrying an empty or invalid payload."""
