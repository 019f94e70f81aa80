"""CryptoSpy - resilient CoinGecko market-data client."""

__version__ = "0.1.0"
