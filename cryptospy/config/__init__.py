"""Configuration module for CryptoSpy."""

from .settings import settings, get_settings, configure_logging
from .constants import CacheType, Provenance

__all__ = ["settings", "get_settings", "configure_logging", "CacheType", "Provenance"]
