"""
Price fetchers for external quote sources.

Usage:
    from quorum_oracle.src.fetchers import CoinGeckoFetcher

    fetcher = CoinGeckoFetcher(api_key="your-demo-key")
    price = await fetcher.fetch("ethereum")
"""

from .base import BaseFetcher, FetcherError, FetcherHTTPError, FetchFailed
from .coingecko import CoinGeckoFetcher

__all__ = [
    # Base classes
    "BaseFetcher",
    "FetcherError",
    "FetcherHTTPError",
    "FetchFailed",
    # Fetcher implementations
    "CoinGeckoFetcher",
]
