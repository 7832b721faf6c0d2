"""Price source interface and the process-wide HTTP client.

Every node in the process quotes prices through one httpx.AsyncClient, so the
connection pool is sized for a handful of nodes polling a single API. A source
only has to turn an asset id into a float; transport and decoding failures are
mapped to FetcherError by :meth:`BaseFetcher._get_json`.

.. code-block:: python

    class MyFetcher(BaseFetcher):
        name = "myfetcher"

        async def fetch(self, asset: str, currency: str = "usd") -> float:
            try:
                data = await self._get_json(f"https://api.example.com/{asset}")
            except FetcherError as e:
                raise FetchFailed(asset, str(e)) from e
            return float(data[currency])
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx

from ..errors import OracleError

logger = logging.getLogger(__name__)


class FetcherError(OracleError):
    """A request to a price source did not produce a usable body."""

    pass


class FetcherHTTPError(FetcherError):
    """The price source answered with a non-2xx status.

    :ivar status_code: Status of the response.
    """

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {body}")


class FetchFailed(FetcherError):
    """No price could be obtained for an asset.

    :ivar asset: Asset identifier that failed.
    """

    def __init__(self, asset: str, reason: str):
        self.asset = asset
        super().__init__(f"Failed to fetch price for {asset}: {reason}")


class BaseFetcher(ABC):
    """A source of spot prices.

    :cvar name: Source identifier used in logs (e.g., "coingecko").
    :cvar DEFAULT_TIMEOUT: Per-request timeout in seconds.
    :ivar api_key: Optional API key.
    :ivar timeout: Per-request timeout in seconds.
    """

    _client: ClassVar[httpx.AsyncClient | None] = None

    name: ClassVar[str] = ""

    DEFAULT_TIMEOUT = 10.0

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        self.api_key = api_key or None
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @property
    def has_api_key(self) -> bool:
        return self.api_key is not None

    @staticmethod
    def get_shared_client() -> httpx.AsyncClient:
        """Return the process-wide client, opening a new one if needed."""
        client = BaseFetcher._client
        if client is None or client.is_closed:
            client = httpx.AsyncClient(
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
                follow_redirects=True,
            )
            BaseFetcher._client = client
        return client

    @staticmethod
    def set_shared_client(client: httpx.AsyncClient | None) -> None:
        """Install a client for all fetchers (e.g., one with a mock transport)."""
        BaseFetcher._client = client

    @staticmethod
    async def close_shared_client() -> None:
        client, BaseFetcher._client = BaseFetcher._client, None
        if client is not None and not client.is_closed:
            await client.aclose()

    @abstractmethod
    async def fetch(self, asset: str, currency: str = "usd") -> float:
        """Fetch the current price of an asset.

        :param asset: Asset identifier understood by the source.
        :param currency: Quote currency (default: "usd").
        :returns: Current price.
        :raises FetchFailed: If the price cannot be obtained.
        """

    async def _get_json(
        self,
        url: str,
        *,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> Any:
        """GET a URL with the shared client and decode its JSON body.

        :raises FetcherHTTPError: On a non-2xx response.
        :raises FetcherError: On timeouts, transport errors or a non-JSON body.
        """
        try:
            response = await self.get_shared_client().get(
                url, params=params, headers=headers, timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise FetcherError(f"Request timeout after {self.timeout}s") from e
        except httpx.RequestError as e:
            raise FetcherError(f"Request failed: {e}") from e

        if response.is_error:
            logger.debug(f"[{self.name}] GET {url} -> {response.status_code}")
            raise FetcherHTTPError(response.status_code, response.text[:200])

        try:
            return response.json()
        except ValueError as e:
            raise FetcherError(f"invalid JSON: {e}") from e
