"""CoinGecko simple price source.

GET {base}/simple/price?ids={asset}&vs_currencies={currency}
    -> {"ethereum": {"usd": 2500.5}}

Unknown ids come back as an empty object rather than an error status.
"""

import logging

from .base import BaseFetcher, FetcherError, FetchFailed

logger = logging.getLogger(__name__)

PRO_KEY_PREFIX = "pro:"


class CoinGeckoFetcher(BaseFetcher):
    """Quotes from the CoinGecko API, addressed by coin id ("bitcoin").

    Without a key the public endpoint is used. A key is sent as a demo key
    unless it is written as ``pro:<key>``, which switches to the pro endpoint.
    """

    name = "coingecko"
    BASE_URL_FREE = "https://api.coingecko.com/api/v3"
    BASE_URL_PRO = "https://pro-api.coingecko.com/api/v3"

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        self.is_pro = bool(api_key) and api_key.lower().startswith(PRO_KEY_PREFIX)
        if self.is_pro:
            api_key = api_key[len(PRO_KEY_PREFIX):]
        super().__init__(api_key=api_key, timeout=timeout)

    @property
    def base_url(self) -> str:
        return self.BASE_URL_PRO if self.is_pro else self.BASE_URL_FREE

    @property
    def api_header(self) -> tuple[str, str] | None:
        if not self.has_api_key:
            return None
        return ("x-cg-pro-api-key" if self.is_pro else "x-cg-demo-api-key", self.api_key)

    async def fetch(self, asset: str, currency: str = "usd") -> float:
        """Fetch the spot price of a coin.

        :param asset: CoinGecko coin id (e.g., "ethereum").
        :param currency: Quote currency (default: "usd").
        :returns: Current price.
        :raises FetchFailed: On request errors, unknown coins or bad payloads.
        """
        header = self.api_header
        try:
            data = await self._get_json(
                f"{self.base_url}/simple/price",
                params={"ids": asset, "vs_currencies": currency},
                headers=dict([header]) if header else None,
            )
        except FetcherError as e:
            raise FetchFailed(asset, str(e)) from e

        quote = data.get(asset) if isinstance(data, dict) else None
        if quote is None:
            raise FetchFailed(asset, "coin not found")
        if not isinstance(quote, dict) or currency not in quote:
            raise FetchFailed(asset, f"no {currency} quote")

        try:
            price = float(quote[currency])
        except (TypeError, ValueError) as e:
            raise FetchFailed(asset, f"bad {currency} quote {quote[currency]!r}") from e

        logger.debug(f"[{self.name}] {asset}: {price} {currency}")
        return price
