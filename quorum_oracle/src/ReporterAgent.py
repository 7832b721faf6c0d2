"""ReporterAgent: a node that registers itself and keeps submitting prices.

Lifecycle:
    1. ensure_registered(): join the node registry once, or fail startup
    2. run(): submit every tracked asset immediately, then on every tick
    3. Per asset: fetch quote -> scale to fixed point -> submit -> wait for
       confirmation; failures are logged and the loop moves on

Ledger calls block until confirmation, so they run in a worker thread and the
agent never has more than one unconfirmed transaction in flight.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING

from .errors import NotRegistered, OracleError, RegistrationFailed
from .fetchers import FetchFailed
from .TxIntent import RegisterIntent, SubmitPriceIntent, UnregisterIntent

if TYPE_CHECKING:
    from .fetchers import BaseFetcher
    from .LedgerClient import LedgerClient, TxReceipt
    from .TransactionDriver import TransactionDriver

logger = logging.getLogger(__name__)

# Number of implied decimals in submitted prices.
PRICE_DECIMALS = 8

# Quote currency of submitted prices.
QUOTE_CURRENCY = "usd"


def scale_price(price: float, decimals: int = PRICE_DECIMALS) -> int:
    """Convert a float quote to a fixed-point integer, truncating toward zero.

    :param price: Quote, e.g. 50000.25.
    :param decimals: Implied decimals (default: 8).
    :returns: Scaled integer, e.g. 5000025000000.
    :raises ValueError: If the price is negative or not finite.

    .. code-block:: python

        >>> scale_price(50000.25)
        5000025000000
    """
    if not math.isfinite(price) or price < 0:
        raise ValueError(f"Cannot scale price {price!r}")
    return int(price * 10**decimals)


class ReporterAgent:
    """A single reporter node.

    :ivar node_id: Numeric id used in log prefixes and port assignment.
    :ivar client: Ledger client bound to this node's key.
    :ivar driver: Transaction driver for this node.
    :ivar fetcher: Price source.
    :ivar assets: Asset identifiers to report.
    :ivar interval: Seconds between submission ticks.
    :ivar asset_delay: Seconds to pause between assets within a tick.
    """

    def __init__(
        self,
        node_id: int,
        client: LedgerClient,
        driver: TransactionDriver,
        fetcher: BaseFetcher,
        assets: list[str],
        interval: float = 20.0,
        asset_delay: float = 1.0,
    ) -> None:
        """Initialize the agent.

        :raises ValueError: If no assets are given or the interval is not positive.
        """
        if not assets:
            raise ValueError("At least one asset must be tracked")
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.node_id = node_id
        self.client = client
        self.driver = driver
        self.fetcher = fetcher
        self.assets = list(assets)
        self.interval = interval
        self.asset_delay = max(0.0, asset_delay)
        self.log_prefix = f"[Node {node_id}]"

    @property
    def address(self) -> str:
        return self.client.address

    async def ensure_registered(self) -> None:
        """Make sure this node is in the registry, registering it if needed.

        :raises RegistrationFailed: If membership cannot be checked or the
            registration transaction fails.
        """
        try:
            registered = await asyncio.to_thread(self.client.is_node, self.address)
        except Exception as exc:
            raise RegistrationFailed(
                f"Failed to check registration of {self.address}: {exc}"
            ) from exc

        if registered:
            logger.info(f"{self.log_prefix} Already registered in Oracle")
            return

        logger.info(f"{self.log_prefix} Not registered. Requesting to join Oracle...")
        try:
            await asyncio.to_thread(self.driver.execute, RegisterIntent())
        except Exception as exc:  # Any failure here is fatal to startup
            raise RegistrationFailed(
                f"Registration of {self.address} failed: {exc}"
            ) from exc
        logger.info(f"{self.log_prefix} Successfully registered")

    async def leave(self) -> None:
        """Remove this node from the registry.

        :raises NotRegistered: If the node is not a member.
        :raises TransactionError: If the removal transaction fails.
        """
        registered = await asyncio.to_thread(self.client.is_node, self.address)
        if not registered:
            raise NotRegistered(self.address)
        await asyncio.to_thread(self.driver.execute, UnregisterIntent())
        logger.info(f"{self.log_prefix} Left the Oracle")

    async def submit_price(self, asset: str) -> TxReceipt:
        """Fetch an asset's price and submit it to the current round.

        :param asset: Asset identifier.
        :returns: Receipt of the confirmed submission.
        :raises FetchFailed: If no usable quote is available.
        :raises TransactionError: If the submission is not confirmed.
        """
        price = await self.fetcher.fetch(asset, QUOTE_CURRENCY)
        try:
            scaled = scale_price(price)
        except ValueError as exc:
            raise FetchFailed(asset, str(exc)) from exc

        logger.info(f"{self.log_prefix} Fetched {asset}: ${price:.2f}")
        return await asyncio.to_thread(
            self.driver.execute, SubmitPriceIntent(asset=asset, price=scaled)
        )

    async def run_tick(self, stop: asyncio.Event | None = None) -> int:
        """Submit every tracked asset once.

        :param stop: Optional stop event, checked between assets.
        :returns: Number of confirmed submissions.
        """
        confirmed = 0
        for index, asset in enumerate(self.assets):
            if index > 0 and await _wait_for_stop(stop, self.asset_delay):
                logger.info(f"{self.log_prefix} Stop requested, abandoning tick")
                break
            try:
                await self.submit_price(asset)
                confirmed += 1
            except OracleError as exc:
                logger.error(f"{self.log_prefix} Error submitting {asset}: {exc}")
            except Exception:  # Never let one asset take the loop down
                logger.exception(
                    f"{self.log_prefix} Unexpected error submitting {asset}"
                )
        return confirmed

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Run the submission loop until the stop event is set.

        The first tick starts immediately. Later ticks follow a fixed schedule;
        ticks missed while a slow tick was running are skipped. A submission
        that is waiting for confirmation is allowed to finish.

        :param stop: Stop event; the loop runs forever if None.
        """
        stop = stop or asyncio.Event()
        loop = asyncio.get_running_loop()

        logger.info(
            f"{self.log_prefix} Starting submission loop (interval: {self.interval}s)"
        )
        logger.info(f"{self.log_prefix} Tracking coins: {self.assets}")

        next_tick = loop.time()
        while not stop.is_set():
            await self.run_tick(stop)

            next_tick += self.interval
            now = loop.time()
            while next_tick <= now:
                next_tick += self.interval

            if await _wait_for_stop(stop, next_tick - now):
                break

        logger.info(f"{self.log_prefix} Stopping submission loop")


async def _wait_for_stop(stop: asyncio.Event | None, delay: float) -> bool:
    """Sleep for delay seconds or until stop is set.

    :returns: True if the stop event is set.
    """
    if stop is None:
        await asyncio.sleep(delay)
        return False
    try:
        await asyncio.wait_for(stop.wait(), timeout=delay)
    except asyncio.TimeoutError:
        pass
    return stop.is_set()
