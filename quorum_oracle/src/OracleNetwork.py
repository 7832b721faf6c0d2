"""OracleNetwork: runs a group of reporter nodes in one process.

Architecture:
    - One ReporterAgent per private key, each with its own ledger client and
      TransactionDriver; nodes never talk to each other directly
    - All coordination goes through the ledger (the Oracle contract, or a
      shared in-process LocalChain when network is "local")
    - Each node gets its own HTTP server on base_port + node index
    - A node that fails to register is dropped; the others keep running
"""

from __future__ import annotations

import asyncio
import logging

from eth_account import Account

from .AgentServer import create_app, serve
from .ContractUtility import DEFAULT_CONTRACT_ADDRESS, ContractUtility
from .errors import OracleError, RegistrationFailed
from .fetchers import BaseFetcher, CoinGeckoFetcher
from .LedgerClient import LedgerClient
from .LedgerClientLocal import LedgerClientLocal, LocalChain
from .LedgerClientWeb3 import LedgerClientWeb3
from .ReporterAgent import PRICE_DECIMALS, ReporterAgent
from .RoundLedger import FinalizationEvent
from .TransactionDriver import DEFAULT_CONFIRMATION_TIMEOUT, TransactionDriver

logger = logging.getLogger(__name__)

LOCAL_NETWORK = "local"


class OracleNetwork:
    """Builds and runs the reporter nodes.

    :ivar network_name: "local" or an EVM network name / RPC URL.
    :ivar assets: Asset identifiers every node reports.
    :ivar http_port: Base HTTP port, 0 disables the HTTP servers.
    :ivar chain: The LocalChain in local mode, otherwise None.
    :ivar agents: One ReporterAgent per private key.
    """

    def __init__(
        self,
        network_name: str,
        private_keys: list[str],
        assets: list[str],
        contract_address: str | None = None,
        api_key: str | None = None,
        interval: float = 20.0,
        asset_delay: float = 1.0,
        http_port: int = 8080,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        fetch_timeout: float = 10.0,
        fetcher: BaseFetcher | None = None,
    ) -> None:
        """Initialize the network.

        :param network_name: "local" for the in-process ledger, otherwise a
            network name known to ContractUtility or an RPC URL.
        :param private_keys: One hex private key per node.
        :param assets: Asset identifiers to report (CoinGecko ids).
        :param contract_address: Oracle contract address (EVM networks only).
        :param api_key: Optional CoinGecko API key.
        :param interval: Seconds between submission ticks (default: 20).
        :param asset_delay: Seconds between assets within a tick (default: 1).
        :param http_port: Base HTTP port (default: 8080, 0 to disable).
        :param confirmation_timeout: Seconds to wait for inclusion (default: 120).
        :param fetch_timeout: Timeout for price requests (default: 10).
        :param fetcher: Optional price source, replaces the CoinGecko fetcher.
        :raises ValueError: If no keys or assets are given.
        """
        if not private_keys:
            raise ValueError("At least one private key must be specified")
        if not assets:
            raise ValueError("At least one asset must be specified")

        self.network_name = network_name
        self.assets = list(assets)
        self.http_port = http_port
        self.fetcher = fetcher or CoinGeckoFetcher(api_key=api_key, timeout=fetch_timeout)

        self.chain: LocalChain | None = None
        if network_name == LOCAL_NETWORK:
            self.chain = LocalChain()
            self.chain.ledger.subscribe(self._on_finalization)
        self.contract_address = contract_address or DEFAULT_CONTRACT_ADDRESS

        self.agents: list[ReporterAgent] = []
        for node_id, private_key in enumerate(private_keys):
            client = self._create_client(private_key)
            prefix = f"[Node {node_id}]"
            driver = TransactionDriver(
                client,
                confirmation_timeout=confirmation_timeout,
                log_prefix=prefix,
            )
            self.agents.append(
                ReporterAgent(
                    node_id=node_id,
                    client=client,
                    driver=driver,
                    fetcher=self.fetcher,
                    assets=self.assets,
                    interval=interval,
                    asset_delay=asset_delay,
                )
            )
            logger.info(f"{prefix} Oracle Node initialized")
            logger.info(f"{prefix}   Address: {client.address}")

        logger.info(
            f"OracleNetwork initialized: network={network_name}, "
            f"nodes={len(self.agents)}, assets={self.assets}"
        )

    def _create_client(self, private_key: str) -> LedgerClient:
        """Create the ledger client of one node."""
        if self.chain is not None:
            return LedgerClientLocal(self.chain, Account.from_key(private_key).address)
        contract_utility = ContractUtility(self.network_name, private_key)
        return LedgerClientWeb3(contract_utility, self.contract_address)

    def _on_finalization(self, event: FinalizationEvent) -> None:
        logger.info(
            f"PriceUpdated: {event.asset} = "
            f"${event.published_value / 10**PRICE_DECIMALS:.2f} "
            f"(round {event.round_id})"
        )

    async def _run_agent(self, agent: ReporterAgent, stop: asyncio.Event) -> None:
        """Register a node, then run its submission loop."""
        try:
            await agent.ensure_registered()
        except RegistrationFailed as exc:
            logger.error(f"{agent.log_prefix} Failed to initialize: {exc}")
            return
        await agent.run(stop)

    async def _serve_agent(self, agent: ReporterAgent, stop: asyncio.Event) -> None:
        port = self.http_port + agent.node_id
        try:
            await serve(create_app(self.fetcher, agent.node_id), port, stop)
        except (OSError, SystemExit) as exc:  # uvicorn exits on bind failure
            logger.error(f"{agent.log_prefix} HTTP server error on port {port}: {exc!r}")

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Run all nodes and their HTTP servers until stop is set.

        :param stop: Stop event; runs until cancelled if None.
        """
        stop = stop or asyncio.Event()
        tasks = [self._run_agent(agent, stop) for agent in self.agents]
        if self.http_port:
            tasks += [self._serve_agent(agent, stop) for agent in self.agents]

        logger.info(f"Launching {len(self.agents)} Oracle Nodes")
        try:
            await asyncio.gather(*tasks)
        finally:
            # Clean up shared HTTP client
            await BaseFetcher.close_shared_client()

    async def unregister_all(self) -> int:
        """Remove every node from the registry.

        :returns: Number of nodes that left.
        """
        left = 0
        for agent in self.agents:
            try:
                await agent.leave()
                left += 1
            except OracleError as exc:
                logger.error(f"{agent.log_prefix} Failed to leave: {exc}")
        return left
