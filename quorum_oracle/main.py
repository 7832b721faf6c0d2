#!/usr/bin/env python3
"""Quorum Price Oracle.

Runs a group of reporter nodes. Every node registers itself in the Oracle
node registry, then periodically fetches prices from CoinGecko and submits
them. The ledger publishes the average once a quorum of nodes has submitted.

Configure with CLI args or env vars. See --help for details.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys

from .src.ContractUtility import DEFAULT_CONTRACT_ADDRESS
from .src.OracleNetwork import LOCAL_NETWORK, OracleNetwork

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Anvil default development keys (DO NOT USE IN PRODUCTION)
ANVIL_PRIVATE_KEYS = [
    "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    "59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
    "5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
    "7c852118294e51e653712a81e05800f419141751be58f605c371e15141b007a6",
]


def parse_list(value: str | None) -> list[str]:
    """Split a comma-separated string, dropping blanks.

    :param value: String like "bitcoin, ethereum".
    :returns: List like ["bitcoin", "ethereum"].
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_port(value: str) -> int:
    """Parse a port given as "8080" or ":8080".

    :raises argparse.ArgumentTypeError: If the value is not a valid port.
    """
    try:
        port = int(value.strip().lstrip(":"))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid port: {value!r}") from e
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"Port out of range: {port}")
    return port


def env_api_key() -> str | None:
    """Read the CoinGecko API key from COINGECKO_API_KEY or API_KEY_COINGECKO."""
    return os.environ.get("COINGECKO_API_KEY") or os.environ.get("API_KEY_COINGECKO")


def env_private_keys() -> str:
    """Read node keys from PRIVATE_KEYS, falling back to PRIVATE_KEY."""
    return os.environ.get("PRIVATE_KEYS") or os.environ.get("PRIVATE_KEY") or ""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Quorum Price Oracle: decentralized price reporting nodes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Four nodes on the in-process ledger
  python -m quorum_oracle.main --network local --coins bitcoin,ethereum

  # Against a local Anvil node with a deployed Oracle contract
  python -m quorum_oracle.main --network anvil \\
      --contract-address 0x5FbDB2315678afecb367f032d93F642f64180aa3

  # Leave the registry
  python -m quorum_oracle.main --network anvil --unregister

Environment variables (CLI args take precedence):
  NETWORK, RPC_URL, CONTRACT_ADDRESS, PRIVATE_KEYS (or PRIVATE_KEY), COINS,
  SUBMISSION_INTERVAL, ASSET_DELAY, HTTP_PORT, CONFIRMATION_TIMEOUT,
  FETCH_TIMEOUT, COINGECKO_API_KEY (or API_KEY_COINGECKO)
""",
    )

    parser.add_argument(
        "--network",
        type=str,
        help=f"'{LOCAL_NETWORK}' for the in-process ledger, or an EVM network "
        "(anvil, sepolia) / RPC URL (default: local)",
        default=os.environ.get("NETWORK") or LOCAL_NETWORK,
    )

    parser.add_argument(
        "--contract-address",
        dest="contract_address",
        type=str,
        help=f"Oracle contract address (default: {DEFAULT_CONTRACT_ADDRESS})",
        default=os.environ.get("CONTRACT_ADDRESS") or DEFAULT_CONTRACT_ADDRESS,
    )

    parser.add_argument(
        "--private-keys",
        dest="private_keys",
        type=str,
        help="Comma-separated node private keys, one node per key "
        "(default: the first four Anvil development keys)",
        default=env_private_keys(),
    )

    parser.add_argument(
        "--coins",
        type=str,
        help="Comma-separated CoinGecko coin ids (e.g., bitcoin,ethereum)",
        default=os.environ.get("COINS") or "ethereum",
    )

    parser.add_argument(
        "--interval",
        type=float,
        help="Seconds between submission rounds (minimum: 1, default: 20)",
        default=float(os.environ.get("SUBMISSION_INTERVAL") or "20"),
    )

    parser.add_argument(
        "--asset-delay",
        dest="asset_delay",
        type=float,
        help="Seconds between coins within a round, for rate limits (default: 1)",
        default=float(os.environ.get("ASSET_DELAY") or "1"),
    )

    parser.add_argument(
        "--http-port",
        dest="http_port",
        type=parse_port,
        help="Base HTTP port; node i listens on port+i, 0 disables (default: 8080)",
        default=os.environ.get("HTTP_PORT") or "8080",
    )

    parser.add_argument(
        "--confirmation-timeout",
        dest="confirmation_timeout",
        type=float,
        help="Seconds to wait for a transaction to be mined (default: 120)",
        default=float(os.environ.get("CONFIRMATION_TIMEOUT") or "120"),
    )

    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Timeout for price requests in seconds (default: 10.0)",
        default=float(os.environ.get("FETCH_TIMEOUT") or "10.0"),
    )

    parser.add_argument(
        "--api-key",
        dest="api_key",
        type=str,
        help="CoinGecko API key (demo key, or pro:<key> for the pro API)",
        default=env_api_key(),
    )

    parser.add_argument(
        "--unregister",
        action="store_true",
        help="Remove the nodes from the registry and exit",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser


async def run_network(network: OracleNetwork, unregister: bool = False) -> None:
    """Run the nodes until SIGINT/SIGTERM, or unregister them and return."""
    if unregister:
        left = await network.unregister_all()
        logger.info(f"{left}/{len(network.agents)} nodes left the Oracle")
        return

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:  # Windows
            pass

    await network.run(stop)


def main() -> None:
    """Main entry point for the Quorum Price Oracle CLI."""
    parser = build_parser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if args.interval < 1:
        parser.error("--interval must be at least 1 second")

    if args.asset_delay < 0:
        parser.error("--asset-delay must not be negative")

    if args.confirmation_timeout <= 0:
        parser.error("--confirmation-timeout must be positive")

    coins = parse_list(args.coins)
    if not coins:
        parser.error("At least one coin must be specified")

    if args.unregister and args.network == LOCAL_NETWORK:
        parser.error("--unregister needs an EVM network; the local ledger starts empty")

    private_keys = parse_list(args.private_keys) or ANVIL_PRIVATE_KEYS

    # Log configuration
    logger.info("=" * 60)
    logger.info(f"Quorum Price Oracle - {len(private_keys)} nodes")
    logger.info("=" * 60)
    logger.info(f"Network:           {args.network}")
    if args.network != LOCAL_NETWORK:
        logger.info(f"Contract:          {args.contract_address}")
    logger.info(f"Coins:             {', '.join(coins)}")
    logger.info(f"Interval:          {args.interval}s")
    logger.info(f"Asset Delay:       {args.asset_delay}s")
    logger.info(
        f"HTTP Ports:        {args.http_port}-{args.http_port + len(private_keys) - 1}"
        if args.http_port else "HTTP Ports:        disabled"
    )
    if args.api_key:
        logger.info(f"CoinGecko API Key loaded (length: {len(args.api_key)})")
    else:
        logger.warning("COINGECKO_API_KEY not set, requests will use free tier")
    logger.info("=" * 60)

    try:
        network = OracleNetwork(
            network_name=args.network,
            private_keys=private_keys,
            assets=coins,
            contract_address=args.contract_address,
            api_key=args.api_key,
            interval=args.interval,
            asset_delay=args.asset_delay,
            http_port=args.http_port,
            confirmation_timeout=args.confirmation_timeout,
            fetch_timeout=args.fetch_timeout,
        )
        asyncio.run(run_network(network, unregister=args.unregister))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
