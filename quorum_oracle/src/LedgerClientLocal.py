"""LedgerClientLocal: ledger client backed by an in-process OracleLedger.

Used for local development and tests. A single LocalChain wraps the shared
ledger and plays the role of the network: it checks nonces and gas price,
includes each transaction in its own block and keeps the receipts. Calls the
ledger rejects are still included, as reverted transactions.
"""

from __future__ import annotations

import logging
import threading

from web3 import Web3

from .errors import ConfirmationTimeout, LedgerError, SubmissionRejected
from .LedgerClient import LedgerClient, TxOptions, TxReceipt
from .RoundLedger import OracleLedger, Round
from .TxIntent import RegisterIntent, SubmitPriceIntent, TxIntent, UnregisterIntent

logger = logging.getLogger(__name__)

# Gas price quoted and required by the local chain (1 gwei).
LOCAL_GAS_PRICE = 1_000_000_000

# Flat gas charged per included transaction.
LOCAL_GAS_USED = 21_000


class LocalChain:
    """Serializes transactions from all local clients into blocks.

    :ivar ledger: The oracle state machine.
    :ivar gas_price: Minimum accepted gas price.
    :ivar block_number: Number of the last produced block.
    """

    def __init__(
        self, ledger: OracleLedger | None = None, gas_price: int = LOCAL_GAS_PRICE
    ) -> None:
        self.ledger = ledger or OracleLedger()
        self.gas_price = gas_price
        self.block_number = 0
        self._lock = threading.Lock()
        self._nonces: dict[str, int] = {}
        self._receipts: dict[str, TxReceipt] = {}

    def pending_nonce(self, sender: str) -> int:
        with self._lock:
            return self._nonces.get(sender, 0)

    def include(self, sender: str, intent: TxIntent, options: TxOptions) -> str:
        """Validate, execute and mine a transaction.

        :returns: Transaction hash.
        :raises SubmissionRejected: On a nonce mismatch or an underpriced
            transaction. Nothing is mined in that case.
        """
        with self._lock:
            expected = self._nonces.get(sender, 0)
            if options.nonce != expected:
                raise SubmissionRejected(
                    f"nonce mismatch for {sender}: got {options.nonce}, "
                    f"expected {expected}"
                )
            if options.gas_price < self.gas_price:
                raise SubmissionRejected(
                    f"transaction underpriced: {options.gas_price} < {self.gas_price}"
                )

            self._nonces[sender] = expected + 1
            self.block_number += 1
            tx_hash = Web3.keccak(
                text=f"{sender}/{options.nonce}/{intent.describe()}"
            ).to_0x_hex()

            status = 1
            revert_reason = None
            try:
                self._execute(sender, intent)
            except (LedgerError, ValueError) as exc:
                status = 0
                revert_reason = type(exc).__name__
                logger.debug(f"Transaction {tx_hash} reverted: {exc}")

            self._receipts[tx_hash] = TxReceipt(
                tx_hash=tx_hash,
                block_number=self.block_number,
                status=status,
                gas_used=LOCAL_GAS_USED,
                revert_reason=revert_reason,
            )
            return tx_hash

    def _execute(self, sender: str, intent: TxIntent) -> None:
        if isinstance(intent, RegisterIntent):
            self.ledger.register(sender)
        elif isinstance(intent, UnregisterIntent):
            self.ledger.unregister(sender)
        elif isinstance(intent, SubmitPriceIntent):
            self.ledger.submit(intent.asset, sender, intent.price)
        else:
            raise TypeError(f"Unsupported intent: {intent!r}")

    def receipt(self, tx_hash: str) -> TxReceipt | None:
        with self._lock:
            return self._receipts.get(tx_hash)


class LedgerClientLocal(LedgerClient):
    """Ledger client for a single node on a LocalChain.

    :ivar chain: Shared local chain.
    :ivar address: Node address.
    """

    def __init__(self, chain: LocalChain, address: str) -> None:
        self.chain = chain
        self.address = address

    def suggest_options(self, gas_limit: int) -> TxOptions:
        return TxOptions(
            nonce=self.chain.pending_nonce(self.address),
            gas_price=self.chain.gas_price,
            gas_limit=gas_limit,
        )

    def send(self, intent: TxIntent, options: TxOptions) -> str:
        return self.chain.include(self.address, intent, options)

    def wait_for_receipt(self, tx_hash: str, timeout: float) -> TxReceipt:
        # Local transactions are mined on send.
        receipt = self.chain.receipt(tx_hash)
        if receipt is None:
            raise ConfirmationTimeout(tx_hash, timeout)
        return receipt

    def is_node(self, identity: str) -> bool:
        return self.chain.ledger.is_node(identity)

    def get_quorum(self) -> int:
        return self.chain.ledger.get_quorum()

    def get_round(self, asset: str) -> Round:
        return self.chain.ledger.get_round(asset)

    def current_price(self, asset: str) -> int:
        return self.chain.ledger.current_price(asset)

    def has_submitted(self, asset: str, round_id: int, identity: str) -> bool:
        return self.chain.ledger.has_submitted(asset, round_id, identity)

    def node_price(self, asset: str, round_id: int, identity: str) -> int:
        return self.chain.ledger.node_price(asset, round_id, identity)

    def nodes(self, index: int) -> str:
        return self.chain.ledger.nodes(index)
