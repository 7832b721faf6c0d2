"""LedgerClient: Abstract base class for ledger RPC access.

A ledger client belongs to a single node: it knows the node's address, can
quote fresh transaction parameters for it, send intents on its behalf, wait
for inclusion and read the oracle state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .RoundLedger import Round
from .TxIntent import TxIntent


@dataclass(frozen=True)
class TxOptions:
    """Ordering and pricing parameters for a single transaction.

    :ivar nonce: Sender's next transaction sequence number.
    :ivar gas_price: Gas price in wei.
    :ivar gas_limit: Gas limit for the call.
    """

    nonce: int
    gas_price: int
    gas_limit: int


@dataclass(frozen=True)
class TxReceipt:
    """Confirmation record for an included transaction.

    :ivar tx_hash: Transaction hash (0x-prefixed hex).
    :ivar block_number: Block that included the transaction.
    :ivar status: 1 on success, 0 if reverted.
    :ivar gas_used: Gas consumed.
    :ivar revert_reason: Reason string for reverted transactions, if known.
    """

    tx_hash: str
    block_number: int
    status: int
    gas_used: int = 0
    revert_reason: str | None = None

    @property
    def success(self) -> bool:
        return self.status == 1


class LedgerClient(ABC):
    """Abstract base class for ledger client implementations.

    :ivar address: Address of the node this client signs for.
    """

    address: str

    @abstractmethod
    def suggest_options(self, gas_limit: int) -> TxOptions:
        """Quote fresh transaction parameters for the node.

        :param gas_limit: Gas limit the intent requires.
        :returns: TxOptions with the pending nonce and current gas price.
        """
        pass

    @abstractmethod
    def send(self, intent: TxIntent, options: TxOptions) -> str:
        """Sign and send a transaction for an intent.

        :param intent: Logical mutation to perform.
        :param options: Parameters from :meth:`suggest_options`.
        :returns: Transaction hash.
        :raises SubmissionRejected: If the ledger refuses the transaction.
        """
        pass

    @abstractmethod
    def wait_for_receipt(self, tx_hash: str, timeout: float) -> TxReceipt:
        """Block until a transaction is included.

        :param tx_hash: Hash returned by :meth:`send`.
        :param timeout: Seconds to wait before giving up.
        :returns: The transaction receipt (successful or reverted).
        :raises ConfirmationTimeout: If inclusion does not happen in time.
        """
        pass

    @abstractmethod
    def is_node(self, identity: str) -> bool:
        """Check registry membership."""
        pass

    @abstractmethod
    def get_quorum(self) -> int:
        """Current number of submissions needed to finalize a round."""
        pass

    @abstractmethod
    def get_round(self, asset: str) -> Round:
        """Current round snapshot of an asset."""
        pass

    @abstractmethod
    def current_price(self, asset: str) -> int:
        """Last published price of an asset, 0 before the first finalization."""
        pass

    @abstractmethod
    def has_submitted(self, asset: str, round_id: int, identity: str) -> bool:
        """Check whether a node has submitted for a given round."""
        pass

    @abstractmethod
    def node_price(self, asset: str, round_id: int, identity: str) -> int:
        """Value a node submitted for a given round, 0 if it did not submit."""
        pass

    @abstractmethod
    def nodes(self, index: int) -> str:
        """Node occupying a registry slot.

        :raises IndexError: If the slot is empty (local ledger only; the
            contract call reverts instead).
        """
        pass
