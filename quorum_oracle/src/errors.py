"""Exception hierarchy shared by the ledger, the transaction driver and agents.

Ledger errors are precondition failures: the call is rejected and no state
changes. Transaction errors describe a logical intent that never became a
confirmed ledger mutation. Price source failures live next to the fetchers
(see :class:`~quorum_oracle.src.fetchers.base.FetchFailed`).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .LedgerClient import TxReceipt


class OracleError(Exception):
    """Base exception for all oracle errors."""

    pass


class LedgerError(OracleError):
    """Raised when the ledger rejects a call without changing state."""

    pass


class NotRegistered(LedgerError):
    """Raised when an identity is not a member of the node registry.

    :ivar identity: The offending identity.
    """

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"{identity} is not a registered node")


class AlreadyRegistered(LedgerError):
    """Raised when registering an identity that is already a member.

    :ivar identity: The offending identity.
    """

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"{identity} is already a registered node")


class DuplicateSubmission(LedgerError):
    """Raised when a node submits twice for the same asset and round.

    :ivar asset: Asset identifier.
    :ivar round_id: Round the duplicate was aimed at.
    :ivar identity: Submitting node.
    """

    def __init__(self, asset: str, round_id: int, identity: str):
        self.asset = asset
        self.round_id = round_id
        self.identity = identity
        super().__init__(
            f"{identity} already submitted {asset} for round {round_id}"
        )


class TransactionError(OracleError):
    """Base exception for transaction submission and confirmation failures."""

    pass


class SubmissionRejected(TransactionError):
    """Raised when the ledger refuses a transaction outright."""

    pass


class ConfirmationTimeout(TransactionError):
    """Raised when a sent transaction is not included in time.

    :ivar tx_hash: Hash of the pending transaction.
    """

    def __init__(self, tx_hash: str, timeout: float, reason: str | None = None):
        self.tx_hash = tx_hash
        self.timeout = timeout
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Transaction {tx_hash} not confirmed after {timeout}s{detail}"
        )


class ConfirmationFailed(TransactionError):
    """Raised when a transaction is included but reverted.

    :ivar receipt: Receipt of the reverted transaction.
    """

    def __init__(self, receipt: TxReceipt):
        self.receipt = receipt
        reason = f": {receipt.revert_reason}" if receipt.revert_reason else ""
        super().__init__(
            f"Transaction {receipt.tx_hash} reverted in block "
            f"{receipt.block_number}{reason}"
        )


class RegistrationFailed(TransactionError):
    """Raised when a node cannot join the registry."""

    pass
