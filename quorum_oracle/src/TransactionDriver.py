"""TransactionDriver: turn a TxIntent into a confirmed ledger mutation.

Steps for every intent:
    1. Quote fresh nonce and gas price (never cached)
    2. Sign and send the transaction
    3. Block until it is included
    4. Return the receipt, or raise if it was rejected, timed out or reverted

The driver never retries; callers decide what to do on failure.
"""

from __future__ import annotations

import logging

from web3.exceptions import Web3Exception

from .errors import ConfirmationFailed, SubmissionRejected
from .LedgerClient import LedgerClient, TxReceipt
from .TxIntent import TxIntent

logger = logging.getLogger(__name__)

# Seconds to wait for inclusion before giving up.
DEFAULT_CONFIRMATION_TIMEOUT = 120.0


class TransactionDriver:
    """Drives intents of a single node through submission and confirmation.

    :ivar client: Ledger client bound to the node.
    :ivar confirmation_timeout: Seconds to wait for inclusion.
    :ivar log_prefix: Prefix for log lines (e.g., "[Node 0]").
    """

    def __init__(
        self,
        client: LedgerClient,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        log_prefix: str = "",
    ) -> None:
        self.client = client
        self.confirmation_timeout = confirmation_timeout
        self.log_prefix = log_prefix or f"[{client.address}]"

    def execute(self, intent: TxIntent) -> TxReceipt:
        """Submit an intent and wait for its confirmation.

        :param intent: Mutation to perform.
        :returns: Receipt of the successful transaction.
        :raises SubmissionRejected: If parameters cannot be acquired or the
            ledger refuses the transaction.
        :raises ConfirmationTimeout: If the transaction is not included in time.
        :raises ConfirmationFailed: If the transaction is included but reverted.
        """
        try:
            options = self.client.suggest_options(intent.gas_limit)
        except (Web3Exception, ValueError, OSError) as exc:
            raise SubmissionRejected(
                f"Could not acquire transaction parameters: {exc}"
            ) from exc

        tx_hash = self.client.send(intent, options)
        logger.info(
            f"{self.log_prefix} {intent.describe()} tx: {tx_hash} "
            f"(nonce={options.nonce}, gasPrice={options.gas_price})"
        )

        receipt = self.client.wait_for_receipt(tx_hash, self.confirmation_timeout)
        if not receipt.success:
            raise ConfirmationFailed(receipt)

        logger.info(
            f"{self.log_prefix} {intent.describe()} confirmed. "
            f"Block: {receipt.block_number}, Gas: {receipt.gas_used}"
        )
        return receipt
