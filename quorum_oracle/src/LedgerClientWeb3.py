"""LedgerClientWeb3: ledger client for the Oracle contract on an EVM chain."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hexbytes import HexBytes
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from .ContractUtility import ContractUtility
from .errors import ConfirmationTimeout, SubmissionRejected
from .LedgerClient import LedgerClient, TxOptions, TxReceipt
from .RoundLedger import Round
from .TxIntent import RegisterIntent, SubmitPriceIntent, TxIntent, UnregisterIntent

if TYPE_CHECKING:
    from web3.contract import Contract
    from web3.contract.contract import ContractFunction

logger = logging.getLogger(__name__)


class LedgerClientWeb3(LedgerClient):
    """Ledger client talking JSON-RPC to a deployed Oracle contract.

    Transactions are signed locally by the node's key through the signing
    middleware installed by ContractUtility.

    :ivar w3: Web3 instance with the node's signing middleware.
    :ivar contract: Oracle contract instance.
    :ivar address: Node address.
    """

    def __init__(self, contract_utility: ContractUtility, contract_address: str) -> None:
        """Initialize the client.

        :param contract_utility: Web3 connection bound to the node's key.
        :param contract_address: Address of the deployed Oracle contract.
        """
        self.w3 = contract_utility.w3
        self.address = contract_utility.account.address
        abi = ContractUtility.get_contract("Oracle")
        self.contract: Contract = self.w3.eth.contract(
            address=self.w3.to_checksum_address(contract_address), abi=abi
        )

    def _contract_function(self, intent: TxIntent) -> ContractFunction:
        if isinstance(intent, RegisterIntent):
            return self.contract.functions.addNode()
        if isinstance(intent, UnregisterIntent):
            return self.contract.functions.removeNode()
        if isinstance(intent, SubmitPriceIntent):
            return self.contract.functions.submitPrice(intent.asset, intent.price)
        raise TypeError(f"Unsupported intent: {intent!r}")

    def suggest_options(self, gas_limit: int) -> TxOptions:
        return TxOptions(
            nonce=self.w3.eth.get_transaction_count(self.address, "pending"),
            gas_price=self.w3.eth.gas_price,
            gas_limit=gas_limit,
        )

    def send(self, intent: TxIntent, options: TxOptions) -> str:
        """Build, sign and broadcast the transaction for an intent.

        :raises SubmissionRejected: If the node refuses the transaction
            (underpriced, nonce too low, malformed) or cannot be reached.
        """
        try:
            tx_params = self._contract_function(intent).build_transaction(
                {
                    "from": self.address,
                    "nonce": options.nonce,
                    "gas": options.gas_limit,
                    "gasPrice": options.gas_price,
                }
            )
            tx_hash = self.w3.eth.send_transaction(tx_params)
        except (Web3Exception, ValueError, OSError) as exc:
            raise SubmissionRejected(f"{intent.describe()} rejected: {exc}") from exc
        return HexBytes(tx_hash).to_0x_hex()

    def wait_for_receipt(self, tx_hash: str, timeout: float) -> TxReceipt:
        """Poll for the receipt of a sent transaction.

        :raises ConfirmationTimeout: If the transaction is not included in
            time, or the node stops answering while we wait.
        """
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                HexBytes(tx_hash), timeout=timeout
            )
        except TimeExhausted as exc:
            raise ConfirmationTimeout(tx_hash, timeout) from exc
        except (Web3Exception, OSError) as exc:
            raise ConfirmationTimeout(
                tx_hash, timeout, f"receipt polling failed: {exc}"
            ) from exc

        status = int(receipt["status"])
        revert_reason = None
        if status != 1:
            revert_reason = self._revert_reason(tx_hash, receipt["blockNumber"])

        return TxReceipt(
            tx_hash=HexBytes(receipt["transactionHash"]).to_0x_hex(),
            block_number=int(receipt["blockNumber"]),
            status=status,
            gas_used=int(receipt["gasUsed"]),
            revert_reason=revert_reason,
        )

    def _revert_reason(self, tx_hash: str, block_number: int) -> str | None:
        """Replay a reverted transaction to recover its revert message.

        :returns: The revert message, or None if it cannot be recovered.
        """
        try:
            tx = self.w3.eth.get_transaction(HexBytes(tx_hash))
            self.w3.eth.call(
                {
                    "from": tx["from"],
                    "to": tx["to"],
                    "data": tx["input"],
                    "gas": tx["gas"],
                },
                block_identifier=block_number - 1,
            )
        except ContractLogicError as exc:
            return exc.message
        except (Web3Exception, ValueError, OSError) as exc:
            logger.debug(f"Could not replay {tx_hash}: {exc}")
        return None

    def is_node(self, identity: str) -> bool:
        return self.contract.functions.isNode(identity).call()

    def get_quorum(self) -> int:
        return self.contract.functions.getQuorum().call()

    def get_round(self, asset: str) -> Round:
        round_id, submission_count, last_updated_at = (
            self.contract.functions.rounds(asset).call()
        )
        return Round(
            id=round_id,
            submission_count=submission_count,
            last_finalized_at=last_updated_at,
        )

    def current_price(self, asset: str) -> int:
        return self.contract.functions.currentPrices(asset).call()

    def has_submitted(self, asset: str, round_id: int, identity: str) -> bool:
        return self.contract.functions.hasSubmitted(asset, round_id, identity).call()

    def node_price(self, asset: str, round_id: int, identity: str) -> int:
        return self.contract.functions.nodePrices(asset, round_id, identity).call()

    def nodes(self, index: int) -> str:
        return self.contract.functions.nodes(index).call()
