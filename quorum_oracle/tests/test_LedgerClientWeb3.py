"""Unit tests for LedgerClientWeb3 against a mocked Web3 connection."""

from unittest.mock import MagicMock

import pytest
from hexbytes import HexBytes
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from quorum_oracle.src.ContractUtility import ContractUtility
from quorum_oracle.src.errors import ConfirmationTimeout, SubmissionRejected
from quorum_oracle.src.LedgerClient import TxOptions
from quorum_oracle.src.LedgerClientWeb3 import LedgerClientWeb3
from quorum_oracle.src.RoundLedger import Round
from quorum_oracle.src.TxIntent import RegisterIntent, SubmitPriceIntent, UnregisterIntent

TX_HASH = "0x" + "ab" * 32
NODE = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


def make_client() -> LedgerClientWeb3:
    utility = MagicMock()
    utility.account.address = NODE
    return LedgerClientWeb3(utility, "0x5FbDB2315678afecb367f032d93F642f64180aa3")


def receipt(status: int) -> dict:
    return {
        "status": status,
        "blockNumber": 10,
        "gasUsed": 52_000,
        "transactionHash": HexBytes(TX_HASH),
    }


class TestContractAbi:
    def test_oracle_abi(self) -> None:
        """The bundled ABI exposes the Oracle interface."""
        abi = ContractUtility.get_contract("Oracle")
        names = {entry["name"] for entry in abi if entry["type"] in ("function", "event")}

        assert {"addNode", "removeNode", "submitPrice", "PriceUpdated"} <= names
        assert {"isNode", "getQuorum", "rounds", "currentPrices", "hasSubmitted"} <= names
        assert {"nodePrices", "nodes"} <= names


class TestSend:
    def test_intent_mapping(self) -> None:
        """Each intent calls its contract function."""
        client = make_client()
        functions = client.contract.functions
        options = TxOptions(nonce=5, gas_price=7, gas_limit=300_000)
        client.w3.eth.send_transaction.return_value = HexBytes(TX_HASH)

        client.send(RegisterIntent(), options)
        client.send(UnregisterIntent(), options)
        client.send(SubmitPriceIntent("bitcoin", 42), options)

        functions.addNode.assert_called_once_with()
        functions.removeNode.assert_called_once_with()
        functions.submitPrice.assert_called_once_with("bitcoin", 42)
        functions.submitPrice.return_value.build_transaction.assert_called_once_with(
            {"from": NODE, "nonce": 5, "gas": 300_000, "gasPrice": 7}
        )

    def test_returns_hex_hash(self) -> None:
        client = make_client()
        client.w3.eth.send_transaction.return_value = HexBytes(TX_HASH)

        assert client.send(RegisterIntent(), TxOptions(0, 1, 100_000)) == TX_HASH

    def test_rejection(self) -> None:
        """Node-side refusals become SubmissionRejected."""
        client = make_client()
        client.w3.eth.send_transaction.side_effect = ValueError(
            {"code": -32000, "message": "nonce too low"}
        )

        with pytest.raises(SubmissionRejected, match="nonce too low"):
            client.send(RegisterIntent(), TxOptions(0, 1, 100_000))

    def test_suggest_options(self) -> None:
        """Nonce comes from the pending block, gas price from the node."""
        client = make_client()
        client.w3.eth.get_transaction_count.return_value = 3
        client.w3.eth.gas_price = 2_000_000_000

        assert client.suggest_options(100_000) == TxOptions(3, 2_000_000_000, 100_000)
        client.w3.eth.get_transaction_count.assert_called_once_with(NODE, "pending")


class TestWaitForReceipt:
    def test_success(self) -> None:
        client = make_client()
        client.w3.eth.wait_for_transaction_receipt.return_value = receipt(1)

        result = client.wait_for_receipt(TX_HASH, timeout=5.0)

        assert result.success
        assert result.tx_hash == TX_HASH
        assert result.block_number == 10
        assert result.gas_used == 52_000
        assert result.revert_reason is None

    def test_timeout(self) -> None:
        client = make_client()
        client.w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("slow")

        with pytest.raises(ConfirmationTimeout) as exc_info:
            client.wait_for_receipt(TX_HASH, timeout=5.0)
        assert exc_info.value.tx_hash == TX_HASH

    @pytest.mark.parametrize(
        "error",
        [ConnectionError("rpc dropped"), Web3Exception("malformed response")],
    )
    def test_polling_failure(self, error: Exception) -> None:
        """A node that stops answering during the wait is a ConfirmationTimeout."""
        client = make_client()
        client.w3.eth.wait_for_transaction_receipt.side_effect = error

        with pytest.raises(ConfirmationTimeout, match="receipt polling failed") as exc_info:
            client.wait_for_receipt(TX_HASH, timeout=5.0)
        assert exc_info.value.tx_hash == TX_HASH
        assert exc_info.value.__cause__ is error

    def test_revert_reason_recovered(self) -> None:
        """A reverted transaction is replayed one block earlier for its reason."""
        client = make_client()
        client.w3.eth.wait_for_transaction_receipt.return_value = receipt(0)
        client.w3.eth.get_transaction.return_value = {
            "from": NODE,
            "to": "0x5FbDB2315678afecb367f032d93F642f64180aa3",
            "input": "0x",
            "gas": 300_000,
        }
        client.w3.eth.call.side_effect = ContractLogicError(
            "execution reverted: Already submitted for this round"
        )

        result = client.wait_for_receipt(TX_HASH, timeout=5.0)

        assert not result.success
        assert result.revert_reason == "execution reverted: Already submitted for this round"
        assert client.w3.eth.call.call_args.kwargs["block_identifier"] == 9

    def test_revert_reason_unavailable(self) -> None:
        """A replay that does not revert leaves the reason empty."""
        client = make_client()
        client.w3.eth.wait_for_transaction_receipt.return_value = receipt(0)

        result = client.wait_for_receipt(TX_HASH, timeout=5.0)

        assert result.status == 0
        assert result.revert_reason is None


class TestReads:
    def test_get_round(self) -> None:
        client = make_client()
        client.contract.functions.rounds.return_value.call.return_value = (4, 1, 1_700_000_000)

        assert client.get_round("bitcoin") == Round(4, 1, 1_700_000_000)
        client.contract.functions.rounds.assert_called_once_with("bitcoin")

    def test_membership_and_prices(self) -> None:
        client = make_client()
        functions = client.contract.functions
        functions.isNode.return_value.call.return_value = True
        functions.getQuorum.return_value.call.return_value = 3
        functions.currentPrices.return_value.call.return_value = 5050000000000
        functions.hasSubmitted.return_value.call.return_value = False

        assert client.is_node(NODE)
        assert client.get_quorum() == 3
        assert client.current_price("bitcoin") == 5050000000000
        assert not client.has_submitted("bitcoin", 0, NODE)
        functions.hasSubmitted.assert_called_once_with("bitcoin", 0, NODE)

    def test_submissions_and_registry_slots(self) -> None:
        """Per-node round values and registry slots are read from the contract."""
        client = make_client()
        functions = client.contract.functions
        functions.nodePrices.return_value.call.return_value = 5000000000000
        functions.nodes.return_value.call.return_value = NODE

        assert client.node_price("bitcoin", 2, NODE) == 5000000000000
        assert client.nodes(0) == NODE
        functions.nodePrices.assert_called_once_with("bitcoin", 2, NODE)
        functions.nodes.assert_called_once_with(0)
