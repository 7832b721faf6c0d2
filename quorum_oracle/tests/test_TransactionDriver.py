"""Unit tests for TransactionDriver and the local ledger client."""

from unittest.mock import MagicMock

import pytest

from quorum_oracle.src.errors import (
    ConfirmationFailed,
    ConfirmationTimeout,
    SubmissionRejected,
)
from quorum_oracle.src.LedgerClient import LedgerClient, TxOptions, TxReceipt
from quorum_oracle.src.LedgerClientLocal import (
    LOCAL_GAS_PRICE,
    LedgerClientLocal,
    LocalChain,
)
from quorum_oracle.src.TransactionDriver import TransactionDriver
from quorum_oracle.src.TxIntent import (
    RegisterIntent,
    SubmitPriceIntent,
    UnregisterIntent,
)


def make_driver(chain: LocalChain, address: str) -> TransactionDriver:
    return TransactionDriver(LedgerClientLocal(chain, address), log_prefix=f"[{address}]")


class TestTxIntent:
    """Test intent descriptions and gas limits."""

    def test_gas_limits(self) -> None:
        """Registry calls are cheap, price submission is not."""
        assert RegisterIntent().gas_limit == 100_000
        assert UnregisterIntent().gas_limit == 100_000
        assert SubmitPriceIntent("ethereum", 1).gas_limit == 300_000

    def test_describe(self) -> None:
        """Intents describe the contract call they map to."""
        assert RegisterIntent().describe() == "addNode()"
        assert UnregisterIntent().describe() == "removeNode()"
        assert SubmitPriceIntent("ethereum", 42).describe() == "submitPrice(ethereum, 42)"


class TestDriverLocal:
    """Test the driver against a LocalChain."""

    def test_register_confirms(self) -> None:
        """A register intent is mined and the node becomes a member."""
        chain = LocalChain()
        receipt = make_driver(chain, "0xA").execute(RegisterIntent())

        assert receipt.success
        assert receipt.block_number == 1
        assert receipt.tx_hash.startswith("0x")
        assert chain.ledger.is_node("0xA")

    def test_nonce_advances(self) -> None:
        """Each call quotes a fresh nonce."""
        chain = LocalChain()
        driver = make_driver(chain, "0xA")
        driver.execute(RegisterIntent())
        driver.execute(UnregisterIntent())

        assert chain.pending_nonce("0xA") == 2
        assert chain.block_number == 2
        assert not chain.ledger.is_node("0xA")

    def test_submit_price(self) -> None:
        """A submit intent records the price in the current round."""
        chain = LocalChain()
        driver = make_driver(chain, "0xA")
        driver.execute(RegisterIntent())
        driver.execute(SubmitPriceIntent("ethereum", 250000000000))

        assert chain.ledger.node_price("ethereum", 0, "0xA") == 250000000000

    def test_revert_raises_confirmation_failed(self) -> None:
        """A call the ledger rejects is mined as reverted."""
        chain = LocalChain()
        driver = make_driver(chain, "0xA")

        with pytest.raises(ConfirmationFailed) as exc_info:
            driver.execute(SubmitPriceIntent("ethereum", 1))

        receipt = exc_info.value.receipt
        assert receipt.status == 0
        assert receipt.revert_reason == "NotRegistered"
        # Reverted transactions still consume the nonce
        assert chain.pending_nonce("0xA") == 1

    def test_duplicate_register_reverts(self) -> None:
        """Registering twice reverts with AlreadyRegistered."""
        chain = LocalChain()
        driver = make_driver(chain, "0xA")
        driver.execute(RegisterIntent())

        with pytest.raises(ConfirmationFailed, match="AlreadyRegistered"):
            driver.execute(RegisterIntent())

    def test_underpriced_rejected(self) -> None:
        """Transactions below the chain's gas price are refused outright."""
        chain = LocalChain()
        client = LedgerClientLocal(chain, "0xA")
        options = TxOptions(nonce=0, gas_price=LOCAL_GAS_PRICE - 1, gas_limit=100_000)

        with pytest.raises(SubmissionRejected, match="underpriced"):
            client.send(RegisterIntent(), options)
        assert chain.block_number == 0

    def test_stale_nonce_rejected(self) -> None:
        """Reusing a nonce is refused outright."""
        chain = LocalChain()
        client = LedgerClientLocal(chain, "0xA")
        options = client.suggest_options(100_000)
        client.send(RegisterIntent(), options)

        with pytest.raises(SubmissionRejected, match="nonce"):
            client.send(UnregisterIntent(), options)

    def test_unknown_receipt_times_out(self) -> None:
        """Waiting for an unknown hash raises ConfirmationTimeout."""
        client = LedgerClientLocal(LocalChain(), "0xA")
        with pytest.raises(ConfirmationTimeout):
            client.wait_for_receipt("0xdead", timeout=1.0)

    def test_local_client_reads(self) -> None:
        """State reads go to the shared ledger."""
        chain = LocalChain()
        for node in ("0xA", "0xB", "0xC"):
            make_driver(chain, node).execute(RegisterIntent())
        make_driver(chain, "0xA").execute(SubmitPriceIntent("btc", 100))
        make_driver(chain, "0xB").execute(SubmitPriceIntent("btc", 300))

        client = LedgerClientLocal(chain, "0xC")
        assert client.get_quorum() == 2
        assert client.current_price("btc") == 200
        assert client.get_round("btc").id == 1
        assert client.has_submitted("btc", 0, "0xA")
        assert not client.has_submitted("btc", 0, "0xC")
        assert client.node_price("btc", 0, "0xB") == 300
        assert client.node_price("btc", 0, "0xC") == 0
        assert client.nodes(2) == "0xC"
        with pytest.raises(IndexError):
            client.nodes(3)


class TestDriverFailures:
    """Test failure mapping with a mocked client."""

    def _client(self) -> MagicMock:
        client = MagicMock(spec=LedgerClient)
        client.address = "0xA"
        client.suggest_options.return_value = TxOptions(3, 10, 300_000)
        client.send.return_value = "0xabc"
        return client

    def test_options_fetched_per_call(self) -> None:
        """Parameters are quoted for every call, never cached."""
        client = self._client()
        client.wait_for_receipt.return_value = TxReceipt("0xabc", 7, 1, 21000)
        driver = TransactionDriver(client)

        driver.execute(SubmitPriceIntent("btc", 1))
        driver.execute(SubmitPriceIntent("btc", 2))

        assert client.suggest_options.call_count == 2
        client.suggest_options.assert_called_with(300_000)

    def test_returns_receipt(self) -> None:
        """The confirmed receipt is returned."""
        client = self._client()
        receipt = TxReceipt("0xabc", 7, 1, 21000)
        client.wait_for_receipt.return_value = receipt

        driver = TransactionDriver(client, confirmation_timeout=5.0)
        assert driver.execute(RegisterIntent()) == receipt
        client.wait_for_receipt.assert_called_once_with("0xabc", 5.0)

    def test_option_failure_is_rejection(self) -> None:
        """Failing to quote parameters is a SubmissionRejected."""
        client = self._client()
        client.suggest_options.side_effect = ConnectionError("rpc down")

        with pytest.raises(SubmissionRejected, match="rpc down"):
            TransactionDriver(client).execute(RegisterIntent())
        client.send.assert_not_called()

    def test_send_rejection_propagates(self) -> None:
        """SubmissionRejected from send is propagated without waiting."""
        client = self._client()
        client.send.side_effect = SubmissionRejected("underpriced")

        with pytest.raises(SubmissionRejected):
            TransactionDriver(client).execute(RegisterIntent())
        client.wait_for_receipt.assert_not_called()

    def test_timeout_propagates(self) -> None:
        """ConfirmationTimeout is propagated and not retried."""
        client = self._client()
        client.wait_for_receipt.side_effect = ConfirmationTimeout("0xabc", 1.0)

        with pytest.raises(ConfirmationTimeout):
            TransactionDriver(client).execute(RegisterIntent())
        assert client.send.call_count == 1

    def test_revert_raises(self) -> None:
        """A reverted receipt raises ConfirmationFailed carrying the receipt."""
        client = self._client()
        receipt = TxReceipt("0xabc", 7, 0, 21000, "DuplicateSubmission")
        client.wait_for_receipt.return_value = receipt

        with pytest.raises(ConfirmationFailed) as exc_info:
            TransactionDriver(client).execute(SubmitPriceIntent("btc", 1))
        assert exc_info.value.receipt is receipt
        assert "DuplicateSubmission" in str(exc_info.value)
