"""ContractUtility: Web3 initialization and contract ABI loading."""

import json
import os
from pathlib import Path

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.middleware import SignAndSendRawMiddlewareBuilder

# Well-known RPC endpoints by network name.
NETWORKS = {
    "anvil": "http://localhost:8545",
    "sepolia": "https://ethereum-sepolia-rpc.publicnode.com",
}

# First deployment address on a fresh Anvil/Hardhat node.
DEFAULT_CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


class ContractUtility:
    """Utility for Web3 connection and contract ABI loading.

    One instance per node: the signing middleware is bound to the node's key.

    :ivar network: Network RPC URL.
    :ivar account: Signing account of the node.
    :ivar w3: Configured Web3 instance.
    """

    def __init__(self, network_name: str, private_key: str) -> None:
        """Initialize the contract utility.

        :param network_name: Network name or a raw RPC URL.
        :param private_key: Hex private key of the node (with or without 0x).
        """
        # RPC_URL env var overrides the default for the network
        self.network = os.environ.get("RPC_URL") or NETWORKS.get(network_name, network_name)

        self.account: LocalAccount = Account.from_key(private_key)
        self.w3 = Web3(Web3.HTTPProvider(self.network))
        self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self.account))
        self.w3.eth.default_account = self.account.address

    @staticmethod
    def get_contract(contract_name: str) -> list:
        """Fetch the ABI of a contract from the contracts folder.

        :param contract_name: Name of the contract (e.g., "Oracle").
        :returns: Contract ABI.
        """
        output_path = (
            Path(__file__).parent.parent / "contracts" / f"{contract_name}.json"
        ).resolve()

        with open(output_path, "r") as file:
            contract_data = json.load(file)

        return contract_data["abi"]
