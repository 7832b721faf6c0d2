"""TxIntent: the logical ledger mutations a node can request.

Every intent goes through the same TransactionDriver path, so registration,
removal and price submission share acquisition and confirmation handling.

.. code-block:: python

    >>> intent = SubmitPriceIntent("ethereum", 250012345678)
    >>> intent.describe()
    'submitPrice(ethereum, 250012345678)'
    >>> intent.gas_limit
    300000
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union


@dataclass(frozen=True)
class RegisterIntent:
    """Join the node registry (contract ``addNode()``)."""

    gas_limit: ClassVar[int] = 100_000

    def describe(self) -> str:
        return "addNode()"


@dataclass(frozen=True)
class UnregisterIntent:
    """Leave the node registry (contract ``removeNode()``)."""

    gas_limit: ClassVar[int] = 100_000

    def describe(self) -> str:
        return "removeNode()"


@dataclass(frozen=True)
class SubmitPriceIntent:
    """Submit a price for the current round of an asset.

    :ivar asset: Asset identifier (e.g., "ethereum").
    :ivar price: Fixed-point price with 8 implied decimals.
    """

    asset: str
    price: int

    gas_limit: ClassVar[int] = 300_000

    def describe(self) -> str:
        return f"submitPrice({self.asset}, {self.price})"


TxIntent = Union[RegisterIntent, UnregisterIntent, SubmitPriceIntent]
