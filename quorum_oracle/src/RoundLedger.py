"""RoundLedger: the quorum-based price aggregation state machine.

Every mutating call runs under a single lock, which gives the ledger a total
order over register, unregister and submit calls. The submission that reaches
quorum finalizes its round within the same call, so no reader ever sees a
submission count at or above quorum without the matching publication.

Round lifecycle per asset::

    Open(id) --submit, count < quorum--> Open(id)
    Open(id) --submit, count >= quorum--> [finalize] --> Open(id + 1)

.. code-block:: python

    >>> ledger = OracleLedger()
    >>> for node in ("0xA", "0xB", "0xC"):
    ...     ledger.register(node)
    >>> ledger.submit("bitcoin", "0xA", 50000)
    >>> ledger.submit("bitcoin", "0xB", 51000)
    FinalizationEvent(asset='bitcoin', published_value=50500, round_id=0)
    >>> ledger.current_price("bitcoin")
    50500
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable

from .Aggregator import EMPTY_SUBMISSION, Submission, aggregate_submissions
from .errors import DuplicateSubmission, NotRegistered
from .Registry import NodeRegistry

logger = logging.getLogger(__name__)

# Quorum never drops below this many submissions.
MIN_QUORUM = 3


def quorum(node_count: int) -> int:
    """Minimum number of submissions needed to finalize a round.

    Below three nodes the quorum is fixed at three, so a tiny registry can
    never finalize. From three nodes on it is ``ceil(2n / 3)``.

    :param node_count: Current registry size.
    :returns: Required submission count.
    """
    if node_count < MIN_QUORUM:
        return MIN_QUORUM
    return (node_count * 2 + 2) // 3


@dataclass(frozen=True)
class Round:
    """Immutable snapshot of an asset's current round.

    :ivar id: Round identifier, incremented at each finalization.
    :ivar submission_count: Submissions received in this round.
    :ivar last_finalized_at: Unix time of the previous finalization, 0 if none.
    """

    id: int = 0
    submission_count: int = 0
    last_finalized_at: int = 0


@dataclass(frozen=True)
class FinalizationEvent:
    """Notification emitted when a round is finalized.

    :ivar asset: Asset identifier.
    :ivar published_value: Newly published price.
    :ivar round_id: Id of the round that was finalized.
    """

    asset: str
    published_value: int
    round_id: int


FinalizationListener = Callable[[FinalizationEvent], None]


class OracleLedger:
    """In-process ledger hosting the node registry and per-asset rounds.

    :ivar registry: Registered nodes.
    :ivar clock: Returns the current Unix time.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        """Initialize an empty ledger.

        :param clock: Optional time source used for ``last_finalized_at``.
        """
        self.registry = NodeRegistry()
        self.clock = clock or time.time
        self._lock = threading.RLock()
        self._rounds: dict[str, Round] = {}
        self._submissions: dict[tuple[str, int], dict[str, Submission]] = {}
        self._prices: dict[str, int] = {}
        self._listeners: list[FinalizationListener] = []

    # Registry mutations

    def register(self, identity: str) -> None:
        """Add a node to the registry.

        :raises AlreadyRegistered: If the node is already a member.
        """
        with self._lock:
            self.registry.register(identity)
            logger.info(
                f"Node {identity} registered ({self.registry.size()} nodes, "
                f"quorum {quorum(self.registry.size())})"
            )

    def unregister(self, identity: str) -> None:
        """Remove a node from the registry.

        Submissions the node already made stay on the ledger.

        :raises NotRegistered: If the node is not a member.
        """
        with self._lock:
            self.registry.unregister(identity)
            logger.info(
                f"Node {identity} removed ({self.registry.size()} nodes, "
                f"quorum {quorum(self.registry.size())})"
            )

    # Price submission

    def submit(
        self, asset: str, identity: str, value: int
    ) -> FinalizationEvent | None:
        """Record a node's price and finalize the round if quorum is reached.

        :param asset: Asset identifier.
        :param identity: Submitting node.
        :param value: Fixed-point price, must be non-negative.
        :returns: The FinalizationEvent if this submission finalized the round.
        :raises NotRegistered: If the node is not a member.
        :raises DuplicateSubmission: If the node already submitted this round.
        :raises ValueError: If value is negative.
        """
        with self._lock:
            if not self.registry.is_member(identity):
                raise NotRegistered(identity)
            if value < 0:
                raise ValueError(f"Price must be non-negative, got {value}")

            current = self._rounds.get(asset, Round())
            entries = self._submissions.setdefault((asset, current.id), {})
            if entries.get(identity, EMPTY_SUBMISSION).submitted:
                raise DuplicateSubmission(asset, current.id, identity)

            entries[identity] = Submission(value=value, submitted=True)
            current = replace(current, submission_count=current.submission_count + 1)

            required = quorum(self.registry.size())
            logger.debug(
                f"{asset} round {current.id}: {identity} submitted {value} "
                f"({current.submission_count}/{required})"
            )

            if current.submission_count < required:
                self._rounds[asset] = current
                return None

            return self._finalize(asset, current)

    def _finalize(self, asset: str, current: Round) -> FinalizationEvent | None:
        """Publish the round's average and open the next round.

        Must be called with the lock held.
        """
        entries = self._submissions.get((asset, current.id), {})
        result = aggregate_submissions(entries.values())

        event: FinalizationEvent | None = None
        if result.success:
            assert result.value is not None
            self._prices[asset] = result.value
            event = FinalizationEvent(
                asset=asset, published_value=result.value, round_id=current.id
            )
            logger.info(
                f"{asset} round {current.id} finalized at {result.value} "
                f"(average of {result.count} submissions)"
            )
        else:
            logger.warning(f"{asset} round {current.id} closed with no submissions")

        self._rounds[asset] = Round(
            id=current.id + 1,
            submission_count=0,
            last_finalized_at=int(self.clock()),
        )

        if event is not None:
            self._notify(event)
        return event

    # Notifications

    def subscribe(self, listener: FinalizationListener) -> None:
        """Register a callback invoked on every finalization."""
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: FinalizationListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, event: FinalizationEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # Best-effort delivery
                logger.warning(f"Finalization listener {listener!r} failed: {exc}")

    # Reads

    def is_node(self, identity: str) -> bool:
        with self._lock:
            return self.registry.is_member(identity)

    def nodes(self, index: int) -> str:
        with self._lock:
            return self.registry.at(index)

    def get_quorum(self) -> int:
        with self._lock:
            return quorum(self.registry.size())

    def get_round(self, asset: str) -> Round:
        """Get the current round of an asset (a fresh round if never used)."""
        with self._lock:
            return self._rounds.get(asset, Round())

    def current_price(self, asset: str) -> int:
        """Get the last published price, 0 if the asset was never finalized."""
        with self._lock:
            return self._prices.get(asset, 0)

    def get_submission(self, asset: str, round_id: int, identity: str) -> Submission:
        with self._lock:
            entries = self._submissions.get((asset, round_id), {})
            return entries.get(identity, EMPTY_SUBMISSION)

    def has_submitted(self, asset: str, round_id: int, identity: str) -> bool:
        return self.get_submission(asset, round_id, identity).submitted

    def node_price(self, asset: str, round_id: int, identity: str) -> int:
        return self.get_submission(asset, round_id, identity).value
