"""Aggregator: compute the published value of a finalized round.

Algorithm:
    1. Keep only entries flagged as submitted
    2. Sum their values
    3. Publish the floor of the mean; the remainder is discarded
    4. Return None if nothing was submitted

.. code-block:: python

    >>> result = aggregate_submissions([Submission(50000, True), Submission(51000, True)])
    >>> result.value
    50500
    >>> aggregate_submissions([]).success
    False
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Submission:
    """A node's observation for one asset and round.

    :ivar value: Submitted price, fixed point with 8 implied decimals.
    :ivar submitted: Whether the node has submitted for the round.
    """

    value: int = 0
    submitted: bool = False


EMPTY_SUBMISSION = Submission()


@dataclass(frozen=True)
class RoundAggregate:
    """Result of aggregating one round.

    :ivar value: Published value, or None if there was nothing to publish.
    :ivar count: Number of submitted entries.
    :ivar total: Sum of submitted values.
    """

    value: int | None
    count: int
    total: int

    @property
    def success(self) -> bool:
        """Check if the round produced a value to publish."""
        return self.value is not None


def aggregate_submissions(submissions: Iterable[Submission]) -> RoundAggregate:
    """Average the submitted values of a round using integer division.

    :param submissions: Every submission recorded for the round.
    :returns: RoundAggregate with the floored mean, or value None when empty.
    """
    count = 0
    total = 0
    for submission in submissions:
        if not submission.submitted:
            continue
        count += 1
        total += submission.value

    if count == 0:
        return RoundAggregate(value=None, count=0, total=0)

    return RoundAggregate(value=total // count, count=count, total=total)
