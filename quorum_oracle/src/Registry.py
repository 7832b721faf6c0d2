"""Registry: the set of reporter nodes allowed to submit prices.

Membership is a set. The ``order`` list mirrors it so nodes can be enumerated
by index; removal swaps the last node into the freed slot and truncates.

.. code-block:: python

    >>> registry = NodeRegistry()
    >>> registry.register("0xA")
    >>> registry.register("0xB")
    >>> registry.register("0xC")
    >>> registry.unregister("0xA")
    >>> registry.members()
    ['0xC', '0xB']
"""

from __future__ import annotations

from .errors import AlreadyRegistered, NotRegistered


class NodeRegistry:
    """Set of node identities with an index-addressable order list.

    :ivar _order: Node identities in slot order.
    :ivar _position: Maps each member to its slot in ``_order``.
    """

    def __init__(self) -> None:
        self._order: list[str] = []
        self._position: dict[str, int] = {}

    def register(self, identity: str) -> None:
        """Add a node to the registry.

        :param identity: Node address.
        :raises AlreadyRegistered: If the node is already a member.
        """
        if identity in self._position:
            raise AlreadyRegistered(identity)
        self._position[identity] = len(self._order)
        self._order.append(identity)

    def unregister(self, identity: str) -> None:
        """Remove a node from the registry.

        :param identity: Node address.
        :raises NotRegistered: If the node is not a member.
        """
        index = self._position.get(identity)
        if index is None:
            raise NotRegistered(identity)

        last = self._order[-1]
        self._order[index] = last
        self._position[last] = index
        self._order.pop()
        del self._position[identity]

    def is_member(self, identity: str) -> bool:
        return identity in self._position

    def size(self) -> int:
        return len(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, identity: object) -> bool:
        return identity in self._position

    def index_of(self, identity: str) -> int:
        """Get the slot currently occupied by a node.

        :raises NotRegistered: If the node is not a member.
        """
        if identity not in self._position:
            raise NotRegistered(identity)
        return self._position[identity]

    def at(self, index: int) -> str:
        """Get the node in a slot.

        :raises IndexError: If the slot is out of range.
        """
        if index < 0 or index >= len(self._order):
            raise IndexError(f"No node at index {index}")
        return self._order[index]

    def members(self) -> list[str]:
        """Snapshot of all members in slot order."""
        return list(self._order)
