"""Unit tests for NodeRegistry."""

import pytest

from quorum_oracle.src.errors import AlreadyRegistered, NotRegistered
from quorum_oracle.src.Registry import NodeRegistry


def make_registry(*nodes: str) -> NodeRegistry:
    registry = NodeRegistry()
    for node in nodes:
        registry.register(node)
    return registry


class TestNodeRegistryRegister:
    """Test node registration."""

    def test_empty_at_genesis(self) -> None:
        """A new registry has no members."""
        registry = NodeRegistry()
        assert registry.size() == 0
        assert len(registry) == 0
        assert registry.members() == []

    def test_register_adds_member(self) -> None:
        """Registered nodes are members, in insertion order."""
        registry = make_registry("0xA", "0xB")
        assert registry.is_member("0xA")
        assert registry.is_member("0xB")
        assert "0xA" in registry
        assert registry.members() == ["0xA", "0xB"]
        assert registry.size() == 2

    def test_register_twice_fails(self) -> None:
        """Registering an existing member raises AlreadyRegistered."""
        registry = make_registry("0xA")
        with pytest.raises(AlreadyRegistered) as exc_info:
            registry.register("0xA")

        assert exc_info.value.identity == "0xA"
        assert registry.members() == ["0xA"]

    def test_non_member(self) -> None:
        """Unknown nodes are not members."""
        registry = make_registry("0xA")
        assert not registry.is_member("0xB")


class TestNodeRegistryUnregister:
    """Test node removal and swap-remove bookkeeping."""

    def test_unregister_removes_member(self) -> None:
        """Removed nodes are no longer members."""
        registry = make_registry("0xA", "0xB")
        registry.unregister("0xA")

        assert not registry.is_member("0xA")
        assert registry.size() == 1

    def test_unregister_swaps_last_into_slot(self) -> None:
        """The last node moves into the removed node's slot."""
        registry = make_registry("0xA", "0xB", "0xC", "0xD")
        registry.unregister("0xB")

        assert registry.members() == ["0xA", "0xD", "0xC"]
        assert registry.index_of("0xD") == 1
        assert registry.at(1) == "0xD"

    def test_unregister_last_node(self) -> None:
        """Removing the last slot just truncates."""
        registry = make_registry("0xA", "0xB", "0xC")
        registry.unregister("0xC")

        assert registry.members() == ["0xA", "0xB"]
        assert registry.index_of("0xB") == 1

    def test_unregister_only_node(self) -> None:
        """Removing the only node empties the registry."""
        registry = make_registry("0xA")
        registry.unregister("0xA")

        assert registry.size() == 0
        assert registry.members() == []

    def test_positions_stay_consistent(self) -> None:
        """Every member's recorded slot matches the order list after removals."""
        registry = make_registry(*[f"0x{i}" for i in range(6)])
        for node in ("0x0", "0x3", "0x5"):
            registry.unregister(node)

        for index, node in enumerate(registry.members()):
            assert registry.index_of(node) == index
            assert registry.at(index) == node

    def test_unregister_non_member_fails(self) -> None:
        """Removing a non-member raises NotRegistered and changes nothing."""
        registry = make_registry("0xA", "0xB")
        with pytest.raises(NotRegistered):
            registry.unregister("0xZ")

        assert registry.members() == ["0xA", "0xB"]
        assert registry.index_of("0xB") == 1

    def test_unregister_twice_fails(self) -> None:
        """A node cannot be removed twice."""
        registry = make_registry("0xA", "0xB")
        registry.unregister("0xA")
        with pytest.raises(NotRegistered):
            registry.unregister("0xA")
        assert registry.members() == ["0xB"]

    def test_reregister_after_removal(self) -> None:
        """A removed node can register again and is appended."""
        registry = make_registry("0xA", "0xB")
        registry.unregister("0xA")
        registry.register("0xA")

        assert registry.members() == ["0xB", "0xA"]


class TestNodeRegistryQueries:
    """Test index-based queries."""

    def test_index_of_non_member(self) -> None:
        """index_of raises NotRegistered for unknown nodes."""
        with pytest.raises(NotRegistered):
            NodeRegistry().index_of("0xA")

    def test_at_out_of_range(self) -> None:
        """at raises IndexError outside the order list."""
        registry = make_registry("0xA")
        with pytest.raises(IndexError):
            registry.at(1)
        with pytest.raises(IndexError):
            registry.at(-1)

    def test_members_is_snapshot(self) -> None:
        """Mutating the returned list does not affect the registry."""
        registry = make_registry("0xA")
        members = registry.members()
        members.append("0xB")
        assert registry.members() == ["0xA"]
