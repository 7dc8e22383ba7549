"""
Tests for NodeRegistry: selection, health circuit and address-book swaps.
"""

import pytest

from hiero_client.network.node import Node, normalize_address
from hiero_client.network.registry import NodeRegistry
from hiero_client.runtime.errors import NoHealthyNodesError, ValidationError
from hiero_client.runtime.ids import AccountId


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def network(count: int):
    return {f"10.0.0.{i + 1}:50211": f"0.0.{i + 3}" for i in range(count)}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return NodeRegistry(network(4), min_backoff=0.25, max_backoff=2.0, clock=clock)


def ids(nodes):
    return [str(n.account_id) for n in nodes]


class TestSelection:
    """Candidate selection."""

    def test_round_robin_covers_every_node(self, registry):
        first = ids(registry.choose_candidates(2))
        second = ids(registry.choose_candidates(2))
        assert first == ["0.0.3", "0.0.4"]
        assert second == ["0.0.5", "0.0.6"]
        assert ids(registry.choose_candidates(2)) == ["0.0.3", "0.0.4"]

    def test_candidates_are_distinct_and_bounded(self, registry):
        chosen = registry.choose_candidates(10)
        assert len(chosen) == 4
        assert len(set(ids(chosen))) == 4

    def test_preferred_nodes_come_first(self, registry):
        chosen = registry.choose_candidates(2, preferred=[AccountId.of("0.0.6")])
        assert ids(chosen)[0] == "0.0.6"
        assert len(chosen) == 2

    def test_unhealthy_nodes_are_skipped(self, registry):
        registry.record_failure("0.0.3")
        chosen = ids(registry.choose_candidates(4))
        assert "0.0.3" not in chosen
        assert len(chosen) == 3

    def test_all_in_backoff(self, registry):
        for i in range(3, 7):
            registry.record_failure(f"0.0.{i}")
        with pytest.raises(NoHealthyNodesError):
            registry.choose_candidates(1)

    def test_empty_registry(self):
        with pytest.raises(NoHealthyNodesError, match="No nodes are configured"):
            NodeRegistry().choose_candidates(1)

    def test_default_node_count(self, clock):
        assert NodeRegistry(network(1), clock=clock).default_node_count() == 1
        assert NodeRegistry(network(4), clock=clock).default_node_count() == 2
        assert NodeRegistry(network(9), clock=clock).default_node_count() == 3


class TestHealth:
    """Backoff circuit."""

    def test_backoff_doubles_up_to_max(self, registry, clock):
        backoffs = []
        for _ in range(5):
            registry.record_failure("0.0.3")
            backoffs.append(registry.get("0.0.3").backoff)
        assert backoffs == [0.25, 0.5, 1.0, 2.0, 2.0]

    def test_readmitted_after_backoff(self, registry, clock):
        registry.record_failure("0.0.3")
        assert not registry.is_healthy("0.0.3")
        assert registry.earliest_readmit(["0.0.3"]) == clock.now + 0.25
        clock.advance(0.25)
        assert registry.is_healthy("0.0.3")

    def test_success_resets_backoff(self, registry):
        registry.record_failure("0.0.3")
        registry.record_failure("0.0.3")
        registry.record_success("0.0.3")
        node = registry.get("0.0.3")
        assert node.backoff == 0.0
        assert registry.is_healthy("0.0.3")
        assert node.success_count == 1
        assert node.failure_count == 2
        registry.record_failure("0.0.3")
        assert node.backoff == 0.25

    def test_busy_counts_without_backoff(self, registry):
        registry.record_busy("0.0.4")
        node = registry.get("0.0.4")
        assert node.failure_count == 1
        assert registry.is_healthy("0.0.4")

    def test_unknown_node_is_ignored(self, registry):
        registry.record_failure("0.0.99")
        assert not registry.is_healthy("0.0.99")
        assert registry.earliest_readmit(["0.0.99"]) is None

    def test_invalid_backoff_bounds(self):
        with pytest.raises(ValidationError):
            NodeRegistry(min_backoff=2.0, max_backoff=1.0)


class TestAddressBookSwap:
    """replace_from_address_book."""

    def test_kept_nodes_keep_health(self, registry):
        registry.record_failure("0.0.3")
        kept = registry.get("0.0.3")
        registry.replace_from_address_book([
            ("10.0.0.1:50211", "0.0.3"),
            ("10.0.0.9:50211", "0.0.9"),
        ])
        assert registry.get("0.0.3") is kept
        assert kept.failure_count == 1
        assert registry.get("0.0.4") is None
        assert len(registry) == 2

    def test_moved_node_changes_address(self, registry):
        registry.replace_from_address_book([("10.1.1.1:50211", "0.0.3")])
        assert registry.get("0.0.3").address == "10.1.1.1:50211"
        assert registry.get_by_address("10.1.1.1:50211").account_id == AccountId.of("0.0.3")
        assert registry.get_by_address("10.0.0.1:50211") is None

    def test_node_with_several_endpoints(self, registry):
        registry.replace_from_address_book([
            ("a.example:50211", "0.0.3"),
            ("b.example:50211", "0.0.3"),
        ])
        assert len(registry) == 1
        assert registry.get_by_address("a.example") is registry.get_by_address("b.example")

    def test_duplicate_endpoint_rejected(self, registry):
        with pytest.raises(ValidationError):
            registry.replace_from_address_book([
                ("a.example:50211", "0.0.3"),
                ("a.example:50211", "0.0.4"),
            ])
        assert len(registry) == 4

    def test_network_snapshot(self, registry):
        snapshot = registry.network
        assert snapshot["10.0.0.1:50211"] == AccountId.of("0.0.3")
        assert len(snapshot) == 4


class TestNode:
    def test_normalize_address(self):
        assert normalize_address("host") == "host:50211"
        assert normalize_address(" host:50212 ") == "host:50212"
        with pytest.raises(ValueError):
            normalize_address("")

    def test_channel_is_lazy(self):
        node = Node("0.0.3", "127.0.0.1:50211")
        assert not node.has_channel
        node.close()
        assert not node.has_channel
