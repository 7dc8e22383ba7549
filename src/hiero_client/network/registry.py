"""
Node registry: the set of known consensus nodes and their health.

Nodes are indexed by account id and by endpoint. Health follows a simple
circuit: a failed node is kept out of selection until its readmit time,
with the backoff doubling on consecutive failures up to a ceiling, and a
success puts it straight back into rotation.
"""

from __future__ import annotations
import logging
import math
import threading
import time
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from ..runtime.errors import NoHealthyNodesError, ValidationError
from ..runtime.ids import AccountId
from .node import Node, normalize_address

logger = logging.getLogger(__name__)

DEFAULT_MIN_BACKOFF = 0.25
DEFAULT_MAX_BACKOFF = 8.0


class NodeRegistry:
    """
    Thread-safe registry of consensus nodes.

    All mutations happen under one re-entrant lock; read accessors return
    snapshots, so callers never observe a half-applied address-book swap.
    """

    def __init__(
        self,
        network: Optional[Mapping[str, object]] = None,
        min_backoff: float = DEFAULT_MIN_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        transport_security: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the registry.

        Args:
            network: Map of `host:port` endpoint to node account id
            min_backoff: Backoff after a node's first consecutive failure
            max_backoff: Backoff ceiling
            transport_security: Open TLS channels to nodes
            clock: Monotonic clock, injectable for tests
        """
        if min_backoff < 0 or max_backoff < min_backoff:
            raise ValidationError("Backoff bounds must satisfy 0 <= min_backoff <= max_backoff")
        self.min_backoff = min_backoff
        self.max_backoff = max_backoff
        self.transport_security = transport_security
        self._clock = clock
        self._lock = threading.RLock()
        self._nodes: Dict[AccountId, Node] = {}
        self._by_address: Dict[str, Node] = {}
        self._cursor = 0
        if network:
            self.set_network(network)

    # Population

    def set_network(self, network: Mapping[str, object]) -> None:
        """
        Replace the node set from an endpoint → account-id map.

        Same semantics as replace_from_address_book.
        """
        self.replace_from_address_book((address, account) for address, account in network.items())

    def replace_from_address_book(self, entries: Iterable[Sequence]) -> None:
        """
        Atomically swap the node set.

        Nodes whose account id appears in both the old and new sets keep
        their health state and open channel; if their endpoint changed the
        channel is reopened lazily. Removed nodes are closed.

        Args:
            entries: (endpoint, account id) pairs
        """
        new_nodes: Dict[AccountId, Node] = {}
        new_by_address: Dict[str, Node] = {}
        for address, account in entries:
            account_id = AccountId.of(account)
            address = normalize_address(address)
            if address in new_by_address:
                raise ValidationError(f"Endpoint {address} is listed for more than one node")
            node = new_nodes.get(account_id)
            if node is None:
                node = Node(account_id, address, self.transport_security)
                new_nodes[account_id] = node
            new_by_address[address] = node

        with self._lock:
            removed = []
            for account_id, node in list(new_nodes.items()):
                existing = self._nodes.get(account_id)
                if existing is None:
                    continue
                if existing.address != node.address:
                    existing.close()
                    existing.address = node.address
                new_nodes[account_id] = existing
                for address, candidate in new_by_address.items():
                    if candidate is node:
                        new_by_address[address] = existing
            for account_id, node in self._nodes.items():
                if account_id not in new_nodes:
                    removed.append(node)
            added = [a for a in new_nodes if a not in self._nodes]
            self._nodes = new_nodes
            self._by_address = new_by_address
            self._cursor = 0

        for node in removed:
            node.close()
        if removed or added:
            logger.info(f"Node set updated: {len(new_nodes)} nodes, {len(added)} added, {len(removed)} removed")

    # Selection

    def _sorted_nodes(self) -> List[Node]:
        return [self._nodes[a] for a in sorted(self._nodes)]

    def choose_candidates(self, k: int, preferred: Optional[Sequence[AccountId]] = None) -> List[Node]:
        """
        Choose up to k distinct healthy nodes.

        Preferred healthy nodes come first, in the given order; the
        remaining slots are filled round-robin across calls, so every
        healthy node is handed out once before any is handed out twice.

        Raises:
            NoHealthyNodesError: If no node is configured or every node is in backoff
        """
        with self._lock:
            now = self._clock()
            ordered = self._sorted_nodes()
            healthy = [n for n in ordered if n.is_healthy(now)]
            if not healthy:
                if not ordered:
                    raise NoHealthyNodesError("No nodes are configured")
                raise NoHealthyNodesError()

            chosen: List[Node] = []
            for account in preferred or ():
                node = self._nodes.get(AccountId.of(account))
                if node is not None and node.is_healthy(now) and node not in chosen:
                    chosen.append(node)
                if len(chosen) >= k:
                    return chosen

            start = self._cursor % len(healthy)
            taken = 0
            for offset in range(len(healthy)):
                if len(chosen) >= k:
                    break
                node = healthy[(start + offset) % len(healthy)]
                taken = offset + 1
                if node not in chosen:
                    chosen.append(node)
            self._cursor = start + taken
            return chosen

    def default_node_count(self) -> int:
        """Nodes a request is frozen with by default: a third of the healthy set, at least one."""
        return max(1, math.ceil(len(self.healthy_nodes()) / 3))

    # Health

    def record_success(self, account_id: AccountId) -> None:
        with self._lock:
            node = self._nodes.get(AccountId.of(account_id))
            if node is None:
                return
            node.backoff = 0.0
            node.readmit_time = 0.0
            node.success_count += 1

    def record_failure(self, account_id: AccountId) -> None:
        """Put a node in backoff: min_backoff first, doubling up to max_backoff."""
        with self._lock:
            node = self._nodes.get(AccountId.of(account_id))
            if node is None:
                return
            if node.backoff <= 0:
                node.backoff = self.min_backoff
            else:
                node.backoff = min(node.backoff * 2, self.max_backoff)
            node.readmit_time = self._clock() + node.backoff
            node.failure_count += 1
            logger.debug(f"Node {node.account_id} in backoff for {node.backoff:.2f}s")

    def record_busy(self, account_id: AccountId) -> None:
        """Count a busy answer against the node without changing its backoff."""
        with self._lock:
            node = self._nodes.get(AccountId.of(account_id))
            if node is not None:
                node.failure_count += 1

    # Accessors

    def get(self, account_id: AccountId) -> Optional[Node]:
        with self._lock:
            return self._nodes.get(AccountId.of(account_id))

    def get_by_address(self, address: str) -> Optional[Node]:
        with self._lock:
            return self._by_address.get(normalize_address(address))

    def is_healthy(self, account_id: AccountId) -> bool:
        with self._lock:
            node = self._nodes.get(AccountId.of(account_id))
            return node is not None and node.is_healthy(self._clock())

    def healthy_nodes(self) -> List[Node]:
        with self._lock:
            now = self._clock()
            return [n for n in self._sorted_nodes() if n.is_healthy(now)]

    def nodes(self) -> List[Node]:
        with self._lock:
            return self._sorted_nodes()

    def earliest_readmit(self, account_ids: Optional[Iterable[AccountId]] = None) -> Optional[float]:
        """Earliest readmit time among the given nodes (all nodes by default)."""
        with self._lock:
            if account_ids is None:
                pool = list(self._nodes.values())
            else:
                pool = [self._nodes[a] for a in (AccountId.of(x) for x in account_ids) if a in self._nodes]
            if not pool:
                return None
            return min(n.readmit_time for n in pool)

    def now(self) -> float:
        return self._clock()

    @property
    def network(self) -> Dict[str, AccountId]:
        """Endpoint → account-id snapshot."""
        with self._lock:
            return {address: node.account_id for address, node in self._by_address.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    def close(self) -> None:
        """Close every open channel."""
        with self._lock:
            nodes = list(self._nodes.values())
        for node in nodes:
            node.close()


__all__ = ["NodeRegistry", "DEFAULT_MIN_BACKOFF", "DEFAULT_MAX_BACKOFF"]
