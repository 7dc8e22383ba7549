"""
Address book updates from the mirror node.

The mirror's `/api/v1/network/nodes` endpoint lists every consensus node
with its service endpoints. NetworkUpdater turns that into a new node set
for the registry, on a period and on demand (after a node answered
INVALID_NODE_ACCOUNT).
"""

from __future__ import annotations
import logging
import threading
from typing import Callable, List, Optional, Tuple

from ..runtime.errors import HieroError
from ..runtime.ids import AccountId
from .node import DEFAULT_NODE_PORT
from .registry import NodeRegistry

logger = logging.getLogger(__name__)

NODES_PATH = "/api/v1/network/nodes"

AddressBookEntry = Tuple[str, AccountId]


def parse_address_book(nodes: List[dict], node_port: int = DEFAULT_NODE_PORT) -> List[AddressBookEntry]:
    """
    Map mirror node records to (endpoint, account id) pairs.

    Only service endpoints on `node_port` are kept; a node without one is
    left out.

    Args:
        nodes: `nodes` items from the mirror response
        node_port: gRPC port the SDK connects to

    Returns:
        Address book entries
    """
    entries: List[AddressBookEntry] = []
    for record in nodes:
        if not isinstance(record, dict):
            continue
        account = record.get("node_account_id")
        if not account:
            continue
        account_id = AccountId.from_string(account)
        for endpoint in record.get("service_endpoints") or []:
            if not isinstance(endpoint, dict) or endpoint.get("port") != node_port:
                continue
            host = endpoint.get("domain_name") or endpoint.get("ip_address_v4")
            if host:
                entries.append((f"{host}:{node_port}", account_id))
    return entries


def fetch_address_book(rest, node_port: int = DEFAULT_NODE_PORT) -> List[AddressBookEntry]:
    """
    Download the address book through a MirrorRestClient.

    Raises:
        MirrorNodeError: If the mirror cannot be reached
    """
    nodes = rest.get_paginated(NODES_PATH, "nodes")
    return parse_address_book(nodes, node_port)


class NetworkUpdater:
    """
    Keeps a NodeRegistry in sync with the mirror's address book.

    Runs a periodic daemon thread (period 0 disables it) and serves
    on-demand refreshes; concurrent on-demand requests collapse into one
    fetch. Refreshes never interrupt executions in flight: they only change
    what the next candidate computation sees.
    """

    def __init__(self, registry: NodeRegistry, fetch: Callable[[], List[AddressBookEntry]],
                 period: float = 86400.0):
        """
        Initialize the updater.

        Args:
            registry: Registry to update
            fetch: Returns the current address book
            period: Seconds between periodic refreshes; 0 disables them
        """
        self.registry = registry
        self._fetch = fetch
        self.period = period
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._periodic: Optional[threading.Thread] = None
        self._on_demand: Optional[threading.Thread] = None
        self.update_count = 0

    def update_now(self) -> bool:
        """
        Fetch the address book and swap it in.

        Mirror failures and address books the registry rejects are logged
        and leave the current node set in place.

        Returns:
            True if the registry was updated
        """
        try:
            entries = self._fetch()
            if not entries:
                logger.warning("Address book update returned no usable endpoints; keeping current nodes")
                return False
            self.registry.replace_from_address_book(entries)
        except (HieroError, ValueError) as e:
            logger.warning(f"Address book update failed: {e}; keeping current nodes")
            return False
        self.update_count += 1
        logger.info(f"Address book updated with {len(entries)} endpoints")
        return True

    def request_update(self) -> Optional[threading.Thread]:
        """
        Refresh in the background unless a refresh is already running.

        Returns:
            The running refresh thread
        """
        with self._lock:
            if self._on_demand is not None and self._on_demand.is_alive():
                return self._on_demand
            self._on_demand = threading.Thread(target=self.update_now, name="hiero-address-book",
                                               daemon=True)
            self._on_demand.start()
            return self._on_demand

    def start(self) -> None:
        """Start the periodic refresh thread."""
        if self.period <= 0:
            return
        with self._lock:
            if self._periodic is not None and self._periodic.is_alive():
                return
            self._stop.clear()
            self._periodic = threading.Thread(target=self._run, name="hiero-network-updater", daemon=True)
            self._periodic.start()

    def _run(self) -> None:
        while not self._stop.wait(self.period):
            self.update_now()

    def stop(self) -> None:
        self._stop.set()
        with self._lock:
            thread = self._periodic
            self._periodic = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)


__all__ = ["NetworkUpdater", "parse_address_book", "fetch_address_book", "NODES_PATH", "AddressBookEntry"]
