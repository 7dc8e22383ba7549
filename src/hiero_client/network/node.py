"""
Node descriptor: one consensus node, its health state and its gRPC channel.
"""

from __future__ import annotations
import logging
import threading
from typing import Optional

import grpc

from ..runtime.ids import AccountId

logger = logging.getLogger(__name__)

DEFAULT_NODE_PORT = 50211
TLS_NODE_PORT = 50212


def normalize_address(address: str, default_port: int = DEFAULT_NODE_PORT) -> str:
    """Return `host:port`, adding the default port when missing."""
    address = address.strip()
    if not address:
        raise ValueError("Node address must not be empty")
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        return f"{address}:{default_port}"
    if not host:
        raise ValueError(f"Invalid node address: {address!r}")
    return address


class Node:
    """
    A consensus node.

    Health fields (backoff, readmit_time, counters) are owned by the
    NodeRegistry and only mutated under its lock. The gRPC channel is
    created on first use and shared by every request sent to this node.
    """

    def __init__(self, account_id: AccountId, address: str, transport_security: bool = False):
        """
        Initialize a node.

        Args:
            account_id: Node account id
            address: `host:port` endpoint
            transport_security: Use TLS for the channel
        """
        self.account_id = AccountId.of(account_id)
        self.address = normalize_address(address)
        self.transport_security = transport_security

        self.backoff = 0.0
        self.readmit_time = 0.0
        self.success_count = 0
        self.failure_count = 0

        self._channel: Optional[grpc.Channel] = None
        self._channel_lock = threading.Lock()

    def is_healthy(self, now: float) -> bool:
        return self.readmit_time <= now

    @property
    def channel(self) -> grpc.Channel:
        """The node's gRPC channel, opened lazily."""
        with self._channel_lock:
            if self._channel is None:
                logger.debug(f"Opening channel to node {self.account_id} at {self.address}")
                if self.transport_security:
                    self._channel = grpc.secure_channel(self.address, grpc.ssl_channel_credentials())
                else:
                    self._channel = grpc.insecure_channel(self.address)
            return self._channel

    @property
    def has_channel(self) -> bool:
        return self._channel is not None

    def close(self) -> None:
        """Close the channel if one was opened."""
        with self._channel_lock:
            if self._channel is not None:
                self._channel.close()
                self._channel = None

    def __repr__(self) -> str:
        return (f"Node({self.account_id}, {self.address}, backoff={self.backoff}, "
                f"successes={self.success_count}, failures={self.failure_count})")


__all__ = ["Node", "normalize_address", "DEFAULT_NODE_PORT", "TLS_NODE_PORT"]
