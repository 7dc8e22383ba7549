"""
Consensus node network: node descriptors, the health-tracking registry,
the gRPC transport and address-book updates.
"""

from .node import Node, DEFAULT_NODE_PORT
from .registry import NodeRegistry
from .transport import Transport, GrpcTransport
from .address_book import NetworkUpdater, parse_address_book, fetch_address_book

__all__ = [
    "Node",
    "DEFAULT_NODE_PORT",
    "NodeRegistry",
    "Transport",
    "GrpcTransport",
    "NetworkUpdater",
    "parse_address_book",
    "fetch_address_book",
]
