"""
Client context and configuration.
"""

from .config import ClientConfig, NAMED_NETWORKS
from .client import Client, Operator, set_default_client, get_default_client

__all__ = [
    "ClientConfig",
    "NAMED_NETWORKS",
    "Client",
    "Operator",
    "set_default_client",
    "get_default_client",
]
