"""
Client context.

A Client bundles what every execution needs: the operator (default payer
and signer), the node registry, the mirror network, the transport and the
execution budget. It owns the background address-book updater.
"""

from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from ..crypto.keys import PrivateKey, PublicKey
from ..mirror.rest import MirrorRestClient
from ..network.address_book import NetworkUpdater, fetch_address_book
from ..network.node import Node
from ..network.registry import NodeRegistry
from ..network.transport import GrpcTransport, Transport
from ..runtime.errors import ValidationError
from ..runtime.ids import AccountId
from .config import ClientConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operator:
    """The account that pays for, and signs, requests by default."""

    account_id: AccountId
    private_key: PrivateKey

    @property
    def public_key(self) -> PublicKey:
        return self.private_key.public_key


class Client:
    """
    Entry point for executing requests against a Hiero network.

    Example usage:
        ```python
        client = Client.for_testnet().set_operator("0.0.1234", "302e...")
        response = TransferTransaction().add_hbar_transfer(...).execute(client)
        receipt = response.get_receipt(client)
        ```
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[Transport] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        **kwargs: Any,
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration; built from kwargs when omitted
            transport: Transport for node calls (defaults to gRPC)
            session: requests session for mirror REST calls
            clock: Monotonic clock used for node health, injectable for tests
            **kwargs: ClientConfig fields when config is omitted
        """
        if config is None:
            config = ClientConfig(**kwargs)
        elif kwargs:
            config = config.model_copy(update=kwargs)
        self.config = config

        self.request_timeout = config.request_timeout
        self.max_attempts = config.max_attempts
        self.min_backoff = config.min_backoff
        self.max_backoff = config.max_backoff
        self.grpc_deadline = config.grpc_deadline
        self.max_nodes_per_request = config.max_nodes_per_request
        self.default_max_transaction_fee = config.default_max_transaction_fee
        self.node_port = config.node_port

        self.registry = NodeRegistry(
            config.network,
            min_backoff=config.min_backoff,
            max_backoff=config.max_backoff,
            transport_security=config.transport_security,
            clock=clock,
        )
        self.mirror_network: List[str] = list(config.mirror_network)
        self.transport: Transport = transport or GrpcTransport()
        self._session = session

        self.operator: Optional[Operator] = None
        if config.operator_account_id and config.operator_private_key:
            self.set_operator(config.operator_account_id, config.operator_private_key)

        self._updater = NetworkUpdater(self.registry, self._fetch_address_book, config.network_update_period)
        if self.mirror_network:
            self._updater.start()

    # Constructors

    @classmethod
    def for_network(cls, network: Dict[str, Any], mirror_network: Optional[List[str]] = None,
                    **kwargs: Any) -> Client:
        """Client for an explicit endpoint → account-id map."""
        return cls(ClientConfig(network=network, mirror_network=mirror_network or [], **kwargs))

    @classmethod
    def for_name(cls, name: str, **kwargs: Any) -> Client:
        return cls(ClientConfig.for_network(name, **kwargs))

    @classmethod
    def for_testnet(cls, **kwargs: Any) -> Client:
        return cls.for_name("testnet", **kwargs)

    @classmethod
    def for_previewnet(cls, **kwargs: Any) -> Client:
        return cls.for_name("previewnet", **kwargs)

    @classmethod
    def from_config_file(cls, path: Union[str, Path], **kwargs: Any) -> Client:
        return cls(ClientConfig.from_file(path), **kwargs)

    @classmethod
    def from_env(cls, **kwargs: Any) -> Client:
        return cls(ClientConfig.from_env(), **kwargs)

    # Operator

    def set_operator(self, account_id: Union[str, AccountId], private_key: Union[str, PrivateKey]) -> Client:
        """
        Set the default payer and signer.

        Raises:
            InvalidIdentifierError: If the account id cannot be parsed
            InvalidKeyError: If the key cannot be parsed
        """
        if not isinstance(private_key, PrivateKey):
            private_key = PrivateKey.from_string(private_key)
        self.operator = Operator(AccountId.of(account_id), private_key)
        return self

    @property
    def operator_account_id(self) -> Optional[AccountId]:
        return self.operator.account_id if self.operator else None

    @property
    def operator_public_key(self) -> Optional[PublicKey]:
        return self.operator.public_key if self.operator else None

    # Network

    @property
    def network(self) -> Dict[str, AccountId]:
        return self.registry.network

    def set_network(self, network: Dict[str, Any]) -> Client:
        self.registry.set_network(network)
        return self

    def set_mirror_network(self, mirror_network: List[str]) -> Client:
        self.mirror_network = list(mirror_network)
        return self

    def select_nodes_for_request(self) -> List[AccountId]:
        """
        Node account ids a request is frozen with.

        Uses max_nodes_per_request when set, otherwise a third of the
        healthy nodes (at least one).

        Raises:
            NoHealthyNodesError: If every node is in backoff
        """
        count = self.max_nodes_per_request or self.registry.default_node_count()
        return [node.account_id for node in self.registry.choose_candidates(count)]

    def node(self, account_id: AccountId) -> Optional[Node]:
        return self.registry.get(account_id)

    def mirror_rest(self) -> MirrorRestClient:
        """
        A REST client for the first mirror.

        Raises:
            MirrorNodeError: If no mirror is configured
        """
        if self._session is None:
            self._session = requests.Session()
        return MirrorRestClient(self.mirror_network, session=self._session,
                                max_attempts=self.max_attempts,
                                min_backoff=self.min_backoff, max_backoff=self.max_backoff)

    def _fetch_address_book(self):
        return fetch_address_book(self.mirror_rest(), self.node_port)

    def schedule_network_update(self) -> Optional[threading.Thread]:
        """
        Refresh the address book in the background.

        Without a mirror this is a no-op and the last known node set stays
        in use.
        """
        if not self.mirror_network:
            logger.debug("No mirror configured; keeping current node set")
            return None
        return self._updater.request_update()

    def update_network(self) -> bool:
        """Refresh the address book synchronously."""
        if not self.mirror_network:
            return False
        return self._updater.update_now()

    def set_network_update_period(self, seconds: float) -> Client:
        self._updater.stop()
        self._updater.period = seconds
        if self.mirror_network:
            self._updater.start()
        return self

    # Lifecycle

    def close(self) -> None:
        """Stop background updates and close channels and sessions."""
        self._updater.stop()
        self.registry.close()
        if self._session is not None:
            self._session.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Client(nodes={len(self.registry)}, operator={self.operator_account_id})"


_default_client: Optional[Client] = None
_default_lock = threading.Lock()


def set_default_client(client: Optional[Client]) -> None:
    """Install the client used when a request is executed without one."""
    global _default_client
    with _default_lock:
        _default_client = client


def get_default_client() -> Client:
    """
    Raises:
        ValidationError: If no default client is installed
    """
    with _default_lock:
        if _default_client is None:
            raise ValidationError("No client given and no default client is set")
        return _default_client


__all__ = ["Client", "Operator", "set_default_client", "get_default_client"]
