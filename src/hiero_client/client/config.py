"""
Client configuration.

ClientConfig is a pydantic model holding everything a Client needs: the
operator, the consensus network map, the mirror list and the execution
budget. It loads from keyword arguments, a dict, a JSON file in the format
other Hiero SDKs use, or environment variables.
"""

from __future__ import annotations
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import pydantic
from pydantic import BaseModel, Field, field_validator, model_validator

from ..runtime.errors import InvalidIdentifierError, ValidationError
from ..runtime.ids import AccountId

DEFAULT_MAX_TRANSACTION_FEE = 200_000_000  # 2 hbar in tinybars

# name -> (endpoint -> node account, mirror addresses)
NAMED_NETWORKS: Dict[str, Tuple[Dict[str, str], List[str]]] = {
    "testnet": (
        {
            "0.testnet.hedera.com:50211": "0.0.3",
            "1.testnet.hedera.com:50211": "0.0.4",
            "2.testnet.hedera.com:50211": "0.0.5",
            "3.testnet.hedera.com:50211": "0.0.6",
        },
        ["testnet.mirrornode.hedera.com:443"],
    ),
    "previewnet": (
        {
            "0.previewnet.hedera.com:50211": "0.0.3",
            "1.previewnet.hedera.com:50211": "0.0.4",
            "2.previewnet.hedera.com:50211": "0.0.5",
            "3.previewnet.hedera.com:50211": "0.0.6",
        },
        ["previewnet.mirrornode.hedera.com:443"],
    ),
    "local": (
        {"localhost:50211": "0.0.3"},
        ["localhost:5551"],
    ),
}
NAMED_NETWORKS["localhost"] = NAMED_NETWORKS["local"]


def resolve_network(name: str) -> Tuple[Dict[str, str], List[str]]:
    """
    Look up a named network.

    Raises:
        ValidationError: If the name is unknown
    """
    try:
        network, mirrors = NAMED_NETWORKS[name.lower()]
    except KeyError:
        raise ValidationError(f"Unknown network name: {name!r}",
                              details={"known": sorted(NAMED_NETWORKS)})
    return dict(network), list(mirrors)


class ClientConfig(BaseModel):
    """
    Configuration for a Client.

    Example usage:
        ```python
        config = ClientConfig.for_network("testnet", operator_account_id="0.0.1234",
                                          operator_private_key="302e...")
        client = Client(config)
        ```
    """

    network: Dict[str, str] = Field(
        default_factory=dict,
        description="Node endpoint (host:port) to node account id"
    )
    mirror_network: List[str] = Field(
        default_factory=list,
        alias="mirrorNetwork",
        description="Mirror node addresses (host:port); the first is used"
    )
    operator_account_id: Optional[str] = Field(
        default=None,
        alias="operatorAccountId",
        description="Operator (default payer) account id"
    )
    operator_private_key: Optional[str] = Field(
        default=None,
        alias="operatorPrivateKey",
        description="Operator private key, hex or DER hex"
    )
    request_timeout: float = Field(default=120.0, gt=0, description="Overall execution deadline in seconds")
    max_attempts: int = Field(default=10, ge=1, description="Attempts per execution")
    min_backoff: float = Field(default=0.25, ge=0, description="First retry delay / node backoff in seconds")
    max_backoff: float = Field(default=8.0, ge=0, description="Retry delay / node backoff ceiling in seconds")
    grpc_deadline: float = Field(default=2.0, gt=0, description="Base per-attempt gRPC deadline in seconds")
    network_update_period: float = Field(default=86400.0, ge=0,
                                         description="Seconds between address book refreshes; 0 disables")
    max_nodes_per_request: Optional[int] = Field(default=None, ge=1,
                                                 description="Nodes a request is frozen with")
    default_max_transaction_fee: int = Field(default=DEFAULT_MAX_TRANSACTION_FEE, ge=0,
                                             description="Max fee in tinybars for requests without one")
    node_port: int = Field(default=50211, gt=0, lt=65536, description="gRPC port of address book endpoints")
    transport_security: bool = Field(default=False, description="Open TLS channels to nodes")

    model_config = {
        "populate_by_name": True,
    }

    @field_validator("network", mode="before")
    @classmethod
    def validate_network(cls, v: Any) -> Dict[str, str]:
        """Normalize node account ids to `shard.realm.num` strings."""
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError(f"network must be a mapping of endpoint to account id, got {type(v).__name__}")
        out: Dict[str, str] = {}
        for address, account in v.items():
            try:
                out[str(address)] = str(AccountId.of(account))
            except InvalidIdentifierError as e:
                raise ValueError(str(e.message))
        return out

    @field_validator("operator_account_id", mode="before")
    @classmethod
    def validate_operator(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        try:
            return str(AccountId.of(v))
        except InvalidIdentifierError as e:
            raise ValueError(str(e.message))

    @model_validator(mode="after")
    def check_backoff(self) -> ClientConfig:
        if self.max_backoff < self.min_backoff:
            raise ValueError("max_backoff must be at least min_backoff")
        if (self.operator_account_id is None) != (self.operator_private_key is None):
            raise ValueError("operator account id and private key must be set together")
        return self

    # Loaders

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClientConfig:
        """
        Build a config from a dict.

        Accepts both the model's field names and the JSON config-file
        layout (`network` may be a network name, `operator` holds
        `accountId` and `privateKey`).

        Raises:
            ValidationError: If the data does not describe a valid config
        """
        data = dict(data)
        network = data.get("network")
        if isinstance(network, str):
            nodes, mirrors = resolve_network(network)
            data["network"] = nodes
            if not data.get("mirrorNetwork") and not data.get("mirror_network"):
                data["mirror_network"] = mirrors
        mirror = data.get("mirrorNetwork", data.get("mirror_network"))
        if isinstance(mirror, str):
            if mirror.lower() in NAMED_NETWORKS:
                mirror = resolve_network(mirror)[1]
            else:
                mirror = [m.strip() for m in mirror.split(",") if m.strip()]
            data.pop("mirrorNetwork", None)
            data["mirror_network"] = mirror
        operator = data.pop("operator", None)
        if isinstance(operator, Mapping):
            data.setdefault("operator_account_id", operator.get("accountId", operator.get("account_id")))
            data.setdefault("operator_private_key", operator.get("privateKey", operator.get("private_key")))
        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid client configuration: {e}", cause=e)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> ClientConfig:
        """
        Load a JSON config file.

        Raises:
            ValidationError: If the file is missing, not JSON, or invalid
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ValidationError(f"Cannot read client configuration from {path}", cause=e)
        if not isinstance(data, dict):
            raise ValidationError(f"Client configuration in {path} must be a JSON object")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> ClientConfig:
        """
        Build a config from environment variables.

        HIERO_NETWORK names the network (default testnet); OPERATOR_ID and
        OPERATOR_KEY set the operator; HIERO_MIRROR_NETWORK overrides the
        mirror list (comma separated).
        """
        env = os.environ if environ is None else environ
        data: Dict[str, Any] = {"network": env.get("HIERO_NETWORK", "testnet")}
        if env.get("HIERO_MIRROR_NETWORK"):
            data["mirror_network"] = env["HIERO_MIRROR_NETWORK"]
        if env.get("OPERATOR_ID"):
            data["operator_account_id"] = env["OPERATOR_ID"]
        if env.get("OPERATOR_KEY"):
            data["operator_private_key"] = env["OPERATOR_KEY"]
        data.update(overrides)
        return cls.from_dict(data)

    @classmethod
    def for_network(cls, name: str, **kwargs: Any) -> ClientConfig:
        """Config for a named network with optional overrides."""
        return cls.from_dict({"network": name, **kwargs})


__all__ = ["ClientConfig", "NAMED_NETWORKS", "resolve_network", "DEFAULT_MAX_TRANSACTION_FEE"]
