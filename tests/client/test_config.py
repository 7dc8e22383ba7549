"""
Tests for ClientConfig loading and validation.
"""

import json

import pytest

from hiero_client.client.config import ClientConfig, NAMED_NETWORKS, resolve_network
from hiero_client.runtime.errors import ValidationError

ED25519_KEY = "302e020100300506032b657004220420" + "11" * 32


class TestClientConfig:
    """Defaults and validation."""

    def test_defaults(self):
        config = ClientConfig()
        assert config.request_timeout == 120.0
        assert config.max_attempts == 10
        assert config.min_backoff == 0.25
        assert config.max_backoff == 8.0
        assert config.grpc_deadline == 2.0
        assert config.max_nodes_per_request is None
        assert config.network == {}

    def test_network_ids_normalized(self):
        config = ClientConfig(network={"a:50211": 3, "b:50211": "0.0.4"})
        assert config.network == {"a:50211": "0.0.3", "b:50211": "0.0.4"}

    def test_invalid_node_account(self):
        with pytest.raises(ValueError):
            ClientConfig(network={"a:50211": "zero"})

    def test_backoff_order(self):
        with pytest.raises(ValueError):
            ClientConfig(min_backoff=2.0, max_backoff=1.0)

    def test_operator_fields_together(self):
        with pytest.raises(ValueError):
            ClientConfig(operator_account_id="0.0.2")

    def test_aliases(self):
        config = ClientConfig.model_validate({"mirrorNetwork": ["m:443"], "operatorAccountId": "0.0.2",
                                              "operatorPrivateKey": ED25519_KEY})
        assert config.mirror_network == ["m:443"]
        assert config.operator_account_id == "0.0.2"


class TestLoaders:
    """Dict, file and environment loaders."""

    def test_named_network(self):
        config = ClientConfig.for_network("testnet")
        nodes, mirrors = NAMED_NETWORKS["testnet"]
        assert config.network == nodes
        assert config.mirror_network == mirrors

    def test_unknown_name(self):
        with pytest.raises(ValidationError, match="Unknown network name"):
            resolve_network("mainnet-ish")

    def test_sdk_json_layout(self, tmp_path):
        path = tmp_path / "client.json"
        path.write_text(json.dumps({
            "network": {"127.0.0.1:50211": "0.0.3"},
            "mirrorNetwork": "localhost",
            "operator": {"accountId": "0.0.2", "privateKey": ED25519_KEY},
        }))
        config = ClientConfig.from_file(path)
        assert config.network == {"127.0.0.1:50211": "0.0.3"}
        assert config.mirror_network == ["localhost:5551"]
        assert config.operator_account_id == "0.0.2"
        assert config.operator_private_key == ED25519_KEY

    def test_mirror_list_string(self):
        config = ClientConfig.from_dict({"mirrorNetwork": "a:443, b:443"})
        assert config.mirror_network == ["a:443", "b:443"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValidationError, match="Cannot read"):
            ClientConfig.from_file(tmp_path / "missing.json")

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "client.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValidationError):
            ClientConfig.from_file(path)

    def test_invalid_values_wrapped(self):
        with pytest.raises(ValidationError, match="Invalid client configuration"):
            ClientConfig.from_dict({"max_attempts": 0})

    def test_from_env(self):
        env = {
            "HIERO_NETWORK": "previewnet",
            "OPERATOR_ID": "0.0.1001",
            "OPERATOR_KEY": ED25519_KEY,
            "HIERO_MIRROR_NETWORK": "mirror.example:443",
        }
        config = ClientConfig.from_env(env, max_attempts=3)
        assert config.network == NAMED_NETWORKS["previewnet"][0]
        assert config.mirror_network == ["mirror.example:443"]
        assert config.operator_account_id == "0.0.1001"
        assert config.max_attempts == 3

    def test_from_env_defaults_to_testnet(self):
        config = ClientConfig.from_env({})
        assert config.network == NAMED_NETWORKS["testnet"][0]
        assert config.operator_account_id is None
