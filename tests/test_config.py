"""
Tests for network configuration and transport selection.
"""
import logging

import pytest
from pydantic import ValidationError

from confkyc_sdk.config import NetworkConfig, LOCAL_CONFIG, PREPROD_CONFIG, GENESIS_SEED, NETWORKS
from confkyc_sdk.exceptions import ConfigError
from confkyc_sdk.transport import get_transport, HttpTransport, StubTransport


class TestNetworkConfig:
    """Tests for NetworkConfig."""

    def test_local_defaults(self):
        assert LOCAL_CONFIG.is_local
        assert LOCAL_CONFIG.bootstrap_seed == GENESIS_SEED
        assert LOCAL_CONFIG.funding_amount == 200_000_000_000
        assert LOCAL_CONFIG.bridge_url is None

    def test_get_network(self):
        assert NetworkConfig.get_network("preprod") is PREPROD_CONFIG
        assert not PREPROD_CONFIG.is_local
        assert PREPROD_CONFIG.bootstrap_seed is None

    def test_unknown_network(self):
        with pytest.raises(ConfigError) as excinfo:
            NetworkConfig.get_network("mainnet")
        assert "Available networks" in str(excinfo.value)
        for name in NETWORKS:
            assert name in str(excinfo.value)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            LOCAL_CONFIG.network_id = "preprod"

    @pytest.mark.parametrize("fields", [
        {"network_id": "  "},
        {"funding_amount": 0},
        {"ttl_seconds": -1},
        {"sync_interval": -0.5},
        {"wait_timeout": 0},
    ])
    def test_invalid_values(self, fields):
        with pytest.raises(ValidationError):
            NetworkConfig(**fields)


class TestFromEnv:
    """Tests for NetworkConfig.from_env."""

    def test_defaults_to_local(self):
        assert NetworkConfig.from_env({}) == LOCAL_CONFIG

    def test_preset_and_overrides(self):
        config = NetworkConfig.from_env({
            "CONFKYC_NETWORK": "preprod",
            "PROOF_SERVER_URL": "http://127.0.0.1:6301",
            "CONFKYC_BRIDGE_URL": "http://localhost:9933",
            "INDEXER_URL": "",
        })
        assert config.network_id == "preprod"
        assert config.proof_server_url == "http://127.0.0.1:6301"
        assert config.bridge_url == "http://localhost:9933"
        assert config.indexer_url == PREPROD_CONFIG.indexer_url
        assert PREPROD_CONFIG.bridge_url is None

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("CONFKYC_NETWORK", "preprod")
        monkeypatch.setenv("MIDNIGHT_NODE_URL", "https://node.example.com")
        config = NetworkConfig.from_env()
        assert config.node_url == "https://node.example.com"

    def test_unknown_preset(self):
        with pytest.raises(ConfigError):
            NetworkConfig.from_env({"CONFKYC_NETWORK": "nowhere"})


class TestGetTransport:
    """Tests for get_transport."""

    def test_stub_without_bridge(self, caplog):
        with caplog.at_level(logging.WARNING):
            transport = get_transport(PREPROD_CONFIG)
        assert isinstance(transport, StubTransport)
        assert transport.network_id == "preprod"
        assert "in-memory stub ledger" in caplog.text

    @pytest.mark.parametrize("sync_interval, expected", [(5.0, 2.0), (0.5, 0.5), (0, 2.0)])
    def test_http_with_bridge(self, sync_interval, expected):
        config = NetworkConfig(bridge_url="http://localhost:9933", sync_interval=sync_interval)
        transport = get_transport(config)
        assert isinstance(transport, HttpTransport)
        assert transport.bridge_url == "http://localhost:9933"
        assert transport.poll_interval == expected

    def test_insecure_bridge(self):
        with pytest.raises(ConfigError):
            get_transport(NetworkConfig(bridge_url="http://bridge.example.com"))
