"""
NanoNode - Configuration Tests
================================
Unit tests for settings loading and validation.
"""

import pytest
from pydantic import ValidationError

from nano_node.config import (
    NodeSettings,
    get_settings,
    reload_settings,
    override_settings,
)
from nano_node.errors import ConfigError


class TestSettings:
    """Test defaults and overrides"""

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        config = NodeSettings()

        assert config.network == "mainnet"
        assert config.is_mainnet()
        assert config.bootstrap_peers == ["rai.raiblocks.net:7075"]
        assert config.max_peers == 200
        assert config.tcp_timeout_ms == 4000
        assert config.tcp_timeout == 4.0
        assert config.minimal_confirm_ack is True
        assert (config.version_max, config.version_using, config.version_min) == (7, 7, 1)

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("NANO_NODE_UDP_PORT", "7075")
        monkeypatch.setenv("NANO_NODE_NETWORK", "TESTNET")
        monkeypatch.setenv("NANO_NODE_BOOTSTRAP_PEERS", '["10.0.0.1:7075"]')

        config = NodeSettings()

        assert config.udp_port == 7075
        assert config.is_testnet()
        assert config.bootstrap_peers == ["10.0.0.1:7075"]

    def test_override(self):
        config = override_settings(max_peers=5, log_level="debug")

        assert config.max_peers == 5
        assert config.log_level == "DEBUG"

    def test_cached(self):
        assert get_settings() is get_settings()
        assert reload_settings() is get_settings()

    def test_file_round_trip(self, tmp_path):
        path = tmp_path / "node.json"
        path.write_text(override_settings(udp_port=9000).to_json())

        assert NodeSettings.from_file(path).udp_port == 9000


class TestValidation:
    """Test rejected values"""

    @pytest.mark.parametrize("overrides", [
        {"network": "regtest"},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
        {"udp_port": 70000},
        {"max_peers": 0},
        {"bootstrap_peers": ["no-port"]},
        {"bootstrap_peers": ["host:0"]},
        {"bootstrap_peers": ["host:abc"]},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ValidationError):
            NodeSettings(**overrides)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            NodeSettings.from_file(tmp_path / "absent.json")

        assert exc_info.value.code == "config_unreadable"

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "node.json"
        path.write_text('{"network": "regtest"}')

        with pytest.raises(ConfigError) as exc_info:
            NodeSettings.from_file(path)

        assert exc_info.value.code == "config_invalid"
        assert exc_info.value.details["errors"] == 1
