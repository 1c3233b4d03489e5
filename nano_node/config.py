"""
NanoNode - Configuration Management
=====================================
Centralised node configuration with Pydantic Settings.
Supports environment variables, .env files and runtime overrides.

Last Updated: 2026-10-18
Version: 1.0.0

Features:
- Automatic type validation
- Environment variables with the NANO_NODE_ prefix
- .env file support
"""

from pathlib import Path
from typing import Optional, List
from functools import lru_cache

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nano_node.constants import (
    DEFAULT_BOOTSTRAP_PEERS,
    DEFAULT_MAX_PEERS,
    DEFAULT_TCP_TIMEOUT_MS,
    DEFAULT_KEEPALIVE_INTERVAL,
    DEFAULT_VERSION_MAX,
    DEFAULT_VERSION_USING,
    DEFAULT_VERSION_MIN,
    SOFTWARE_VERSION,
)
from nano_node.errors import ConfigError


# ============================================================================
# MAIN CONFIGURATION CLASS
# ============================================================================

class NodeSettings(BaseSettings):
    """
    NanoNode configuration.

    Example:
        # From environment
        export NANO_NODE_UDP_PORT=7075
        export NANO_NODE_BOOTSTRAP_PEERS='["peering.example.org:7075"]'

        # From code
        config = NodeSettings(udp_port=12000, minimal_confirm_ack=False)
    """

    model_config = SettingsConfigDict(
        env_prefix='NANO_NODE_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    software_version: str = Field(
        default=SOFTWARE_VERSION,
        description="Software version"
    )

    # ========================================================================
    # NETWORK SETTINGS
    # ========================================================================

    network: str = Field(
        default="mainnet",
        description="Network type: mainnet, testnet"
    )

    bind_host: str = Field(
        default="0.0.0.0",
        description="UDP bind address"
    )

    udp_port: int = Field(
        default=0,
        ge=0,
        le=65535,
        description="UDP port (0 = random)"
    )

    bootstrap_peers: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BOOTSTRAP_PEERS),
        description="Initial peers (host:port)"
    )

    max_peers: int = Field(
        default=DEFAULT_MAX_PEERS,
        ge=1,
        le=10000,
        description="Peer directory capacity"
    )

    tcp_timeout_ms: int = Field(
        default=DEFAULT_TCP_TIMEOUT_MS,
        ge=100,
        le=600_000,
        description="Per-peer bulk pull timeout (milliseconds)"
    )

    keepalive_interval: int = Field(
        default=DEFAULT_KEEPALIVE_INTERVAL,
        ge=1,
        le=3600,
        description="Keepalive broadcast interval (seconds)"
    )

    # confirm_ack messages are expensive to hash and verify; minimal mode
    # only extracts the voting account
    minimal_confirm_ack: bool = Field(
        default=True,
        description="Parse only the account of confirm_ack messages"
    )

    # ========================================================================
    # PROTOCOL VERSIONS
    # ========================================================================

    version_max: int = Field(default=DEFAULT_VERSION_MAX, ge=0, le=255)
    version_using: int = Field(default=DEFAULT_VERSION_USING, ge=0, le=255)
    version_min: int = Field(default=DEFAULT_VERSION_MIN, ge=0, le=255)

    # ========================================================================
    # LOGGING
    # ========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    log_to_file: bool = Field(
        default=False,
        description="Write log files"
    )

    log_dir: Path = Field(
        default=Path("./logs"),
        description="Directory for log files"
    )

    log_format: str = Field(
        default="json",
        description="File log format: json, text"
    )

    # ========================================================================
    # VALIDATORS
    # ========================================================================

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in ('json', 'text'):
            raise ValueError(f"Invalid log_format: {v}. Must be json or text")
        return v_lower

    @field_validator('network')
    @classmethod
    def validate_network(cls, v: str) -> str:
        valid_networks = ['mainnet', 'testnet']
        v_lower = v.lower()
        if v_lower not in valid_networks:
            raise ValueError(f"Invalid network: {v}. Must be one of {valid_networks}")
        return v_lower

    @field_validator('bootstrap_peers')
    @classmethod
    def validate_bootstrap_peers(cls, v: List[str]) -> List[str]:
        """Check host:port format"""
        validated = []
        for peer in v:
            if ':' not in peer:
                raise ValueError(f"Invalid peer format: {peer}. Expected host:port")

            host, port_str = peer.rsplit(':', 1)
            try:
                port = int(port_str)
            except ValueError:
                raise ValueError(f"Invalid peer port: {port_str}")
            if not (1 <= port <= 65535):
                raise ValueError(f"Invalid peer port: {port}")

            validated.append(f"{host}:{port}")

        return validated

    # ========================================================================
    # HELPER METHODS
    # ========================================================================

    def is_mainnet(self) -> bool:
        return self.network == "mainnet"

    def is_testnet(self) -> bool:
        return self.network == "testnet"

    @property
    def tcp_timeout(self) -> float:
        """Bulk pull timeout in seconds"""
        return self.tcp_timeout_ms / 1000

    def to_dict(self) -> dict:
        return self.model_dump()

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)

    @classmethod
    def from_file(cls, path: Path) -> "NodeSettings":
        """
        Load settings from a JSON file.

        Raises:
            ConfigError: File unreadable or settings invalid
        """
        try:
            return cls.model_validate_json(Path(path).read_text())
        except OSError as e:
            raise ConfigError(
                f"Cannot read settings file {path}: {e}",
                code="config_unreadable",
                details={"path": str(path)}
            ) from e
        except ValidationError as e:
            raise ConfigError(
                f"Invalid settings in {path}",
                code="config_invalid",
                details={"path": str(path), "errors": e.error_count()}
            ) from e

    def __repr__(self) -> str:
        return (
            f"NodeSettings("
            f"network={self.network}, "
            f"udp_port={self.udp_port}, "
            f"max_peers={self.max_peers})"
        )


# ============================================================================
# SINGLETON INSTANCE
# ============================================================================

@lru_cache(maxsize=1)
def get_settings() -> NodeSettings:
    """
    Cached settings instance.

    Example:
        >>> config = get_settings()
        >>> config.max_peers
        200
    """
    return NodeSettings()


def reload_settings() -> NodeSettings:
    """Drop the cached instance and re-read the environment"""
    get_settings.cache_clear()
    return get_settings()


def override_settings(**kwargs) -> NodeSettings:
    """
    Settings with explicit overrides, mostly for tests.

    Example:
        >>> config = override_settings(bootstrap_peers=[], udp_port=0)
    """
    return NodeSettings(**kwargs)


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "NodeSettings",
    "get_settings",
    "reload_settings",
    "override_settings",
]
