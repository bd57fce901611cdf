"""Application and authenticator configuration management.

Loads configuration from config.yaml files and environment variables.
Environment variables take precedence over config file settings.

The authenticator node itself is configured through a flat mapping of
provider properties (``stepup.secretKey``, ``stepup.baseUrl``, ...), which is
resolved into an immutable FlowConfig before any login attempt is processed.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from stepup.core.errors import ConfigError

# Default config locations
DEFAULT_CONFIG_DIR = Path.home() / ".stepup"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

# Environment variable prefix
ENV_PREFIX = "STEPUP_"

# Provider property keys
PROVIDER_ID = "stepup-authenticator"
PROP_SECRET_KEY = "stepup.secretKey"
PROP_TENANT_ID = "stepup.tenantId"
PROP_API_HOST_BASE_URL = "stepup.baseUrl"
PROP_ACTION_CODE = "stepup.actionCode"
PROP_ENROL_BY_DEFAULT = "stepup.enrolByDefault"

DEFAULT_ACTION_CODE = "sign-in"

_TRUE_VALUES = ("true", "1", "yes", "on")


def _config_error_message(prefix: str) -> str:
    return f"{prefix} Add provider details in your stepup configuration."


def _parse_bool(value: Any, default: bool) -> bool:
    """Interpret a property value as a boolean."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class FlowConfig:
    """Resolved configuration for one authenticator node.

    Immutable once resolved, so a single instance can be shared by every
    request handled by the node.
    """

    secret_key: str
    base_url: str
    action_code: str = DEFAULT_ACTION_CODE
    enroll_by_default: bool = True
    tenant_id: str | None = None

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise ConfigError(_config_error_message("Tenant secret key is not configured."))
        if not self.base_url:
            raise ConfigError(_config_error_message("API base URL is not configured."))

    def __repr__(self) -> str:
        return (
            f"FlowConfig(secret_key='***', base_url={self.base_url!r}, "
            f"action_code={self.action_code!r}, enroll_by_default={self.enroll_by_default!r}, "
            f"tenant_id={self.tenant_id!r})"
        )

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any] | None) -> FlowConfig:
        """Resolve a FlowConfig from provider properties.

        Args:
            properties: Provider property mapping, or None if the node has no
                configuration at all.

        Returns:
            Validated FlowConfig.

        Raises:
            ConfigError: If the configuration, the secret key or the base URL
                is missing or empty.
        """
        if properties is None:
            raise ConfigError(_config_error_message("Provider config is missing."))

        def text(key: str) -> str | None:
            value = properties.get(key)
            return str(value) if value is not None else None

        action_code = text(PROP_ACTION_CODE)
        if action_code is None:
            action_code = DEFAULT_ACTION_CODE

        return cls(
            secret_key=text(PROP_SECRET_KEY) or "",
            base_url=text(PROP_API_HOST_BASE_URL) or "",
            action_code=action_code,
            enroll_by_default=_parse_bool(properties.get(PROP_ENROL_BY_DEFAULT), True),
            tenant_id=text(PROP_TENANT_ID) or None,
        )


@dataclass
class ServerSettings:
    """Server configuration settings."""

    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False
    secret_key: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServerSettings:
        """Create ServerSettings from a dictionary."""
        return cls(
            host=data.get("host", "127.0.0.1"),
            port=data.get("port", 8080),
            debug=data.get("debug", False),
            secret_key=data.get("secret_key"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "secret_key": self.secret_key,
        }


@dataclass
class NodeSettings:
    """Authenticator node settings: where it is mounted and its provider properties."""

    realm: str = "master"
    client_id: str = "account"
    authenticator_path: str = PROVIDER_ID
    properties: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeSettings:
        """Create NodeSettings from a dictionary."""
        return cls(
            realm=data.get("realm", "master"),
            client_id=data.get("client_id", "account"),
            authenticator_path=data.get("authenticator_path", PROVIDER_ID),
            properties=dict(data.get("properties") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "realm": self.realm,
            "client_id": self.client_id,
            "authenticator_path": self.authenticator_path,
            "properties": dict(self.properties),
        }

    def flow_config(self) -> FlowConfig:
        """Resolve the node's provider properties into a FlowConfig."""
        return FlowConfig.from_properties(self.properties)


@dataclass
class LoggingSettings:
    """Protocol logging settings."""

    level: str = "INFO"
    trace_enabled: bool = False
    log_file: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoggingSettings:
        """Create LoggingSettings from a dictionary."""
        return cls(
            level=data.get("level", "INFO"),
            trace_enabled=data.get("trace_enabled", False),
            log_file=data.get("log_file"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "level": self.level,
            "trace_enabled": self.trace_enabled,
            "log_file": self.log_file,
        }


@dataclass
class AppConfig:
    """Main application configuration."""

    server: ServerSettings = field(default_factory=ServerSettings)
    node: NodeSettings = field(default_factory=NodeSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    users: list[dict[str, Any]] = field(default_factory=list)
    config_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_path: Path | None = None) -> AppConfig:
        """Create AppConfig from a dictionary."""
        server_data = data.get("server", {})
        node_data = data.get("node", {})
        logging_data = data.get("logging", {})
        return cls(
            server=ServerSettings.from_dict(server_data) if server_data else ServerSettings(),
            node=NodeSettings.from_dict(node_data) if node_data else NodeSettings(),
            logging=LoggingSettings.from_dict(logging_data) if logging_data else LoggingSettings(),
            users=list(data.get("users") or []),
            config_path=config_path,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "server": self.server.to_dict(),
            "node": self.node.to_dict(),
            "logging": self.logging.to_dict(),
            "users": list(self.users),
        }

    def save(self, path: Path | None = None) -> None:
        """Save configuration to a YAML file.

        Args:
            path: Path to save to. Uses config_path or default if not specified.
        """
        save_path = path or self.config_path or DEFAULT_CONFIG_FILE
        save_path.parent.mkdir(parents=True, exist_ok=True)

        with open(save_path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)


def _get_env_bool(key: str, default: bool) -> bool:
    """Get a boolean from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    return value.lower() in _TRUE_VALUES


def _get_env_int(key: str, default: int) -> int:
    """Get an integer from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Environment variables mapped onto provider properties
_PROPERTY_ENV = {
    f"{ENV_PREFIX}SECRET_KEY": PROP_SECRET_KEY,
    f"{ENV_PREFIX}TENANT_ID": PROP_TENANT_ID,
    f"{ENV_PREFIX}BASE_URL": PROP_API_HOST_BASE_URL,
    f"{ENV_PREFIX}ACTION_CODE": PROP_ACTION_CODE,
    f"{ENV_PREFIX}ENROL_BY_DEFAULT": PROP_ENROL_BY_DEFAULT,
}


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load application configuration.

    Configuration is loaded in this order (later values override earlier):
    1. Default values
    2. config.yaml file (if exists)
    3. Environment variables

    Args:
        config_path: Path to config file. Uses default if not specified.

    Returns:
        AppConfig with merged settings.
    """
    # Start with defaults
    config = AppConfig()

    # Try to load from config file
    file_path = config_path or DEFAULT_CONFIG_FILE
    if file_path.exists():
        try:
            with open(file_path) as f:
                data = yaml.safe_load(f) or {}
            config = AppConfig.from_dict(data, config_path=file_path)
        except (OSError, yaml.YAMLError, AttributeError, TypeError):
            # If config file is invalid, use defaults
            pass

    # Server settings
    if os.environ.get(f"{ENV_PREFIX}HOST"):
        config.server.host = os.environ[f"{ENV_PREFIX}HOST"]

    if os.environ.get(f"{ENV_PREFIX}PORT"):
        config.server.port = _get_env_int(f"{ENV_PREFIX}PORT", config.server.port)

    config.server.debug = _get_env_bool(f"{ENV_PREFIX}DEBUG", config.server.debug)

    # Node settings
    if os.environ.get(f"{ENV_PREFIX}REALM"):
        config.node.realm = os.environ[f"{ENV_PREFIX}REALM"]

    if os.environ.get(f"{ENV_PREFIX}CLIENT_ID"):
        config.node.client_id = os.environ[f"{ENV_PREFIX}CLIENT_ID"]

    for env_key, prop in _PROPERTY_ENV.items():
        if os.environ.get(env_key):
            config.node.properties[prop] = os.environ[env_key]

    # Logging
    if os.environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
        config.logging.level = os.environ[f"{ENV_PREFIX}LOG_LEVEL"]

    return config


def get_default_config_yaml() -> str:
    """Get the default config.yaml content as a string.

    Useful for generating example configuration files.
    """
    return """\
# stepup Configuration File
# Environment variables override these settings (prefix: STEPUP_)

server:
  # Server bind address
  host: "127.0.0.1"

  # Server port
  port: 8080

  # Enable debug mode (not recommended for production)
  debug: false

node:
  # Realm and client the authenticator is mounted for
  realm: "master"
  client_id: "account"

  # Path segment used in the callback URL
  authenticator_path: "stepup-authenticator"

  # Provider properties for the authenticator node
  properties:
    # Tenant secret key from the risk service admin portal (required)
    stepup.secretKey: ""

    # Tenant ID (informational)
    stepup.tenantId: ""

    # API region base URL (required)
    stepup.baseUrl: "https://api.example.com/v1"

    # Action code tracked for each login
    stepup.actionCode: "sign-in"

    # Send users without an enrolled authenticator to the challenge page
    stepup.enrolByDefault: true

logging:
  # ERROR, INFO, DEBUG or TRACE
  level: "INFO"

  # TRACE logs full request/response bodies unredacted
  trace_enabled: false

# Users known to the reference host
# Add entries with: stepup users add USERNAME
users: []
"""
