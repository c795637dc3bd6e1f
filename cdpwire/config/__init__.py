"""
Configuration module for cdpwire.

This module provides the configuration system for transports and connections:
- Strongly-typed option classes (TransportOptions, ConnectionOptions)
- Configuration file loading (JSON, YAML, TOML)
- Environment variable support
- Built-in profiles (debug, fast, remote)
- Validation and type checking via Pydantic

Example usage:
    from cdpwire.config import CDPWireConfig, ConnectionOptions, load_config

    # Load from file with environment overrides
    config = load_config("cdpwire.config.yaml")

    # Create programmatically
    config = CDPWireConfig(
        connection=ConnectionOptions(command_timeout=5.0),
    )

    # Use built-in profile
    from cdpwire.config import load_config_with_profile
    config = load_config_with_profile("debug")

Environment variables:
    CDPWIRE_CONNECTION_COMMAND_TIMEOUT=5
    CDPWIRE_CONNECTION_TRACK_SESSIONS=false
    CDPWIRE_TRANSPORT_PING_INTERVAL=none
"""

from .defaults import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_DEBUG_STRING_LIMIT,
    DEFAULT_EVENT_BUFFER_SIZE,
    DEFAULT_IDLE_TIME,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_PING_INTERVAL,
    DEFAULT_PING_TIMEOUT,
    ENV_PREFIX,
    get_default_connection_config,
    get_default_transport_config,
)
from .env import (
    ENV_MAPPINGS,
    EnvConfigLoader,
    get_env,
    get_env_bool,
    get_env_float,
    get_env_int,
    get_env_key,
    load_env_config,
    parse_value,
)
from .loader import (
    PROFILES,
    ConfigLoader,
    ConfigurationError,
    find_config_file,
    load_config,
    load_config_with_profile,
    load_file,
    load_profile,
    merge_configs,
    save_config,
)
from .options import CDPWireConfig, ConnectionOptions, TransportOptions

__all__ = [
    # Options
    "CDPWireConfig",
    "TransportOptions",
    "ConnectionOptions",
    # Loader
    "ConfigLoader",
    "ConfigurationError",
    "load_config",
    "load_config_with_profile",
    "load_file",
    "load_profile",
    "find_config_file",
    "merge_configs",
    "save_config",
    "PROFILES",
    # Environment
    "EnvConfigLoader",
    "ENV_MAPPINGS",
    "ENV_PREFIX",
    "get_env",
    "get_env_bool",
    "get_env_float",
    "get_env_int",
    "get_env_key",
    "load_env_config",
    "parse_value",
    # Defaults
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_DEBUG_STRING_LIMIT",
    "DEFAULT_EVENT_BUFFER_SIZE",
    "DEFAULT_IDLE_TIME",
    "DEFAULT_MAX_MESSAGE_SIZE",
    "DEFAULT_PING_INTERVAL",
    "DEFAULT_PING_TIMEOUT",
    "get_default_transport_config",
    "get_default_connection_config",
]
