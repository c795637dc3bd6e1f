"""
Default configuration values for cdpwire.

This module contains all default values used throughout the configuration system.
"""

from typing import Any

# Transport defaults
DEFAULT_MAX_MESSAGE_SIZE = 100 * 1024 * 1024  # screenshots and heap snapshots are large
DEFAULT_PING_INTERVAL = 30.0
DEFAULT_PING_TIMEOUT = 10.0
DEFAULT_OPEN_TIMEOUT = 10.0
DEFAULT_CLOSE_TIMEOUT = 10.0

# Connection defaults
DEFAULT_COMMAND_TIMEOUT = 30.0
DEFAULT_EVENT_BUFFER_SIZE = 0
DEFAULT_DEBUG_STRING_LIMIT = 64
DEFAULT_TRACK_SESSIONS = True
DEFAULT_FLATTEN = True
DEFAULT_IDLE_TIME = 0.1

# File config defaults
DEFAULT_CONFIG_FILENAME = "cdpwire.config"
DEFAULT_CONFIG_EXTENSIONS = [".json", ".yaml", ".yml", ".toml"]
DEFAULT_CONFIG_SEARCH_PATHS = [
    ".",
    "~/.config/cdpwire",
    "/etc/cdpwire",
]

# Environment variable prefix
ENV_PREFIX = "CDPWIRE_"


def get_default_transport_config() -> dict[str, Any]:
    """Get default transport configuration as a dictionary."""
    return {
        "max_message_size": DEFAULT_MAX_MESSAGE_SIZE,
        "ping_interval": DEFAULT_PING_INTERVAL,
        "ping_timeout": DEFAULT_PING_TIMEOUT,
        "open_timeout": DEFAULT_OPEN_TIMEOUT,
        "close_timeout": DEFAULT_CLOSE_TIMEOUT,
    }


def get_default_connection_config() -> dict[str, Any]:
    """Get default connection configuration as a dictionary."""
    return {
        "command_timeout": DEFAULT_COMMAND_TIMEOUT,
        "event_buffer_size": DEFAULT_EVENT_BUFFER_SIZE,
        "debug_string_limit": DEFAULT_DEBUG_STRING_LIMIT,
        "track_sessions": DEFAULT_TRACK_SESSIONS,
        "flatten": DEFAULT_FLATTEN,
    }
