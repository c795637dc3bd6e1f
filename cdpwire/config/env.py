"""
Environment variable support for cdpwire configuration.

Every option can be overridden with ``CDPWIRE_<SECTION>_<OPTION>``, e.g.
``CDPWIRE_CONNECTION_COMMAND_TIMEOUT=5`` or ``CDPWIRE_TRANSPORT_PING_INTERVAL=none``.
"""

import os
from typing import Any, Optional, TypeVar, Union, get_args, get_origin

from .defaults import ENV_PREFIX

T = TypeVar("T")

NONE_VALUES = ("", "none", "null", "off")


def get_env_key(key: str, prefix: str = ENV_PREFIX) -> str:
    """Convert a configuration key to environment variable name.

    Args:
        key: Configuration key (e.g., "connection.command_timeout")
        prefix: Environment variable prefix

    Returns:
        Environment variable name (e.g., "CDPWIRE_CONNECTION_COMMAND_TIMEOUT")
    """
    return f"{prefix}{key.upper().replace('.', '_').replace('-', '_')}"


def parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on", "enabled")


def parse_int(value: str) -> int:
    return int(value)


def parse_float(value: str) -> float:
    return float(value)


def parse_value(value: str, target_type: Any) -> Any:
    """Parse string value to target type.

    ``Optional[X]`` accepts ``none``, ``null``, ``off`` or an empty string as
    None, so a timeout can be disabled from the environment.

    Raises:
        ValueError: If the value does not parse as ``target_type``.
    """
    origin = get_origin(target_type)

    if origin is Union:
        args = get_args(target_type)
        if type(None) in args and value.strip().lower() in NONE_VALUES:
            return None
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            return parse_value(value, non_none_types[0])
        return value

    if target_type == bool:
        return parse_bool(value)

    if target_type == int:
        return parse_int(value)

    if target_type == float:
        return parse_float(value)

    return value


def get_env(
    key: str,
    default: Optional[T] = None,
    target_type: Optional[Any] = None,
    prefix: str = ENV_PREFIX,
) -> Optional[Union[T, str]]:
    """Get configuration value from environment variable.

    Args:
        key: Configuration key (e.g., "connection.track_sessions")
        default: Default value if not set
        target_type: Target type for parsing
        prefix: Environment variable prefix

    Returns:
        Parsed value or default
    """
    env_key = get_env_key(key, prefix)
    value = os.environ.get(env_key)

    if value is None:
        return default

    if target_type is not None:
        return parse_value(value, target_type)

    # Infer type from default
    if default is not None:
        return parse_value(value, type(default))

    return value


def get_env_bool(key: str, default: bool = False, prefix: str = ENV_PREFIX) -> bool:
    result = get_env(key, default, bool, prefix)
    return result if isinstance(result, bool) else default


def get_env_int(key: str, default: int = 0, prefix: str = ENV_PREFIX) -> int:
    result = get_env(key, default, int, prefix)
    return result if isinstance(result, int) else default


def get_env_float(key: str, default: float = 0.0, prefix: str = ENV_PREFIX) -> float:
    result = get_env(key, default, float, prefix)
    return result if isinstance(result, (int, float)) else default


class EnvConfigLoader:
    """Load configuration sections from environment variables.

    Values come back as raw strings; pydantic coerces them when the
    configuration model is built.
    """

    SECTIONS = ("transport", "connection")

    def __init__(self, prefix: str = ENV_PREFIX):
        self.prefix = prefix

    def get(
        self,
        key: str,
        default: Optional[T] = None,
        target_type: Optional[Any] = None,
    ) -> Optional[Union[T, str]]:
        return get_env(key, default, target_type, self.prefix)

    def load_section(self, section: str) -> dict[str, Any]:
        """Load all environment variables for a section.

        Args:
            section: Configuration section (e.g., "connection")

        Returns:
            Dictionary of configuration values
        """
        section_prefix = f"{self.prefix}{section.upper()}_"
        result = {}

        for key, value in os.environ.items():
            if key.startswith(section_prefix):
                # CDPWIRE_CONNECTION_COMMAND_TIMEOUT -> command_timeout
                config_key = key[len(section_prefix):].lower()
                result[config_key] = value

        return result

    def load_all(self) -> dict[str, dict[str, Any]]:
        return {section: self.load_section(section) for section in self.SECTIONS}


# Predefined environment variable mappings
ENV_MAPPINGS: dict[str, tuple[str, Any]] = {
    # Transport options
    "transport.max_message_size": ("CDPWIRE_TRANSPORT_MAX_MESSAGE_SIZE", Optional[int]),
    "transport.ping_interval": ("CDPWIRE_TRANSPORT_PING_INTERVAL", Optional[float]),
    "transport.ping_timeout": ("CDPWIRE_TRANSPORT_PING_TIMEOUT", Optional[float]),
    "transport.open_timeout": ("CDPWIRE_TRANSPORT_OPEN_TIMEOUT", Optional[float]),
    "transport.close_timeout": ("CDPWIRE_TRANSPORT_CLOSE_TIMEOUT", Optional[float]),
    # Connection options
    "connection.command_timeout": ("CDPWIRE_CONNECTION_COMMAND_TIMEOUT", Optional[float]),
    "connection.event_buffer_size": ("CDPWIRE_CONNECTION_EVENT_BUFFER_SIZE", int),
    "connection.debug_string_limit": ("CDPWIRE_CONNECTION_DEBUG_STRING_LIMIT", int),
    "connection.track_sessions": ("CDPWIRE_CONNECTION_TRACK_SESSIONS", bool),
    "connection.flatten": ("CDPWIRE_CONNECTION_FLATTEN", bool),
}


def load_env_config() -> dict[str, Any]:
    """Load configuration from predefined environment variables.

    Returns:
        Nested dictionary of configuration values
    """
    result: dict[str, Any] = {"transport": {}, "connection": {}}

    for key, (env_var, target_type) in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value is not None:
            section, option = key.split(".", 1)
            result[section][option] = parse_value(value, target_type)

    return result
