"""
Configuration file loader for cdpwire.

This module provides functions to load configuration from JSON, YAML and
TOML files, merge it with environment variables and built-in profiles.
"""

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from .defaults import (
    DEFAULT_CONFIG_EXTENSIONS,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_CONFIG_SEARCH_PATHS,
)
from .env import load_env_config
from .options import CDPWireConfig

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Configuration loading or parsing error."""

    pass


def _load_json(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_yaml(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


_LOADERS = {
    ".json": _load_json,
    ".yaml": _load_yaml,
    ".yml": _load_yaml,
    ".toml": _load_toml,
}


def load_file(path: Union[str, Path]) -> dict[str, Any]:
    """Load configuration from file based on extension.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If the file is missing, unparsable or in an
            unsupported format
    """
    path = Path(path)

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    loader = _LOADERS.get(suffix)
    if loader is None:
        raise ConfigurationError(f"Unsupported configuration format: {suffix}")

    try:
        data = loader(path)
    except (ValueError, yaml.YAMLError) as e:
        # json.JSONDecodeError and tomllib.TOMLDecodeError are ValueErrors
        raise ConfigurationError(f"Failed to parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {path}")
    return data


def find_config_file(
    filename: str = DEFAULT_CONFIG_FILENAME,
    search_paths: Optional[list[str]] = None,
    extensions: Optional[list[str]] = None,
) -> Optional[Path]:
    """Find configuration file in search paths.

    Args:
        filename: Base filename without extension
        search_paths: Directories to search
        extensions: File extensions to try

    Returns:
        Path to config file or None if not found
    """
    if search_paths is None:
        search_paths = DEFAULT_CONFIG_SEARCH_PATHS

    if extensions is None:
        extensions = DEFAULT_CONFIG_EXTENSIONS

    for search_path in search_paths:
        search_dir = Path(search_path).expanduser()

        for ext in extensions:
            config_path = search_dir / f"{filename}{ext}"
            if config_path.exists():
                return config_path

    return None


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Deep merge multiple configuration dictionaries.

    Later configs take precedence over earlier ones. Inputs are not modified.
    """
    result: dict[str, Any] = {}

    for config in configs:
        _deep_merge(result, config)

    return result


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        elif isinstance(value, dict):
            base[key] = {}
            _deep_merge(base[key], value)
        else:
            base[key] = value


def _build(data: dict[str, Any]) -> CDPWireConfig:
    try:
        return CDPWireConfig.from_dict(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


class ConfigLoader:
    """Configuration loader with support for multiple sources.

    This class provides a unified interface for loading configuration from
    files, environment variables, and programmatic overrides.
    """

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        search_paths: Optional[list[str]] = None,
        load_env: bool = True,
        auto_find: bool = True,
    ):
        """Initialize configuration loader.

        Args:
            config_file: Explicit path to configuration file
            search_paths: Directories to search for config files
            load_env: Whether to load environment variables
            auto_find: Whether to auto-find config files
        """
        self.config_file = Path(config_file) if config_file else None
        self.search_paths = search_paths or DEFAULT_CONFIG_SEARCH_PATHS
        self.load_env = load_env
        self.auto_find = auto_find
        self._file_config: Optional[dict[str, Any]] = None
        self._env_config: Optional[dict[str, Any]] = None

    def sources(self, overrides: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        """Collect configuration layers, lowest priority first."""
        configs = []

        file_config = self._load_file_config()
        if file_config:
            configs.append(file_config)

        if self.load_env:
            env_config = self._load_env_config()
            if env_config:
                configs.append(env_config)

        if overrides:
            configs.append(overrides)

        return configs

    def load(self, overrides: Optional[dict[str, Any]] = None) -> CDPWireConfig:
        """Load configuration from all sources.

        Priority (highest to lowest):
        1. Programmatic overrides
        2. Environment variables
        3. Configuration file
        4. Default values

        Raises:
            ConfigurationError: If the explicit config file cannot be read or
                the merged values are invalid
        """
        return _build(merge_configs(*self.sources(overrides)))

    def _load_file_config(self) -> Optional[dict[str, Any]]:
        if self._file_config is not None:
            return self._file_config

        if self.config_file is not None:
            self._file_config = load_file(self.config_file)
            return self._file_config

        if self.auto_find:
            config_path = find_config_file(search_paths=self.search_paths)
            if config_path is not None:
                try:
                    self._file_config = load_file(config_path)
                except ConfigurationError as e:
                    logger.warning(f"Ignoring config file {config_path}: {e}")
                    self._file_config = {}

        return self._file_config

    def _load_env_config(self) -> Optional[dict[str, Any]]:
        if self._env_config is not None:
            return self._env_config

        try:
            self._env_config = load_env_config()
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable: {e}") from e
        return self._env_config

    def reload(self) -> CDPWireConfig:
        """Reload configuration from all sources."""
        self._file_config = None
        self._env_config = None
        return self.load()


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[dict[str, Any]] = None,
    load_env: bool = True,
) -> CDPWireConfig:
    """Convenience function to load configuration.

    Args:
        config_file: Path to configuration file
        overrides: Programmatic overrides
        load_env: Whether to load environment variables

    Returns:
        Loaded configuration
    """
    loader = ConfigLoader(config_file=config_file, load_env=load_env)
    return loader.load(overrides=overrides)


def save_config(
    config: CDPWireConfig,
    path: Union[str, Path],
    format: str = "json",
) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save
        path: Output file path
        format: Output format (json, yaml)

    Raises:
        ConfigurationError: If format is not supported
    """
    path = Path(path)
    data = config.to_dict()

    if format == "json":
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)

    elif format in ("yaml", "yml"):
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False)

    else:
        raise ConfigurationError(f"Unsupported output format: {format}")


# Built-in configuration profiles
PROFILES = {
    "debug": {
        # paused targets stop answering; never time out or drop a ping
        "transport": {
            "ping_interval": None,
        },
        "connection": {
            "command_timeout": None,
            "debug_string_limit": 1024,
        },
    },
    "fast": {
        "transport": {
            "open_timeout": 3.0,
            "close_timeout": 2.0,
        },
        "connection": {
            "command_timeout": 5.0,
        },
    },
    "remote": {
        "transport": {
            "ping_interval": 15.0,
            "ping_timeout": 20.0,
            "open_timeout": 30.0,
        },
        "connection": {
            "command_timeout": 60.0,
            "event_buffer_size": 10000,
        },
    },
}


def load_profile(name: str) -> dict[str, Any]:
    """Load a built-in configuration profile.

    Args:
        name: Profile name (debug, fast, remote)

    Returns:
        Profile configuration dictionary

    Raises:
        ConfigurationError: If profile not found
    """
    if name not in PROFILES:
        raise ConfigurationError(
            f"Unknown profile: {name}. "
            f"Available profiles: {', '.join(PROFILES.keys())}"
        )

    return merge_configs(PROFILES[name], {"profile": name})


def load_config_with_profile(
    profile: str,
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[dict[str, Any]] = None,
    load_env: bool = True,
) -> CDPWireConfig:
    """Load configuration with a profile as base.

    Precedence: defaults < profile < file < env < overrides.
    """
    profile_config = load_profile(profile)

    loader = ConfigLoader(config_file=config_file, load_env=load_env)
    return _build(merge_configs(profile_config, *loader.sources(overrides)))
