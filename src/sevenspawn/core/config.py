"""Configuration resolver with 4-level priority.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (SEVENSPAWN_*)
3. Config files (user > system)
4. Defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from sevenspawn.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"
DEFAULT_ARCHIVER_PATH = "7za"
DEFAULT_TERMINATE_TIMEOUT_MS = 5000

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


@dataclass
class ConfigSource:
    """Represents where a config value came from."""

    value: Any
    source: str  # 'cli' | 'env' | 'user_config' | 'system_config' | 'default'


def _flatten_keys(data: dict[str, Any], prefix: str = "") -> set[str]:
    keys: set[str] = set()
    for key, value in data.items():
        key_path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            keys.update(_flatten_keys(value, key_path))
        else:
            keys.add(key_path)
    return keys


class ConfigResolver:
    """Resolve configuration with strict 4-level priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'archiver': {'path': '/opt/7zip/7zz'}},
            user_config_path=Path('~/.config/sevenspawn/config.yaml'),
        )

        path, source = resolver.resolve('archiver.path')
        # path = '/opt/7zip/7zz', source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Arguments from CLI (highest priority); nested dicts or
                flat dot-notation keys
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
        """
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/sevenspawn/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/sevenspawn/config.yaml")
        self.defaults = defaults if defaults is not None else self._default_config()

        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'archiver.path')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._from_cli(key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._get_nested(self._get_user_config(), key)
        if value is not None:
            return value, "user_config"

        value = self._get_nested(self._get_system_config(), key)
        if value is not None:
            return value, "system_config"

        value = self._get_nested(self.defaults, key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_archiver_path(self) -> str:
        """Resolve and validate archiver.path (the executable to launch)."""
        key = "archiver.path"
        value, _src = self.resolve(key)
        if not isinstance(value, (str, os.PathLike)):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")
        value = os.fspath(value)
        if value.strip() == "":
            raise ConfigError(
                f"Config key '{key}' must not be empty",
                "Point it at a 7-Zip executable, e.g. SEVENSPAWN_ARCHIVER_PATH=/usr/bin/7za",
            )
        return value

    def resolve_terminate_timeout(self) -> float:
        """Resolve terminate.timeout_ms and return it in seconds.

        Environment variables arrive as strings, so numeric strings are accepted.

        Raises:
            ConfigError: If the value is not a positive integer.
        """
        key = "terminate.timeout_ms"
        value, _src = self.resolve(key)
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"Config key '{key}' must be an int (milliseconds)")
        if value <= 0:
            raise ConfigError(f"Config key '{key}' must be positive, got {value}")
        return value / 1000.0

    def resolve_logging_level(self) -> str:
        """Resolve and validate logging.level.

        Allowed values (after normalization):
            quiet | normal | verbose | debug

        Raises:
            ConfigError: If the resolved value is invalid.
        """
        key = "logging.level"
        try:
            value, _src = self.resolve(key)
        except ConfigError:
            return DEFAULT_LOGGING_LEVEL

        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")
        norm = value.strip().lower()
        if norm not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid '{key}': {value!r}. Allowed values: {allowed}")
        return norm

    def resolve_logging_color(self) -> bool:
        """Resolve logging.color (ANSI colours on a TTY).

        Environment variables arrive as strings, so true/false, yes/no,
        on/off and 1/0 are accepted. A missing key means colours on.

        Raises:
            ConfigError: If the value is not a boolean.
        """
        key = "logging.color"
        try:
            value, _src = self.resolve(key)
        except ConfigError:
            return True

        if isinstance(value, str):
            norm = value.strip().lower()
            if norm in _TRUE_WORDS:
                return True
            if norm in _FALSE_WORDS:
                return False
        if not isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be a boolean, got {value!r}")
        return value

    def resolve_all(self) -> dict[str, ConfigSource]:
        """Resolve every key known to any source.

        Returns:
            Dict of key -> ConfigSource, sorted by key
        """
        all_keys: set[str] = set()
        all_keys.update(_flatten_keys(self.cli_args))
        all_keys.update(_flatten_keys(self._get_user_config()))
        all_keys.update(_flatten_keys(self._get_system_config()))
        all_keys.update(_flatten_keys(self.defaults))

        result: dict[str, ConfigSource] = {}
        for key in sorted(all_keys):
            value, source = self.resolve(key)
            result[key] = ConfigSource(value=value, source=source)
        return result

    def _from_cli(self, key: str) -> Any | None:
        if key in self.cli_args:
            return self.cli_args[key]
        return self._get_nested(self.cli_args, key)

    def _from_env(self, key: str) -> Any | None:
        """Environment variable format: SEVENSPAWN_ARCHIVER_PATH for archiver.path."""
        env_key = f"SEVENSPAWN_{key.upper().replace('.', '_')}"
        return os.environ.get(env_key)

    def _get_user_config(self) -> dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'archiver': {'path': '7zz'}}
            _get_nested(data, 'archiver.path') -> '7zz'
        """
        current: Any = data
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None
        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        return {
            "archiver": {
                "path": DEFAULT_ARCHIVER_PATH,
            },
            "terminate": {
                "timeout_ms": DEFAULT_TERMINATE_TIMEOUT_MS,
            },
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "color": True,
            },
        }
