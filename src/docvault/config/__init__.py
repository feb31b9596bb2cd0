"""Configuration management for docvault."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import (
    DatabaseSettings,
    DeletionSettings,
    DocvaultConfig,
    LoggingSettings,
    QuerySettings,
)
from .resolver import ENV_PREFIX, assign_setting, env_overrides, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.docvault/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # docvault configuration file
    # Generated automatically; manage via `docvault config set` or edit by hand.
    # Environment variables of the form DOCVAULT__SECTION__KEY override these values.
    """
)


class ConfigManager:
    """Read and write the docvault YAML config file."""

    def __init__(self, config_path: Path | None = None) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        env: Mapping[str, str] | None = None,
    ) -> DocvaultConfig:
        """Return the effective configuration, creating the file on first use.

        Args:
            cli_overrides: Dotted-key overrides from command-line options.
            include_env: Whether ``DOCVAULT__`` variables apply.
            env: Environment to read instead of ``os.environ``.
        """
        self.ensure_exists()
        environment = None
        if include_env:
            environment = env_overrides(env if env is not None else os.environ)
        return resolve_with_precedence(
            defaults=DocvaultConfig(),
            file_overrides=self.read_overrides(),
            env_overrides=environment,
            cli_overrides=cli_overrides,
        )

    def read_overrides(self) -> dict[str, Any]:
        """Return the mapping stored in the config file, or ``{}`` when absent."""
        if not self._config_path.exists():
            return {}
        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def set_value(self, key: str, value: Any) -> None:
        """Validate and persist a single dotted setting.

        Raises:
            ConfigError: If the key is malformed or the resulting config is invalid.
        """
        updated = assign_setting(self.read_overrides(), key, value)
        resolve_with_precedence(defaults=DocvaultConfig(), file_overrides=updated)
        self.save(updated)

    def save(self, data: Mapping[str, Any]) -> None:
        """Write ``data`` with the generated header and a fresh timestamp."""
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{serialized}", encoding="utf-8"
        )

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        if not self._config_path.exists():
            self.save(DocvaultConfig().model_dump(mode="python"))
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "ENV_PREFIX",
    "DocvaultConfig",
    "DatabaseSettings",
    "QuerySettings",
    "DeletionSettings",
    "LoggingSettings",
    "assign_setting",
    "env_overrides",
    "resolve_with_precedence",
    "ConfigError",
]
