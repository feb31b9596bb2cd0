"""Merge docvault configuration sources into a validated model."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from copy import deepcopy
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import DocvaultConfig

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "DOCVAULT__"


def resolve_with_precedence(
    *,
    defaults: DocvaultConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> DocvaultConfig:
    """Merge configuration sources: defaults < file < environment < CLI.

    Each source may use nested sections (``{"query": {"max_limit": 50}}``) or
    dotted keys (``{"query.max_limit": 50}``). Settings are two levels deep, so
    later sources replace individual settings within a section.

    Raises:
        ConfigError: If a source is malformed or the merged values are invalid.
    """
    merged = defaults.model_dump(mode="python")
    for name, source in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if source is None:
            continue
        for section, values in section_overrides(source, source_name=name).items():
            current = merged.get(section)
            if isinstance(current, dict):
                current.update(values)
            else:
                merged[section] = values

    try:
        return DocvaultConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def section_overrides(
    source: Mapping[str, Any], *, source_name: str
) -> dict[str, dict[str, Any]]:
    """Group a source's overrides by config section."""
    label = source_name.capitalize()
    if not isinstance(source, Mapping):
        raise ConfigError(f"{label} overrides must be a mapping.")

    sections: dict[str, dict[str, Any]] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label} override keys must be strings.")
        section, _, setting = key.partition(".")
        if setting:
            sections.setdefault(section, {})[setting] = value
        elif isinstance(value, Mapping):
            sections.setdefault(section, {}).update(value)
        else:
            raise ConfigError(f"{label} override {key!r} must name a setting as section.key.")
    return sections


def env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``DOCVAULT__SECTION__KEY`` variables as dotted overrides.

    Values are parsed as YAML scalars so ``200`` and ``false`` keep their types.
    """
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        section, sep, setting = key[len(ENV_PREFIX) :].lower().partition("__")
        if not sep or not section or not setting:
            LOGGER.warning("Ignoring %s; expected %sSECTION__KEY.", key, ENV_PREFIX)
            continue
        try:
            value: Any = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        overrides[f"{section}.{setting}"] = value
    return overrides


def assign_setting(data: Mapping[str, Any], key: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``data`` with the dotted ``section.key`` set to ``value``.

    Raises:
        ConfigError: If ``key`` is not ``section.key`` or the section is not a mapping.
    """
    section, _, setting = key.strip().partition(".")
    if not section or not setting or "." in setting:
        raise ConfigError(f"KEY must look like 'query.default_limit', got {key!r}.")

    updated = deepcopy(dict(data))
    current = updated.get(section)
    if current is None:
        current = updated[section] = {}
    elif not isinstance(current, dict):
        raise ConfigError(f"Section '{section}' in the config file is not a mapping.")
    current[setting] = value
    return updated


__all__ = [
    "ENV_PREFIX",
    "assign_setting",
    "env_overrides",
    "resolve_with_precedence",
    "section_overrides",
]
