"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import EncDetectConfig

ENV_PREFIX = "ENCDETECT__"


def resolve_with_precedence(
    *,
    defaults: EncDetectConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> EncDetectConfig:
    """Layer overrides onto defaults (file, then environment, then CLI) and validate.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML configuration file.
        env_overrides: Values parsed from `ENCDETECT__*` environment variables.
        cli_overrides: Values supplied on the command line; keys may be dotted.

    Returns:
        EncDetectConfig: Validated configuration.

    Raises:
        ConfigError: If an override source is malformed or a value is invalid.
    """
    merged = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for source_name, source in layers:
        if source is None:
            continue
        merged = _merge(merged, _expand(source, source_name))

    try:
        return EncDetectConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: EncDetectConfig) -> Dict[str, str]:
    """Render the config as `ENCDETECT__SECTION__KEY` environment variables."""
    flat: Dict[str, str] = {}
    for section, values in config.model_dump(mode="python").items():
        for key, value in values.items():
            env_key = f"{ENV_PREFIX}{section.upper()}__{key.upper()}"
            if isinstance(value, (dict, list)):
                flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
            else:
                flat[env_key] = "null" if value is None else str(value)
    return flat


def _expand(source: Mapping[str, Any], source_name: str) -> dict[str, Any]:
    """Turn dotted keys into nested mappings."""
    label = source_name.capitalize()
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{label} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label} override keys must be strings.")
        *parents, leaf = key.split(".")
        node = expanded
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(f"{label} override for {key} conflicts with existing value.")
            node = child
        if isinstance(value, MappingABC):
            existing = node.get(leaf)
            if not isinstance(existing, MappingABC):
                existing = {}
            value = _merge(existing, _expand(value, source_name))
        node[leaf] = value
    return expanded


def _merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "flatten_for_env"]
