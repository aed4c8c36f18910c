"""Layered settings: base file, environment file, then ``POWERVS_CHECK__*`` variables."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from powervs_check.config.errors import ConfigError, ConfigFileNotFoundError, ConfigValidationError
from powervs_check.config.models import AppSettings
from powervs_check.config.placeholders import resolve_placeholders

DEFAULT_CONFIG_DIR = Path("config")
DEFAULT_BASE_FILE = "appsettings.json"
ENV_VAR_NAME = "POWERVS_CHECK_ENV"
DEFAULT_ENV = "development"
# POWERVS_CHECK__WATCH__MAX_ATTEMPTS=30 sets watch.max_attempts.
OVERRIDE_PREFIX = "POWERVS_CHECK__"


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested objects merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_json_file(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigFileNotFoundError(path) from None
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Settings file {path} is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Settings file {path} must hold a JSON object")
    return payload


def environment_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Nested overrides from ``POWERVS_CHECK__SECTION__FIELD`` variables.

    Values stay strings; pydantic coerces them while validating.
    """
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for name, value in env.items():
        if not name.startswith(OVERRIDE_PREFIX):
            continue
        path = [part.lower() for part in name[len(OVERRIDE_PREFIX):].split("__") if part]
        if not path:
            continue
        node = overrides
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = value
    return overrides


def validate_settings(config: Mapping[str, Any]) -> AppSettings:
    try:
        return AppSettings.model_validate(config)
    except ValidationError as exc:
        raise ConfigValidationError(
            (" -> ".join(str(part) for part in error["loc"]) or "settings", error["msg"])
            for error in exc.errors()
        ) from exc


def load_config(
    *,
    config_dir: Path | str | None = None,
    env: str | None = None,
    strict_placeholders: bool = True,
    required: bool = True,
) -> AppSettings:
    """Load ``AppSettings`` from the settings directory and the process environment.

    Layers, later ones winning:

    1. ``<config_dir>/appsettings.json``, required unless ``required`` is off
    2. ``<config_dir>/appsettings.<env>.json``, when present
    3. ``POWERVS_CHECK__SECTION__FIELD`` environment variables

    ``${VAR}`` placeholders are expanded after merging. ``env`` defaults to
    ``POWERVS_CHECK_ENV`` and then to ``development``.
    """
    directory = DEFAULT_CONFIG_DIR if config_dir is None else Path(config_dir)
    environment = env or os.environ.get(ENV_VAR_NAME, DEFAULT_ENV)

    base_path = directory / DEFAULT_BASE_FILE
    config = load_json_file(base_path) if required or base_path.exists() else {}

    env_path = directory / f"appsettings.{environment}.json"
    if env_path.exists():
        config = deep_merge(config, load_json_file(env_path))

    config = deep_merge(config, environment_overrides())
    return validate_settings(resolve_placeholders(config, strict=strict_placeholders))
