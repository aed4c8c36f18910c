"""``${VAR}`` and ``${VAR:-default}`` expansion inside settings documents."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Any

from powervs_check.config.errors import PlaceholderResolutionError

PLACEHOLDER_PATTERN = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")


def resolve_placeholders(
    data: Mapping[str, Any],
    *,
    strict: bool = True,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return a copy of ``data`` with every placeholder expanded.

    A variable that is unset and has no default raises
    :class:`PlaceholderResolutionError` naming its dotted location, unless
    ``strict`` is off, in which case the placeholder text is kept.
    """
    env = os.environ if environ is None else environ
    return _expand(data, "", env, strict)


def _expand(value: Any, location: str, env: Mapping[str, str], strict: bool) -> Any:
    match value:
        case Mapping():
            return {
                key: _expand(item, f"{location}.{key}" if location else str(key), env, strict)
                for key, item in value.items()
            }
        case list():
            return [
                _expand(item, f"{location}[{index}]", env, strict)
                for index, item in enumerate(value)
            ]
        case str():
            return PLACEHOLDER_PATTERN.sub(lambda m: _substitute(m, location, env, strict), value)
        case _:
            return value


def _substitute(match: re.Match[str], location: str, env: Mapping[str, str], strict: bool) -> str:
    name = match["name"]
    if name in env:
        return env[name]
    if match["default"] is not None:
        return match["default"]
    if strict:
        raise PlaceholderResolutionError(name, location)
    return match[0]
