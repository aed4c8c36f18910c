"""Errors raised while reading powervs-check settings."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from powervs_check.errors import PowerVSCheckError


class ConfigError(PowerVSCheckError):
    """Settings could not be loaded."""


class ConfigFileNotFoundError(ConfigError):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Settings file not found: {self.path}")


class ConfigValidationError(ConfigError):
    """The merged settings do not validate; one problem per invalid field."""

    def __init__(self, problems: Iterable[tuple[str, str]]) -> None:
        self.problems = list(problems)
        lines = "".join(f"\n  {field}: {reason}" for field, reason in self.problems)
        super().__init__(f"Invalid settings ({len(self.problems)} problems):{lines}")


class PlaceholderResolutionError(ConfigError):
    def __init__(self, variable: str, location: str) -> None:
        self.variable = variable
        self.location = location
        super().__init__(f"Environment variable {variable} is not set (needed by {location})")
