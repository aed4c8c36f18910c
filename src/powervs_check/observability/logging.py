"""Log setup for powervs-check runs.

Status lines go to the status sink (stdout); log records go to stderr. Every
record carries the run context: a run id, the CLI command and, while a
readiness phase is being watched, the phase name.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TextIO
from uuid import uuid4

if TYPE_CHECKING:
    from powervs_check.config.models import AppSettings

CONTEXT_FIELDS = ("run_id", "command", "phase")

# Attributes every LogRecord has; anything else came in through ``extra=``.
_RECORD_ATTRIBUTES = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "service",
    "env",
    *CONTEXT_FIELDS,
}


@dataclass(frozen=True, slots=True)
class RunContext:
    run_id: str | None = None
    command: str | None = None
    phase: str | None = None


_CONTEXT: ContextVar[RunContext] = ContextVar("powervs_check_run_context", default=RunContext())


def current_context() -> RunContext:
    return _CONTEXT.get()


def current_run_id() -> str | None:
    return _CONTEXT.get().run_id


@contextmanager
def run_scope(run_id: str | None = None, *, command: str | None = None) -> Iterator[str]:
    """Bind a run id (generated when omitted) and the command being run."""
    resolved = run_id or uuid4().hex[:12]
    token = _CONTEXT.set(replace(_CONTEXT.get(), run_id=resolved, command=command))
    try:
        yield resolved
    finally:
        _CONTEXT.reset(token)


@contextmanager
def phase_scope(phase: str) -> Iterator[None]:
    token = _CONTEXT.set(replace(_CONTEXT.get(), phase=phase))
    try:
        yield
    finally:
        _CONTEXT.reset(token)


class ContextFilter(logging.Filter):
    """Stamps service, environment and run context onto each record."""

    def __init__(self, *, service: str, env: str) -> None:
        super().__init__()
        self._service = service
        self._env = env

    def filter(self, record: logging.LogRecord) -> bool:
        context = _CONTEXT.get()
        record.service = self._service
        record.env = self._env
        for field in CONTEXT_FIELDS:
            setattr(record, field, getattr(context, field))
        return True


class TextFormatter(logging.Formatter):
    """``<time> <LEVEL> <logger> <message> run_id=<id>[ phase=<phase>]``."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = f"{super().format(record)} run_id={getattr(record, 'run_id', None) or '-'}"
        phase = getattr(record, "phase", None)
        return f"{line} phase={phase}" if phase else line


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with context fields and ``extra=`` values."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": getattr(record, "service", None),
            "env": getattr(record, "env", None),
        }
        for field in CONTEXT_FIELDS:
            payload[field] = getattr(record, field, None)
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


def bootstrap_logging(
    *,
    service: str,
    env: str | None = None,
    level: str = "INFO",
    log_format: str = "text",
    logger: logging.Logger | None = None,
    stream: TextIO | None = None,
    force: bool = True,
) -> logging.Logger:
    """Attach one context-aware stream handler to ``logger`` (the root by default)."""
    target = logger or logging.getLogger()
    if force:
        for existing in list(target.handlers):
            target.removeHandler(existing)

    handler = logging.StreamHandler(stream)
    handler.addFilter(
        ContextFilter(service=service, env=env or os.getenv("POWERVS_CHECK_ENV", "development"))
    )
    handler.setFormatter(JsonFormatter() if log_format == "json" else TextFormatter())

    target.addHandler(handler)
    target.setLevel(level.upper())
    if target is not logging.getLogger():
        target.propagate = False
    return target


def bootstrap_logging_from_app_settings(
    app_settings: AppSettings,
    *,
    env: str | None = None,
    level: str | None = None,
    logger: logging.Logger | None = None,
    stream: TextIO | None = None,
    force: bool = True,
) -> logging.Logger:
    """Same as :func:`bootstrap_logging`; ``level`` overrides the configured one."""
    return bootstrap_logging(
        service=app_settings.service.name,
        env=env,
        level=level or app_settings.logging.level,
        log_format=app_settings.logging.format,
        logger=logger,
        stream=stream,
        force=force,
    )
