"""Timing of provider calls, discovery lookups and phase watches."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from powervs_check.observability.metrics import MetricsRecorder


@dataclass(slots=True)
class OperationTimer:
    """Outcome of one timed operation; an exception leaving the block fails it."""

    operation: str
    started: float = field(default_factory=perf_counter)
    success: bool = True
    error: BaseException | None = None

    def fail(self, error: BaseException | None = None) -> None:
        self.success = False
        if error is not None:
            self.error = error

    @property
    def elapsed(self) -> float:
        return perf_counter() - self.started


@contextmanager
def timed(recorder: MetricsRecorder, resource: str, operation: str) -> Iterator[OperationTimer]:
    """Record latency, success and error type of the enclosed block."""
    timer = OperationTimer(operation)
    try:
        yield timer
    except Exception as exc:
        timer.fail(exc)
        raise
    finally:
        recorder.observe_operation(
            resource=resource,
            operation=operation,
            duration_seconds=timer.elapsed,
            success=timer.success,
        )
        if timer.error is not None:
            recorder.observe_error(
                resource=resource,
                operation=operation,
                error_type=type(timer.error).__name__,
            )


class ObservableMixin:
    """Gives a component ``_timed`` under its ``_resource_name``.

    ``_metrics`` overrides the process-level recorder when set.
    """

    _resource_name: str
    _metrics: MetricsRecorder | None

    def _metrics_recorder(self) -> MetricsRecorder:
        from powervs_check.observability.metrics import get_metrics_recorder

        return self._metrics if self._metrics is not None else get_metrics_recorder()

    def _timed(self, operation: str):
        return timed(self._metrics_recorder(), self._resource_name, operation)
