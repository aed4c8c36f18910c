"""Logging and metrics helpers."""

from powervs_check.observability._observable import ObservableMixin, OperationTimer, timed
from powervs_check.observability.logging import (
    ContextFilter,
    JsonFormatter,
    RunContext,
    TextFormatter,
    bootstrap_logging,
    bootstrap_logging_from_app_settings,
    current_context,
    current_run_id,
    phase_scope,
    run_scope,
)
from powervs_check.observability.metrics import (
    MetricsRecorder,
    NoopMetricsRecorder,
    PrometheusMetricsRecorder,
    configure_metrics_from_settings,
    configure_prometheus_metrics,
    get_metrics_recorder,
    render_prometheus_metrics,
    reset_metrics_recorder,
    set_metrics_recorder,
)

__all__ = [
    "ContextFilter",
    "JsonFormatter",
    "MetricsRecorder",
    "NoopMetricsRecorder",
    "ObservableMixin",
    "OperationTimer",
    "PrometheusMetricsRecorder",
    "RunContext",
    "TextFormatter",
    "bootstrap_logging",
    "bootstrap_logging_from_app_settings",
    "configure_metrics_from_settings",
    "configure_prometheus_metrics",
    "current_context",
    "current_run_id",
    "get_metrics_recorder",
    "phase_scope",
    "render_prometheus_metrics",
    "reset_metrics_recorder",
    "run_scope",
    "set_metrics_recorder",
    "timed",
]
