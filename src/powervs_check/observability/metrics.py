"""Prometheus counters for discovery, provider calls, verdicts and phase polls.

``prometheus-client`` is an optional extra. Without it, and whenever
``metrics.enabled`` is off, a no-op recorder is installed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from powervs_check.errors import MissingDependencyError

if TYPE_CHECKING:
    from powervs_check.config.models import MetricsSettings

DEFAULT_PREFIX = "powervs_check"
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0)

_CALL_LABELS = ("resource", "operation", "status")


@dataclass(frozen=True, slots=True)
class _Collector:
    kind: str
    suffix: str
    documentation: str
    labels: tuple[str, ...]


_COLLECTORS: dict[str, _Collector] = {
    "latency": _Collector(
        "histogram", "provider_latency_seconds", "Provider call latency in seconds.", _CALL_LABELS
    ),
    "calls": _Collector("counter", "provider_calls_total", "Provider calls.", _CALL_LABELS),
    "errors": _Collector(
        "counter",
        "provider_errors_total",
        "Provider call errors by exception type.",
        ("resource", "operation", "error_type"),
    ),
    "verdicts": _Collector(
        "counter",
        "verdicts_total",
        "OK/NOTOK verdicts per managed resource kind.",
        ("resource", "verdict"),
    ),
    "polls": _Collector(
        "counter", "phase_polls_total", "Poll passes per readiness phase.", ("phase", "outcome")
    ),
}

_UNSAFE = re.compile(r"[^a-z0-9_]+")


def _label(value: str) -> str:
    """``image-import-ready`` becomes ``image_import_ready``."""
    return _UNSAFE.sub("_", value.strip().lower()).strip("_") or "unknown"


def _prometheus() -> Any:
    try:
        import prometheus_client
    except ImportError as exc:  # pragma: no cover - optional extra
        raise MissingDependencyError(
            "Metrics need the optional 'prometheus-client' package: "
            "pip install 'powervs-check[metrics]'"
        ) from exc
    return prometheus_client


class MetricsRecorder(Protocol):
    """What discovery, checks and the phase watcher report."""

    def observe_operation(
        self, *, resource: str, operation: str, duration_seconds: float, success: bool
    ) -> None: ...

    def observe_error(self, *, resource: str, operation: str, error_type: str) -> None: ...

    def observe_verdict(self, *, resource: str, ok: bool) -> None: ...

    def observe_poll(self, *, phase: str, outcome: str) -> None: ...


class NoopMetricsRecorder:
    def observe_operation(
        self, *, resource: str, operation: str, duration_seconds: float, success: bool
    ) -> None:
        return None

    def observe_error(self, *, resource: str, operation: str, error_type: str) -> None:
        return None

    def observe_verdict(self, *, resource: str, ok: bool) -> None:
        return None

    def observe_poll(self, *, phase: str, outcome: str) -> None:
        return None


class PrometheusMetricsRecorder:
    """Records into a Prometheus registry under ``<prefix>_*`` names.

    Two recorders on the same registry and prefix share their collectors.
    """

    def __init__(self, *, registry: Any | None = None, prefix: str = DEFAULT_PREFIX) -> None:
        client = _prometheus()
        self._registry = client.REGISTRY if registry is None else registry
        self._prefix = _label(prefix)
        self._metrics = {
            key: self._collector(client, definition) for key, definition in _COLLECTORS.items()
        }

    def _collector(self, client: Any, definition: _Collector) -> Any:
        name = f"{self._prefix}_{definition.suffix}"
        registered = getattr(self._registry, "_names_to_collectors", {})
        existing = registered.get(name)
        if existing is not None:
            return existing
        if definition.kind == "histogram":
            return client.Histogram(
                name,
                definition.documentation,
                labelnames=definition.labels,
                registry=self._registry,
                buckets=LATENCY_BUCKETS,
            )
        return client.Counter(
            name, definition.documentation, labelnames=definition.labels, registry=self._registry
        )

    def observe_operation(
        self, *, resource: str, operation: str, duration_seconds: float, success: bool
    ) -> None:
        labels = {
            "resource": _label(resource),
            "operation": _label(operation),
            "status": "success" if success else "error",
        }
        self._metrics["latency"].labels(**labels).observe(max(duration_seconds, 0.0))
        self._metrics["calls"].labels(**labels).inc()

    def observe_error(self, *, resource: str, operation: str, error_type: str) -> None:
        self._metrics["errors"].labels(
            resource=_label(resource), operation=_label(operation), error_type=_label(error_type)
        ).inc()

    def observe_verdict(self, *, resource: str, ok: bool) -> None:
        verdict = "ok" if ok else "notok"
        self._metrics["verdicts"].labels(resource=_label(resource), verdict=verdict).inc()

    def observe_poll(self, *, phase: str, outcome: str) -> None:
        self._metrics["polls"].labels(phase=_label(phase), outcome=_label(outcome)).inc()


_NOOP = NoopMetricsRecorder()
_current: MetricsRecorder = _NOOP


def get_metrics_recorder() -> MetricsRecorder:
    return _current


def set_metrics_recorder(recorder: MetricsRecorder | None) -> MetricsRecorder:
    """Install ``recorder`` for the process; ``None`` restores the no-op one."""
    global _current
    _current = recorder if recorder is not None else _NOOP
    return _current


def reset_metrics_recorder() -> MetricsRecorder:
    return set_metrics_recorder(None)


def configure_prometheus_metrics(
    *, registry: Any | None = None, prefix: str = DEFAULT_PREFIX, set_default: bool = True
) -> PrometheusMetricsRecorder:
    recorder = PrometheusMetricsRecorder(registry=registry, prefix=prefix)
    if set_default:
        set_metrics_recorder(recorder)
    return recorder


def configure_metrics_from_settings(settings: MetricsSettings) -> MetricsRecorder:
    """Apply the ``metrics`` settings section and return the installed recorder."""
    if not settings.enabled:
        return reset_metrics_recorder()
    recorder = configure_prometheus_metrics(prefix=settings.prefix)
    if settings.port is not None:
        start_prometheus_http_server(port=settings.port)
    return recorder


def render_prometheus_metrics(*, registry: Any | None = None) -> bytes:
    """Exposition-format dump of ``registry`` (the default registry when omitted)."""
    client = _prometheus()
    return bytes(client.generate_latest(client.REGISTRY if registry is None else registry))


@dataclass(frozen=True, slots=True)
class PrometheusHttpServer:
    server: Any
    thread: Any


def start_prometheus_http_server(
    *, port: int = 9464, host: str = "0.0.0.0", registry: Any | None = None
) -> PrometheusHttpServer:
    """Serve ``/metrics`` from a daemon thread for the rest of the run."""
    if not 1 <= port <= 65535:
        raise ValueError(f"metrics port {port} is outside 1-65535")
    client = _prometheus()
    server, thread = client.start_http_server(
        port=port, addr=host, registry=client.REGISTRY if registry is None else registry
    )
    return PrometheusHttpServer(server=server, thread=thread)
