"""Readiness checks for Power VS OpenShift clusters."""

from powervs_check.errors import (
    DeadlineExceededError,
    DiscoveryError,
    ExtractionError,
    PhaseError,
    PowerVSCheckError,
    ResourceNotFoundError,
    SetupError,
    StatusSourceError,
)
from powervs_check.metadata import ClusterMetadata
from powervs_check.model import (
    Condition,
    DiscoveryQuery,
    DiscoveryStrategy,
    ManagedResource,
    ReadinessReport,
    ResourceKind,
    Verdict,
)
from powervs_check.orchestrator import check_ci, check_create, watch_create
from powervs_check.providers import ProviderClients
from powervs_check.services import Services
from powervs_check.sinks import ConsoleSink, MemorySink, StatusSink
from powervs_check.watch import Phase, PhaseOutcome, PhaseResult, PhaseWatcher, watch_phases

__version__ = "0.1.0"

__all__ = [
    "ClusterMetadata",
    "Condition",
    "ConsoleSink",
    "DeadlineExceededError",
    "DiscoveryError",
    "DiscoveryQuery",
    "DiscoveryStrategy",
    "ExtractionError",
    "ManagedResource",
    "MemorySink",
    "Phase",
    "PhaseError",
    "PhaseOutcome",
    "PhaseResult",
    "PhaseWatcher",
    "PowerVSCheckError",
    "ProviderClients",
    "ReadinessReport",
    "ResourceKind",
    "ResourceNotFoundError",
    "Services",
    "SetupError",
    "StatusSink",
    "StatusSourceError",
    "Verdict",
    "__version__",
    "check_ci",
    "check_create",
    "watch_create",
]
