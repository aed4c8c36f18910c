"""Custom exceptions for powervs-check."""


class PowerVSCheckError(Exception):
    """Base exception for this package."""


class MissingDependencyError(PowerVSCheckError):
    """Raised when an optional dependency is required but not installed."""


class SetupError(PowerVSCheckError):
    """Raised when credentials, metadata or clients are unusable.

    Setup faults abort the run before any resource work begins.
    """


class DiscoveryError(PowerVSCheckError):
    """Raised when a provider listing, search or cursor walk fails."""

    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        super().__init__(f"{kind} discovery failed: {message}")


class DeadlineExceededError(DiscoveryError):
    """Raised when a provider call outlives its deadline."""


class ResourceNotFoundError(PowerVSCheckError):
    """Raised when discovery found nothing for a required singleton."""

    def __init__(self, label: str, target: str, *, by: str = "named") -> None:
        self.label = label
        self.target = target
        super().__init__(f"Unable to find {label} {by} {target}")


class ExtractionError(PowerVSCheckError):
    """Raised for a malformed or missing field in a status document."""


class StatusSourceError(PowerVSCheckError):
    """Raised when the external status source cannot produce a document."""


class PhaseError(PowerVSCheckError):
    """Raised when a readiness phase fails or expires."""

    def __init__(self, phase: str, message: str) -> None:
        self.phase = phase
        super().__init__(f"Phase '{phase}' {message}")
