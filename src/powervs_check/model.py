"""Core value types shared by discovery, evaluation and the phase watcher."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

UNRESOLVED = "(error)"


class ResourceKind(str, Enum):
    """Discriminant for every kind of managed cloud object."""

    NETWORK = "network"
    TRANSIT_GATEWAY = "transit_gateway"
    COMPUTE_SERVICE_INSTANCE = "compute_service_instance"
    VM_INSTANCE = "vm_instance"
    LOAD_BALANCER = "load_balancer"
    OBJECT_STORE = "object_store"
    DNS_ZONE = "dns_zone"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def priority(self) -> int:
        return PRIORITIES[self]


_LABELS: dict[ResourceKind, str] = {
    ResourceKind.NETWORK: "Virtual Private Cloud",
    ResourceKind.TRANSIT_GATEWAY: "Transit Gateway",
    ResourceKind.COMPUTE_SERVICE_INSTANCE: "Power Service Instance",
    ResourceKind.VM_INSTANCE: "Cloud VM",
    ResourceKind.LOAD_BALANCER: "Load Balancer",
    ResourceKind.OBJECT_STORE: "Cloud Object Storage",
    ResourceKind.DNS_ZONE: "Domain Name Service",
}

# Higher values are initialized and reported first.
PRIORITIES: dict[ResourceKind, int] = {
    ResourceKind.NETWORK: 100,
    ResourceKind.TRANSIT_GATEWAY: 90,
    ResourceKind.VM_INSTANCE: 85,
    ResourceKind.COMPUTE_SERVICE_INSTANCE: 80,
    ResourceKind.LOAD_BALANCER: 70,
    ResourceKind.OBJECT_STORE: 60,
    ResourceKind.DNS_ZONE: 10,
}


class DiscoveryStrategy(str, Enum):
    """How logical names are resolved into provider identifiers."""

    NAME_MATCH = "name-match"
    TAG_SEARCH = "tag-search"


class Verdict(str, Enum):
    OK = "OK"
    NOTOK = "NOTOK"


@dataclass(slots=True)
class ManagedResource:
    """A cloud object tracked through discovery and readiness evaluation.

    ``handle`` holds the provider record once discovery succeeded. A ``None``
    handle is a valid state that always evaluates to ``NOTOK``.
    """

    kind: ResourceKind
    name: str
    handle: Mapping[str, Any] | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def priority(self) -> int:
        return self.kind.priority

    @property
    def object_name(self) -> str:
        return self.kind.label

    @property
    def resolved(self) -> bool:
        return self.handle is not None

    @property
    def identifier(self) -> str:
        """Globally unique resource name (CRN) or ``(error)`` when unresolved."""
        if self.handle is None:
            return UNRESOLVED
        crn = self.handle.get("crn")
        return str(crn) if crn else UNRESOLVED

    @property
    def provider_name(self) -> str:
        if self.handle is None:
            return UNRESOLVED
        name = self.handle.get("name")
        return str(name) if name else UNRESOLVED

    def handle_field(self, key: str, default: Any = None) -> Any:
        if self.handle is None:
            return default
        return self.handle.get(key, default)


@dataclass(frozen=True, slots=True)
class DiscoveryQuery:
    """Transient request to resolve one logical resource name."""

    kind: ResourceKind
    target: str
    strategy: DiscoveryStrategy = DiscoveryStrategy.NAME_MATCH
    cursor: str | None = None


@dataclass(frozen=True, slots=True)
class Condition:
    """One readiness indicator read from a status document."""

    type: str
    status: bool
    name: str | None = None
    address: str | None = None


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    conditions: list[Condition] = field(default_factory=list)
    ready: bool | None = None


@dataclass(slots=True)
class ClusterOperatorStatus:
    """String sub-verdicts of an operator or deployment (``"True"``/``"False"``/``""``)."""

    available: str = ""
    degraded: str = ""
    progressing: str = ""
    upgradeable: str = ""

    @property
    def is_available(self) -> bool:
        return self.available == "True"


@dataclass(slots=True)
class ReadinessReport:
    """Aggregate verdict for one managed resource."""

    kind: ResourceKind
    name: str
    checks: dict[str, bool] = field(default_factory=dict)
    messages: list[str] = field(default_factory=list)

    @property
    def verdict(self) -> Verdict:
        if not self.checks:
            return Verdict.NOTOK
        return Verdict.OK if all(self.checks.values()) else Verdict.NOTOK

    @property
    def ok(self) -> bool:
        return self.verdict is Verdict.OK

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "kind": self.kind.value,
            "label": self.kind.label,
            "name": self.name,
            "verdict": self.verdict.value,
            "checks": dict(self.checks),
            "messages": list(self.messages),
        }
