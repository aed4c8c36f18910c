"""Bookkeeping for one resource's sub-checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from powervs_check.model import ManagedResource, ReadinessReport

if TYPE_CHECKING:
    from powervs_check.services import Services


@dataclass(slots=True)
class Evaluation:
    """Collects sub-check outcomes for one resource and streams them to the sink.

    A failing sub-check never stops the evaluation; every outcome ends up in
    ``report`` and every failure is emitted as it happens.
    """

    resource: ManagedResource
    services: Services
    report: ReadinessReport = field(init=False)
    reasons: list[str] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.report = ReadinessReport(kind=self.resource.kind, name=self.resource.name)

    @property
    def prefix(self) -> str:
        return f"{self.resource.object_name} {self.resource.name}"

    @property
    def element(self) -> str:
        return f"{self.resource.kind.value}:{self.resource.name}"

    def emit(self, text: str) -> None:
        self.report.messages.append(text)
        self.services.sink.update(self.element, text)

    def info(self, message: str) -> None:
        self.emit(f"{self.prefix} {message}")

    def passed(self, check: str, message: str | None = None) -> None:
        self.report.checks.setdefault(check, True)
        if message:
            self.info(message)

    def failed(self, check: str, reason: str) -> None:
        self.report.checks[check] = False
        self.reasons.append(reason)
        self.emit(f"{self.prefix}: {reason}")

    def conclude(self) -> ReadinessReport:
        """Emit the final verdict line and return the report."""
        if self.report.ok:
            self.emit(f"{self.prefix} is OK.")
        else:
            reason = self.reasons[0] if self.reasons else "No checks were run."
            if len(self.reasons) > 1:
                reason = f"{reason} (and {len(self.reasons) - 1} more)"
            self.emit(f"{self.prefix} is NOTOK. {reason}")
        return self.report

    def unresolved(self) -> ReadinessReport:
        """Report a resource whose provider record was never found."""
        label = self.resource.object_name
        self.report.checks["resolved"] = False
        self.emit(f"{label} is NOTOK. Could not find a {label} named {self.resource.name}")
        return self.report
