"""Sequential readiness phases polled until their conditions hold.

Each phase repeatedly fetches a status document, extracts conditions from it
and reports them. A pass with extraction faults is inconclusive and retried.
A phase ends as SUCCEEDED when its completion predicate holds, EXPIRED when
its attempt or wall-clock limit runs out, and FAILED when the status source
itself fails.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, assert_never

from powervs_check.conditions import format_status
from powervs_check.errors import PhaseError
from powervs_check.faults import FaultCollector
from powervs_check.model import ClusterOperatorStatus, ExtractionResult
from powervs_check.observability._observable import ObservableMixin, OperationTimer
from powervs_check.observability.logging import phase_scope
from powervs_check.sinks import ConsoleSink, StatusSink

if TYPE_CHECKING:
    from powervs_check.observability.metrics import MetricsRecorder
    from powervs_check.status_source import StatusSource

Document = Mapping[str, Any]
Extractor = Callable[[Document, FaultCollector], ExtractionResult]
StatusExtractor = Callable[[Document, FaultCollector], ClusterOperatorStatus]
Probe = Callable[[], Awaitable[tuple[bool, str]]]
Sleep = Callable[[float], Awaitable[Any]]

OPERATOR_LABELS: tuple[tuple[str, str], ...] = (
    ("available", "AVAILABLE"),
    ("degraded", "DEGRADED"),
    ("progressing", "PROGRESSING"),
    ("upgradeable", "UPGRADEABLE"),
)


class PhaseStyle(str, Enum):
    """How a phase turns a status document into a verdict."""

    CONDITIONS = "conditions"
    MACHINES = "machines"
    OPERATOR = "operator"
    PROBE = "probe"


class PhaseOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    EXPIRED = "expired"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Phase:
    """Static description of one readiness stage."""

    ordinal: int
    name: str
    style: PhaseStyle
    command: tuple[str, ...] = ()
    kubeconfig: Path | None = None
    header: str | None = None
    extract: Extractor | None = None
    required_count: int | None = None
    required_types: tuple[str, ...] = ()
    requires_ready_flag: bool = False
    check_addresses: bool = False
    subject: str = ""
    extract_status: StatusExtractor | None = None
    status_labels: tuple[tuple[str, str], ...] = OPERATOR_LABELS
    probe: Probe | None = None
    interval_seconds: float = 10.0
    max_attempts: int | None = None
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        match self.style:
            case PhaseStyle.CONDITIONS | PhaseStyle.MACHINES:
                if self.extract is None or not self.command:
                    raise PhaseError(self.name, "needs a command and an extractor")
            case PhaseStyle.OPERATOR:
                if self.extract_status is None or not self.command:
                    raise PhaseError(self.name, "needs a command and a status extractor")
            case PhaseStyle.PROBE:
                if self.probe is None:
                    raise PhaseError(self.name, "needs a probe")
            case _:
                assert_never(self.style)


@dataclass(frozen=True, slots=True)
class PassVerdict:
    """Outcome of evaluating one fetched document."""

    satisfied: bool
    lines: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class PhaseResult:
    phase: str
    outcome: PhaseOutcome
    attempts: int
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is PhaseOutcome.SUCCEEDED


def evaluate_conditions(phase: Phase, result: ExtractionResult) -> PassVerdict:
    """READY / NOT READY per wanted condition, then count and ready flag."""
    wanted = set(phase.required_types)
    lines: list[tuple[str, str]] = []
    all_satisfied = True
    seen: set[str] = set()

    for condition in result.conditions:
        if wanted and condition.type not in wanted:
            continue
        seen.add(condition.type)
        state = "READY" if condition.status else "NOT READY"
        all_satisfied = all_satisfied and condition.status
        lines.append((condition.type, f"{condition.type} is {state}"))

    if wanted - seen:
        all_satisfied = False

    if all_satisfied and phase.requires_ready_flag:
        state = "READY" if result.ready else "NOT READY"
        lines.append(("cluster", f"Cluster is {state}"))

    satisfied = (
        all_satisfied
        and (phase.required_count is None or len(result.conditions) == phase.required_count)
        and (not phase.requires_ready_flag or result.ready is True)
    )
    return PassVerdict(satisfied=satisfied, lines=tuple(lines))


def evaluate_machines(phase: Phase, result: ExtractionResult) -> PassVerdict:
    """Every machine must be ready and, when checked, carry an address."""
    lines: list[tuple[str, str]] = []
    all_satisfied = True

    for condition in result.conditions:
        name = condition.name or condition.type
        text = f"{name} is {'READY' if condition.status else 'NOT READY'}"
        all_satisfied = all_satisfied and condition.status
        if phase.check_addresses:
            if condition.address:
                text += f", address is {condition.address}"
            else:
                all_satisfied = False
                text += ", address is empty"
        lines.append((name, text))

    satisfied = all_satisfied and (
        phase.required_count is None or len(result.conditions) == phase.required_count
    )
    return PassVerdict(satisfied=satisfied, lines=tuple(lines))


def evaluate_operator(phase: Phase, status: ClusterOperatorStatus) -> PassVerdict:
    description = ", ".join(
        format_status(getattr(status, attribute), label) for attribute, label in phase.status_labels
    )
    return PassVerdict(
        satisfied=status.is_available,
        lines=((phase.name, f"The {phase.subject} is: {description}"),),
    )


class PhaseWatcher(ObservableMixin):
    """Polls phases against a status source and streams progress to a sink."""

    _resource_name: ClassVar[str] = "watch"

    def __init__(
        self,
        source: StatusSource,
        *,
        sink: StatusSink | None = None,
        logger: logging.Logger | None = None,
        metrics: MetricsRecorder | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._source = source
        self._sink = sink or ConsoleSink()
        self._logger = logger or logging.getLogger("powervs_check.watch")
        self._metrics = metrics
        self._sleep = sleep

    async def run(self, phase: Phase) -> PhaseResult:
        """Poll ``phase`` until it succeeds, expires or fails."""
        with phase_scope(phase.name), self._timed(phase.name) as timer:
            self._logger.info("Watching phase %d (%s)", phase.ordinal, phase.name)
            attempts = 0
            try:
                async with asyncio.timeout(phase.timeout_seconds):
                    while True:
                        attempts += 1
                        try:
                            satisfied = await self._poll(phase)
                        except Exception as exc:
                            self._logger.error("Phase %s failed: %s", phase.name, exc)
                            self._metrics_recorder().observe_poll(phase=phase.name, outcome="error")
                            timer.fail(exc)
                            return PhaseResult(phase.name, PhaseOutcome.FAILED, attempts, exc)

                        if satisfied:
                            self._logger.info("Phase %s is complete", phase.name)
                            return PhaseResult(phase.name, PhaseOutcome.SUCCEEDED, attempts)

                        if phase.max_attempts is not None and attempts >= phase.max_attempts:
                            return self._expired(
                                phase, attempts, timer, f"not ready after {attempts} attempts"
                            )

                        await self._sleep(phase.interval_seconds)
            except TimeoutError:
                return self._expired(
                    phase, attempts, timer, f"not ready within {phase.timeout_seconds:g}s"
                )

    def _expired(
        self, phase: Phase, attempts: int, timer: OperationTimer, reason: str
    ) -> PhaseResult:
        error = PhaseError(phase.name, reason)
        self._logger.warning("%s", error)
        timer.fail()
        return PhaseResult(phase.name, PhaseOutcome.EXPIRED, attempts, error)

    async def _poll(self, phase: Phase) -> bool:
        """One pass; ``True`` when the completion predicate holds."""
        if phase.style is PhaseStyle.PROBE:
            return await self._probe(phase)

        document = await self._source.fetch(phase.command, kubeconfig=phase.kubeconfig)
        faults = FaultCollector(logger=self._logger)

        match phase.style:
            case PhaseStyle.CONDITIONS:
                verdict = evaluate_conditions(phase, phase.extract(document, faults))
            case PhaseStyle.MACHINES:
                verdict = evaluate_machines(phase, phase.extract(document, faults))
            case PhaseStyle.OPERATOR:
                verdict = evaluate_operator(phase, phase.extract_status(document, faults))
            case PhaseStyle.PROBE:
                raise PhaseError(phase.name, "probes do not read documents")
            case _:
                assert_never(phase.style)

        fault = faults.drain()
        if fault is not None:
            self._logger.info("Phase %s pass is inconclusive: %s", phase.name, fault)
            self._metrics_recorder().observe_poll(phase=phase.name, outcome="fault")
            return False

        if phase.header:
            self._sink.update(phase.name, phase.header)
        for element, text in verdict.lines:
            self._sink.update(element, text)
        self._metrics_recorder().observe_poll(
            phase=phase.name, outcome="satisfied" if verdict.satisfied else "pending"
        )
        return verdict.satisfied

    async def _probe(self, phase: Phase) -> bool:
        try:
            ok, message = await phase.probe()
        except Exception as exc:
            self._logger.info("Probe %s is inconclusive: %s", phase.name, exc)
            self._metrics_recorder().observe_poll(phase=phase.name, outcome="fault")
            return False
        self._sink.update(phase.name, message)
        outcome = "satisfied" if ok else "pending"
        self._metrics_recorder().observe_poll(phase=phase.name, outcome=outcome)
        return ok


async def watch_phases(phases: Sequence[Phase], watcher: PhaseWatcher) -> list[PhaseResult]:
    """Run phases strictly one after another, stopping at the first non-success.

    Each phase runs as its own task and hands back exactly one result through
    a future before the next one starts.
    """
    loop = asyncio.get_running_loop()
    results: list[PhaseResult] = []

    for phase in phases:
        done: asyncio.Future[PhaseResult] = loop.create_future()

        async def drive(current: Phase = phase, channel: asyncio.Future[PhaseResult] = done) -> None:
            try:
                channel.set_result(await watcher.run(current))
            except Exception as exc:
                channel.set_exception(exc)

        task = asyncio.create_task(drive(), name=f"phase-{phase.ordinal}-{phase.name}")
        result = await done
        await task
        results.append(result)
        if not result.succeeded:
            break
    return results
