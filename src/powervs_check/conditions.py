"""Projection of loosely typed status documents into readiness conditions.

Every reader here records shape problems into a :class:`FaultCollector` and
substitutes a zero value instead of raising, so one malformed field never
aborts a polling pass.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from powervs_check.errors import ExtractionError
from powervs_check.faults import FaultCollector
from powervs_check.model import ClusterOperatorStatus, Condition, ExtractionResult

OPERATOR_CONDITION_TYPES = ("Available", "Degraded", "Progressing", "Upgradeable")


def decode_bool(value: Any) -> bool:
    """Decode a native boolean or the exact tokens ``"True"`` / ``"False"``."""
    if isinstance(value, bool):
        return value
    if value == "True":
        return True
    if value == "False":
        return False
    raise ExtractionError(f"Could not decode boolean value: {value!r}")


def format_status(status: str, label: str) -> str:
    """Render one string sub-verdict the way operators read it on a console."""
    match status:
        case "True":
            return label
        case "False":
            return f"NOT {label}"
        case "":
            return f"(EMPTY) {label}"
        case _:
            return f"(ERROR {status}) {label}"


def _get_mapping(
    container: Mapping[str, Any],
    key: str,
    faults: FaultCollector,
    *,
    where: str,
) -> Mapping[str, Any]:
    value = container.get(key)
    if isinstance(value, Mapping):
        return value
    faults.record(f"{where}: {key!r} is not an object ({type(value).__name__})")
    return {}


def _get_list(
    container: Mapping[str, Any],
    key: str,
    faults: FaultCollector,
    *,
    where: str,
    required: bool = True,
) -> list[Any]:
    if key not in container and not required:
        return []
    value = container.get(key)
    if isinstance(value, list):
        return value
    faults.record(f"{where}: {key!r} is not an array ({type(value).__name__})")
    return []


def _as_mapping(value: Any, faults: FaultCollector, *, where: str) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    faults.record(f"{where}: entry is not an object ({type(value).__name__})")
    return {}


def _read_conditions(
    status: Mapping[str, Any],
    faults: FaultCollector,
    *,
    where: str,
    required: bool,
) -> list[Condition]:
    conditions: list[Condition] = []
    for raw in _get_list(status, "conditions", faults, where=where, required=required):
        entry = _as_mapping(raw, faults, where=where)
        condition_type = entry.get("type")
        if not isinstance(condition_type, str):
            faults.record(f"{where}: condition type is not a string: {condition_type!r}")
            condition_type = ""

        try:
            value = decode_bool(entry.get("status"))
        except ExtractionError as exc:
            faults.record(ExtractionError(f"{where}: {exc}"))
            value = False

        conditions.append(Condition(type=condition_type, status=value))
    return conditions


def _read_ready(status: Mapping[str, Any], faults: FaultCollector, *, where: str) -> bool | None:
    if "ready" not in status:
        return None
    try:
        return decode_bool(status["ready"])
    except ExtractionError as exc:
        faults.record(ExtractionError(f"{where}: {exc}"))
        return False


def _items(document: Mapping[str, Any], faults: FaultCollector, *, where: str) -> list[Any]:
    if not isinstance(document, Mapping):
        faults.record(f"{where}: document is not an object ({type(document).__name__})")
        return []
    return _get_list(document, "items", faults, where=where)


def extract_cluster(document: Mapping[str, Any], faults: FaultCollector) -> ExtractionResult:
    """Read the conditions and ready flag of a document holding exactly one item."""
    where = "cluster"
    items = _items(document, faults, where=where)
    if len(items) != 1:
        faults.record(f"{where}: expected exactly 1 item, found {len(items)}")
        return ExtractionResult()

    item = _as_mapping(items[0], faults, where=where)
    status = _get_mapping(item, "status", faults, where=where)
    conditions = _read_conditions(status, faults, where=where, required=True)
    return ExtractionResult(conditions=conditions, ready=_read_ready(status, faults, where=where))


def extract_conditions(document: Mapping[str, Any], faults: FaultCollector) -> ExtractionResult:
    """Read the conditions of every item, in document order."""
    where = "items"
    conditions: list[Condition] = []
    for raw in _items(document, faults, where=where):
        item = _as_mapping(raw, faults, where=where)
        status = _get_mapping(item, "status", faults, where=where)
        conditions.extend(_read_conditions(status, faults, where=where, required=False))
    return ExtractionResult(conditions=conditions)


def _pick_address(status: Mapping[str, Any], faults: FaultCollector, *, where: str) -> str:
    addresses = _get_list(status, "addresses", faults, where=where, required=False)
    fallback = ""
    for raw in addresses:
        entry = _as_mapping(raw, faults, where=where)
        address = entry.get("address")
        if not isinstance(address, str):
            continue
        if entry.get("type") == "InternalIP":
            return address
        fallback = fallback or address
    return fallback


def extract_machines(document: Mapping[str, Any], faults: FaultCollector) -> ExtractionResult:
    """Project each machine item into a named condition carrying its address."""
    where = "machines"
    conditions: list[Condition] = []
    for raw in _items(document, faults, where=where):
        item = _as_mapping(raw, faults, where=where)
        metadata = _get_mapping(item, "metadata", faults, where=where)
        name = metadata.get("name")
        if not isinstance(name, str):
            faults.record(f"{where}: metadata name is not a string: {name!r}")
            name = ""

        status = _get_mapping(item, "status", faults, where=where)
        ready = _read_ready(status, faults, where=where)
        conditions.append(
            Condition(
                type="MachineReady",
                status=bool(ready),
                name=name,
                address=_pick_address(status, faults, where=where),
            )
        )
    return ExtractionResult(conditions=conditions)


def _operator_status(
    status: Mapping[str, Any],
    faults: FaultCollector,
    *,
    where: str,
) -> ClusterOperatorStatus:
    result = ClusterOperatorStatus()
    for raw in _get_list(status, "conditions", faults, where=where):
        entry = _as_mapping(raw, faults, where=where)
        condition_type = entry.get("type")
        value = entry.get("status")
        if not isinstance(condition_type, str) or not isinstance(value, str):
            faults.record(f"{where}: malformed condition {entry!r}")
            continue
        match condition_type:
            case "Available":
                result.available = value
            case "Degraded":
                result.degraded = value
            case "Progressing":
                result.progressing = value
            case "Upgradeable":
                result.upgradeable = value
    return result


def extract_cluster_operator(
    document: Mapping[str, Any],
    name: str,
    faults: FaultCollector,
) -> ClusterOperatorStatus:
    """Find the cluster operator called ``name`` and read its sub-verdicts."""
    where = f"cluster operator {name}"
    for raw in _items(document, faults, where=where):
        item = _as_mapping(raw, faults, where=where)
        metadata = _get_mapping(item, "metadata", faults, where=where)
        if metadata.get("name") != name:
            continue
        status = _get_mapping(item, "status", faults, where=where)
        return _operator_status(status, faults, where=where)

    faults.record(f"Could not find cluster operator named {name}")
    return ClusterOperatorStatus()


def extract_deployment(
    document: Mapping[str, Any], faults: FaultCollector
) -> ClusterOperatorStatus:
    """Read the sub-verdicts of a single deployment document."""
    where = "deployment"
    if not isinstance(document, Mapping):
        faults.record(f"{where}: document is not an object ({type(document).__name__})")
        return ClusterOperatorStatus()
    status = _get_mapping(document, "status", faults, where=where)
    return _operator_status(status, faults, where=where)


def operator_conditions(status: ClusterOperatorStatus) -> list[Condition]:
    """Express operator sub-verdicts as conditions (``True`` means satisfied)."""
    return [
        Condition(type=condition_type, status=value == "True")
        for condition_type, value in zip(
            OPERATOR_CONDITION_TYPES,
            (status.available, status.degraded, status.progressing, status.upgradeable),
            strict=True,
        )
    ]
