"""Accumulator for non-fatal faults raised while reading status documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from powervs_check.errors import ExtractionError


class FaultCollector:
    """Unbounded, ordered buffer of faults gathered during one extraction pass.

    ``drain`` hands back the first fault as the representative error of the
    pass and clears the buffer. Every fault stays visible through ``faults``
    until the buffer is drained.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._faults: list[Exception] = []
        self._logger = logger or logging.getLogger(__name__)

    def record(self, fault: Exception | str) -> None:
        if isinstance(fault, str):
            fault = ExtractionError(fault)
        self._faults.append(fault)

    def extend(self, faults: Iterable[Exception]) -> None:
        for fault in faults:
            self.record(fault)

    @property
    def faults(self) -> list[Exception]:
        return list(self._faults)

    def __len__(self) -> int:
        return len(self._faults)

    def __bool__(self) -> bool:
        return bool(self._faults)

    def __iter__(self) -> Iterator[Exception]:
        return iter(list(self._faults))

    def drain(self) -> Exception | None:
        """Return the first recorded fault (or ``None``) and empty the buffer."""
        if not self._faults:
            return None
        first, *rest = self._faults
        for fault in rest:
            self._logger.debug("Additional extraction fault: %s", fault)
        self._faults.clear()
        return first
