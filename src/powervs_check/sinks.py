"""Destinations for human-readable status lines."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Protocol, TextIO, runtime_checkable


@runtime_checkable
class StatusSink(Protocol):
    """Receives one status line per update, keyed by the element it describes."""

    def update(self, element: str, text: str) -> None:
        ...


class ConsoleSink:
    """Prints every update on its own line."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def update(self, element: str, text: str) -> None:
        del element
        print(text, file=self._stream or sys.stdout, flush=True)


@dataclass(slots=True)
class MemorySink:
    """Keeps every line, plus the latest line per element."""

    lines: list[str] = field(default_factory=list)
    latest: dict[str, str] = field(default_factory=dict)

    def update(self, element: str, text: str) -> None:
        self.lines.append(text)
        self.latest[element] = text
