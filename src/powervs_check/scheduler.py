"""Deterministic priority ordering of managed resources."""

from __future__ import annotations

from collections.abc import Sequence

from powervs_check.model import ManagedResource


def order(resources: Sequence[ManagedResource]) -> list[ManagedResource]:
    """Return ``resources`` sorted by descending priority.

    Adjacent elements are swapped only when the later one has a strictly
    higher priority, so resources of equal priority keep their input order.
    """
    ordered = list(resources)
    swapped = True
    while swapped:
        swapped = False
        for index in range(1, len(ordered)):
            if ordered[index].priority > ordered[index - 1].priority:
                ordered[index], ordered[index - 1] = ordered[index - 1], ordered[index]
                swapped = True
    return ordered
