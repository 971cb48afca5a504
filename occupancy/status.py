"""Occupancy states of a storage section."""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Iterable


class SectionStatus(str, Enum):
    """Occupancy state ordered from fully available to unavailable."""

    GREEN = "green"
    YELLOW = "yellow"
    ORANGE = "orange"
    RED = "red"


class WarehouseType(str, Enum):
    INDOOR = "indoor"
    OUTDOOR = "outdoor"


# Percentage of a section that is still available for each state.
AVAILABILITY: dict[SectionStatus, int] = {
    SectionStatus.GREEN: 100,
    SectionStatus.YELLOW: 75,
    SectionStatus.ORANGE: 50,
    SectionStatus.RED: 0,
}

# Ordering used to break ties, most available first.
STATUS_ORDER = tuple(SectionStatus)


def toggle(status: SectionStatus | str) -> SectionStatus:
    """Return the opposite state in the two-state grid mode.

    ``green`` flips to ``red``; every other state flips back to ``green``.
    """

    if SectionStatus(status) is SectionStatus.GREEN:
        return SectionStatus.RED
    return SectionStatus.GREEN


def dominant(statuses: Iterable[SectionStatus | str]) -> SectionStatus:
    """Return the most common status in ``statuses``.

    Ties are resolved by :data:`STATUS_ORDER`, so ``green`` wins over ``red``
    when both occur equally often.  An empty input yields ``green``.
    """

    counts = Counter(SectionStatus(s) for s in statuses)
    if not counts:
        return SectionStatus.GREEN
    return max(STATUS_ORDER, key=lambda s: (counts[s], -STATUS_ORDER.index(s)))


def availability(status: SectionStatus | str) -> int:
    return AVAILABILITY[SectionStatus(status)]


def availability_percentage(statuses: Iterable[SectionStatus | str]) -> int:
    """Return the rounded mean availability of ``statuses`` in percent."""

    values = [availability(s) for s in statuses if s]
    if not values:
        return 0
    return round(sum(values) / len(values))


def utilization_percentage(statuses: Iterable[SectionStatus | str]) -> float:
    """Return the share of unavailable sections in percent."""

    values = [SectionStatus(s) for s in statuses if s]
    if not values:
        return 0.0
    used = sum(1 for s in values if s is SectionStatus.RED)
    return used / len(values) * 100
