"""Placement of sections on a warehouse floor grid.

A warehouse floor is drawn as a grid ``width`` columns wide.  One column, the
aisle, is never assigned to a section.  Sections are laid out row by row in
the order of their numbers; the remaining columns form a sequential slot index
which :func:`index_to_position` and :func:`position_to_index` convert to and
from grid coordinates.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from . import config
from .errors import ValidationError
from .records import Position, SectionKey

logger = logging.getLogger(__name__)


def index_to_position(idx: int, width: int, aisle: int) -> Position:
    """Return the grid cell of the sequential slot ``idx``.

    The slot index runs row-major over ``width - 1`` usable columns and skips
    the aisle column.
    """

    if idx < 0:
        raise ValidationError("Slot index must not be negative")
    usable = width - 1
    x = idx % usable
    y = idx // usable
    if x >= aisle:
        x += 1
    return Position(x, y)


def position_to_index(position: Position, width: int, aisle: int) -> int:
    """Convert ``position`` back to its sequential slot index."""

    x, y = position
    if x == aisle:
        raise ValidationError("The aisle column has no slot index")
    if x < 0 or y < 0 or x >= width:
        raise ValidationError(f"Position {tuple(position)} is outside the grid")
    if x > aisle:
        x -= 1
    return y * (width - 1) + x


class SectionGrid:
    """Positions of the sections of one warehouse.

    Positions computed here are transient.  Only a committed :meth:`move` or a
    position supplied during :meth:`hydrate` reflects stored state.
    """

    def __init__(
        self,
        width: int = config.GRID_WIDTH,
        height: int = config.GRID_HEIGHT,
        aisle: int = config.AISLE_COLUMN,
    ):
        if width < 2:
            raise ValidationError("Grid must be at least two columns wide")
        if not 0 <= aisle < width:
            raise ValidationError("Aisle column must lie inside the grid")
        self.width = width
        self.height = height
        self.aisle = aisle
        self._positions: dict[SectionKey, Position] = {}
        self._hydrated = False

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def positions(self) -> dict[SectionKey, Position]:
        return dict(self._positions)

    def position_of(self, key: SectionKey) -> Optional[Position]:
        return self._positions.get(key)

    def default_position(self, number: int) -> Position:
        """Return where section ``number`` sits in a freshly created warehouse."""

        if number < 1:
            raise ValidationError("Section numbers start at 1")
        return index_to_position(number - 1, self.width, self.aisle)

    def first_free_position(self, occupied: Iterable[Position]) -> Position:
        """Return the first cell, row by row, that is not in ``occupied``."""

        taken = set(occupied)
        y = 0
        while True:
            for x in range(self.width):
                if x == self.aisle:
                    continue
                candidate = Position(x, y)
                if candidate not in taken:
                    return candidate
            y += 1

    def hydrate(
        self, sections: Iterable[tuple[SectionKey, Optional[Position]]]
    ) -> dict[SectionKey, Position]:
        """Synchronise positions with the current set of sections.

        ``sections`` yields ``(key, stored_position)`` pairs.  A valid stored
        position always wins; one in the aisle or outside the grid is ignored.
        Sections already placed keep their position,
        sections seen for the first time are placed at their default cell or,
        when that cell is taken, at the first free one.  Sections missing from
        ``sections`` are dropped.  Returns the resulting positions.
        """

        incoming = dict(sections)
        placed: dict[SectionKey, Position] = {}
        pending: list[SectionKey] = []

        for key, stored in incoming.items():
            if stored is not None:
                try:
                    self.validate(stored)
                except ValidationError as exc:
                    logger.warning("Ignoring stored position of %s: %s", key, exc)
                else:
                    placed[key] = Position(*stored)
                    continue
            if key in self._positions:
                placed[key] = self._positions[key]
            else:
                pending.append(key)

        occupied = set(placed.values())
        for key in sorted(pending, key=lambda k: k.number):
            candidate = self.default_position(key.number)
            if candidate in occupied:
                candidate = self.first_free_position(occupied)
            placed[key] = candidate
            occupied.add(candidate)

        dropped = len(set(self._positions) - set(incoming))
        if pending or dropped:
            logger.debug(
                "Grid hydrated: %s placed, %s new, %s dropped",
                len(placed),
                len(pending),
                dropped,
            )
        self._positions = placed
        self._hydrated = True
        return dict(placed)

    def move(self, key: SectionKey, position: Position) -> None:
        """Overwrite the position of ``key``.

        Another section may already occupy ``position``; the two then share
        the cell.
        """

        self.validate(position)
        self._positions[key] = Position(*position)

    def validate(self, position: Position) -> None:
        x, y = position
        if x < 0 or y < 0 or x >= self.width:
            raise ValidationError(f"Position {tuple(position)} is outside the grid")
        if x == self.aisle:
            raise ValidationError("Sections cannot be placed in the aisle column")

    def evict(self, key: SectionKey) -> Optional[Position]:
        return self._positions.pop(key, None)

    def rows(self) -> int:
        """Return the number of rows needed to draw every section."""

        if not self._positions:
            return self.height
        return max(self.height, max(p.y for p in self._positions.values()) + 1)
