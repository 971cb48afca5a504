"""Plain data records shared by the grid, the store and the backends."""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from typing import NamedTuple, Optional

from .errors import ValidationError
from .status import SectionStatus, WarehouseType

TOKEN_PATTERN = re.compile(r"([A-Za-z]+)(\d+)")


class Position(NamedTuple):
    x: int
    y: int


@dataclass(frozen=True, order=True)
class SectionKey:
    """Composite identity of a section: warehouse letter and section number."""

    letter: str
    number: int

    @property
    def token(self) -> str:
        """Return the display token, e.g. ``C3``."""

        return f"{self.letter}{self.number}"

    @classmethod
    def parse(cls, token: str) -> "SectionKey":
        """Build a key from a token such as ``C3``.

        The letter part may span several characters; the number is the
        trailing run of digits.
        """

        match = TOKEN_PATTERN.fullmatch((token or "").strip())
        if not match:
            raise ValidationError(f"Invalid section token: {token!r}")
        letter, number = match.groups()
        return cls(letter.upper(), int(number))

    def __str__(self) -> str:
        return self.token


@dataclass(frozen=True)
class Warehouse:
    """Warehouse as stored remotely."""

    id: int
    letter: str
    name: str
    type: WarehouseType
    section_count: int = 0
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


@dataclass(frozen=True)
class SectionRow:
    """Section row as stored remotely."""

    warehouse_id: int
    section_number: int
    status: SectionStatus = SectionStatus.GREEN
    position: Optional[Position] = None


@dataclass(frozen=True)
class Section:
    """Section as presented to the board, joined with its warehouse."""

    key: SectionKey
    status: SectionStatus
    position: Optional[Position]
    warehouse_name: str


@dataclass(frozen=True)
class RemovedSection:
    """Snapshot of a removed section kept so the removal can be undone."""

    letter: str
    number: int
    status: SectionStatus
    removed_at: dt.datetime = field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc)
    )

    @property
    def key(self) -> SectionKey:
        return SectionKey(self.letter, self.number)


@dataclass(frozen=True)
class BoardSnapshot:
    """Read-only copy of the store state handed to the UI."""

    warehouses: tuple[Warehouse, ...]
    statuses: dict[SectionKey, SectionStatus]
    removed_sections: tuple[RemovedSection, ...]
    positions: dict[SectionKey, Position]
