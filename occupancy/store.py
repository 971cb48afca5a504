"""Client-side state of the section board kept in sync with the remote store.

:class:`SectionStore` holds the warehouses, the status of every section, the
grid layout of each warehouse and the buffer of recently removed sections.
All mutations go through the injected :class:`~occupancy.remote.WarehouseBackend`
and only touch local state once the remote call has succeeded.

The store is meant to be driven from a single asyncio event loop.  Nothing
serialises overlapping calls: two toggles of the same section race at the
remote store and the local map keeps whichever response is processed last.
"""

from __future__ import annotations

import logging
from collections import deque
from contextlib import suppress
from typing import Iterable, Optional, Union

from . import config
from .errors import (
    NotFoundError,
    OccupancyError,
    PartialBatchError,
    RemoteError,
    ValidationError,
)
from .grid import SectionGrid
from .records import (
    BoardSnapshot,
    Position,
    RemovedSection,
    Section,
    SectionKey,
    SectionRow,
    Warehouse,
)
from .remote import WarehouseBackend
from .row_labels import RowLabelRegistry
from .status import (
    SectionStatus,
    WarehouseType,
    availability_percentage,
    dominant,
    toggle,
)

logger = logging.getLogger(__name__)

KeyLike = Union[SectionKey, str]


def _name_key(warehouse: Warehouse) -> tuple[str, str]:
    return (warehouse.name.lower(), warehouse.name)


def _coerce_key(key: KeyLike) -> SectionKey:
    if isinstance(key, SectionKey):
        return key
    return SectionKey.parse(key)


def _check_count(value: int, low: int, high: int, what: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ValidationError(f"{what} must be between {low} and {high}")


class SectionStore:
    """Optimistic view of warehouses and sections backed by a remote store."""

    def __init__(
        self,
        backend: WarehouseBackend,
        *,
        grid_width: int = config.GRID_WIDTH,
        grid_height: int = config.GRID_HEIGHT,
        aisle: int = config.AISLE_COLUMN,
        undo_capacity: int = config.UNDO_CAPACITY,
    ):
        self.backend = backend
        self.grid_width = grid_width
        self.grid_height = grid_height
        self.aisle = aisle
        self._warehouses: list[Warehouse] = []
        self._statuses: dict[SectionKey, SectionStatus] = {}
        self._removed: deque[RemovedSection] = deque(maxlen=undo_capacity)
        self._grids: dict[str, SectionGrid] = {}
        self._labels: dict[str, RowLabelRegistry] = {}
        self._hydrated = False

    # ------------------------------------------------------------------ reads

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def warehouses(self) -> tuple[Warehouse, ...]:
        return tuple(self._warehouses)

    @property
    def indoor_warehouses(self) -> list[Warehouse]:
        return [w for w in self._warehouses if w.type is WarehouseType.INDOOR]

    @property
    def outdoor_warehouses(self) -> list[Warehouse]:
        return [w for w in self._warehouses if w.type is WarehouseType.OUTDOOR]

    @property
    def statuses(self) -> dict[SectionKey, SectionStatus]:
        return dict(self._statuses)

    @property
    def removed_sections(self) -> tuple[RemovedSection, ...]:
        return tuple(self._removed)

    def snapshot(self) -> BoardSnapshot:
        positions: dict[SectionKey, Position] = {}
        for grid in self._grids.values():
            positions.update(grid.positions)
        return BoardSnapshot(
            warehouses=self.warehouses,
            statuses=self.statuses,
            removed_sections=self.removed_sections,
            positions=positions,
        )

    def get_warehouse(self, letter: str) -> Warehouse:
        for warehouse in self._warehouses:
            if warehouse.letter == letter:
                return warehouse
        raise NotFoundError(f"Warehouse {letter!r} not found")

    def grid(self, letter: str) -> SectionGrid:
        self.get_warehouse(letter)
        return self._grid_for(letter)

    def sections(self, letter: str) -> list[Section]:
        """Return the sections of warehouse ``letter`` ordered by number."""

        warehouse = self.get_warehouse(letter)
        grid = self._grid_for(letter)
        keys = sorted(k for k in self._statuses if k.letter == letter)
        return [
            Section(
                key=key,
                status=self._statuses[key],
                position=grid.position_of(key),
                warehouse_name=warehouse.name,
            )
            for key in keys
        ]

    def warehouse_status(self, letter: str) -> SectionStatus:
        self.get_warehouse(letter)
        return dominant(s for k, s in self._statuses.items() if k.letter == letter)

    def summary(self) -> dict[str, int]:
        """Return availability percentages for indoor, outdoor and all sections."""

        def _for(letters: Iterable[str]) -> int:
            wanted = set(letters)
            return availability_percentage(
                s for k, s in self._statuses.items() if k.letter in wanted
            )

        return {
            "indoor": _for(w.letter for w in self.indoor_warehouses),
            "outdoor": _for(w.letter for w in self.outdoor_warehouses),
            "total": availability_percentage(self._statuses.values()),
        }

    def next_letter(self) -> str:
        """Return the letter the next warehouse will receive."""

        codes = [ord(w.letter) for w in self._warehouses if len(w.letter) == 1]
        letter = chr(max(codes, default=ord(config.FIRST_LETTER) - 1) + 1)
        if letter > config.LAST_LETTER:
            raise ValidationError("No warehouse letters left")
        return letter

    # -------------------------------------------------------------- hydration

    async def hydrate(self) -> BoardSnapshot:
        """Replace local state with the data held by the remote store.

        Grid positions of sections that were already known are kept; only new
        sections are placed.
        """

        warehouses = await self.backend.list_warehouses()
        rows = await self.backend.list_sections()

        by_id = {w.id: w for w in warehouses}
        statuses: dict[SectionKey, SectionStatus] = {}
        layout: dict[str, list[tuple[SectionKey, Optional[Position]]]] = {
            w.letter: [] for w in warehouses
        }
        orphans = 0
        for row in rows:
            warehouse = by_id.get(row.warehouse_id)
            if warehouse is None:
                orphans += 1
                continue
            key = SectionKey(warehouse.letter, row.section_number)
            statuses[key] = SectionStatus(row.status)
            layout[warehouse.letter].append((key, row.position))
        if orphans:
            logger.warning("Ignoring %s sections without a warehouse", orphans)

        grids: dict[str, SectionGrid] = {}
        for letter, items in layout.items():
            grid = self._grids.get(letter) or self._new_grid()
            grid.hydrate(items)
            grids[letter] = grid

        self._warehouses = sorted(warehouses, key=_name_key)
        self._statuses = statuses
        self._grids = grids
        self._labels = {k: v for k, v in self._labels.items() if k in grids}
        self._hydrated = True
        logger.debug(
            "Hydrated %s warehouses and %s sections", len(warehouses), len(statuses)
        )
        return self.snapshot()

    # -------------------------------------------------------------- mutations

    async def create_warehouse(
        self, type: WarehouseType | str, name: str, sections: int
    ) -> Warehouse:
        """Create a warehouse holding ``sections`` available sections.

        The warehouse row is written first, then the batch of sections.  When
        the batch fails the orphaned warehouse is deleted again and
        :class:`PartialBatchError` is raised; local state is left untouched.
        """

        try:
            type = WarehouseType(type)
        except ValueError as exc:
            raise ValidationError(f"Unknown warehouse type: {type!r}") from exc
        name = (name or "").strip()
        if not name:
            raise ValidationError("Warehouse name is required")
        _check_count(
            sections,
            config.MIN_WAREHOUSE_SECTIONS,
            config.MAX_WAREHOUSE_SECTIONS,
            "Number of sections",
        )
        if any(
            w.type is type and w.name.lower() == name.lower() for w in self._warehouses
        ):
            raise ValidationError(
                f'A warehouse with the name "{name}" already exists. '
                "Please choose a different name."
            )
        letter = self.next_letter()

        warehouse = await self.backend.create_warehouse(letter, name, type, sections)
        rows = [
            SectionRow(warehouse.id, number, SectionStatus.GREEN)
            for number in range(1, sections + 1)
        ]
        try:
            await self.backend.insert_sections(rows)
        except OccupancyError as exc:
            logger.warning("Creating sections for warehouse %s failed: %s", letter, exc)
            committed: tuple[str, ...] = ()
            try:
                await self.backend.delete_warehouse(letter)
            except OccupancyError:
                logger.exception("Unable to remove orphaned warehouse %s", letter)
                committed = ("warehouse",)
            raise PartialBatchError(
                f"Failed to create sections for warehouse {letter}: {exc}", committed
            ) from exc

        # A refresh may already have listed the new warehouse.
        others = [w for w in self._warehouses if w.letter != warehouse.letter]
        self._warehouses = sorted([*others, warehouse], key=_name_key)
        keys = [SectionKey(warehouse.letter, row.section_number) for row in rows]
        for key in keys:
            self._statuses.setdefault(key, SectionStatus.GREEN)
        self._grid_for(warehouse.letter).hydrate((key, None) for key in keys)
        logger.info(
            "Created %s warehouse %s (%s) with %s sections",
            type.value,
            warehouse.letter,
            name,
            sections,
        )
        return warehouse

    async def remove_warehouse(self, letter: str) -> None:
        """Delete warehouse ``letter`` together with all of its sections."""

        self.get_warehouse(letter)
        await self.backend.delete_warehouse(letter)

        self._warehouses = [w for w in self._warehouses if w.letter != letter]
        self._statuses = {k: v for k, v in self._statuses.items() if k.letter != letter}
        self._grids.pop(letter, None)
        self._labels.pop(letter, None)
        for record in [r for r in self._removed if r.letter == letter]:
            self._removed.remove(record)
        logger.info("Removed warehouse %s", letter)

    async def update_section_status(
        self, key: KeyLike, status: SectionStatus | str
    ) -> bool:
        """Persist ``status`` for ``key`` and reflect it locally on success.

        Returns ``False`` when the warehouse is unknown or the remote call
        fails; local state is unchanged in that case.
        """

        key = _coerce_key(key)
        try:
            status = SectionStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown status: {status!r}") from exc
        try:
            warehouse = self.get_warehouse(key.letter)
            await self.backend.update_section_status(warehouse.id, key.number, status)
        except (NotFoundError, RemoteError) as exc:
            logger.warning("Error updating section %s status: %s", key, exc)
            return False

        if any(w.letter == key.letter for w in self._warehouses):
            self._statuses[key] = status
        return True

    async def toggle_section(self, key: KeyLike) -> bool:
        """Flip section ``key`` between available and unavailable."""

        key = _coerce_key(key)
        current = self._statuses.get(key)
        if current is None:
            logger.warning("Cannot toggle unknown section %s", key)
            return False
        return await self.update_section_status(key, toggle(current))

    async def remove_section(self, key: KeyLike) -> RemovedSection:
        """Remove section ``key`` and remember it for :meth:`undo_removal`."""

        key = _coerce_key(key)
        warehouse = self.get_warehouse(key.letter)
        status = self._statuses.get(key)
        if status is None:
            raise NotFoundError(f"Section {key} not found")

        record = RemovedSection(key.letter, key.number, status)
        evicted = None
        if self._removed and len(self._removed) == self._removed.maxlen:
            evicted = self._removed[-1]
        self._removed.appendleft(record)

        try:
            await self.backend.update_warehouse_section_count(key.letter, -1)
        except OccupancyError:
            self._forget_removal(record, evicted)
            raise
        try:
            await self.backend.delete_section(warehouse.id, key.number)
        except OccupancyError as exc:
            self._forget_removal(record, evicted)
            raise PartialBatchError(
                f"Section {key} was not removed: {exc}", ("section_count",)
            ) from exc

        self._statuses.pop(key, None)
        grid = self._grids.get(key.letter)
        if grid is not None:
            grid.evict(key)
        logger.info("Removed section %s", key)
        await self.hydrate()
        return record

    async def add_sections(self, letter: str, count: int) -> list[SectionKey]:
        """Append ``count`` available sections to warehouse ``letter``.

        New numbers continue after the highest existing one.  Numbers still
        held by the undo buffer count as taken.
        """

        _check_count(count, 1, config.MAX_ADDED_SECTIONS, "Number of sections")
        warehouse = self.get_warehouse(letter)
        highest = max(
            [k.number for k in self._statuses if k.letter == letter]
            + [r.number for r in self._removed if r.letter == letter],
            default=0,
        )
        rows = [
            SectionRow(warehouse.id, number, SectionStatus.GREEN)
            for number in range(highest + 1, highest + count + 1)
        ]

        await self.backend.insert_sections(rows)
        try:
            await self.backend.update_warehouse_section_count(letter, count)
        except OccupancyError as exc:
            raise PartialBatchError(
                f"Section count of warehouse {letter} was not updated: {exc}",
                ("sections",),
            ) from exc

        keys = [SectionKey(letter, row.section_number) for row in rows]
        for key in keys:
            self._statuses[key] = SectionStatus.GREEN
        logger.info("Added %s sections to warehouse %s", count, letter)
        await self.hydrate()
        return keys

    async def undo_removal(self, removed: RemovedSection | KeyLike) -> SectionKey:
        """Restore a removed section with its original number and status.

        The section is placed like any new section; its previous grid position
        is not restored.  The record leaves the undo buffer as soon as the
        section row is written, even if the count update then fails.
        """

        record = self._find_removal(removed)
        key = record.key
        if key in self._statuses:
            raise ValidationError(f"Section {key} already exists")
        warehouse = self.get_warehouse(record.letter)

        await self.backend.insert_sections(
            [SectionRow(warehouse.id, record.number, record.status)]
        )
        with suppress(ValueError):
            self._removed.remove(record)
        try:
            await self.backend.update_warehouse_section_count(record.letter, 1)
        except OccupancyError as exc:
            raise PartialBatchError(
                f"Section count of warehouse {record.letter} was not updated: {exc}",
                ("section",),
            ) from exc

        self._statuses[key] = record.status
        logger.info("Restored section %s", key)
        await self.hydrate()
        return key

    async def move_section(self, key: KeyLike, position: Position | tuple[int, int]) -> bool:
        """Commit a drag of section ``key`` to ``position``.

        Invalid positions raise :class:`ValidationError` before any remote
        call.  Returns ``False`` when the remote store rejects the move.
        """

        key = _coerce_key(key)
        position = Position(*position)
        warehouse = self.get_warehouse(key.letter)
        if key not in self._statuses:
            raise NotFoundError(f"Section {key} not found")
        grid = self._grid_for(key.letter)
        grid.validate(position)

        try:
            await self.backend.update_section_position(
                warehouse.id, key.number, position
            )
        except (NotFoundError, RemoteError) as exc:
            logger.warning("Error moving section %s: %s", key, exc)
            return False
        grid.move(key, position)
        return True

    # ------------------------------------------------------------- row labels

    def row_labels(self, letter: str) -> list[tuple[int, str]]:
        self.get_warehouse(letter)
        registry = self._labels.get(letter)
        return registry.items() if registry else []

    def label_row(self, letter: str, row: int, text: str) -> bool:
        self.get_warehouse(letter)
        return self._labels.setdefault(letter, RowLabelRegistry()).add(row, text)

    def edit_row_label(self, letter: str, row: int, text: str) -> bool:
        self.get_warehouse(letter)
        registry = self._labels.get(letter)
        return registry.edit(row, text) if registry else False

    def delete_row_label(self, letter: str, row: int) -> bool:
        self.get_warehouse(letter)
        registry = self._labels.get(letter)
        return registry.delete(row) if registry else False

    # ---------------------------------------------------------------- helpers

    def _new_grid(self) -> SectionGrid:
        return SectionGrid(self.grid_width, self.grid_height, self.aisle)

    def _grid_for(self, letter: str) -> SectionGrid:
        grid = self._grids.get(letter)
        if grid is None:
            grid = self._grids[letter] = self._new_grid()
        return grid

    def _find_removal(self, removed: RemovedSection | KeyLike) -> RemovedSection:
        if isinstance(removed, RemovedSection):
            if removed in self._removed:
                return removed
            key = removed.key
        else:
            key = _coerce_key(removed)
        for record in self._removed:
            if record.key == key:
                return record
        raise NotFoundError(f"No removal of section {key} to undo")

    def _forget_removal(
        self, record: RemovedSection, evicted: Optional[RemovedSection]
    ) -> None:
        """Take ``record`` back out of the undo buffer after a failed removal."""

        with suppress(ValueError):
            self._removed.remove(record)
        if (
            evicted is not None
            and evicted not in self._removed
            and len(self._removed) < (self._removed.maxlen or 0)
        ):
            self._removed.append(evicted)
