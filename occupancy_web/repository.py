"""Queries shared by the HTTP routes and the in-process backend."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Any, Callable, ContextManager, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from occupancy import records
from occupancy.errors import NotFoundError, RemoteError
from occupancy.status import SectionStatus, WarehouseType

from . import database, models, schemas

logger = logging.getLogger(__name__)


class DuplicateEntryError(ValueError):
    """Raised when a warehouse letter or section number is already taken."""


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def list_warehouses(session: Session) -> list[models.Warehouse]:
    return list(session.exec(select(models.Warehouse).order_by(models.Warehouse.letter)).all())


def get_warehouse(session: Session, letter: str) -> models.Warehouse:
    warehouse = session.exec(
        select(models.Warehouse).where(models.Warehouse.letter == letter)
    ).first()
    if warehouse is None:
        raise NotFoundError(f"Warehouse {letter!r} not found")
    return warehouse


def create_warehouse(session: Session, payload: schemas.WarehouseCreate) -> models.Warehouse:
    existing = session.exec(
        select(models.Warehouse).where(models.Warehouse.letter == payload.letter)
    ).first()
    if existing is not None:
        raise DuplicateEntryError(f"Warehouse letter {payload.letter!r} already in use")
    now = _now()
    warehouse = models.Warehouse(
        letter=payload.letter,
        name=payload.name.strip(),
        type=WarehouseType(payload.type).value,
        section_count=payload.section_count,
        created_at=now,
        updated_at=now,
    )
    session.add(warehouse)
    session.flush()
    session.refresh(warehouse)
    return warehouse


def delete_warehouse(session: Session, letter: str) -> None:
    """Delete warehouse ``letter`` after all of its sections."""

    warehouse = get_warehouse(session, letter)
    sections = session.exec(
        select(models.WarehouseSection).where(
            models.WarehouseSection.warehouse_id == warehouse.id
        )
    ).all()
    for section in sections:
        session.delete(section)
    session.flush()
    session.delete(warehouse)
    session.flush()
    logger.info("Deleted warehouse %s with %s sections", letter, len(sections))


def adjust_section_count(session: Session, letter: str, delta: int) -> models.Warehouse:
    warehouse = get_warehouse(session, letter)
    warehouse.section_count = max(0, warehouse.section_count + delta)
    warehouse.updated_at = _now()
    session.add(warehouse)
    session.flush()
    session.refresh(warehouse)
    return warehouse


def list_sections(session: Session) -> list[models.WarehouseSection]:
    return list(
        session.exec(
            select(models.WarehouseSection).order_by(
                models.WarehouseSection.warehouse_id,
                models.WarehouseSection.section_number,
            )
        ).all()
    )


def get_section(session: Session, warehouse_id: int, number: int) -> models.WarehouseSection:
    section = session.exec(
        select(models.WarehouseSection).where(
            (models.WarehouseSection.warehouse_id == warehouse_id)
            & (models.WarehouseSection.section_number == number)
        )
    ).first()
    if section is None:
        raise NotFoundError(f"Section {number} of warehouse {warehouse_id} not found")
    return section


def insert_sections(
    session: Session, payloads: Iterable[schemas.SectionCreate]
) -> list[models.WarehouseSection]:
    """Insert a batch of sections, rejecting it as a whole on any conflict."""

    items = list(payloads)
    warehouse_ids = {item.warehouse_id for item in items}
    known = set(
        session.exec(
            select(models.Warehouse.id).where(models.Warehouse.id.in_(warehouse_ids))
        ).all()
    )
    missing = warehouse_ids - known
    if missing:
        raise NotFoundError(f"Unknown warehouse ids: {sorted(missing)}")

    wanted = [(item.warehouse_id, item.section_number) for item in items]
    if len(set(wanted)) != len(wanted):
        raise DuplicateEntryError("Duplicate section numbers in batch")
    taken = {
        (warehouse_id, number)
        for warehouse_id, number in session.exec(
            select(
                models.WarehouseSection.warehouse_id,
                models.WarehouseSection.section_number,
            ).where(models.WarehouseSection.warehouse_id.in_(warehouse_ids))
        ).all()
    }
    clash = taken.intersection(wanted)
    if clash:
        raise DuplicateEntryError(f"Sections already exist: {sorted(clash)}")

    now = _now()
    created = [
        models.WarehouseSection(
            warehouse_id=item.warehouse_id,
            section_number=item.section_number,
            status=SectionStatus(item.status).value,
            pos_x=item.pos_x,
            pos_y=item.pos_y,
            created_at=now,
            updated_at=now,
        )
        for item in items
    ]
    session.add_all(created)
    session.flush()
    return created


def update_section(
    session: Session, warehouse_id: int, number: int, payload: schemas.SectionUpdate
) -> models.WarehouseSection:
    section = get_section(session, warehouse_id, number)
    updated = False
    if payload.status is not None:
        section.status = SectionStatus(payload.status).value
        updated = True
    if payload.pos_x is not None and payload.pos_y is not None:
        section.pos_x = payload.pos_x
        section.pos_y = payload.pos_y
        updated = True
    if updated:
        section.updated_at = _now()
        session.add(section)
        session.flush()
        session.refresh(section)
    return section


def delete_section(session: Session, warehouse_id: int, number: int) -> None:
    section = get_section(session, warehouse_id, number)
    session.delete(section)
    session.flush()


def to_warehouse_record(warehouse: models.Warehouse) -> records.Warehouse:
    return records.Warehouse(
        id=warehouse.id,
        letter=warehouse.letter,
        name=warehouse.name,
        type=WarehouseType(warehouse.type),
        section_count=warehouse.section_count,
        created_at=warehouse.created_at,
        updated_at=warehouse.updated_at,
    )


def to_section_row(section: models.WarehouseSection) -> records.SectionRow:
    position = None
    if section.pos_x is not None and section.pos_y is not None:
        position = records.Position(section.pos_x, section.pos_y)
    return records.SectionRow(
        warehouse_id=section.warehouse_id,
        section_number=section.section_number,
        status=SectionStatus(section.status),
        position=position,
    )


class SqlWarehouseBackend:
    """Backend for :class:`occupancy.store.SectionStore` using the database directly.

    Each call runs in its own transaction on a worker thread.
    """

    def __init__(self, scope: Optional[Callable[[], ContextManager[Session]]] = None):
        self._scope = scope

    def _work(self, func: Callable[[Session], Any]) -> Any:
        scope = self._scope or database.session_scope
        try:
            with scope() as session:
                return func(session)
        except (DuplicateEntryError, SQLAlchemyError) as exc:
            logger.warning("Database call failed: %s", exc)
            raise RemoteError(str(exc)) from exc

    async def _run(self, func: Callable[[Session], Any]) -> Any:
        return await asyncio.to_thread(self._work, func)

    async def list_warehouses(self) -> list[records.Warehouse]:
        return await self._run(
            lambda s: [to_warehouse_record(w) for w in list_warehouses(s)]
        )

    async def list_sections(self) -> list[records.SectionRow]:
        return await self._run(lambda s: [to_section_row(x) for x in list_sections(s)])

    async def create_warehouse(
        self, letter: str, name: str, type: WarehouseType, section_count: int = 0
    ) -> records.Warehouse:
        payload = schemas.WarehouseCreate(
            letter=letter, name=name, type=type, section_count=section_count
        )
        return await self._run(lambda s: to_warehouse_record(create_warehouse(s, payload)))

    async def delete_warehouse(self, letter: str) -> None:
        await self._run(lambda s: delete_warehouse(s, letter))

    async def insert_sections(self, rows: Iterable[records.SectionRow]) -> None:
        payloads = [
            schemas.SectionCreate(
                warehouse_id=row.warehouse_id,
                section_number=row.section_number,
                status=row.status,
                pos_x=row.position.x if row.position else None,
                pos_y=row.position.y if row.position else None,
            )
            for row in rows
        ]
        if payloads:
            await self._run(lambda s: insert_sections(s, payloads))

    async def update_section_status(
        self, warehouse_id: int, number: int, status: SectionStatus
    ) -> None:
        payload = schemas.SectionUpdate(status=status)
        await self._run(lambda s: update_section(s, warehouse_id, number, payload))

    async def update_section_position(
        self, warehouse_id: int, number: int, position: records.Position
    ) -> None:
        payload = schemas.SectionUpdate(pos_x=position[0], pos_y=position[1])
        await self._run(lambda s: update_section(s, warehouse_id, number, payload))

    async def delete_section(self, warehouse_id: int, number: int) -> None:
        await self._run(lambda s: delete_section(s, warehouse_id, number))

    async def update_warehouse_section_count(self, letter: str, delta: int) -> None:
        await self._run(lambda s: adjust_section_count(s, letter, delta))
