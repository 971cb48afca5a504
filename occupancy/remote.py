"""Access to the remote persistence service.

:class:`WarehouseBackend` describes the calls the synchronisation store makes.
:class:`HttpWarehouseBackend` implements them against the JSON API served by
``server.py``; ``occupancy_web.repository.SqlWarehouseBackend`` talks to the
database directly.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Any, Iterable, Optional, Protocol

import requests

from . import config
from .errors import NotFoundError, RemoteError
from .records import Position, SectionRow, Warehouse
from .status import SectionStatus, WarehouseType

logger = logging.getLogger(__name__)


class WarehouseBackend(Protocol):
    """Request/response calls offered by the persistence service."""

    async def list_warehouses(self) -> list[Warehouse]: ...

    async def list_sections(self) -> list[SectionRow]: ...

    async def create_warehouse(
        self, letter: str, name: str, type: WarehouseType, section_count: int = 0
    ) -> Warehouse: ...

    async def delete_warehouse(self, letter: str) -> None: ...

    async def insert_sections(self, rows: Iterable[SectionRow]) -> None: ...

    async def update_section_status(
        self, warehouse_id: int, number: int, status: SectionStatus
    ) -> None: ...

    async def update_section_position(
        self, warehouse_id: int, number: int, position: Position
    ) -> None: ...

    async def delete_section(self, warehouse_id: int, number: int) -> None: ...

    async def update_warehouse_section_count(self, letter: str, delta: int) -> None: ...


def _parse_datetime(value: Any) -> dt.datetime | None:
    """Return ``datetime`` parsed from an ISO string, ``None`` when invalid."""

    if not value:
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return dt.datetime.fromisoformat(text)
    except ValueError:
        return None


def warehouse_from_payload(payload: dict[str, Any]) -> Warehouse:
    return Warehouse(
        id=int(payload["id"]),
        letter=payload["letter"],
        name=payload["name"],
        type=WarehouseType(payload["type"]),
        section_count=int(payload.get("section_count") or 0),
        created_at=_parse_datetime(payload.get("created_at")),
        updated_at=_parse_datetime(payload.get("updated_at")),
    )


def section_from_payload(payload: dict[str, Any]) -> SectionRow:
    x, y = payload.get("pos_x"), payload.get("pos_y")
    position = Position(int(x), int(y)) if x is not None and y is not None else None
    return SectionRow(
        warehouse_id=int(payload["warehouse_id"]),
        section_number=int(payload["section_number"]),
        status=SectionStatus(payload.get("status") or SectionStatus.GREEN),
        position=position,
    )


def section_to_payload(row: SectionRow) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "warehouse_id": row.warehouse_id,
        "section_number": row.section_number,
        "status": SectionStatus(row.status).value,
    }
    if row.position is not None:
        payload["pos_x"], payload["pos_y"] = row.position
    return payload


class HttpWarehouseBackend:
    """Client for the warehouse JSON API."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or config.API_URL).strip().rstrip("/")
        if not self.base_url:
            raise ValueError("OCCUPANCY_API_URL not set")
        self.timeout = config.API_TIMEOUT if timeout is None else timeout
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body.

        An empty body yields ``None``.  HTTP ``404`` is raised as
        :class:`NotFoundError`; every other failure becomes
        :class:`RemoteError`.
        """

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            if resp.text:
                return resp.json()
            return None
        except requests.HTTPError as exc:
            if exc.response is not None and exc.response.status_code == 404:
                raise NotFoundError(f"{method} {endpoint}: not found") from exc
            logger.warning("API request %s %s failed: %s", method, endpoint, exc)
            raise RemoteError(f"API request failed: {exc}") from exc
        except requests.RequestException as exc:
            logger.warning("API request %s %s failed: %s", method, endpoint, exc)
            raise RemoteError(f"API request failed: {exc}") from exc

    async def _call(self, method: str, endpoint: str, **kwargs) -> Any:
        return await asyncio.to_thread(self._request, method, endpoint, **kwargs)

    async def list_warehouses(self) -> list[Warehouse]:
        payload = await self._call("GET", "warehouses/")
        return [warehouse_from_payload(item) for item in payload or []]

    async def list_sections(self) -> list[SectionRow]:
        payload = await self._call("GET", "sections/")
        return [section_from_payload(item) for item in payload or []]

    async def create_warehouse(
        self, letter: str, name: str, type: WarehouseType, section_count: int = 0
    ) -> Warehouse:
        payload = await self._call(
            "POST",
            "warehouses/",
            json={
                "letter": letter,
                "name": name,
                "type": WarehouseType(type).value,
                "section_count": section_count,
            },
        )
        if not payload:
            raise RemoteError("Warehouse was not created")
        return warehouse_from_payload(payload)

    async def delete_warehouse(self, letter: str) -> None:
        await self._call("DELETE", f"warehouses/{letter}")

    async def insert_sections(self, rows: Iterable[SectionRow]) -> None:
        body = [section_to_payload(row) for row in rows]
        if body:
            await self._call("POST", "sections/", json=body)

    async def update_section_status(
        self, warehouse_id: int, number: int, status: SectionStatus
    ) -> None:
        await self._call(
            "PATCH",
            f"sections/{warehouse_id}/{number}",
            json={"status": SectionStatus(status).value},
        )

    async def update_section_position(
        self, warehouse_id: int, number: int, position: Position
    ) -> None:
        x, y = position
        await self._call(
            "PATCH",
            f"sections/{warehouse_id}/{number}",
            json={"pos_x": x, "pos_y": y},
        )

    async def delete_section(self, warehouse_id: int, number: int) -> None:
        await self._call("DELETE", f"sections/{warehouse_id}/{number}")

    async def update_warehouse_section_count(self, letter: str, delta: int) -> None:
        await self._call(
            "PATCH", f"warehouses/{letter}/section-count", json={"delta": delta}
        )
