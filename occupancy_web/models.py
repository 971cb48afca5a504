"""Database models for the warehouse service."""

import datetime as dt
from typing import List, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Warehouse(SQLModel, table=True):
    """Named group of sections identified by a single letter."""

    id: Optional[int] = Field(default=None, primary_key=True)
    letter: str = Field(index=True, unique=True, max_length=1)
    name: str = Field(index=True)
    type: str = Field(index=True)
    section_count: int = Field(default=0)
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)

    sections: List["WarehouseSection"] = Relationship(back_populates="warehouse")


class WarehouseSection(SQLModel, table=True):
    """Storage section with its occupancy status and optional grid cell."""

    __table_args__ = (
        UniqueConstraint("warehouse_id", "section_number", name="uq_section_identity"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    warehouse_id: int = Field(foreign_key="warehouse.id", index=True)
    section_number: int = Field(index=True, ge=1)
    status: str = Field(default="green")
    pos_x: Optional[int] = Field(default=None, ge=0)
    pos_y: Optional[int] = Field(default=None, ge=0)
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)

    warehouse: Optional["Warehouse"] = Relationship(back_populates="sections")
