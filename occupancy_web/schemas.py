"""Pydantic/SQLModel schemas for the warehouse service."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlmodel import Field, SQLModel

from occupancy.status import SectionStatus, WarehouseType


class WarehouseCreate(SQLModel):
    letter: str = Field(min_length=1, max_length=1)
    name: str = Field(min_length=1)
    type: WarehouseType
    section_count: int = Field(default=0, ge=0)


class WarehouseRead(SQLModel):
    id: int
    letter: str
    name: str
    type: WarehouseType
    section_count: int
    created_at: dt.datetime
    updated_at: dt.datetime


class SectionCountUpdate(SQLModel):
    delta: int


class SectionCreate(SQLModel):
    warehouse_id: int
    section_number: int = Field(ge=1)
    status: SectionStatus = SectionStatus.GREEN
    pos_x: Optional[int] = Field(default=None, ge=0)
    pos_y: Optional[int] = Field(default=None, ge=0)


class SectionUpdate(SQLModel):
    status: Optional[SectionStatus] = None
    pos_x: Optional[int] = Field(default=None, ge=0)
    pos_y: Optional[int] = Field(default=None, ge=0)


class SectionRead(SQLModel):
    id: int
    warehouse_id: int
    section_number: int
    status: SectionStatus
    pos_x: Optional[int] = None
    pos_y: Optional[int] = None
    created_at: dt.datetime
    updated_at: dt.datetime
