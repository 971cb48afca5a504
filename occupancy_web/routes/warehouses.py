"""Warehouse API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session

from occupancy.errors import NotFoundError

from .. import repository, schemas
from ..database import get_session

router = APIRouter(prefix="/warehouses", tags=["warehouses"])


@router.get("/", response_model=list[schemas.WarehouseRead])
def list_warehouses(session: Session = Depends(get_session)):
    return repository.list_warehouses(session)


@router.post("/", response_model=schemas.WarehouseRead, status_code=status.HTTP_201_CREATED)
def create_warehouse(payload: schemas.WarehouseCreate, session: Session = Depends(get_session)):
    try:
        warehouse = repository.create_warehouse(session, payload)
    except repository.DuplicateEntryError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    session.commit()
    session.refresh(warehouse)
    return warehouse


@router.delete("/{letter}", status_code=status.HTTP_204_NO_CONTENT)
def delete_warehouse(letter: str, session: Session = Depends(get_session)):
    try:
        repository.delete_warehouse(session, letter)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{letter}/section-count", response_model=schemas.WarehouseRead)
def update_section_count(
    letter: str,
    payload: schemas.SectionCountUpdate,
    session: Session = Depends(get_session),
):
    try:
        warehouse = repository.adjust_section_count(session, letter, payload.delta)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    session.commit()
    session.refresh(warehouse)
    return warehouse
