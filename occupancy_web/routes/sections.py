"""Section API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session

from occupancy.errors import NotFoundError

from .. import repository, schemas
from ..database import get_session

router = APIRouter(prefix="/sections", tags=["sections"])


@router.get("/", response_model=list[schemas.SectionRead])
def list_sections(session: Session = Depends(get_session)):
    return repository.list_sections(session)


@router.post("/", response_model=list[schemas.SectionRead], status_code=status.HTTP_201_CREATED)
def insert_sections(
    payload: list[schemas.SectionCreate], session: Session = Depends(get_session)
):
    if not payload:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No sections given")
    try:
        created = repository.insert_sections(session, payload)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except repository.DuplicateEntryError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    session.commit()
    for section in created:
        session.refresh(section)
    return created


@router.patch("/{warehouse_id}/{number}", response_model=schemas.SectionRead)
def update_section(
    warehouse_id: int,
    number: int,
    payload: schemas.SectionUpdate,
    session: Session = Depends(get_session),
):
    if (payload.pos_x is None) != (payload.pos_y is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="pos_x and pos_y must be given together",
        )
    try:
        section = repository.update_section(session, warehouse_id, number, payload)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    session.commit()
    session.refresh(section)
    return section


@router.delete("/{warehouse_id}/{number}", status_code=status.HTTP_204_NO_CONTENT)
def delete_section(warehouse_id: int, number: int, session: Session = Depends(get_session)):
    try:
        repository.delete_section(session, warehouse_id, number)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
