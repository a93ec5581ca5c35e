from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_pagination, http_error
from app.core.db import get_db
from app.core.exceptions import DriverOSError
from app.schemas.common import Page, PaginationParams
from app.schemas.slot import SlotDetailResponse
from app.schemas.terminal import (
    TerminalCapacityResponse,
    TerminalCreate,
    TerminalResponse,
    TerminalUpdate,
)
from app.schemas.vessel import VesselResponse
from app.services.terminal import TerminalService

router = APIRouter()


@router.get("", response_model=Page[TerminalResponse])
async def list_terminals(
    params: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
) -> Page[TerminalResponse]:
    return await TerminalService(db).list_terminals(params)


@router.get("/code/{code}", response_model=TerminalResponse)
async def get_terminal_by_code(code: str, db: AsyncSession = Depends(get_db)) -> TerminalResponse:
    try:
        return await TerminalService(db).get_by_code(code)
    except DriverOSError as exc:
        raise http_error(exc)


@router.get("/{terminal_id}", response_model=TerminalResponse)
async def get_terminal(terminal_id: str, db: AsyncSession = Depends(get_db)) -> TerminalResponse:
    try:
        return await TerminalService(db).get_terminal(terminal_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post("", response_model=TerminalResponse, status_code=status.HTTP_201_CREATED)
async def create_terminal(payload: TerminalCreate, db: AsyncSession = Depends(get_db)) -> TerminalResponse:
    try:
        return await TerminalService(db).create_terminal(payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{terminal_id}", response_model=TerminalResponse)
async def update_terminal(
    terminal_id: str,
    payload: TerminalUpdate,
    db: AsyncSession = Depends(get_db),
) -> TerminalResponse:
    try:
        return await TerminalService(db).update_terminal(terminal_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.delete("/{terminal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_terminal(terminal_id: str, db: AsyncSession = Depends(get_db)) -> None:
    try:
        await TerminalService(db).delete_terminal(terminal_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.get("/{terminal_id}/capacity", response_model=TerminalCapacityResponse)
async def get_terminal_capacity(terminal_id: str, db: AsyncSession = Depends(get_db)) -> TerminalCapacityResponse:
    """Container count at the terminal against its configured capacity."""
    try:
        return await TerminalService(db).get_capacity(terminal_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.get("/{terminal_id}/vessels/active", response_model=List[VesselResponse])
async def get_active_vessels(terminal_id: str, db: AsyncSession = Depends(get_db)) -> List[VesselResponse]:
    try:
        return await TerminalService(db).get_active_vessels(terminal_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.get("/{terminal_id}/slots/available", response_model=List[SlotDetailResponse])
async def get_available_slots(
    terminal_id: str,
    day: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
) -> List[SlotDetailResponse]:
    try:
        return await TerminalService(db).get_available_slots(terminal_id, day)
    except DriverOSError as exc:
        raise http_error(exc)
