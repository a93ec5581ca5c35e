from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_pagination, http_error
from app.core.db import get_db
from app.core.exceptions import DriverOSError
from app.schemas.common import Page, PaginationParams
from app.schemas.vessel import (
    VesselContainerCount,
    VesselCreate,
    VesselResponse,
    VesselScheduleResponse,
    VesselStatusUpdate,
    VesselUpdate,
)
from app.services.vessel import VesselService

router = APIRouter()


@router.get("", response_model=Page[VesselResponse])
async def list_vessels(
    params: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
) -> Page[VesselResponse]:
    return await VesselService(db).list_vessels(params)


@router.get("/active", response_model=List[VesselResponse])
async def list_active_vessels(db: AsyncSession = Depends(get_db)) -> List[VesselResponse]:
    return await VesselService(db).list_active()


@router.get("/terminal/{terminal_id}", response_model=List[VesselResponse])
async def list_vessels_by_terminal(terminal_id: str, db: AsyncSession = Depends(get_db)) -> List[VesselResponse]:
    return await VesselService(db).list_by_terminal(terminal_id)


@router.get("/{vessel_id}", response_model=VesselResponse)
async def get_vessel(vessel_id: str, db: AsyncSession = Depends(get_db)) -> VesselResponse:
    try:
        return await VesselService(db).get_vessel(vessel_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post("", response_model=VesselResponse, status_code=status.HTTP_201_CREATED)
async def create_vessel(payload: VesselCreate, db: AsyncSession = Depends(get_db)) -> VesselResponse:
    try:
        return await VesselService(db).create_vessel(payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{vessel_id}", response_model=VesselResponse)
async def update_vessel(
    vessel_id: str,
    payload: VesselUpdate,
    db: AsyncSession = Depends(get_db),
) -> VesselResponse:
    try:
        return await VesselService(db).update_vessel(vessel_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.delete("/{vessel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vessel(vessel_id: str, db: AsyncSession = Depends(get_db)) -> None:
    try:
        await VesselService(db).delete_vessel(vessel_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{vessel_id}/status", response_model=VesselResponse)
async def update_vessel_status(
    vessel_id: str,
    payload: VesselStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> VesselResponse:
    try:
        return await VesselService(db).update_status(vessel_id, payload.status)
    except DriverOSError as exc:
        raise http_error(exc)


@router.get("/{vessel_id}/containers/count", response_model=VesselContainerCount)
async def get_vessel_container_count(vessel_id: str, db: AsyncSession = Depends(get_db)) -> VesselContainerCount:
    try:
        return await VesselService(db).get_container_count(vessel_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.get("/{vessel_id}/schedule", response_model=List[VesselScheduleResponse])
async def get_vessel_schedule(vessel_id: str, db: AsyncSession = Depends(get_db)) -> List[VesselScheduleResponse]:
    try:
        return await VesselService(db).get_schedule(vessel_id)
    except DriverOSError as exc:
        raise http_error(exc)
