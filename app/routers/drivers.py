from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_pagination, http_error
from app.core.db import get_db
from app.core.exceptions import DriverOSError
from app.schemas.common import Page, PaginationParams
from app.schemas.driver import (
    DriverAvailabilityCreate,
    DriverAvailabilityResponse,
    DriverAvailabilityUpdate,
    DriverCreate,
    DriverMetricsResponse,
    DriverMetricsUpdate,
    DriverResponse,
    DriverStatistics,
    DriverStatusUpdate,
    DriverUpdate,
)
from app.services.driver import DriverService

router = APIRouter()


@router.get("", response_model=Page[DriverResponse])
async def list_drivers(
    params: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
) -> Page[DriverResponse]:
    return await DriverService(db).list_drivers(params)


@router.get("/available", response_model=List[DriverResponse])
async def list_available_drivers(db: AsyncSession = Depends(get_db)) -> List[DriverResponse]:
    """ACTIVE drivers with at least one AVAILABLE availability window."""
    return await DriverService(db).list_available()


@router.get("/active", response_model=List[DriverResponse])
async def list_active_drivers(db: AsyncSession = Depends(get_db)) -> List[DriverResponse]:
    return await DriverService(db).list_active()


@router.get("/statistics", response_model=DriverStatistics)
async def get_driver_statistics(db: AsyncSession = Depends(get_db)) -> DriverStatistics:
    return await DriverService(db).get_statistics()


@router.get("/top-performers", response_model=List[DriverResponse])
async def list_top_performers(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> List[DriverResponse]:
    return await DriverService(db).get_top_performers(limit)


@router.get("/carrier/{carrier_id}", response_model=List[DriverResponse])
async def list_drivers_by_carrier(carrier_id: str, db: AsyncSession = Depends(get_db)) -> List[DriverResponse]:
    return await DriverService(db).list_by_carrier(carrier_id)


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(driver_id: str, db: AsyncSession = Depends(get_db)) -> DriverResponse:
    try:
        return await DriverService(db).get_driver(driver_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(payload: DriverCreate, db: AsyncSession = Depends(get_db)) -> DriverResponse:
    try:
        return await DriverService(db).create_driver(payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{driver_id}", response_model=DriverResponse)
async def update_driver(
    driver_id: str,
    payload: DriverUpdate,
    db: AsyncSession = Depends(get_db),
) -> DriverResponse:
    try:
        return await DriverService(db).update_driver(driver_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.delete("/{driver_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_driver(driver_id: str, db: AsyncSession = Depends(get_db)) -> None:
    try:
        await DriverService(db).delete_driver(driver_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{driver_id}/status", response_model=DriverResponse)
async def update_driver_status(
    driver_id: str,
    payload: DriverStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> DriverResponse:
    try:
        return await DriverService(db).update_status(driver_id, payload.status)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post(
    "/{driver_id}/availability",
    response_model=DriverAvailabilityResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_driver_availability(
    driver_id: str,
    payload: DriverAvailabilityCreate,
    db: AsyncSession = Depends(get_db),
) -> DriverAvailabilityResponse:
    try:
        return await DriverService(db).add_availability(driver_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{driver_id}/availability/{availability_id}", response_model=DriverAvailabilityResponse)
async def update_driver_availability(
    driver_id: str,
    availability_id: str,
    payload: DriverAvailabilityUpdate,
    db: AsyncSession = Depends(get_db),
) -> DriverAvailabilityResponse:
    try:
        return await DriverService(db).update_availability(driver_id, availability_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.put("/{driver_id}/metrics", response_model=DriverMetricsResponse)
async def upsert_driver_metrics(
    driver_id: str,
    payload: DriverMetricsUpdate,
    db: AsyncSession = Depends(get_db),
) -> DriverMetricsResponse:
    try:
        return await DriverService(db).upsert_metrics(driver_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)
