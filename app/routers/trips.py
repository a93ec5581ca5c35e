from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_pagination, http_error
from app.core.db import get_db
from app.core.exceptions import DriverOSError
from app.schemas.common import Page, PaginationParams
from app.schemas.trip import (
    DriverPerformance,
    TripCreate,
    TripEventCreate,
    TripEventResponse,
    TripMetricsResponse,
    TripMetricsUpdate,
    TripResponse,
    TripStatistics,
    TripStatusUpdate,
    TripUpdate,
    TurnTimeResponse,
)
from app.services.trip import TripService

router = APIRouter()


@router.get("", response_model=Page[TripResponse])
async def list_trips(
    params: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
) -> Page[TripResponse]:
    return await TripService(db).list_trips(params)


@router.get("/active", response_model=List[TripResponse])
async def list_active_trips(db: AsyncSession = Depends(get_db)) -> List[TripResponse]:
    return await TripService(db).list_active()


@router.get("/completed", response_model=List[TripResponse])
async def list_completed_trips(db: AsyncSession = Depends(get_db)) -> List[TripResponse]:
    return await TripService(db).list_completed()


@router.get("/statistics", response_model=TripStatistics)
async def get_trip_statistics(db: AsyncSession = Depends(get_db)) -> TripStatistics:
    return await TripService(db).get_statistics()


@router.get("/driver/{driver_id}", response_model=List[TripResponse])
async def list_trips_by_driver(driver_id: str, db: AsyncSession = Depends(get_db)) -> List[TripResponse]:
    return await TripService(db).list_by_driver(driver_id)


@router.get("/driver/{driver_id}/performance", response_model=DriverPerformance)
async def get_driver_performance(driver_id: str, db: AsyncSession = Depends(get_db)) -> DriverPerformance:
    try:
        return await TripService(db).get_driver_performance(driver_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.get("/container/{container_id}", response_model=List[TripResponse])
async def list_trips_by_container(container_id: str, db: AsyncSession = Depends(get_db)) -> List[TripResponse]:
    return await TripService(db).list_by_container(container_id)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(trip_id: str, db: AsyncSession = Depends(get_db)) -> TripResponse:
    try:
        return await TripService(db).get_trip(trip_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(payload: TripCreate, db: AsyncSession = Depends(get_db)) -> TripResponse:
    try:
        return await TripService(db).create_trip(payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: str,
    payload: TripUpdate,
    db: AsyncSession = Depends(get_db),
) -> TripResponse:
    try:
        return await TripService(db).update_trip(trip_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(trip_id: str, db: AsyncSession = Depends(get_db)) -> None:
    try:
        await TripService(db).delete_trip(trip_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{trip_id}/status", response_model=TripResponse)
async def update_trip_status(
    trip_id: str,
    payload: TripStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> TripResponse:
    try:
        return await TripService(db).update_status(trip_id, payload.status)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post(
    "/{trip_id}/events",
    response_model=TripEventResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_trip_event(
    trip_id: str,
    payload: TripEventCreate,
    db: AsyncSession = Depends(get_db),
) -> TripEventResponse:
    try:
        return await TripService(db).add_event(trip_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.put("/{trip_id}/metrics", response_model=TripMetricsResponse)
async def upsert_trip_metrics(
    trip_id: str,
    payload: TripMetricsUpdate,
    db: AsyncSession = Depends(get_db),
) -> TripMetricsResponse:
    try:
        return await TripService(db).upsert_metrics(trip_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.get("/{trip_id}/turn-time", response_model=TurnTimeResponse)
async def get_turn_time(trip_id: str, db: AsyncSession = Depends(get_db)) -> TurnTimeResponse:
    try:
        return await TripService(db).get_turn_time(trip_id)
    except DriverOSError as exc:
        raise http_error(exc)
