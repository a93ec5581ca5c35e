from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import http_error
from app.core.db import get_db
from app.core.exceptions import DriverOSError
from app.schemas.slot import (
    HourlyUtilization,
    SlotBookingCreate,
    SlotBookingResponse,
    SlotCreate,
    SlotDetailResponse,
    SlotResponse,
    SlotStatistics,
    SlotStatusUpdate,
    SlotUpdate,
)
from app.services.slot import SlotService

router = APIRouter()


@router.get("", response_model=List[SlotResponse])
async def list_slots(db: AsyncSession = Depends(get_db)) -> List[SlotResponse]:
    return await SlotService(db).list_slots()


@router.get("/available", response_model=List[SlotDetailResponse])
async def list_available_slots(
    terminal_id: Optional[str] = Query(None),
    day: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
) -> List[SlotDetailResponse]:
    return await SlotService(db).list_available(terminal_id, day)


@router.get("/upcoming", response_model=List[SlotDetailResponse])
async def list_upcoming_slots(
    terminal_id: Optional[str] = Query(None),
    days: Optional[int] = Query(None, ge=1, le=90),
    db: AsyncSession = Depends(get_db),
) -> List[SlotDetailResponse]:
    return await SlotService(db).list_upcoming(terminal_id, days)


@router.get("/statistics", response_model=SlotStatistics)
async def get_slot_statistics(
    terminal_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> SlotStatistics:
    return await SlotService(db).get_statistics(terminal_id)


@router.get("/terminal/{terminal_id}", response_model=List[SlotDetailResponse])
async def list_slots_by_terminal(terminal_id: str, db: AsyncSession = Depends(get_db)) -> List[SlotDetailResponse]:
    return await SlotService(db).list_by_terminal(terminal_id)


@router.get("/terminal/{terminal_id}/utilization", response_model=List[HourlyUtilization])
async def get_hourly_utilization(
    terminal_id: str,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
) -> List[HourlyUtilization]:
    """Capacity and bookings for each hour of ``date``, always 24 buckets."""
    try:
        return await SlotService(db).get_hourly_utilization(terminal_id, day)
    except DriverOSError as exc:
        raise http_error(exc)


@router.get("/{slot_id}", response_model=SlotDetailResponse)
async def get_slot(slot_id: str, db: AsyncSession = Depends(get_db)) -> SlotDetailResponse:
    try:
        return await SlotService(db).get_slot(slot_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post("", response_model=SlotDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_slot(payload: SlotCreate, db: AsyncSession = Depends(get_db)) -> SlotDetailResponse:
    try:
        return await SlotService(db).create_slot(payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{slot_id}", response_model=SlotDetailResponse)
async def update_slot(
    slot_id: str,
    payload: SlotUpdate,
    db: AsyncSession = Depends(get_db),
) -> SlotDetailResponse:
    try:
        return await SlotService(db).update_slot(slot_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{slot_id}/status", response_model=SlotDetailResponse)
async def update_slot_status(
    slot_id: str,
    payload: SlotStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> SlotDetailResponse:
    """CLOSED and MAINTENANCE stick; AVAILABLE and FULL follow occupancy."""
    try:
        return await SlotService(db).update_status(slot_id, payload.status)
    except DriverOSError as exc:
        raise http_error(exc)


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot(slot_id: str, db: AsyncSession = Depends(get_db)) -> None:
    try:
        await SlotService(db).delete_slot(slot_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post(
    "/{slot_id}/book",
    response_model=SlotBookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book_slot(
    slot_id: str,
    payload: SlotBookingCreate,
    db: AsyncSession = Depends(get_db),
) -> SlotBookingResponse:
    """
    Reserve one unit of slot capacity for a trip.

    Returns 404 when the slot, trip, driver or container does not exist and
    409 when the slot is closed, under maintenance or fully booked.
    """
    try:
        return await SlotService(db).book_slot(slot_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.delete("/{slot_id}/bookings/{booking_id}", response_model=SlotBookingResponse)
async def cancel_booking(
    slot_id: str,
    booking_id: str,
    db: AsyncSession = Depends(get_db),
) -> SlotBookingResponse:
    try:
        return await SlotService(db).cancel_booking(slot_id, booking_id)
    except DriverOSError as exc:
        raise http_error(exc)
