"""
Slot service: CRUD, reporting, and the capacity accountant.

Booking and cancellation never read-modify-write ``booked`` in Python.
Each one issues a single guarded UPDATE that re-checks the slot state in
its WHERE clause, so two requests can never both take the last unit even
when they race across workers. Inside one worker, mutations of the same
slot are additionally serialized by a per-slot ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import AsyncIterator, List, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import get_settings
from app.core.exceptions import BookingRaceLostError, ConflictError, DriverOSError, NotFoundError
from app.models.container import Container
from app.models.driver import Driver
from app.models.slot import MANUAL_SLOT_STATUSES, BookingStatus, Slot, SlotBooking, SlotStatus
from app.models.terminal import Terminal
from app.models.trip import Trip
from app.schemas.slot import (
    HourlyUtilization,
    SlotBookingCreate,
    SlotCreate,
    SlotStatistics,
    SlotUpdate,
)
from app.services.event_dispatcher import EventType, emit_event
from app.services.lookups import ensure_live, get_live, live
from app.utils.time import day_bounds, percentage, utcnow

logger = logging.getLogger(__name__)

SLOT_OPTIONS = (selectinload(Slot.bookings),)


class SlotLockRegistry:
    """Hands out one ``asyncio.Lock`` per slot id; idle locks are garbage collected."""

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, slot_id: str) -> asyncio.Lock:
        lock = self._locks.get(slot_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[slot_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, slot_id: str) -> AsyncIterator[None]:
        lock = self.lock_for(slot_id)
        async with lock:
            yield


slot_locks = SlotLockRegistry()


def derive_status(booked: int, capacity: int) -> SlotStatus:
    return SlotStatus.FULL if booked >= capacity else SlotStatus.AVAILABLE


def booking_blocker(slot: Slot) -> Optional[str]:
    """Why ``slot`` cannot take another booking, or ``None`` if it can."""
    if slot.status != SlotStatus.AVAILABLE:
        return f"Slot is {slot.status.value}"
    if slot.booked >= slot.capacity:
        return "Slot is fully booked"
    return None


class SlotService:
    def __init__(self, db: AsyncSession, *, max_retries: Optional[int] = None) -> None:
        self.db = db
        if max_retries is None:
            max_retries = get_settings().booking_max_retries
        if max_retries < 1:
            raise ValueError("max_retries must allow at least one booking attempt")
        self.max_retries = max_retries

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_slots(self) -> List[Slot]:
        return await self._list()

    async def get_slot(self, slot_id: str) -> Slot:
        return await get_live(self.db, Slot, slot_id, options=SLOT_OPTIONS)

    async def list_by_terminal(self, terminal_id: str) -> List[Slot]:
        return await self._list(Slot.terminal_id == terminal_id)

    async def list_available(self, terminal_id: Optional[str] = None, day: Optional[date] = None) -> List[Slot]:
        conditions = [Slot.status == SlotStatus.AVAILABLE]
        if terminal_id:
            conditions.append(Slot.terminal_id == terminal_id)
        if day:
            start, end = day_bounds(day)
            conditions += [Slot.window_start >= start, Slot.window_start < end]
        return await self._list(*conditions)

    async def list_upcoming(self, terminal_id: Optional[str] = None, days: Optional[int] = None) -> List[Slot]:
        now = utcnow()
        horizon = now + timedelta(days=days or get_settings().upcoming_slot_days)
        conditions = [Slot.window_start >= now, Slot.window_start <= horizon]
        if terminal_id:
            conditions.append(Slot.terminal_id == terminal_id)
        return await self._list(*conditions)

    async def get_statistics(self, terminal_id: Optional[str] = None) -> SlotStatistics:
        stmt = select(Slot.status, Slot.capacity, Slot.booked).where(live(Slot))
        if terminal_id:
            stmt = stmt.where(Slot.terminal_id == terminal_id)
        rows = (await self.db.execute(stmt)).all()

        def count(status: SlotStatus) -> int:
            return sum(1 for row in rows if row.status == status)

        return SlotStatistics(
            total=len(rows),
            available=count(SlotStatus.AVAILABLE),
            full=count(SlotStatus.FULL),
            closed=count(SlotStatus.CLOSED),
            maintenance=count(SlotStatus.MAINTENANCE),
            average_utilization=percentage(
                sum(row.booked for row in rows), sum(row.capacity for row in rows)
            ),
        )

    async def get_hourly_utilization(self, terminal_id: str, day: date) -> List[HourlyUtilization]:
        await ensure_live(self.db, Terminal, terminal_id)
        start, end = day_bounds(day)
        rows = (
            await self.db.execute(
                select(Slot.window_start, Slot.capacity, Slot.booked).where(
                    live(Slot),
                    Slot.terminal_id == terminal_id,
                    Slot.window_start >= start,
                    Slot.window_start < end,
                )
            )
        ).all()

        buckets = []
        for hour in range(24):
            in_hour = [row for row in rows if row.window_start.hour == hour]
            capacity = sum(row.capacity for row in in_hour)
            booked = sum(row.booked for row in in_hour)
            buckets.append(
                HourlyUtilization(
                    hour=hour,
                    total_slots=len(in_hour),
                    total_capacity=capacity,
                    total_booked=booked,
                    utilization=percentage(booked, capacity),
                )
            )
        return buckets

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    async def create_slot(self, payload: SlotCreate) -> Slot:
        await ensure_live(self.db, Terminal, payload.terminal_id)
        await self._ensure_window_free(payload.terminal_id, payload.window_start, payload.window_end)

        slot = Slot(
            id=str(uuid.uuid4()),
            terminal_id=payload.terminal_id,
            window_start=payload.window_start,
            window_end=payload.window_end,
            capacity=payload.capacity,
            booked=0,
            status=payload.status,
        )
        self.db.add(slot)
        await self.db.commit()
        logger.info(
            "Created slot %s at terminal %s (%s - %s, capacity %d)",
            slot.id,
            slot.terminal_id,
            slot.window_start.isoformat(),
            slot.window_end.isoformat(),
            slot.capacity,
        )
        return await self.get_slot(slot.id)

    async def update_slot(self, slot_id: str, payload: SlotUpdate) -> Slot:
        async with slot_locks.hold(slot_id):
            slot = await self.get_slot(slot_id)
            data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

            terminal_id = data.get("terminal_id", slot.terminal_id)
            window_start = data.get("window_start", slot.window_start)
            window_end = data.get("window_end", slot.window_end)
            if window_end <= window_start:
                raise DriverOSError("window_end must be after window_start")
            if terminal_id != slot.terminal_id:
                await ensure_live(self.db, Terminal, terminal_id)
            if (terminal_id, window_start, window_end) != (slot.terminal_id, slot.window_start, slot.window_end):
                await self._ensure_window_free(terminal_id, window_start, window_end, exclude_id=slot.id)

            capacity = data.get("capacity", slot.capacity)
            if capacity < slot.booked:
                raise ConflictError(
                    f"Capacity {capacity} is below the {slot.booked} bookings already confirmed"
                )

            previous = slot.status
            requested = data.pop("status", None)
            for field, value in data.items():
                setattr(slot, field, value)
            slot.status = self._resolve_status(requested or slot.status, slot.booked, slot.capacity)

            await self._commit_slot_write(slot_id)
        await self._emit_status_change(slot, previous)
        return await self.get_slot(slot_id)

    async def update_status(self, slot_id: str, status: SlotStatus) -> Slot:
        async with slot_locks.hold(slot_id):
            slot = await self.get_slot(slot_id)
            previous = slot.status
            slot.status = self._resolve_status(status, slot.booked, slot.capacity)
            await self._commit_slot_write(slot_id)
        await self._emit_status_change(slot, previous)
        return await self.get_slot(slot_id)

    async def delete_slot(self, slot_id: str) -> None:
        async with slot_locks.hold(slot_id):
            slot = await get_live(self.db, Slot, slot_id)
            confirmed = await self.db.scalar(
                select(func.count())
                .select_from(SlotBooking)
                .where(SlotBooking.slot_id == slot_id, SlotBooking.status == BookingStatus.CONFIRMED)
            ) or 0
            if confirmed:
                raise ConflictError(f"Slot {slot_id} still has {confirmed} confirmed bookings")
            slot.deleted_at = utcnow()
            await self._commit_slot_write(slot_id)
        logger.info("Soft-deleted slot %s", slot_id)

    # ------------------------------------------------------------------
    # Capacity accountant
    # ------------------------------------------------------------------

    async def book_slot(self, slot_id: str, payload: SlotBookingCreate) -> SlotBooking:
        """
        Reserve one unit of capacity on a slot for a trip.

        Raises ``NotFoundError`` when the slot or any referenced trip, driver
        or container is missing, and ``ConflictError`` when the slot is not
        AVAILABLE or already at capacity.
        """
        async with slot_locks.hold(slot_id):
            await get_live(self.db, Slot, slot_id)
            await ensure_live(self.db, Trip, payload.trip_id)
            await ensure_live(self.db, Driver, payload.driver_id)
            await ensure_live(self.db, Container, payload.container_id)

            for attempt in range(1, self.max_retries + 1):
                try:
                    booking = await self._reserve(slot_id, payload)
                except BookingRaceLostError:
                    logger.warning(
                        "Lost booking race on slot %s (attempt %d/%d)", slot_id, attempt, self.max_retries
                    )
                    continue
                break
            else:
                raise ConflictError(
                    f"Slot {slot_id} is under heavy contention, try again", reason="RACE_LOST"
                )

        slot = await self.get_slot(slot_id)
        logger.info(
            "Booked slot %s for trip %s (%d/%d)", slot_id, payload.trip_id, slot.booked, slot.capacity
        )
        await emit_event(
            EventType.SLOT_BOOKED,
            {
                "slot_id": slot_id,
                "booking_id": booking.id,
                "trip_id": booking.trip_id,
                "booked": slot.booked,
                "capacity": slot.capacity,
                "status": slot.status.value,
            },
            terminal_id=slot.terminal_id,
        )
        return booking

    async def cancel_booking(self, slot_id: str, booking_id: str) -> SlotBooking:
        """Void a CONFIRMED booking and release its unit of capacity."""
        async with slot_locks.hold(slot_id):
            await get_live(self.db, Slot, slot_id)

            voided = await self.db.execute(
                update(SlotBooking)
                .where(
                    SlotBooking.id == booking_id,
                    SlotBooking.slot_id == slot_id,
                    SlotBooking.status == BookingStatus.CONFIRMED,
                )
                .values(status=BookingStatus.CANCELLED, cancelled_at=utcnow(), updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if voided.rowcount == 0:
                await self.db.rollback()
                raise NotFoundError(
                    f"Booking {booking_id} not found for slot {slot_id}", reason="NOT_FOUND"
                )

            remaining = case((Slot.booked > 0, Slot.booked - 1), else_=0)
            await self.db.execute(
                update(Slot)
                .where(Slot.id == slot_id)
                .values(
                    booked=remaining,
                    status=case(
                        (Slot.status.in_(MANUAL_SLOT_STATUSES), Slot.status),
                        (remaining >= Slot.capacity, SlotStatus.FULL.value),
                        else_=SlotStatus.AVAILABLE.value,
                    ),
                    version=Slot.version + 1,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()

        booking = await get_booking(self.db, booking_id)
        slot = await self.get_slot(slot_id)
        logger.info("Cancelled booking %s on slot %s (%d/%d)", booking_id, slot_id, slot.booked, slot.capacity)
        await emit_event(
            EventType.SLOT_BOOKING_CANCELLED,
            {
                "slot_id": slot_id,
                "booking_id": booking_id,
                "booked": slot.booked,
                "capacity": slot.capacity,
                "status": slot.status.value,
            },
            terminal_id=slot.terminal_id,
        )
        return booking

    async def _reserve(self, slot_id: str, payload: SlotBookingCreate) -> SlotBooking:
        """One compare-and-swap attempt; commits the booking or raises."""
        claimed = await self.db.execute(
            update(Slot)
            .where(
                Slot.id == slot_id,
                live(Slot),
                Slot.status == SlotStatus.AVAILABLE,
                Slot.booked < Slot.capacity,
            )
            .values(
                booked=Slot.booked + 1,
                status=case(
                    (Slot.booked + 1 >= Slot.capacity, SlotStatus.FULL.value),
                    else_=SlotStatus.AVAILABLE.value,
                ),
                version=Slot.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            await self.db.rollback()
            slot = await get_live(self.db, Slot, slot_id)
            blocker = booking_blocker(slot)
            if blocker is None:
                raise BookingRaceLostError(slot_id)
            raise ConflictError(blocker, reason="SLOT_UNAVAILABLE")

        booking = SlotBooking(
            id=str(uuid.uuid4()),
            slot_id=slot_id,
            trip_id=payload.trip_id,
            driver_id=payload.driver_id,
            container_id=payload.container_id,
            status=BookingStatus.CONFIRMED,
        )
        self.db.add(booking)
        await self.db.commit()
        await self.db.refresh(booking)
        return booking

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_status(requested: SlotStatus, booked: int, capacity: int) -> SlotStatus:
        if requested in MANUAL_SLOT_STATUSES:
            return requested
        return derive_status(booked, capacity)

    async def _commit_slot_write(self, slot_id: str) -> None:
        try:
            await self.db.commit()
        except StaleDataError as exc:
            await self.db.rollback()
            raise ConflictError(
                f"Slot {slot_id} was modified concurrently, reload and retry", reason="STALE"
            ) from exc

    async def _emit_status_change(self, slot: Slot, previous: SlotStatus) -> None:
        if slot.status == previous:
            return
        await emit_event(
            EventType.SLOT_STATUS_CHANGED,
            {"slot_id": slot.id, "old_status": previous.value, "new_status": slot.status.value},
            terminal_id=slot.terminal_id,
        )

    async def _ensure_window_free(self, terminal_id, window_start, window_end, exclude_id=None) -> None:
        stmt = select(Slot.id).where(
            live(Slot),
            Slot.terminal_id == terminal_id,
            Slot.window_start == window_start,
            Slot.window_end == window_end,
        )
        if exclude_id:
            stmt = stmt.where(Slot.id != exclude_id)
        if (await self.db.execute(stmt)).first() is not None:
            raise ConflictError("A slot already exists for this terminal and time window")

    async def _list(self, *conditions) -> List[Slot]:
        result = await self.db.execute(
            select(Slot)
            .where(live(Slot), *conditions)
            .options(*SLOT_OPTIONS)
            .order_by(Slot.window_start, Slot.id)
        )
        return list(result.scalars().all())


async def get_booking(db: AsyncSession, booking_id: str) -> SlotBooking:
    result = await db.execute(
        select(SlotBooking)
        .where(SlotBooking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError.for_entity("Booking", booking_id)
    return booking
