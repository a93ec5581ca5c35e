from __future__ import annotations

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.models.container import Container
from app.models.driver import Driver
from app.models.slot import BookingStatus, Slot, SlotBooking
from app.models.trip import (
    ACTIVE_TRIP_STATUSES,
    IN_PROGRESS_TRIP_STATUSES,
    TERMINAL_TRIP_STATUSES,
    Trip,
    TripEvent,
    TripMetrics,
    TripStatus,
)
from app.schemas.common import Page, PaginationParams
from app.schemas.trip import (
    DriverPerformance,
    TripCreate,
    TripEventCreate,
    TripMetricsUpdate,
    TripResponse,
    TripStatistics,
    TripUpdate,
    TurnTimeResponse,
)
from app.services.event_dispatcher import EventType, emit_event
from app.services.lookups import ensure_live, get_live, live, paginate
from app.services.slot import SlotService
from app.utils.time import average_minutes, turn_time_minutes, utcnow

logger = logging.getLogger(__name__)

TRIP_OPTIONS = (selectinload(Trip.metrics), selectinload(Trip.events))

# A trip that ends in these states gives its pickup slots back
RELEASING_TRIP_STATUSES = (TripStatus.FAILED, TripStatus.CANCELLED)


class TripService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_trips(self, params: PaginationParams) -> Page[TripResponse]:
        trips, total = await paginate(
            self.db,
            Trip,
            params,
            order_by=(Trip.created_at.desc(), Trip.id),
            options=TRIP_OPTIONS,
        )
        return Page[TripResponse].build([TripResponse.model_validate(t) for t in trips], total, params)

    async def get_trip(self, trip_id: str) -> Trip:
        return await get_live(self.db, Trip, trip_id, options=TRIP_OPTIONS)

    async def list_by_driver(self, driver_id: str) -> List[Trip]:
        return await self._list(Trip.driver_id == driver_id)

    async def list_by_container(self, container_id: str) -> List[Trip]:
        return await self._list(Trip.container_id == container_id)

    async def list_active(self) -> List[Trip]:
        return await self._list(Trip.status.in_(ACTIVE_TRIP_STATUSES))

    async def list_completed(self) -> List[Trip]:
        return await self._list(Trip.status.in_(TERMINAL_TRIP_STATUSES))

    async def create_trip(self, payload: TripCreate) -> Trip:
        await ensure_live(self.db, Driver, payload.driver_id)
        await ensure_live(self.db, Container, payload.container_id)
        if payload.pickup_slot_id:
            await ensure_live(self.db, Slot, payload.pickup_slot_id)

        trip = Trip(
            id=str(uuid.uuid4()),
            **payload.model_dump(exclude={"metrics", "events"}),
        )
        self._stamp(trip, trip.status)
        if payload.metrics:
            trip.metrics = self._build_metrics(trip.id, payload.metrics)
        trip.events = [self._build_event(trip.id, event) for event in payload.events or []]
        self.db.add(trip)
        await self.db.commit()
        logger.info("Created trip %s for driver %s", trip.id, trip.driver_id)
        return await self.get_trip(trip.id)

    async def update_trip(self, trip_id: str, payload: TripUpdate) -> Trip:
        trip = await self.get_trip(trip_id)
        data = {
            k: v
            for k, v in payload.model_dump(exclude_unset=True, exclude={"metrics", "events"}).items()
            if v is not None
        }

        if data.get("driver_id", trip.driver_id) != trip.driver_id:
            await ensure_live(self.db, Driver, data["driver_id"])
        if data.get("container_id", trip.container_id) != trip.container_id:
            await ensure_live(self.db, Container, data["container_id"])
        if data.get("pickup_slot_id", trip.pickup_slot_id) != trip.pickup_slot_id:
            await ensure_live(self.db, Slot, data["pickup_slot_id"])

        if data.get("status") in RELEASING_TRIP_STATUSES:
            await self._release_bookings(trip.id)
            trip = await self.get_trip(trip_id)
        for field, value in data.items():
            setattr(trip, field, value)
        if "status" in data:
            self._stamp(trip, data["status"])
        if payload.metrics:
            self._apply_metrics(trip, payload.metrics)
        if payload.events is not None:
            trip.events = [self._build_event(trip.id, event) for event in payload.events]

        await self.db.commit()
        return await self.get_trip(trip.id)

    async def delete_trip(self, trip_id: str) -> None:
        trip = await get_live(self.db, Trip, trip_id)
        held = await self._confirmed_bookings(trip.id)
        if held:
            raise ConflictError(
                f"Trip {trip_id} still holds {len(held)} confirmed slot bookings; cancel them first"
            )
        trip.deleted_at = utcnow()
        await self.db.commit()
        logger.info("Soft-deleted trip %s", trip_id)

    async def update_status(self, trip_id: str, status: TripStatus) -> Trip:
        trip = await self.get_trip(trip_id)
        if status in RELEASING_TRIP_STATUSES:
            await self._release_bookings(trip.id)
            trip = await self.get_trip(trip_id)
        previous = trip.status
        trip.status = status
        self._stamp(trip, status)
        await self.db.commit()

        logger.info("Trip %s status %s -> %s", trip.id, previous.value, status.value)
        await emit_event(
            EventType.TRIP_STATUS_CHANGED,
            {
                "trip_id": trip.id,
                "driver_id": trip.driver_id,
                "old_status": previous.value,
                "new_status": status.value,
            },
        )
        return await self.get_trip(trip.id)

    async def add_event(self, trip_id: str, payload: TripEventCreate) -> TripEvent:
        trip = await self.get_trip(trip_id)
        event = self._build_event(trip.id, payload)
        self.db.add(event)
        await self.db.commit()
        await self.db.refresh(event)
        await emit_event(
            EventType.TRIP_EVENT_ADDED,
            {"trip_id": trip.id, "event_id": event.id, "type": event.type.value},
        )
        return event

    async def upsert_metrics(self, trip_id: str, payload: TripMetricsUpdate) -> TripMetrics:
        trip = await self.get_trip(trip_id)
        self._apply_metrics(trip, payload)
        await self.db.commit()
        await self.db.refresh(trip.metrics)
        return trip.metrics

    async def get_turn_time(self, trip_id: str) -> TurnTimeResponse:
        trip = await get_live(self.db, Trip, trip_id)
        return TurnTimeResponse(
            trip_id=trip.id,
            turn_time_minutes=turn_time_minutes(trip.started_at, trip.completed_at),
        )

    async def get_statistics(self) -> TripStatistics:
        result = await self.db.execute(
            select(Trip.status, Trip.started_at, Trip.completed_at).where(live(Trip))
        )
        rows = result.all()

        def count(*statuses: TripStatus) -> int:
            return sum(1 for row in rows if row.status in statuses)

        turn_times = [
            turn_time_minutes(row.started_at, row.completed_at)
            for row in rows
            if row.status == TripStatus.COMPLETED
        ]
        return TripStatistics(
            total=len(rows),
            assigned=count(TripStatus.ASSIGNED),
            in_progress=count(*IN_PROGRESS_TRIP_STATUSES),
            completed=count(TripStatus.COMPLETED),
            failed=count(TripStatus.FAILED),
            cancelled=count(TripStatus.CANCELLED),
            average_turn_time=average_minutes(t for t in turn_times if t is not None),
        )

    async def get_driver_performance(self, driver_id: str) -> DriverPerformance:
        await ensure_live(self.db, Driver, driver_id)
        trips = await self._list(Trip.driver_id == driver_id)

        completed = [trip for trip in trips if trip.status == TripStatus.COMPLETED]
        turn_times = [trip.turn_minutes for trip in completed if trip.turn_minutes is not None]
        total_distance = sum(
            trip.metrics.total_distance or 0 for trip in trips if trip.metrics is not None
        )
        return DriverPerformance(
            driver_id=driver_id,
            total_trips=len(trips),
            completed_trips=len(completed),
            failed_trips=sum(1 for trip in trips if trip.status == TripStatus.FAILED),
            average_turn_time=average_minutes(turn_times),
            total_distance=total_distance,
        )

    async def _confirmed_bookings(self, trip_id: str) -> List[SlotBooking]:
        result = await self.db.execute(
            select(SlotBooking).where(
                SlotBooking.trip_id == trip_id,
                SlotBooking.status == BookingStatus.CONFIRMED,
            )
        )
        return list(result.scalars().all())

    async def _release_bookings(self, trip_id: str) -> None:
        """Cancel every confirmed booking of the trip through the slot accountant."""
        slots = SlotService(self.db)
        held = [(booking.id, booking.slot_id) for booking in await self._confirmed_bookings(trip_id)]
        for booking_id, slot_id in held:
            try:
                await slots.cancel_booking(slot_id, booking_id)
            except NotFoundError:
                # Voided concurrently
                logger.debug("Booking %s already cancelled", booking_id)
                continue
            logger.info("Released booking %s on slot %s for trip %s", booking_id, slot_id, trip_id)

    @staticmethod
    def _stamp(trip: Trip, status: TripStatus) -> None:
        # Timestamps record the first transition only
        now = utcnow()
        if status == TripStatus.STARTED and trip.started_at is None:
            trip.started_at = now
        if status in TERMINAL_TRIP_STATUSES and trip.completed_at is None:
            trip.completed_at = now

    def _apply_metrics(self, trip: Trip, payload: TripMetricsUpdate) -> None:
        if trip.metrics is None:
            trip.metrics = self._build_metrics(trip.id, payload)
            return
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(trip.metrics, field, value)

    @staticmethod
    def _build_metrics(trip_id: str, payload: TripMetricsUpdate) -> TripMetrics:
        return TripMetrics(id=str(uuid.uuid4()), trip_id=trip_id, **payload.model_dump())

    @staticmethod
    def _build_event(trip_id: str, payload: TripEventCreate) -> TripEvent:
        return TripEvent(
            id=str(uuid.uuid4()),
            trip_id=trip_id,
            type=payload.type,
            timestamp=payload.timestamp or utcnow(),
            location=payload.location.model_dump() if payload.location else None,
            event_metadata=payload.metadata,
        )

    async def _list(self, *conditions) -> List[Trip]:
        result = await self.db.execute(
            select(Trip)
            .where(live(Trip), *conditions)
            .options(*TRIP_OPTIONS)
            .order_by(Trip.created_at.desc(), Trip.id)
        )
        return list(result.scalars().all())
