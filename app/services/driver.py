from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, DriverOSError, NotFoundError
from app.models.driver import (
    AvailabilityStatus,
    Driver,
    DriverAvailability,
    DriverMetrics,
    DriverStatus,
)
from app.schemas.common import Page, PaginationParams
from app.schemas.driver import (
    DriverAvailabilityCreate,
    DriverAvailabilityUpdate,
    DriverCreate,
    DriverMetricsUpdate,
    DriverResponse,
    DriverStatistics,
    DriverUpdate,
)
from app.services.event_dispatcher import EventType, emit_event
from app.services.lookups import get_live, live, paginate
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

DRIVER_OPTIONS = (selectinload(Driver.availability), selectinload(Driver.metrics))


class DriverService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_drivers(self, params: PaginationParams) -> Page[DriverResponse]:
        drivers, total = await paginate(
            self.db,
            Driver,
            params,
            order_by=(Driver.created_at.desc(), Driver.id),
            options=DRIVER_OPTIONS,
        )
        return Page[DriverResponse].build(
            [DriverResponse.model_validate(driver) for driver in drivers], total, params
        )

    async def get_driver(self, driver_id: str) -> Driver:
        return await get_live(self.db, Driver, driver_id, options=DRIVER_OPTIONS)

    async def list_by_carrier(self, carrier_id: str) -> List[Driver]:
        return await self._list(Driver.carrier_id == carrier_id)

    async def list_available(self) -> List[Driver]:
        has_open_window = Driver.availability.any(
            DriverAvailability.status == AvailabilityStatus.AVAILABLE
        )
        return await self._list(Driver.status == DriverStatus.ACTIVE, has_open_window)

    async def list_active(self) -> List[Driver]:
        return await self._list(Driver.status.in_((DriverStatus.ACTIVE, DriverStatus.ON_TRIP)))

    async def create_driver(self, payload: DriverCreate) -> Driver:
        if await self._find_by_license(payload.license_number):
            raise ConflictError(f"Driver with license number {payload.license_number} already exists")

        driver = Driver(
            id=str(uuid.uuid4()),
            **payload.model_dump(exclude={"availability", "metrics"}),
        )
        driver.availability = [
            DriverAvailability(id=str(uuid.uuid4()), driver_id=driver.id, **window.model_dump())
            for window in payload.availability or []
        ]
        if payload.metrics:
            driver.metrics = self._build_metrics(driver.id, payload.metrics)
        self.db.add(driver)
        await self.db.commit()
        logger.info("Created driver %s (%s)", driver.name, driver.id)
        return await self.get_driver(driver.id)

    async def update_driver(self, driver_id: str, payload: DriverUpdate) -> Driver:
        driver = await self.get_driver(driver_id)
        data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

        new_license = data.get("license_number")
        if new_license and new_license != driver.license_number and await self._find_by_license(new_license):
            raise ConflictError(f"Driver with license number {new_license} already exists")

        for field, value in data.items():
            setattr(driver, field, value)
        await self.db.commit()
        return await self.get_driver(driver.id)

    async def delete_driver(self, driver_id: str) -> None:
        driver = await get_live(self.db, Driver, driver_id)
        driver.deleted_at = utcnow()
        await self.db.commit()
        logger.info("Soft-deleted driver %s", driver_id)

    async def update_status(self, driver_id: str, status: DriverStatus) -> Driver:
        driver = await self.get_driver(driver_id)
        previous = driver.status
        driver.status = status
        await self.db.commit()
        if previous != status:
            await emit_event(
                EventType.DRIVER_STATUS_CHANGED,
                {"driver_id": driver.id, "old_status": previous.value, "new_status": status.value},
            )
        return await self.get_driver(driver.id)

    async def add_availability(self, driver_id: str, payload: DriverAvailabilityCreate) -> DriverAvailability:
        driver = await self.get_driver(driver_id)
        window = DriverAvailability(id=str(uuid.uuid4()), driver_id=driver.id, **payload.model_dump())
        self.db.add(window)
        await self.db.commit()
        await self.db.refresh(window)
        return window

    async def update_availability(
        self, driver_id: str, availability_id: str, payload: DriverAvailabilityUpdate
    ) -> DriverAvailability:
        await get_live(self.db, Driver, driver_id)
        result = await self.db.execute(
            select(DriverAvailability).where(
                DriverAvailability.id == availability_id,
                DriverAvailability.driver_id == driver_id,
            )
        )
        window = result.scalar_one_or_none()
        if window is None:
            raise NotFoundError.for_entity("Availability", availability_id)

        data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        start_time = data.get("start_time", window.start_time)
        end_time = data.get("end_time", window.end_time)
        if end_time <= start_time:
            raise DriverOSError("end_time must be after start_time")

        for field, value in data.items():
            setattr(window, field, value)
        await self.db.commit()
        await self.db.refresh(window)
        return window

    async def upsert_metrics(self, driver_id: str, payload: DriverMetricsUpdate) -> DriverMetrics:
        driver = await self.get_driver(driver_id)
        if driver.metrics is None:
            driver.metrics = self._build_metrics(driver.id, payload)
        else:
            for field, value in payload.model_dump(exclude_unset=True).items():
                if value is not None:
                    setattr(driver.metrics, field, value)
        await self.db.commit()
        await self.db.refresh(driver.metrics)
        return driver.metrics

    async def get_statistics(self) -> DriverStatistics:
        result = await self.db.execute(select(Driver.status).where(live(Driver)))
        statuses = list(result.scalars().all())

        def count(status: DriverStatus) -> int:
            return sum(1 for s in statuses if s == status)

        return DriverStatistics(
            total=len(statuses),
            active=count(DriverStatus.ACTIVE),
            on_trip=count(DriverStatus.ON_TRIP),
            suspended=count(DriverStatus.SUSPENDED),
            inactive=count(DriverStatus.INACTIVE),
        )

    async def get_top_performers(self, limit: int = 10) -> List[Driver]:
        result = await self.db.execute(
            select(Driver)
            .join(DriverMetrics, DriverMetrics.driver_id == Driver.id)
            .where(live(Driver))
            .options(*DRIVER_OPTIONS)
            # Unrated drivers sort after rated ones on every backend
            .order_by(
                DriverMetrics.rating.is_(None),
                DriverMetrics.rating.desc(),
                DriverMetrics.completed_trips.desc(),
                Driver.id,
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def _find_by_license(self, license_number: str) -> Optional[Driver]:
        result = await self.db.execute(
            select(Driver).where(Driver.license_number == license_number, live(Driver))
        )
        return result.scalar_one_or_none()

    async def _list(self, *conditions) -> List[Driver]:
        result = await self.db.execute(
            select(Driver)
            .where(live(Driver), *conditions)
            .options(*DRIVER_OPTIONS)
            .order_by(Driver.name, Driver.id)
        )
        return list(result.scalars().all())

    def _build_metrics(self, driver_id: str, payload: DriverMetricsUpdate) -> DriverMetrics:
        values = {k: v for k, v in payload.model_dump().items() if v is not None}
        return DriverMetrics(id=str(uuid.uuid4()), driver_id=driver_id, **values)
