from __future__ import annotations

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.container import Container, ContainerStatus
from app.models.terminal import Terminal
from app.models.vessel import ACTIVE_VESSEL_STATUSES, Vessel, VesselSchedule, VesselStatus
from app.schemas.common import Page, PaginationParams
from app.schemas.vessel import (
    VesselContainerCount,
    VesselCreate,
    VesselResponse,
    VesselScheduleCreate,
    VesselUpdate,
)
from app.services.event_dispatcher import EventType, emit_event
from app.services.lookups import ensure_live, get_live, live, paginate
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

VESSEL_OPTIONS = (selectinload(Vessel.schedules),)


class VesselService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_vessels(self, params: PaginationParams) -> Page[VesselResponse]:
        vessels, total = await paginate(
            self.db,
            Vessel,
            params,
            order_by=(Vessel.eta, Vessel.id),
            options=VESSEL_OPTIONS,
        )
        return Page[VesselResponse].build([VesselResponse.model_validate(v) for v in vessels], total, params)

    async def get_vessel(self, vessel_id: str) -> Vessel:
        return await get_live(self.db, Vessel, vessel_id, options=VESSEL_OPTIONS)

    async def list_by_terminal(self, terminal_id: str) -> List[Vessel]:
        return await self._list(Vessel.terminal_id == terminal_id)

    async def list_active(self) -> List[Vessel]:
        return await self._list(Vessel.status.in_(ACTIVE_VESSEL_STATUSES))

    async def create_vessel(self, payload: VesselCreate) -> Vessel:
        await ensure_live(self.db, Terminal, payload.terminal_id)
        vessel = Vessel(id=str(uuid.uuid4()), **payload.model_dump(exclude={"schedules"}))
        vessel.schedules = await self._build_schedules(vessel.id, payload.schedules or [])
        self.db.add(vessel)
        await self.db.commit()
        logger.info("Created vessel %s (%s)", vessel.name, vessel.id)
        return await self.get_vessel(vessel.id)

    async def update_vessel(self, vessel_id: str, payload: VesselUpdate) -> Vessel:
        vessel = await self.get_vessel(vessel_id)
        data = {
            field: value
            for field, value in payload.model_dump(exclude_unset=True, exclude={"schedules"}).items()
            if value is not None
        }

        new_terminal = data.get("terminal_id")
        if new_terminal and new_terminal != vessel.terminal_id:
            await ensure_live(self.db, Terminal, new_terminal)

        for field, value in data.items():
            setattr(vessel, field, value)

        if payload.schedules is not None:
            vessel.schedules = await self._build_schedules(vessel.id, payload.schedules)

        await self.db.commit()
        return await self.get_vessel(vessel.id)

    async def delete_vessel(self, vessel_id: str) -> None:
        vessel = await get_live(self.db, Vessel, vessel_id)
        vessel.deleted_at = utcnow()
        await self.db.commit()
        logger.info("Soft-deleted vessel %s", vessel_id)

    async def update_status(self, vessel_id: str, status: VesselStatus) -> Vessel:
        vessel = await self.get_vessel(vessel_id)
        previous = vessel.status
        vessel.status = status
        await self.db.commit()
        if previous != status:
            await emit_event(
                EventType.VESSEL_STATUS_CHANGED,
                {"vessel_id": vessel.id, "old_status": previous.value, "new_status": status.value},
                terminal_id=vessel.terminal_id,
            )
        return await self.get_vessel(vessel.id)

    async def get_container_count(self, vessel_id: str) -> VesselContainerCount:
        await get_live(self.db, Vessel, vessel_id)
        result = await self.db.execute(
            select(Container.status).where(Container.vessel_id == vessel_id, live(Container))
        )
        statuses = list(result.scalars().all())
        return VesselContainerCount(
            total=len(statuses),
            ready=sum(1 for s in statuses if s == ContainerStatus.READY),
            hold=sum(1 for s in statuses if s == ContainerStatus.HOLD),
        )

    async def get_schedule(self, vessel_id: str) -> List[VesselSchedule]:
        vessel = await self.get_vessel(vessel_id)
        return list(vessel.schedules)

    async def _list(self, *conditions) -> List[Vessel]:
        result = await self.db.execute(
            select(Vessel)
            .where(live(Vessel), *conditions)
            .options(*VESSEL_OPTIONS)
            .order_by(Vessel.eta)
        )
        return list(result.scalars().all())

    async def _build_schedules(self, vessel_id: str, schedules: List[VesselScheduleCreate]) -> List[VesselSchedule]:
        for terminal_id in {schedule.terminal_id for schedule in schedules}:
            await ensure_live(self.db, Terminal, terminal_id)
        return [
            VesselSchedule(id=str(uuid.uuid4()), vessel_id=vessel_id, **schedule.model_dump())
            for schedule in schedules
        ]
