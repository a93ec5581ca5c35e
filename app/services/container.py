from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.models.container import Container, ContainerHold, ContainerStatus
from app.models.terminal import Terminal
from app.models.vessel import Vessel
from app.schemas.common import Page, PaginationParams
from app.schemas.container import (
    ContainerCreate,
    ContainerHoldCreate,
    ContainerResponse,
    ContainerStatistics,
    ContainerUpdate,
)
from app.services.event_dispatcher import EventType, emit_event
from app.services.lookups import ensure_live, get_live, live, paginate
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

CONTAINER_OPTIONS = (selectinload(Container.holds),)


class ContainerService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_containers(self, params: PaginationParams) -> Page[ContainerResponse]:
        containers, total = await paginate(
            self.db,
            Container,
            params,
            order_by=(Container.created_at.desc(), Container.id),
            options=CONTAINER_OPTIONS,
        )
        return Page[ContainerResponse].build(
            [ContainerResponse.model_validate(c) for c in containers], total, params
        )

    async def get_container(self, container_id: str) -> Container:
        return await get_live(self.db, Container, container_id, options=CONTAINER_OPTIONS)

    async def get_by_number(self, cntr_no: str) -> Container:
        container = await self._find_by_number(cntr_no.upper())
        if container is None:
            raise NotFoundError.for_entity("Container", cntr_no, field="number")
        return container

    async def list_by_terminal(self, terminal_id: str) -> List[Container]:
        return await self._list(Container.terminal_id == terminal_id)

    async def list_by_vessel(self, vessel_id: str) -> List[Container]:
        return await self._list(Container.vessel_id == vessel_id)

    async def list_ready(self) -> List[Container]:
        return await self._list(Container.status == ContainerStatus.READY)

    async def list_on_hold(self) -> List[Container]:
        return await self._list(Container.hold.is_(True))

    async def create_container(self, payload: ContainerCreate) -> Container:
        if await self._find_by_number(payload.cntr_no):
            raise ConflictError(f"Container with number {payload.cntr_no} already exists")
        await ensure_live(self.db, Terminal, payload.terminal_id)
        if payload.vessel_id:
            await ensure_live(self.db, Vessel, payload.vessel_id)

        container = Container(id=str(uuid.uuid4()), **payload.model_dump(exclude={"holds"}))
        container.holds = [
            ContainerHold(id=str(uuid.uuid4()), container_id=container.id, **hold.model_dump())
            for hold in payload.holds or []
        ]
        if container.holds:
            container.hold = True
            container.status = ContainerStatus.HOLD
        self.db.add(container)
        await self.db.commit()
        logger.info("Created container %s (%s)", container.cntr_no, container.id)
        return await self.get_container(container.id)

    async def update_container(self, container_id: str, payload: ContainerUpdate) -> Container:
        container = await self.get_container(container_id)
        data = payload.model_dump(exclude_unset=True)
        # vessel_id may be cleared explicitly; every other field ignores nulls
        data = {k: v for k, v in data.items() if v is not None or k == "vessel_id"}

        new_number = data.get("cntr_no")
        if new_number and new_number != container.cntr_no and await self._find_by_number(new_number):
            raise ConflictError(f"Container with number {new_number} already exists")
        new_terminal = data.get("terminal_id")
        if new_terminal and new_terminal != container.terminal_id:
            await ensure_live(self.db, Terminal, new_terminal)
        new_vessel = data.get("vessel_id")
        if new_vessel and new_vessel != container.vessel_id:
            await ensure_live(self.db, Vessel, new_vessel)

        for field, value in data.items():
            setattr(container, field, value)
        await self.db.commit()
        return await self.get_container(container.id)

    async def delete_container(self, container_id: str) -> None:
        container = await get_live(self.db, Container, container_id)
        container.deleted_at = utcnow()
        await self.db.commit()
        logger.info("Soft-deleted container %s", container_id)

    async def update_status(self, container_id: str, status: ContainerStatus) -> Container:
        container = await self.get_container(container_id)
        container.status = status
        await self.db.commit()
        return await self.get_container(container.id)

    async def add_hold(self, container_id: str, payload: ContainerHoldCreate) -> ContainerHold:
        container = await self.get_container(container_id)
        hold = ContainerHold(id=str(uuid.uuid4()), container_id=container.id, **payload.model_dump())
        container.holds.append(hold)
        container.hold = True
        container.status = ContainerStatus.HOLD
        await self.db.commit()
        await self.db.refresh(hold)
        logger.info("Hold %s placed on container %s", hold.reason.value, container.cntr_no)
        await emit_event(
            EventType.CONTAINER_HOLD_ADDED,
            {"container_id": container.id, "hold_id": hold.id, "reason": hold.reason.value},
            terminal_id=container.terminal_id,
        )
        return hold

    async def resolve_hold(self, container_id: str, hold_id: str) -> Container:
        container = await self.get_container(container_id)
        hold: Optional[ContainerHold] = next((h for h in container.holds if h.id == hold_id), None)
        if hold is None:
            raise NotFoundError.for_entity("Hold", hold_id)
        if hold.resolved_at is None:
            hold.resolved_at = utcnow()

        if all(h.resolved_at is not None for h in container.holds):
            container.hold = False
            if container.status == ContainerStatus.HOLD:
                container.status = ContainerStatus.NOT_READY
        await self.db.commit()
        await emit_event(
            EventType.CONTAINER_HOLD_RESOLVED,
            {"container_id": container.id, "hold_id": hold.id, "on_hold": container.hold},
            terminal_id=container.terminal_id,
        )
        return await self.get_container(container.id)

    async def get_statistics(self) -> ContainerStatistics:
        result = await self.db.execute(select(Container.status).where(live(Container)))
        statuses = list(result.scalars().all())

        def count(status: ContainerStatus) -> int:
            return sum(1 for s in statuses if s == status)

        return ContainerStatistics(
            total=len(statuses),
            ready=count(ContainerStatus.READY),
            not_ready=count(ContainerStatus.NOT_READY),
            hold=count(ContainerStatus.HOLD),
            picked=count(ContainerStatus.PICKED),
            delivered=count(ContainerStatus.DELIVERED),
        )

    async def _find_by_number(self, cntr_no: str) -> Optional[Container]:
        result = await self.db.execute(
            select(Container)
            .where(Container.cntr_no == cntr_no, live(Container))
            .options(*CONTAINER_OPTIONS)
        )
        return result.scalar_one_or_none()

    async def _list(self, *conditions) -> List[Container]:
        result = await self.db.execute(
            select(Container)
            .where(live(Container), *conditions)
            .options(*CONTAINER_OPTIONS)
            .order_by(Container.created_at.desc(), Container.id)
        )
        return list(result.scalars().all())
