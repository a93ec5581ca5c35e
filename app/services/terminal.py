from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.models.container import Container
from app.models.slot import Slot, SlotStatus
from app.models.terminal import Terminal, TerminalSettings
from app.models.vessel import ACTIVE_VESSEL_STATUSES, Vessel
from app.schemas.common import Page, PaginationParams
from app.schemas.terminal import (
    TerminalCapacityResponse,
    TerminalCreate,
    TerminalResponse,
    TerminalSettingsCreate,
    TerminalUpdate,
)
from app.services.lookups import get_live, live, paginate
from app.utils.time import day_bounds, percentage, utcnow

logger = logging.getLogger(__name__)

TERMINAL_OPTIONS = (selectinload(Terminal.settings),)


class TerminalService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_terminals(self, params: PaginationParams) -> Page[TerminalResponse]:
        terminals, total = await paginate(
            self.db,
            Terminal,
            params,
            order_by=(Terminal.created_at.desc(), Terminal.id),
            options=TERMINAL_OPTIONS,
        )
        return Page[TerminalResponse].build(
            [TerminalResponse.model_validate(terminal) for terminal in terminals], total, params
        )

    async def get_terminal(self, terminal_id: str) -> Terminal:
        return await get_live(self.db, Terminal, terminal_id, options=TERMINAL_OPTIONS)

    async def get_by_code(self, code: str) -> Terminal:
        terminal = await self._find_by_code(code.upper())
        if terminal is None:
            raise NotFoundError.for_entity("Terminal", code, field="code")
        return terminal

    async def create_terminal(self, payload: TerminalCreate) -> Terminal:
        if await self._find_by_code(payload.code):
            raise ConflictError(f"Terminal with code {payload.code} already exists")

        terminal = Terminal(
            id=str(uuid.uuid4()),
            **payload.model_dump(exclude={"settings"}),
        )
        if payload.settings:
            terminal.settings = self._build_settings(terminal.id, payload.settings)
        self.db.add(terminal)
        await self.db.commit()
        logger.info("Created terminal %s (%s)", terminal.code, terminal.id)
        return await self.get_terminal(terminal.id)

    async def update_terminal(self, terminal_id: str, payload: TerminalUpdate) -> Terminal:
        terminal = await self.get_terminal(terminal_id)
        data = {
            field: value
            for field, value in payload.model_dump(exclude_unset=True, exclude={"settings"}).items()
            if value is not None
        }

        new_code = data.get("code")
        if new_code and new_code != terminal.code and await self._find_by_code(new_code):
            raise ConflictError(f"Terminal with code {new_code} already exists")

        for field, value in data.items():
            setattr(terminal, field, value)

        if payload.settings:
            values = payload.settings.model_dump()
            if terminal.settings is None:
                terminal.settings = self._build_settings(terminal.id, payload.settings)
            else:
                for field, value in values.items():
                    setattr(terminal.settings, field, value)

        await self.db.commit()
        return await self.get_terminal(terminal.id)

    async def delete_terminal(self, terminal_id: str) -> None:
        terminal = await get_live(self.db, Terminal, terminal_id)
        terminal.deleted_at = utcnow()
        await self.db.commit()
        logger.info("Soft-deleted terminal %s", terminal_id)

    async def get_capacity(self, terminal_id: str) -> TerminalCapacityResponse:
        terminal = await get_live(self.db, Terminal, terminal_id)
        current = await self.db.scalar(
            select(func.count())
            .select_from(Container)
            .where(Container.terminal_id == terminal_id, live(Container))
        ) or 0
        return TerminalCapacityResponse(
            current=current,
            max=terminal.capacity,
            percentage=percentage(current, terminal.capacity),
        )

    async def get_active_vessels(self, terminal_id: str) -> List[Vessel]:
        await get_live(self.db, Terminal, terminal_id)
        result = await self.db.execute(
            select(Vessel)
            .where(
                Vessel.terminal_id == terminal_id,
                live(Vessel),
                Vessel.status.in_(ACTIVE_VESSEL_STATUSES),
            )
            .options(selectinload(Vessel.schedules))
            .order_by(Vessel.eta)
        )
        return list(result.scalars().all())

    async def get_available_slots(self, terminal_id: str, day: Optional[date] = None) -> List[Slot]:
        await get_live(self.db, Terminal, terminal_id)
        conditions = [Slot.terminal_id == terminal_id, live(Slot), Slot.status == SlotStatus.AVAILABLE]
        if day:
            start, end = day_bounds(day)
            conditions += [Slot.window_start >= start, Slot.window_start < end]
        result = await self.db.execute(
            select(Slot)
            .where(*conditions)
            .options(selectinload(Slot.bookings))
            .order_by(Slot.window_start)
        )
        return list(result.scalars().all())

    async def _find_by_code(self, code: str) -> Optional[Terminal]:
        result = await self.db.execute(
            select(Terminal)
            .where(Terminal.code == code, live(Terminal))
            .options(*TERMINAL_OPTIONS)
        )
        return result.scalar_one_or_none()

    def _build_settings(self, terminal_id: str, settings: TerminalSettingsCreate) -> TerminalSettings:
        return TerminalSettings(
            id=str(uuid.uuid4()),
            terminal_id=terminal_id,
            **settings.model_dump(),
        )
