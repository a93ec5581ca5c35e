"""
Demo Data Seed Script

Creates a local development dataset with:
- 2 Terminals (LAX, LGB) with pickup window settings
- 1 Vessel per terminal with a berth schedule
- 10 Containers spread over both terminals
- 5 Drivers with availability for today
- Hourly slots for today (06:00-21:00) at each terminal

Run: python -m scripts.seed_demo_data [--force]
"""

import asyncio
import random
import sys
from datetime import datetime, time, timedelta

from sqlalchemy import select

from app.core.db import AsyncSessionFactory, init_database
from app.models.container import ContainerType
from app.models.terminal import Terminal
from app.schemas.container import ContainerCreate
from app.schemas.driver import DriverAvailabilityCreate, DriverCreate, DriverMetricsUpdate
from app.schemas.slot import SlotCreate
from app.schemas.terminal import OperatingWindow, TerminalCreate, TerminalSettingsCreate
from app.schemas.vessel import VesselCreate, VesselScheduleCreate
from app.services.container import ContainerService
from app.services.driver import DriverService
from app.services.slot import SlotService
from app.services.terminal import TerminalService
from app.services.vessel import VesselService

# ============== CONFIGURATION ==============

TERMINALS = [
    {"name": "Port of Los Angeles - Pier 400", "code": "LAX", "capacity": 5000},
    {"name": "Port of Long Beach - Pier T", "code": "LGB", "capacity": 4000},
]
LINES = ["CMA", "MSC", "MAE", "ONE", "HLC"]
LINE_PREFIXES = {"CMA": "CMAU", "MSC": "MSCU", "MAE": "MAEU", "ONE": "ONEU", "HLC": "HLXU"}
DRIVERS = ["Luis Ortega", "Dana Brooks", "Sam Nguyen", "Priya Patel", "Marcus Reed"]
FIRST_SLOT_HOUR = 6
LAST_SLOT_HOUR = 21
SLOT_CAPACITY = 8


async def seed_demo_data(force: bool = False) -> None:
    await init_database()
    random.seed(42)

    async with AsyncSessionFactory() as db:
        existing = await db.execute(select(Terminal.id).where(Terminal.deleted_at.is_(None)).limit(1))
        if existing.first() and not force:
            print("Demo data already present (use --force to seed again)")
            return

        today = datetime.utcnow().date()
        week = {day: OperatingWindow(start="06:00", end="22:00") for day in
                ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday")}

        terminals = []
        for entry in TERMINALS:
            code = entry["code"] if not force else f"{entry['code']}{random.randint(10, 99)}"
            terminal = await TerminalService(db).create_terminal(
                TerminalCreate(
                    name=entry["name"],
                    code=code,
                    capacity=entry["capacity"],
                    timezone="America/Los_Angeles",
                    settings=TerminalSettingsCreate(
                        slot_duration=60,
                        max_slots_per_window=SLOT_CAPACITY,
                        operating_hours=week,
                        closed_days=["sunday"],
                    ),
                )
            )
            terminals.append(terminal)
        print(f"Terminals: {len(terminals)}")

        vessels = []
        for index, terminal in enumerate(terminals):
            eta = datetime.combine(today, time(5)) + timedelta(days=index)
            vessel = await VesselService(db).create_vessel(
                VesselCreate(
                    name=f"{random.choice(LINES)} Demo Express {index + 1}",
                    eta=eta,
                    terminal_id=terminal.id,
                    container_count=5,
                    schedules=[
                        VesselScheduleCreate(terminal_id=terminal.id, eta=eta, etd=eta + timedelta(days=2)),
                    ],
                )
            )
            vessels.append(vessel)
        print(f"Vessels: {len(vessels)}")

        containers = []
        for index in range(10):
            terminal = terminals[index % len(terminals)]
            vessel = vessels[index % len(vessels)]
            line = random.choice(LINES)
            container = await ContainerService(db).create_container(
                ContainerCreate(
                    cntr_no=f"{LINE_PREFIXES[line]}{random.randint(0, 9_999_999):07d}",
                    type=random.choice(list(ContainerType)),
                    line=line,
                    ready_at=datetime.combine(today, time(8)),
                    terminal_id=terminal.id,
                    vessel_id=vessel.id,
                )
            )
            containers.append(container)
        print(f"Containers: {len(containers)}")

        drivers = []
        for index, name in enumerate(DRIVERS):
            driver = await DriverService(db).create_driver(
                DriverCreate(
                    name=name,
                    phone=f"+1-310-555-01{index:02d}",
                    license_number=f"CA-D{random.randint(1_000_000, 9_999_999)}",
                    license_expiry=datetime.combine(today + timedelta(days=365 * 2), time()),
                    carrier_id="demo-carrier",
                    availability=[DriverAvailabilityCreate(date=today, start_time="06:00", end_time="18:00")],
                    metrics=DriverMetricsUpdate(rating=round(random.uniform(3.5, 5.0), 1)),
                )
            )
            drivers.append(driver)
        print(f"Drivers: {len(drivers)}")

        slot_count = 0
        for terminal in terminals:
            for hour in range(FIRST_SLOT_HOUR, LAST_SLOT_HOUR + 1):
                start = datetime.combine(today, time(hour))
                await SlotService(db).create_slot(
                    SlotCreate(
                        terminal_id=terminal.id,
                        window_start=start,
                        window_end=start + timedelta(hours=1),
                        capacity=SLOT_CAPACITY,
                    )
                )
                slot_count += 1
        print(f"Slots: {slot_count}")


if __name__ == "__main__":
    force_flag = "--force" in sys.argv or "-f" in sys.argv
    asyncio.run(seed_demo_data(force=force_flag))
