"""Async helpers that create resources through the HTTP API."""

from datetime import datetime, timedelta
from itertools import count
from typing import Optional

import httpx

_sequence = count(1)

BASE_WINDOW = datetime(2030, 1, 15, 9, 0)


def _next() -> int:
    return next(_sequence)


async def create_terminal(client: httpx.AsyncClient, code: Optional[str] = None, **overrides) -> dict:
    payload = {
        "name": "Pier 400",
        "code": code or f"T{_next():04d}",
        "capacity": 100,
        **overrides,
    }
    response = await client.post("/api/terminals", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def create_vessel(client: httpx.AsyncClient, terminal_id: str, **overrides) -> dict:
    payload = {
        "name": "CMA CGM Marco Polo",
        "eta": BASE_WINDOW.isoformat(),
        "terminal_id": terminal_id,
        **overrides,
    }
    response = await client.post("/api/vessels", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def create_container(client: httpx.AsyncClient, terminal_id: str, **overrides) -> dict:
    payload = {
        "cntr_no": f"MSCU{_next():07d}",
        "type": "40HC",
        "line": "MSC",
        "terminal_id": terminal_id,
        **overrides,
    }
    response = await client.post("/api/containers", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def create_driver(client: httpx.AsyncClient, **overrides) -> dict:
    payload = {
        "name": "Luis Ortega",
        "license_number": f"CA-D{_next():07d}",
        "license_expiry": "2031-06-30T00:00:00",
        "carrier_id": "carrier-1",
        **overrides,
    }
    response = await client.post("/api/drivers", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def create_trip(client: httpx.AsyncClient, driver_id: str, container_id: str, **overrides) -> dict:
    payload = {"driver_id": driver_id, "container_id": container_id, **overrides}
    response = await client.post("/api/trips", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def create_slot(
    client: httpx.AsyncClient,
    terminal_id: str,
    capacity: int = 2,
    start: Optional[datetime] = None,
    **overrides,
) -> dict:
    start = start or BASE_WINDOW + timedelta(days=_next())
    payload = {
        "terminal_id": terminal_id,
        "window_start": start.isoformat(),
        "window_end": (start + timedelta(hours=1)).isoformat(),
        "capacity": capacity,
        **overrides,
    }
    response = await client.post("/api/slots", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def booking_party(client: httpx.AsyncClient, terminal_id: str) -> dict:
    """Booking payload for a fresh container, driver and trip."""
    container = await create_container(client, terminal_id)
    driver = await create_driver(client)
    trip = await create_trip(client, driver["id"], container["id"])
    return {"trip_id": trip["id"], "driver_id": driver["id"], "container_id": container["id"]}


async def booking_setup(client: httpx.AsyncClient, capacity: int = 2) -> dict:
    """A slot plus a trip, driver and container that may book it."""
    terminal = await create_terminal(client)
    booking = await booking_party(client, terminal["id"])
    slot = await create_slot(client, terminal["id"], capacity=capacity)
    return {"terminal": terminal, "slot": slot, "booking": booking}


async def book(client: httpx.AsyncClient, slot_id: str, booking: dict) -> httpx.Response:
    return await client.post(f"/api/slots/{slot_id}/book", json=booking)
