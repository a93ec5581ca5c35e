import asyncio
from datetime import datetime, timedelta

from sqlalchemy import update

from app.models.trip import Trip
from tests.conftest import open_client, open_database
from tests.factories import book, booking_setup, create_container, create_driver, create_terminal, create_trip


async def _trip_parties(client):
    terminal = await create_terminal(client)
    container = await create_container(client, terminal["id"])
    driver = await create_driver(client)
    return driver, container


def test_trip_requires_existing_references(db_path):
    async def run():
        async with open_client(db_path) as client:
            driver, container = await _trip_parties(client)
            missing_driver = await client.post("/api/trips", json={"driver_id": "nope", "container_id": container["id"]})
            assert missing_driver.status_code == 404
            missing_slot = await client.post(
                "/api/trips",
                json={"driver_id": driver["id"], "container_id": container["id"], "pickup_slot_id": "nope"},
            )
            assert missing_slot.status_code == 404

    asyncio.run(run())


def test_status_timestamps_are_stamped_once(db_path):
    async def run():
        async with open_client(db_path) as client:
            driver, container = await _trip_parties(client)
            trip = await create_trip(client, driver["id"], container["id"])
            assert trip["status"] == "ASSIGNED"
            assert trip["started_at"] is None

            started = (await client.patch(f"/api/trips/{trip['id']}/status", json={"status": "STARTED"})).json()
            assert started["started_at"] is not None
            await client.patch(f"/api/trips/{trip['id']}/status", json={"status": "EN_ROUTE"})
            restarted = (await client.patch(f"/api/trips/{trip['id']}/status", json={"status": "STARTED"})).json()
            assert restarted["started_at"] == started["started_at"]

            done = (await client.patch(f"/api/trips/{trip['id']}/status", json={"status": "COMPLETED"})).json()
            assert done["completed_at"] is not None
            assert done["turn_minutes"] is not None

            assert [t["id"] for t in (await client.get("/api/trips/completed")).json()] == [trip["id"]]
            assert (await client.get("/api/trips/active")).json() == []

    asyncio.run(run())


def test_turn_time_and_statistics(db_path):
    async def run():
        async with open_client(db_path) as client:
            driver, container = await _trip_parties(client)
            fast = await create_trip(client, driver["id"], container["id"], status="COMPLETED")
            slow = await create_trip(client, driver["id"], container["id"], status="COMPLETED")
            await create_trip(client, driver["id"], container["id"], status="AT_GATE")
            await create_trip(client, driver["id"], container["id"])
            await create_trip(client, driver["id"], container["id"], status="FAILED")

            pending = await client.get(f"/api/trips/{fast['id']}/turn-time")
            assert pending.json() == {"trip_id": fast["id"], "turn_time_minutes": None}

        started = datetime(2030, 1, 15, 8, 0)
        async with open_database(db_path) as session_factory, session_factory() as session:
            for trip_id, minutes in ((fast["id"], 30), (slow["id"], 61)):
                await session.execute(
                    update(Trip)
                    .where(Trip.id == trip_id)
                    .values(started_at=started, completed_at=started + timedelta(minutes=minutes))
                )
            await session.commit()

        async with open_client(db_path) as client:
            turn = (await client.get(f"/api/trips/{slow['id']}/turn-time")).json()
            assert turn["turn_time_minutes"] == 61

            stats = (await client.get("/api/trips/statistics")).json()
            assert stats == {
                "total": 5,
                "assigned": 1,
                "in_progress": 1,
                "completed": 2,
                "failed": 1,
                "cancelled": 0,
                "average_turn_time": 46,
            }

            performance = (await client.get(f"/api/trips/driver/{driver['id']}/performance")).json()
            assert performance["total_trips"] == 5
            assert performance["completed_trips"] == 2
            assert performance["failed_trips"] == 1
            assert performance["average_turn_time"] == 46
            assert (await client.get("/api/trips/driver/nope/performance")).status_code == 404

    asyncio.run(run())


def test_events_and_metrics(db_path):
    async def run():
        async with open_client(db_path) as client:
            driver, container = await _trip_parties(client)
            trip = await create_trip(
                client,
                driver["id"],
                container["id"],
                metrics={"total_distance": 12.5},
            )
            assert trip["metrics"]["total_distance"] == 12.5

            event = await client.post(
                f"/api/trips/{trip['id']}/events",
                json={
                    "type": "DELAY_DETECTED",
                    "location": {"lat": 33.74, "lng": -118.27},
                    "metadata": {"minutes": 15},
                },
            )
            assert event.status_code == 201
            assert event.json()["metadata"] == {"minutes": 15}
            assert event.json()["location"] == {"lat": 33.74, "lng": -118.27}

            bad_location = await client.post(
                f"/api/trips/{trip['id']}/events", json={"type": "ETA_UPDATED", "location": {"lat": 91, "lng": 0}}
            )
            assert bad_location.status_code == 422

            metrics = await client.put(f"/api/trips/{trip['id']}/metrics", json={"fuel_consumption": 4.2})
            assert metrics.json()["total_distance"] == 12.5
            assert metrics.json()["fuel_consumption"] == 4.2

            second = await create_trip(client, driver["id"], container["id"], metrics={"total_distance": 7.5})
            performance = (await client.get(f"/api/trips/driver/{driver['id']}/performance")).json()
            assert performance["total_distance"] == 20.0

            detail = (await client.get(f"/api/trips/{trip['id']}")).json()
            assert [e["type"] for e in detail["events"]] == ["DELAY_DETECTED"]

            by_container = (await client.get(f"/api/trips/container/{container['id']}")).json()
            assert {t["id"] for t in by_container} == {trip["id"], second["id"]}

            assert (await client.delete(f"/api/trips/{trip['id']}")).status_code == 204
            assert (await client.get(f"/api/trips/{trip['id']}")).status_code == 404

    asyncio.run(run())


def test_trip_with_confirmed_booking_cannot_be_deleted(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=2)
            slot_id = ctx["slot"]["id"]
            trip_id = ctx["booking"]["trip_id"]
            booking = (await book(client, slot_id, ctx["booking"])).json()

            blocked = await client.delete(f"/api/trips/{trip_id}")
            assert blocked.status_code == 409
            assert (await client.get(f"/api/trips/{trip_id}")).status_code == 200

            await client.delete(f"/api/slots/{slot_id}/bookings/{booking['id']}")
            assert (await client.delete(f"/api/trips/{trip_id}")).status_code == 204
            assert (await client.delete(f"/api/slots/{slot_id}")).status_code == 204

    asyncio.run(run())


def test_cancelled_or_failed_trip_releases_its_slot(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=1)
            slot_id = ctx["slot"]["id"]
            trip_id = ctx["booking"]["trip_id"]
            assert (await book(client, slot_id, ctx["booking"])).status_code == 201
            assert (await client.get(f"/api/slots/{slot_id}")).json()["status"] == "FULL"

            cancelled = await client.patch(f"/api/trips/{trip_id}/status", json={"status": "CANCELLED"})
            assert cancelled.status_code == 200
            assert cancelled.json()["completed_at"] is not None

            slot = (await client.get(f"/api/slots/{slot_id}")).json()
            assert slot["booked"] == 0
            assert slot["status"] == "AVAILABLE"
            assert [b["status"] for b in slot["bookings"]] == ["CANCELLED"]

            assert (await book(client, slot_id, ctx["booking"])).status_code == 201
            failed = await client.patch(f"/api/trips/{trip_id}", json={"status": "FAILED"})
            assert failed.json()["status"] == "FAILED"
            assert (await client.get(f"/api/slots/{slot_id}")).json()["booked"] == 0

            assert (await client.delete(f"/api/trips/{trip_id}")).status_code == 204
            assert (await client.delete(f"/api/slots/{slot_id}")).status_code == 204

    asyncio.run(run())
