import asyncio

from sqlalchemy import func, select

from app.core.exceptions import BookingRaceLostError, ConflictError, NotFoundError
from app.models.slot import BookingStatus, Slot, SlotBooking
from app.schemas.slot import SlotBookingCreate
from app.services.slot import SlotService
from tests.conftest import open_client, open_database
from tests.factories import book, booking_party, booking_setup


def test_booking_increments_booked_and_marks_full(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=2)
            slot_id = ctx["slot"]["id"]

            first = await book(client, slot_id, ctx["booking"])
            assert first.status_code == 201
            body = first.json()
            assert body["status"] == "CONFIRMED"
            assert body["slot_id"] == slot_id

            slot = (await client.get(f"/api/slots/{slot_id}")).json()
            assert slot["booked"] == 1
            assert slot["status"] == "AVAILABLE"

            second = await book(client, slot_id, ctx["booking"])
            assert second.status_code == 201
            slot = (await client.get(f"/api/slots/{slot_id}")).json()
            assert slot["booked"] == 2
            assert slot["status"] == "FULL"
            assert len(slot["bookings"]) == 2

    asyncio.run(run())


def test_booking_full_slot_conflicts_without_creating_booking(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=1)
            slot_id = ctx["slot"]["id"]
            assert (await book(client, slot_id, ctx["booking"])).status_code == 201

            rejected = await book(client, slot_id, ctx["booking"])
            assert rejected.status_code == 409

            slot = (await client.get(f"/api/slots/{slot_id}")).json()
            assert slot["booked"] == 1
            assert len(slot["bookings"]) == 1

    asyncio.run(run())


def test_booking_closed_slot_conflicts(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=3)
            slot_id = ctx["slot"]["id"]
            response = await client.patch(f"/api/slots/{slot_id}/status", json={"status": "CLOSED"})
            assert response.json()["status"] == "CLOSED"

            rejected = await book(client, slot_id, ctx["booking"])
            assert rejected.status_code == 409
            assert "CLOSED" in rejected.json()["detail"]

    asyncio.run(run())


def test_booking_unknown_slot_or_reference_is_not_found(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client)
            missing_slot = await book(client, "no-such-slot", ctx["booking"])
            assert missing_slot.status_code == 404

            bad_trip = {**ctx["booking"], "trip_id": "no-such-trip"}
            response = await book(client, ctx["slot"]["id"], bad_trip)
            assert response.status_code == 404
            slot = (await client.get(f"/api/slots/{ctx['slot']['id']}")).json()
            assert slot["booked"] == 0

    asyncio.run(run())


def test_two_concurrent_bookings_for_last_unit(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=1)
            slot_id = ctx["slot"]["id"]
            rival = await booking_party(client, ctx["terminal"]["id"])

            responses = await asyncio.gather(
                book(client, slot_id, ctx["booking"]),
                book(client, slot_id, rival),
            )
            assert sorted(r.status_code for r in responses) == [201, 409]

            slot = (await client.get(f"/api/slots/{slot_id}")).json()
            assert slot["booked"] == 1
            assert slot["status"] == "FULL"

    asyncio.run(run())


def test_concurrent_bookings_never_exceed_remaining_capacity(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=4)
            slot_id = ctx["slot"]["id"]
            assert (await book(client, slot_id, ctx["booking"])).status_code == 201

            responses = await asyncio.gather(*(book(client, slot_id, ctx["booking"]) for _ in range(8)))
            codes = [r.status_code for r in responses]
            assert codes.count(201) == 3
            assert codes.count(409) == 5

            slot = (await client.get(f"/api/slots/{slot_id}")).json()
            assert slot["booked"] == 4
            assert slot["status"] == "FULL"
            assert len([b for b in slot["bookings"] if b["status"] == "CONFIRMED"]) == 4

    asyncio.run(run())


def test_interleaved_cancels_and_bookings_keep_booked_consistent(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=3)
            slot_id = ctx["slot"]["id"]
            terminal_id = ctx["terminal"]["id"]

            held = []
            for _ in range(3):
                response = await book(client, slot_id, await booking_party(client, terminal_id))
                assert response.status_code == 201
                held.append(response.json()["id"])
            newcomers = [await booking_party(client, terminal_id) for _ in range(6)]

            responses = await asyncio.gather(
                *(client.delete(f"/api/slots/{slot_id}/bookings/{booking_id}") for booking_id in held),
                *(book(client, slot_id, party) for party in newcomers),
            )
            cancel_codes = [r.status_code for r in responses[:3]]
            book_codes = [r.status_code for r in responses[3:]]
            assert cancel_codes == [200, 200, 200]
            assert set(book_codes) <= {201, 409}
            succeeded = book_codes.count(201)
            assert succeeded <= 3

            slot = (await client.get(f"/api/slots/{slot_id}")).json()
            confirmed = [b for b in slot["bookings"] if b["status"] == "CONFIRMED"]
            assert slot["booked"] == len(confirmed) == succeeded
            assert slot["status"] == ("FULL" if succeeded == 3 else "AVAILABLE")

    asyncio.run(run())


def test_cancel_releases_capacity_and_keeps_booking_for_audit(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=1)
            slot_id = ctx["slot"]["id"]
            booking = (await book(client, slot_id, ctx["booking"])).json()

            response = await client.delete(f"/api/slots/{slot_id}/bookings/{booking['id']}")
            assert response.status_code == 200
            assert response.json()["status"] == "CANCELLED"
            assert response.json()["cancelled_at"] is not None

            slot = (await client.get(f"/api/slots/{slot_id}")).json()
            assert slot["booked"] == 0
            assert slot["status"] == "AVAILABLE"
            assert [b["status"] for b in slot["bookings"]] == ["CANCELLED"]

            # Capacity is usable again
            assert (await book(client, slot_id, ctx["booking"])).status_code == 201

    asyncio.run(run())


def test_cancel_twice_or_unknown_booking_is_not_found(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=2)
            slot_id = ctx["slot"]["id"]
            first = (await book(client, slot_id, ctx["booking"])).json()
            await book(client, slot_id, ctx["booking"])

            assert (await client.delete(f"/api/slots/{slot_id}/bookings/{first['id']}")).status_code == 200
            again = await client.delete(f"/api/slots/{slot_id}/bookings/{first['id']}")
            assert again.status_code == 404
            unknown = await client.delete(f"/api/slots/{slot_id}/bookings/nope")
            assert unknown.status_code == 404

            slot = (await client.get(f"/api/slots/{slot_id}")).json()
            assert slot["booked"] == 1

    asyncio.run(run())


def test_cancel_booking_of_another_slot_is_not_found(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=2)
            other = await client.post(
                "/api/slots",
                json={
                    "terminal_id": ctx["terminal"]["id"],
                    "window_start": "2031-01-01T08:00:00",
                    "window_end": "2031-01-01T09:00:00",
                    "capacity": 2,
                },
            )
            booking = (await book(client, ctx["slot"]["id"], ctx["booking"])).json()

            response = await client.delete(f"/api/slots/{other.json()['id']}/bookings/{booking['id']}")
            assert response.status_code == 404
            slot = (await client.get(f"/api/slots/{ctx['slot']['id']}")).json()
            assert slot["booked"] == 1

    asyncio.run(run())


def test_cancel_keeps_manual_status(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=2)
            slot_id = ctx["slot"]["id"]
            booking = (await book(client, slot_id, ctx["booking"])).json()
            await client.patch(f"/api/slots/{slot_id}/status", json={"status": "MAINTENANCE"})

            await client.delete(f"/api/slots/{slot_id}/bookings/{booking['id']}")
            slot = (await client.get(f"/api/slots/{slot_id}")).json()
            assert slot["booked"] == 0
            assert slot["status"] == "MAINTENANCE"

    asyncio.run(run())


def test_guarded_update_rejects_second_writer_without_lock(db_path):
    """Two sessions race the store-level update directly, bypassing the slot lock."""

    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=1)
        slot_id = ctx["slot"]["id"]
        payload = SlotBookingCreate(**ctx["booking"])

        async with open_database(db_path) as session_factory:
            async with session_factory() as first, session_factory() as second:
                results = await asyncio.gather(
                    SlotService(first)._reserve(slot_id, payload),
                    SlotService(second)._reserve(slot_id, payload),
                    return_exceptions=True,
                )
            booked = [r for r in results if isinstance(r, SlotBooking)]
            conflicts = [r for r in results if isinstance(r, ConflictError)]
            assert len(booked) == 1
            assert len(conflicts) == 1
            assert not isinstance(conflicts[0], BookingRaceLostError)

            async with session_factory() as session:
                slot = await session.get(Slot, slot_id)
                assert slot.booked == 1
                confirmed = await session.scalar(
                    select(func.count())
                    .select_from(SlotBooking)
                    .where(SlotBooking.slot_id == slot_id, SlotBooking.status == BookingStatus.CONFIRMED)
                )
                assert confirmed == 1

    asyncio.run(run())


def test_lost_race_is_retried(db_path, monkeypatch):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=1)
        slot_id = ctx["slot"]["id"]
        payload = SlotBookingCreate(**ctx["booking"])

        real_reserve = SlotService._reserve
        calls = []

        async def flaky_reserve(self, slot_id, payload):
            calls.append(slot_id)
            if len(calls) == 1:
                raise BookingRaceLostError(slot_id)
            return await real_reserve(self, slot_id, payload)

        monkeypatch.setattr(SlotService, "_reserve", flaky_reserve)
        async with open_database(db_path) as session_factory:
            async with session_factory() as session:
                booking = await SlotService(session, max_retries=3).book_slot(slot_id, payload)
        assert booking.status == BookingStatus.CONFIRMED
        assert len(calls) == 2

    asyncio.run(run())


def test_retries_are_bounded(db_path, monkeypatch):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client, capacity=1)
        slot_id = ctx["slot"]["id"]
        payload = SlotBookingCreate(**ctx["booking"])
        calls = []

        async def always_lose(self, slot_id, payload):
            calls.append(slot_id)
            raise BookingRaceLostError(slot_id)

        monkeypatch.setattr(SlotService, "_reserve", always_lose)
        async with open_database(db_path) as session_factory:
            async with session_factory() as session:
                try:
                    await SlotService(session, max_retries=2).book_slot(slot_id, payload)
                except ConflictError as exc:
                    assert exc.reason == "RACE_LOST"
                else:
                    raise AssertionError("expected ConflictError")
        assert len(calls) == 2

    asyncio.run(run())


def test_cancel_unknown_booking_raises_not_found_from_service(db_path):
    async def run():
        async with open_client(db_path) as client:
            ctx = await booking_setup(client)
        async with open_database(db_path) as session_factory:
            async with session_factory() as session:
                service = SlotService(session)
                try:
                    await service.cancel_booking(ctx["slot"]["id"], "missing")
                except NotFoundError:
                    pass
                else:
                    raise AssertionError("expected NotFoundError")

    asyncio.run(run())


def test_booking_needs_at_least_one_attempt():
    try:
        SlotService(None, max_retries=0)
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError")
    assert SlotService(None, max_retries=1).max_retries == 1
