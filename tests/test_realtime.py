import asyncio

from fastapi.testclient import TestClient

from app.main import app
from app.services.event_dispatcher import Event, EventDispatcher, EventType, get_dispatcher
from app.services.websocket_manager import ConnectionManager
from tests.conftest import open_client
from tests.factories import book, booking_setup


class FakeSocket:
    def __init__(self, fail: bool = False) -> None:
        self.sent = []
        self.fail = fail

    async def send_json(self, message: dict) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


def test_dispatcher_isolates_failing_handlers():
    received = []

    def broken(event):
        raise ValueError("boom")

    async def failing_coroutine(event):
        raise RuntimeError("boom")

    async def run():
        dispatcher = EventDispatcher()
        dispatcher.subscribe(EventType.SLOT_BOOKED, broken)
        dispatcher.subscribe_all(failing_coroutine)
        dispatcher.subscribe_all(received.append)
        dispatcher.subscribe_all(received.append)

        await dispatcher.emit(Event(type=EventType.SLOT_BOOKED, data={"slot_id": "s1"}))
        dispatcher.unsubscribe_all(received.append)
        await dispatcher.emit(Event(type=EventType.SLOT_BOOKED, data={"slot_id": "s2"}))

    asyncio.run(run())
    assert [event.data["slot_id"] for event in received] == ["s1"]


def test_manager_filters_by_terminal_and_drops_dead_sockets():
    async def run():
        manager = ConnectionManager()
        everything, lax, lgb, dead = FakeSocket(), FakeSocket(), FakeSocket(), FakeSocket(fail=True)
        await manager.connect(everything)
        await manager.connect(lax, "LAX")
        await manager.connect(lgb, "LGB")
        await manager.connect(dead)

        await manager.handle_event(Event(type=EventType.SLOT_BOOKED, data={}, terminal_id="LAX"))
        await manager.broadcast({"type": "driver.status_changed"})

        assert [m["type"] for m in everything.sent] == ["slot.booked", "driver.status_changed"]
        assert [m["type"] for m in lax.sent] == ["slot.booked", "driver.status_changed"]
        assert [m["type"] for m in lgb.sent] == ["driver.status_changed"]
        assert manager.get_connection_count() == 3

    asyncio.run(run())


def test_booking_and_cancel_emit_events(db_path):
    events = []

    async def run():
        dispatcher = get_dispatcher()
        dispatcher.subscribe_all(events.append)
        try:
            async with open_client(db_path) as client:
                setup = await booking_setup(client, capacity=1)
                slot_id = setup["slot"]["id"]
                booking = (await book(client, slot_id, setup["booking"])).json()
                await client.delete(f"/api/slots/{slot_id}/bookings/{booking['id']}")
        finally:
            dispatcher.unsubscribe_all(events.append)

        booked, cancelled = [e for e in events if e.type.value.startswith("slot.")]
        assert booked.type == EventType.SLOT_BOOKED
        assert booked.data["status"] == "FULL"
        assert booked.terminal_id == setup["terminal"]["id"]
        assert cancelled.type == EventType.SLOT_BOOKING_CANCELLED
        assert cancelled.data["booked"] == 0

    asyncio.run(run())


def test_events_socket_handshake_and_ping():
    client = TestClient(app)
    with client.websocket_connect("/api/ws/events?terminal_id=LAX") as websocket:
        connected = websocket.receive_json()
        assert connected["type"] == "connected"
        assert connected["data"] == {"terminal_id": "LAX"}

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json()["type"] == "pong"
