import asyncio

from tests.conftest import open_client
from tests.factories import create_container, create_terminal, create_vessel


def test_vessel_lifecycle(db_path):
    async def run():
        async with open_client(db_path) as client:
            terminal = await create_terminal(client)
            vessel = await create_vessel(
                client,
                terminal["id"],
                schedules=[
                    {"terminal_id": terminal["id"], "eta": "2030-02-03T06:00:00", "etd": "2030-02-04T06:00:00"},
                    {"terminal_id": terminal["id"], "eta": "2030-02-01T06:00:00", "etd": "2030-02-02T06:00:00"},
                ],
            )
            schedule = (await client.get(f"/api/vessels/{vessel['id']}/schedule")).json()
            assert [s["eta"] for s in schedule] == ["2030-02-01T06:00:00", "2030-02-03T06:00:00"]

            response = await client.patch(f"/api/vessels/{vessel['id']}/status", json={"status": "BERTHED"})
            assert response.json()["status"] == "BERTHED"

            replaced = await client.patch(
                f"/api/vessels/{vessel['id']}",
                json={"schedules": [{"terminal_id": terminal["id"], "eta": "2030-03-01T06:00:00", "etd": "2030-03-02T06:00:00"}]},
            )
            assert len(replaced.json()["schedules"]) == 1

            by_terminal = (await client.get(f"/api/vessels/terminal/{terminal['id']}")).json()
            assert [v["id"] for v in by_terminal] == [vessel["id"]]
            assert [v["id"] for v in (await client.get("/api/vessels/active")).json()] == [vessel["id"]]

            assert (await client.delete(f"/api/vessels/{vessel['id']}")).status_code == 204
            assert (await client.get(f"/api/vessels/{vessel['id']}")).status_code == 404

    asyncio.run(run())


def test_vessel_requires_terminal_and_valid_schedule(db_path):
    async def run():
        async with open_client(db_path) as client:
            missing = await client.post(
                "/api/vessels", json={"name": "Ghost", "eta": "2030-01-01T00:00:00", "terminal_id": "nope"}
            )
            assert missing.status_code == 404

            terminal = await create_terminal(client)
            bad_schedule = await client.post(
                "/api/vessels",
                json={
                    "name": "Backwards",
                    "eta": "2030-01-01T00:00:00",
                    "terminal_id": terminal["id"],
                    "schedules": [{"terminal_id": terminal["id"], "eta": "2030-01-02T00:00:00", "etd": "2030-01-01T00:00:00"}],
                },
            )
            assert bad_schedule.status_code == 422

    asyncio.run(run())


def test_container_count(db_path):
    async def run():
        async with open_client(db_path) as client:
            terminal = await create_terminal(client)
            vessel = await create_vessel(client, terminal["id"])
            await create_container(client, terminal["id"], vessel_id=vessel["id"], status="READY")
            await create_container(client, terminal["id"], vessel_id=vessel["id"])
            await create_container(
                client, terminal["id"], vessel_id=vessel["id"], holds=[{"reason": "CUSTOMS_HOLD"}]
            )

            counts = (await client.get(f"/api/vessels/{vessel['id']}/containers/count")).json()
            assert counts == {"total": 3, "ready": 1, "hold": 1}

    asyncio.run(run())
