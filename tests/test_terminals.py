import asyncio

from tests.conftest import open_client
from tests.factories import create_container, create_terminal, create_vessel


def test_terminal_crud_and_code_lookup(db_path):
    async def run():
        async with open_client(db_path) as client:
            terminal = await create_terminal(
                client,
                code="lax",
                settings={
                    "slot_duration": 30,
                    "operating_hours": {"monday": {"start": "06:00", "end": "18:00"}},
                    "closed_days": ["sunday"],
                },
            )
            assert terminal["code"] == "LAX"
            assert terminal["settings"]["slot_duration"] == 30
            assert terminal["settings"]["operating_hours"]["monday"] == {"start": "06:00", "end": "18:00"}

            by_code = await client.get("/api/terminals/code/lax")
            assert by_code.status_code == 200
            assert by_code.json()["id"] == terminal["id"]

            duplicate = await client.post("/api/terminals", json={"name": "Other", "code": "LAX", "capacity": 10})
            assert duplicate.status_code == 409

            updated = await client.patch(
                f"/api/terminals/{terminal['id']}",
                json={"name": "Pier 300", "settings": {"slot_duration": 45}},
            )
            assert updated.status_code == 200
            assert updated.json()["name"] == "Pier 300"
            assert updated.json()["settings"]["slot_duration"] == 45

            assert (await client.delete(f"/api/terminals/{terminal['id']}")).status_code == 204
            assert (await client.get(f"/api/terminals/{terminal['id']}")).status_code == 404
            assert (await client.get("/api/terminals/code/LAX")).status_code == 404

            # Code is free again once the old terminal is soft-deleted
            await create_terminal(client, code="LAX")

    asyncio.run(run())


def test_invalid_settings_are_rejected(db_path):
    async def run():
        async with open_client(db_path) as client:
            response = await client.post(
                "/api/terminals",
                json={"name": "Bad", "code": "BAD", "capacity": 10, "settings": {"closed_days": ["someday"]}},
            )
            assert response.status_code == 422

    asyncio.run(run())


def test_terminal_pagination(db_path):
    async def run():
        async with open_client(db_path) as client:
            for _ in range(5):
                await create_terminal(client)

            page = (await client.get("/api/terminals", params={"page": 2, "limit": 2})).json()
            assert page["total"] == 5
            assert page["total_pages"] == 3
            assert len(page["items"]) == 2
            assert page["has_next"] is True
            assert page["has_prev"] is True

            last = (await client.get("/api/terminals", params={"page": 3, "limit": 2})).json()
            assert len(last["items"]) == 1
            assert last["has_next"] is False

            assert (await client.get("/api/terminals", params={"limit": 101})).status_code == 422
            assert (await client.get("/api/terminals", params={"page": 0})).status_code == 422

    asyncio.run(run())


def test_capacity_and_active_vessels(db_path):
    async def run():
        async with open_client(db_path) as client:
            terminal = await create_terminal(client, capacity=3)
            await create_container(client, terminal["id"])
            await create_container(client, terminal["id"])

            capacity = (await client.get(f"/api/terminals/{terminal['id']}/capacity")).json()
            assert capacity == {"current": 2, "max": 3, "percentage": 67}

            arriving = await create_vessel(client, terminal["id"])
            departed = await create_vessel(client, terminal["id"], status="DEPARTED")
            active = (await client.get(f"/api/terminals/{terminal['id']}/vessels/active")).json()
            assert [v["id"] for v in active] == [arriving["id"]]
            assert departed["id"] not in [v["id"] for v in active]

            assert (await client.get("/api/terminals/missing/capacity")).status_code == 404

    asyncio.run(run())
