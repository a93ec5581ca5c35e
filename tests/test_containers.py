import asyncio

from tests.conftest import open_client
from tests.factories import create_container, create_terminal, create_vessel


def test_container_crud(db_path):
    async def run():
        async with open_client(db_path) as client:
            terminal = await create_terminal(client)
            vessel = await create_vessel(client, terminal["id"])
            container = await create_container(client, terminal["id"], cntr_no="mscu1234567", vessel_id=vessel["id"])
            assert container["cntr_no"] == "MSCU1234567"
            assert container["hold"] is False
            assert container["status"] == "NOT_READY"

            assert (await client.get("/api/containers/number/MSCU1234567")).json()["id"] == container["id"]
            duplicate = await client.post(
                "/api/containers",
                json={"cntr_no": "MSCU1234567", "type": "20GP", "line": "MSC", "terminal_id": terminal["id"]},
            )
            assert duplicate.status_code == 409

            bad_number = await client.post(
                "/api/containers",
                json={"cntr_no": "123", "type": "20GP", "line": "MSC", "terminal_id": terminal["id"]},
            )
            assert bad_number.status_code == 422

            detached = await client.patch(f"/api/containers/{container['id']}", json={"vessel_id": None})
            assert detached.status_code == 200
            assert detached.json()["vessel_id"] is None

            missing_vessel = await client.patch(f"/api/containers/{container['id']}", json={"vessel_id": "nope"})
            assert missing_vessel.status_code == 404

            ready = await client.patch(f"/api/containers/{container['id']}/status", json={"status": "READY"})
            assert ready.json()["status"] == "READY"
            assert [c["id"] for c in (await client.get("/api/containers/ready")).json()] == [container["id"]]
            assert len((await client.get(f"/api/containers/terminal/{terminal['id']}")).json()) == 1

            assert (await client.delete(f"/api/containers/{container['id']}")).status_code == 204
            assert (await client.get(f"/api/containers/{container['id']}")).status_code == 404
            assert (await client.get("/api/containers", params={"limit": 10})).json()["total"] == 0

    asyncio.run(run())


def test_holds_lifecycle(db_path):
    async def run():
        async with open_client(db_path) as client:
            terminal = await create_terminal(client)
            container = await create_container(client, terminal["id"])

            customs = await client.post(
                f"/api/containers/{container['id']}/holds", json={"reason": "CUSTOMS_HOLD", "description": "Exam"}
            )
            assert customs.status_code == 201
            docs = (await client.post(f"/api/containers/{container['id']}/holds", json={"reason": "DOCUMENTATION"})).json()

            current = (await client.get(f"/api/containers/{container['id']}")).json()
            assert current["hold"] is True
            assert current["status"] == "HOLD"
            assert [c["id"] for c in (await client.get("/api/containers/on-hold")).json()] == [container["id"]]

            partial = await client.post(f"/api/containers/{container['id']}/holds/{customs.json()['id']}/resolve")
            assert partial.json()["hold"] is True

            cleared = await client.post(f"/api/containers/{container['id']}/holds/{docs['id']}/resolve")
            body = cleared.json()
            assert body["hold"] is False
            assert body["status"] == "NOT_READY"
            assert all(h["resolved_at"] for h in body["holds"])

            unknown = await client.post(f"/api/containers/{container['id']}/holds/nope/resolve")
            assert unknown.status_code == 404

    asyncio.run(run())


def test_container_statistics(db_path):
    async def run():
        async with open_client(db_path) as client:
            terminal = await create_terminal(client)
            await create_container(client, terminal["id"], status="READY")
            await create_container(client, terminal["id"], status="PICKED")
            await create_container(client, terminal["id"], holds=[{"reason": "WEATHER"}])
            await create_container(client, terminal["id"])

            stats = (await client.get("/api/containers/statistics")).json()
            assert stats == {"total": 4, "ready": 1, "not_ready": 1, "hold": 1, "picked": 1, "delivered": 0}

    asyncio.run(run())
