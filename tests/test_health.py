import asyncio

from tests.conftest import open_client


def test_liveness_endpoints(db_path):
    async def run():
        async with open_client(db_path) as client:
            assert (await client.get("/api/healthz")).json() == {"status": "ok"}
            assert (await client.get("/api/health/live")).json() == {"status": "ok"}
            root = (await client.get("/")).json()
            assert root["status"] == "ok"

    asyncio.run(run())


def test_readiness_follows_database_probe(db_path, monkeypatch):
    state = {"ready": True}

    async def fake_probe(*args, **kwargs):
        return state["ready"]

    monkeypatch.setattr("app.routers.health.check_database_connection", fake_probe)

    async def run():
        async with open_client(db_path) as client:
            ready = await client.get("/api/health/ready")
            assert ready.status_code == 200
            assert ready.json() == {"status": "ready", "database_ready": True}

            state["ready"] = False
            not_ready = await client.get("/api/health/ready")
            assert not_ready.status_code == 503

            degraded = (await client.get("/api/health")).json()
            assert degraded["status"] == "degraded"
            assert degraded["database_ready"] is False

    asyncio.run(run())
