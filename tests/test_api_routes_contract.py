from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from alphasignal.api.app import create_app
from alphasignal.contradiction.gate import CooldownGate
from alphasignal.db.database import create_engine_for, create_session_factory, init_db
from alphasignal.db.store import AlertStore
from alphasignal.registry import TrackedAccounts
from alphasignal.sources.mock import MockPostSource
from alphasignal.workers.sweep_worker import SweepWorker
from conftest import BASE_TIME, FakeClock, statement


@pytest.fixture
def client(db_url):
    clock = FakeClock(BASE_TIME + timedelta(minutes=6))

    async def factory() -> SweepWorker:
        engine = create_engine_for(db_url)
        await init_db(engine)
        store = AlertStore(create_session_factory(engine))
        source = MockPostSource({
            "@x": [
                statement("1", "bitcoin to the moon, buy now", minute=0, likes=200),
                statement("2", "bitcoin is crashing, sell everything", minute=5, likes=50),
            ],
        })
        return SweepWorker(TrackedAccounts(["@x"]), source, store, CooldownGate(store, clock=clock))

    with TestClient(create_app(worker_factory=factory)) as test_client:
        yield test_client


def test_routes_are_registered() -> None:
    app = create_app()
    paths = {getattr(route, "path", None) for route in app.router.routes}
    assert "/api/alerts/recent" in paths
    assert "/api/alerts/account/{account}" in paths
    assert "/api/alerts/type/{kind}" in paths
    assert "/api/accounts" in paths
    assert "/api/sweep" in paths
    assert "/api/health" in paths


def test_sweep_then_query_alerts(client) -> None:
    resp = client.post("/api/sweep")
    assert resp.status_code == 200
    summary = resp.json()
    assert summary["new_alerts"] == 1
    assert summary["errors"] == []

    recent = client.get("/api/alerts/recent", params={"limit": 5}).json()
    assert len(recent) == 1
    assert recent[0]["type"] == "sentiment-shift"
    assert recent[0]["severity"] == "high"
    assert recent[0]["alerted"] is True

    assert len(client.get("/api/alerts/account/x").json()) == 1
    assert client.get("/api/alerts/type/topic-shift").json() == []
    assert client.get("/api/alerts/type/bogus").status_code == 400

    # second sweep inside the cooldown window
    assert client.post("/api/sweep").json()["new_alerts"] == 0


def test_tracked_account_management(client) -> None:
    assert client.get("/api/accounts").json() == {"accounts": ["@x"]}

    assert client.post("/api/accounts", json={"handle": "saylor"}).json() == {"handle": "@saylor", "added": True}
    assert client.post("/api/accounts", json={"handle": "@saylor"}).json()["added"] is False
    assert client.delete("/api/accounts/saylor").json() == {"handle": "@saylor", "removed": True}
    assert client.delete("/api/accounts/saylor").json()["removed"] is False


def test_health_and_unknown_alert(client) -> None:
    health = client.get("/api/health").json()
    assert health["components"]["db"] is True
    assert health["sweep"]["state"] == "idle"

    assert client.post("/api/alerts/alert_missing/delivered").status_code == 404
