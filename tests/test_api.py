"""HTTP surface tests; the app's Redis client is swapped for the fake one."""

import httpx
import pytest
import redis.asyncio as redis

from app.api.endpoints import events as events_endpoint
from app.core.app import app
from app.models.roles import Role
from app.services.events import EventDispatcher
from app.services.redis_service import redis_service

from .conftest import uniform


@pytest.fixture
async def client(fake_redis):
    previous = redis_service.use_client(fake_redis)
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        redis_service.use_client(previous)


@pytest.fixture
async def seeded(seed, student_store, aggregation, make_profile):
    await seed("g1", "Needs an expert", [make_profile(f"m{i}", {**uniform(0.5), Role.EXPERT: 0.2}) for i in range(3)])
    await seed("g2", "Balanced", [make_profile("b1", uniform(0.5))])
    await student_store.set(make_profile("expert", {Role.EXPERT: 1.0}))
    await aggregation.reconcile_all()


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_metrics(client):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert response.json()["redis"] == "ok"


async def test_recommendations(client, seeded):
    response = await client.get("/students/expert/recommendations", params={"group_ids": ["g2", "g1"]})
    assert response.status_code == 200
    body = response.json()
    assert [r["group_id"] for r in body] == ["g1", "g2"]
    assert body[0]["group_name"] == "Needs an expert"
    assert body[0]["top_roles"] == ["EXPERT"]


async def test_recommendations_without_profile(client, seeded):
    response = await client.get("/students/ghost/recommendations", params={"group_ids": ["g1"]})
    assert response.status_code == 200
    assert response.json() == []


async def test_recommendations_storage_down(client, fake_redis, seeded, monkeypatch):
    async def broken(*args, **kwargs):
        raise redis.ConnectionError("down")

    monkeypatch.setattr(fake_redis, "mget", broken)
    response = await client.get("/students/expert/recommendations", params={"group_ids": ["g1"]})
    assert response.status_code == 503


async def test_group_score(client, seeded):
    response = await client.get("/students/expert/groups/g1/score")
    assert response.status_code == 200
    assert response.json()["match_percentage"] > 0

    missing = await client.get("/students/expert/groups/nope/score")
    assert missing.status_code == 404


async def test_admin_recalculate(client, seeded):
    response = await client.post("/admin/groups/g1/recalculate")
    assert response.status_code == 200
    assert response.json() == {"group_id": "g1", "outcome": "unchanged"}

    missing = await client.post("/admin/groups/nope/recalculate")
    assert missing.json()["outcome"] == "skipped"


async def test_admin_reconcile(client, seeded):
    response = await client.post("/admin/reconcile")
    assert response.status_code == 200
    assert response.json() == {"unchanged": 2}


async def test_publish_event(client, aggregation, monkeypatch):
    dispatcher = EventDispatcher(aggregation, workers=1, maxsize=1)
    monkeypatch.setattr(events_endpoint, "event_dispatcher", dispatcher)

    payload = {"kind": "member_joined", "group_id": "g1", "student_id": "s1"}
    accepted = await client.post("/events/", json=payload)
    assert accepted.status_code == 202
    assert accepted.json() == {"status": "accepted", "kind": "member_joined"}

    rejected = await client.post("/events/", json=payload)
    assert rejected.status_code == 503


async def test_publish_invalid_event(client):
    response = await client.post("/events/", json={"kind": "group_renamed", "group_id": "g1"})
    assert response.status_code == 422


async def test_client_swap_is_restored(fake_redis):
    previous = redis_service.use_client(fake_redis)
    assert redis_service.use_client(previous) is fake_redis
