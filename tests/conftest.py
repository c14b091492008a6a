import json
from unittest.mock import Mock

import fakeredis
import pytest
import redis
from fastapi.testclient import TestClient

from pagetally.app import app, get_store
from pagetally.config import Settings
from pagetally.store import EventStore


@pytest.fixture
def cfg() -> Settings:
    return Settings(MAX_EVENTS=50, REDIS_URL=None)


@pytest.fixture
def redis_client():
    # private server per test so no state leaks between tests
    return fakeredis.FakeRedis(server=fakeredis.FakeServer())


@pytest.fixture
def store(redis_client, cfg) -> EventStore:
    return EventStore(client=redis_client, cfg=cfg)


@pytest.fixture
def broken_store(cfg) -> EventStore:
    down = redis.ConnectionError("connection refused")
    client = Mock()
    client.lrange.side_effect = down
    client.smembers.side_effect = down
    client.lpush.side_effect = down
    client.ping.side_effect = down
    return EventStore(client=client, cfg=cfg)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides = {}


@pytest.fixture
def broken_client(broken_store):
    app.dependency_overrides[get_store] = lambda: broken_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides = {}


@pytest.fixture
def seed(store):
    """Push records so that the first one ends up newest (index 0)."""

    def _seed(records, key=None):
        key = key or store.cfg.VISITS_KEY
        for rec in reversed(records):
            store.append_event(key, rec if isinstance(rec, str) else json.dumps(rec))

    return _seed
