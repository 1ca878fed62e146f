import json
import os

import pytest

from peereval import main


class FakeRedis:
    """Counts requests the way the INCR/EXPIRE limiter expects."""

    def __init__(self):
        self.counts = {}
        self.expiries = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        self.expiries[key] = seconds

    async def ping(self):
        return True

    async def close(self):
        pass


@pytest.fixture
def fake_redis(client, monkeypatch):
    redis = FakeRedis()
    monkeypatch.setattr(main, "redis", redis)
    return redis


def test_health_check(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["redis"] == "not configured"


def test_rate_limit(client, fake_redis, monkeypatch):
    settings = main.get_settings()
    monkeypatch.setattr(settings, "RATE_LIMIT_PER_MINUTE", 3)

    for _ in range(3):
        assert client.get("/health").status_code == 200

    res = client.get("/health")
    assert res.status_code == 429
    assert res.json() == {"error": "Too many requests"}
    assert list(fake_redis.expiries.values()) == [60]


def test_validation_errors_use_error_shape(client):
    res = client.post("/api/auth/login", json={"email": "not-an-email"})
    assert res.status_code == 400
    assert res.json() == {"error": "Missing or invalid fields: email, password"}


def test_unknown_route(client):
    res = client.get("/api/nothing-here")
    assert res.status_code == 404
    assert res.json() == {"error": "Not Found"}


def test_requests_are_written_to_access_log(client):
    client.get("/health")

    with open(os.path.join(main.get_settings().LOG_DIR, "access.log")) as fh:
        record = json.loads(fh.read().splitlines()[-1])
    assert record["logger"] == "peereval.access"
    assert record["level"] == "INFO"
    assert "Path: /health Status: 200" in record["message"]
