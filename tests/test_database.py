"""Tests for the storage backends."""

import threading
from concurrent.futures import ThreadPoolExecutor

import fakeredis
import pytest

from app.config import Settings
from app.database import InMemoryBackend, RedisBackend, create_backend
from app.exceptions import (
    BackendUnavailable,
    DuplicatePasteId,
    PasteExhausted,
    PasteExpired,
    PasteNotFound,
)
from app.models import Paste

NOW = 1_700_000_000_000


def make_paste(paste_id="abc123XYZ_", **fields) -> Paste:
    return Paste(id=paste_id, content=fields.pop("content", "hello"), created_at=NOW, **fields)


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_backend(redis_server) -> RedisBackend:
    return RedisBackend(fakeredis.FakeRedis(server=redis_server, decode_responses=True))


@pytest.fixture(params=["memory", "redis"])
def any_backend(request, redis_backend):
    """Each backend must honour the same contract."""
    if request.param == "memory":
        return InMemoryBackend()
    return redis_backend


class TestBackendContract:

    def test_consume_counts_view(self, any_backend):
        any_backend.put(make_paste(max_views=3))

        paste = any_backend.consume("abc123XYZ_", NOW)

        assert paste.content == "hello"
        assert paste.views == 1
        assert paste.remaining_views == 2
        assert any_backend.consume("abc123XYZ_", NOW).views == 2

    def test_duplicate_id_rejected(self, any_backend):
        any_backend.put(make_paste(content="first"))

        with pytest.raises(DuplicatePasteId):
            any_backend.put(make_paste(content="second"))

        assert any_backend.consume("abc123XYZ_", NOW).content == "first"

    def test_missing_paste(self, any_backend):
        with pytest.raises(PasteNotFound):
            any_backend.consume("nope", NOW)

    def test_expired_paste(self, any_backend):
        any_backend.put(make_paste(expires_at=NOW + 1000))

        assert any_backend.consume("abc123XYZ_", NOW + 999).expires_at == NOW + 1000
        with pytest.raises(PasteExpired):
            any_backend.consume("abc123XYZ_", NOW + 1000)

    def test_exhausted_paste(self, any_backend):
        any_backend.put(make_paste(max_views=1))
        any_backend.consume("abc123XYZ_", NOW)

        with pytest.raises(PasteExhausted):
            any_backend.consume("abc123XYZ_", NOW)

    def test_returned_paste_is_a_snapshot(self, any_backend):
        any_backend.put(make_paste())
        first = any_backend.consume("abc123XYZ_", NOW)
        any_backend.consume("abc123XYZ_", NOW)

        assert first.views == 1

    def test_ping(self, any_backend):
        assert any_backend.ping() is True


class TestRedisBackend:

    def test_hash_layout(self, redis_backend):
        redis_backend.put(make_paste(expires_at=NOW + 5000))

        stored = redis_backend.redis.hgetall("paste:abc123XYZ_")

        assert stored == {
            "content": "hello",
            "created_at": str(NOW),
            "expires_at": str(NOW + 5000),
            "views": "0",
        }
        assert redis_backend.redis.ttl("paste:abc123XYZ_") == -1

    def test_failed_consume_leaves_views(self, redis_backend):
        redis_backend.put(make_paste(max_views=1))
        redis_backend.consume("abc123XYZ_", NOW)
        with pytest.raises(PasteExhausted):
            redis_backend.consume("abc123XYZ_", NOW)

        assert redis_backend.redis.hget("paste:abc123XYZ_", "views") == "1"

    def test_single_view_served_once_across_clients(self, redis_server, redis_backend):
        redis_backend.put(make_paste(max_views=1))
        workers = 8
        barrier = threading.Barrier(workers)

        def attempt(_):
            client = RedisBackend(fakeredis.FakeRedis(server=redis_server, decode_responses=True))
            barrier.wait()
            try:
                client.consume("abc123XYZ_", NOW)
                return "ok"
            except PasteExhausted:
                return "exhausted"

        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(attempt, range(workers)))

        assert results.count("ok") == 1
        assert results.count("exhausted") == workers - 1
        assert redis_backend.redis.hget("paste:abc123XYZ_", "views") == "1"

    def test_connection_errors_become_backend_unavailable(self, redis_server, redis_backend):
        redis_server.connected = False

        with pytest.raises(BackendUnavailable):
            redis_backend.ping()
        with pytest.raises(BackendUnavailable):
            redis_backend.put(make_paste())
        with pytest.raises(BackendUnavailable):
            redis_backend.consume("abc123XYZ_", NOW)


class TestCreateBackend:

    def test_memory(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        assert isinstance(create_backend(Settings()), InMemoryBackend)

    def test_redis(self, monkeypatch, redis_backend):
        monkeypatch.setenv("STORAGE_BACKEND", "redis")
        monkeypatch.setattr(RedisBackend, "from_url", classmethod(lambda cls, url: redis_backend))

        assert create_backend(Settings()) is redis_backend

    def test_auto_falls_back_to_memory(self, monkeypatch, redis_server, redis_backend):
        monkeypatch.setenv("STORAGE_BACKEND", "auto")
        monkeypatch.setattr(RedisBackend, "from_url", classmethod(lambda cls, url: redis_backend))
        redis_server.connected = False

        assert isinstance(create_backend(Settings()), InMemoryBackend)

    def test_redis_mode_does_not_fall_back(self, monkeypatch, redis_server, redis_backend):
        monkeypatch.setenv("STORAGE_BACKEND", "redis")
        monkeypatch.setattr(RedisBackend, "from_url", classmethod(lambda cls, url: redis_backend))
        redis_server.connected = False

        with pytest.raises(BackendUnavailable):
            create_backend(Settings())

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError):
            Settings()
