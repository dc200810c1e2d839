"""
Storage backends for pastes: Redis hashes or an in-memory map for development.
Both implement the same atomic check-and-increment used to serve a paste.
"""
import abc
import logging
import threading
from typing import Dict, Optional

from redis import Redis
from redis.exceptions import RedisError

from app.config import Settings
from app.exceptions import BackendUnavailable, DuplicatePasteId, PasteNotFound
from app.models import Paste

logger = logging.getLogger(__name__)


class PasteBackend(abc.ABC):
    """Storage interface used by the paste store."""

    name = "backend"

    @abc.abstractmethod
    def put(self, paste: Paste) -> None:
        """Insert a new paste. Raises DuplicatePasteId if the id is taken."""

    @abc.abstractmethod
    def consume(self, paste_id: str, now_ms: int) -> Paste:
        """
        Check availability and count one view as a single atomic step.

        Returns:
            The paste with its view count after the increment

        Raises:
            PasteAccessError: If the paste is missing, expired or exhausted
            BackendUnavailable: If storage cannot be reached
        """

    @abc.abstractmethod
    def ping(self) -> bool:
        """Return True if storage answers. Raises BackendUnavailable otherwise."""


class InMemoryBackend(PasteBackend):
    """Process-local store. Data does not survive a restart."""

    name = "in-memory"

    def __init__(self):
        self._pastes: Dict[str, Paste] = {}
        self._locks: Dict[str, threading.Lock] = {}
        # Guards the two dicts; per-paste locks guard each record
        self._registry_lock = threading.Lock()

    def put(self, paste: Paste) -> None:
        with self._registry_lock:
            if paste.id in self._pastes:
                raise DuplicatePasteId(paste.id)
            self._pastes[paste.id] = paste.model_copy()
            self._locks[paste.id] = threading.Lock()

    def consume(self, paste_id: str, now_ms: int) -> Paste:
        with self._registry_lock:
            paste = self._pastes.get(paste_id)
            lock = self._locks.get(paste_id)

        if paste is None:
            raise PasteNotFound()

        with lock:
            paste.ensure_available(now_ms)
            paste.views += 1
            return paste.model_copy()

    def ping(self) -> bool:
        return True


class RedisBackend(PasteBackend):
    """Pastes stored as Redis hashes under ``paste:<id>``."""

    name = "redis"

    def __init__(self, redis: Redis):
        self.redis = redis

    @classmethod
    def from_url(cls, url: str) -> "RedisBackend":
        return cls(Redis.from_url(url, decode_responses=True, socket_connect_timeout=5))

    @staticmethod
    def _key(paste_id: str) -> str:
        return f"paste:{paste_id}"

    @staticmethod
    def _to_mapping(paste: Paste) -> Dict[str, str]:
        fields = paste.model_dump(exclude={"id"})
        return {field: str(value) for field, value in fields.items() if value is not None}

    @staticmethod
    def _from_mapping(paste_id: str, data: Dict[str, str]) -> Paste:
        def optional_int(field: str) -> Optional[int]:
            value = data.get(field)
            return int(value) if value not in (None, "") else None

        return Paste(
            id=paste_id,
            content=data["content"],
            created_at=int(data["created_at"]),
            expires_at=optional_int("expires_at"),
            max_views=optional_int("max_views"),
            views=int(data.get("views", 0)),
        )

    def put(self, paste: Paste) -> None:
        key = self._key(paste.id)
        mapping = self._to_mapping(paste)

        def insert(pipe):
            if pipe.exists(key):
                raise DuplicatePasteId(paste.id)
            pipe.multi()
            pipe.hset(key, mapping=mapping)

        try:
            self.redis.transaction(insert, key)
        except RedisError as e:
            logger.error(f"Error saving paste {paste.id}: {type(e).__name__}: {e}")
            raise BackendUnavailable() from e

    def consume(self, paste_id: str, now_ms: int) -> Paste:
        key = self._key(paste_id)

        def check_and_increment(pipe):
            # WATCH aborts EXEC if another client touched the hash in between
            data = pipe.hgetall(key)
            if not data:
                raise PasteNotFound()
            paste = self._from_mapping(paste_id, data)
            paste.ensure_available(now_ms)
            pipe.multi()
            pipe.hincrby(key, "views", 1)
            paste.views += 1
            return paste

        try:
            return self.redis.transaction(check_and_increment, key, value_from_callable=True)
        except RedisError as e:
            logger.error(f"Error fetching paste {paste_id}: {type(e).__name__}: {e}")
            raise BackendUnavailable() from e

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except RedisError as e:
            raise BackendUnavailable(f"Redis ping failed: {e}") from e


def create_backend(settings: Settings) -> PasteBackend:
    """
    Build the storage backend selected by STORAGE_BACKEND.

    In "auto" mode an unreachable Redis falls back to in-memory storage.
    """
    if settings.STORAGE_BACKEND == "memory":
        return InMemoryBackend()

    try:
        logger.info(f"Attempting to connect to Redis: {settings.REDIS_URL[:30]}...")
        backend = RedisBackend.from_url(settings.REDIS_URL)
        backend.ping()
        logger.info("Redis connected successfully")
        return backend
    except (BackendUnavailable, ValueError) as e:
        if settings.STORAGE_BACKEND == "redis":
            raise
        logger.error(f"Could not connect to Redis: {type(e).__name__}: {e}")
        logger.warning("Using in-memory fallback. Data will NOT persist across restarts.")
        return InMemoryBackend()
