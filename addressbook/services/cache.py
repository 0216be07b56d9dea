"""Contact read cache backends with per-entry TTLs.

Every entry is written with an explicit TTL (the remaining lifetime of the
token that authorized the read). There is no backend-wide default TTL.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, NamedTuple, Protocol

import redis
from cachetools import TLRUCache
from pydantic import TypeAdapter, ValidationError

from addressbook.schemas.contact import ContactRead

if TYPE_CHECKING:
    from addressbook.core.config import Settings

logger = logging.getLogger(__name__)

# Cached values are a single contact or a list of contacts.
CachedValue = ContactRead | list[ContactRead]
_cached_value_adapter: TypeAdapter[CachedValue] = TypeAdapter(CachedValue)


def contact_key(contact_id: int, acting_user_id: int) -> str:
    """Key for a by-id read, scoped to the user the read was authorized for."""
    return f"{contact_prefix(contact_id)}user:{acting_user_id}"


def contact_prefix(contact_id: int) -> str:
    """Prefix shared by every user-scoped entry for one contact."""
    return f"contact:{contact_id}:"


def owner_list_key(owner_id: int) -> str:
    return f"contacts:owner:{owner_id}"


ALL_CONTACTS_KEY = "contacts:all"


class ContactCache(Protocol):
    """Minimal cache contract used by the contact service."""

    def get(self, key: str) -> CachedValue | None: ...

    def set(self, key: str, value: CachedValue, ttl_seconds: int) -> None: ...

    def evict(self, key: str) -> None: ...

    def evict_prefix(self, prefix: str) -> None: ...

    def remaining_ttl(self, key: str) -> float | None: ...

    def ping(self) -> bool: ...


class _Entry(NamedTuple):
    value: CachedValue
    expires_at: float


def _entry_ttu(_key: str, entry: _Entry, _now: float) -> float:
    return entry.expires_at


class MemoryContactCache:
    """
    In-process cache on cachetools.TLRUCache; each entry expires after its own TTL.
    TLRUCache is not thread-safe, so every access holds the lock.
    """

    def __init__(
        self, maxsize: int = 1024, timer: Callable[[], float] = time.monotonic
    ) -> None:
        self._timer = timer
        self._cache: TLRUCache[str, _Entry] = TLRUCache(
            maxsize=maxsize, ttu=_entry_ttu, timer=timer
        )
        self._lock = threading.RLock()

    def get(self, key: str) -> CachedValue | None:
        with self._lock:
            entry = self._cache.get(key)
            return None if entry is None else _copy(entry.value)

    def set(self, key: str, value: CachedValue, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            self._cache[key] = _Entry(_copy(value), self._timer() + ttl_seconds)

    def evict(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def evict_prefix(self, prefix: str) -> None:
        with self._lock:
            for key in [k for k in self._cache.keys() if k.startswith(prefix)]:
                self._cache.pop(key, None)

    def remaining_ttl(self, key: str) -> float | None:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            return max(0.0, entry.expires_at - self._timer())

    def ping(self) -> bool:
        return True


class RedisContactCache:
    """Redis-backed cache; values are stored as JSON with SET ... EX ttl."""

    KEY_PREFIX = "addressbook:"

    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float = 5.0) -> RedisContactCache:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def _k(self, key: str) -> str:
        return f"{self.KEY_PREFIX}{key}"

    def get(self, key: str) -> CachedValue | None:
        try:
            raw = self.client.get(self._k(key))
        except redis.RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return _cached_value_adapter.validate_json(raw)
        except ValidationError:
            logger.warning("Discarding undecodable cache entry %s", key)
            self.evict(key)
            return None

    def set(self, key: str, value: CachedValue, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        raw = _cached_value_adapter.dump_json(value)
        try:
            self.client.set(self._k(key), raw, ex=ttl_seconds)
        except redis.RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    def evict(self, key: str) -> None:
        try:
            self.client.delete(self._k(key))
        except redis.RedisError as e:
            logger.error("Cache eviction failed for %s: %s", key, e)

    def evict_prefix(self, prefix: str) -> None:
        try:
            keys = list(self.client.scan_iter(match=f"{self._k(prefix)}*"))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            logger.error("Cache eviction failed for %s*: %s", prefix, e)

    def remaining_ttl(self, key: str) -> float | None:
        try:
            ttl = self.client.ttl(self._k(key))
        except redis.RedisError:
            return None
        # -2: no such key, -1: key without expiry (never written by this class)
        if ttl is None or ttl < 0:
            return None
        return float(ttl)

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning("Cache ping failed: %s", e)
            return False


class NullContactCache:
    """Cache disabled: nothing is stored, every read goes to the database."""

    def get(self, key: str) -> CachedValue | None:
        return None

    def set(self, key: str, value: CachedValue, ttl_seconds: int) -> None:
        return None

    def evict(self, key: str) -> None:
        return None

    def evict_prefix(self, prefix: str) -> None:
        return None

    def remaining_ttl(self, key: str) -> float | None:
        return None

    def ping(self) -> bool:
        return True


def _copy(value: Any) -> Any:
    if isinstance(value, list):
        return [item.model_copy() for item in value]
    return value.model_copy()


def build_contact_cache(settings: Settings) -> ContactCache:
    """Create the cache backend selected by CACHE_BACKEND."""
    if settings.CACHE_BACKEND == "redis":
        logger.info("Contact cache: redis")
        return RedisContactCache.from_url(
            settings.REDIS_URL, socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC
        )
    if settings.CACHE_BACKEND == "none":
        logger.info("Contact cache disabled")
        return NullContactCache()
    logger.info("Contact cache: in-memory (max %s entries)", settings.CACHE_MAX_ENTRIES)
    return MemoryContactCache(maxsize=settings.CACHE_MAX_ENTRIES)
