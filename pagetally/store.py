from typing import Any, List, Set

import redis

from .config import Settings, settings as default_settings


class StoreError(RuntimeError):
    """The event store could not be read or written."""


def _redis(cfg: Settings) -> redis.Redis:
    if cfg.REDIS_URL:
        return redis.Redis.from_url(cfg.REDIS_URL, decode_responses=False)
    return redis.Redis(host=cfg.REDIS_HOST, port=cfg.REDIS_PORT, db=cfg.REDIS_DB, decode_responses=False)


class EventStore:
    """
    Append-only event lists plus unique-value sets, kept in Redis.

    Writes prepend (LPUSH), so index 0 of every list is the newest record.
    Absent keys read back as empty collections.
    """

    def __init__(self, client: redis.Redis = None, cfg: Settings = None):
        self.cfg = cfg or default_settings
        self.r = client if client is not None else _redis(self.cfg)

    def ping(self) -> bool:
        try:
            return bool(self.r.ping())
        except redis.RedisError:
            return False

    def append_event(self, key: str, record: str) -> None:
        try:
            self.r.lpush(key, record)
        except redis.RedisError as e:
            raise StoreError(f"append to {key!r} failed") from e

    def trim_to_most_recent(self, key: str, n: int) -> None:
        try:
            self.r.ltrim(key, 0, n - 1)
        except redis.RedisError as e:
            raise StoreError(f"trim of {key!r} failed") from e

    def add_to_set(self, key: str, value: str) -> None:
        try:
            self.r.sadd(key, value)
        except redis.RedisError as e:
            raise StoreError(f"add to {key!r} failed") from e

    def read_all_as_list(self, key: str) -> List[Any]:
        try:
            return list(self.r.lrange(key, 0, -1) or [])
        except redis.RedisError as e:
            raise StoreError(f"read of {key!r} failed") from e

    def read_set(self, key: str) -> Set[str]:
        try:
            members = self.r.smembers(key) or set()
        except redis.RedisError as e:
            raise StoreError(f"read of {key!r} failed") from e
        return {m.decode("utf-8", "replace") if isinstance(m, bytes) else str(m) for m in members}

    # --- convenience used by the ingestion paths ---

    def record(self, key: str, record: str) -> None:
        """Prepend one serialized record and drop everything past MAX_EVENTS."""
        self.append_event(key, record)
        self.trim_to_most_recent(key, self.cfg.MAX_EVENTS)
