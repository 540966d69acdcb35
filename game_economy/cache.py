"""
Per-user read-view cache backed by a Redis hash.

Each user owns one hash, `user:backpack:{uid}`, with a field per view
(`data` for the backpack snapshot, `wallets` for the wallet list). Values are
JSON. The cache is never authoritative:
- reads return None on a miss *or* on any Redis failure,
- writes and deletes report success as a bool and never raise.

Writes go through `invalidate`, which deletes the field right away and again
once the session commits, so a reader that refilled the field from the
still-committed rows in between cannot leave a stale view behind.
"""
import json
import logging
from typing import Any, Optional

import redis
from sqlalchemy import event
from sqlalchemy.orm import Session

from game_economy.config import Settings

logger = logging.getLogger(__name__)

KEY_TEMPLATE = "user:backpack:{uid}"
BACKPACK_FIELD = "data"
WALLETS_FIELD = "wallets"

# session.info key holding (cache, key, field) triples to delete after commit
PENDING_INVALIDATIONS = "pending_cache_invalidations"


def user_key(uid: int) -> str:
    return KEY_TEMPLATE.format(uid=uid)


class UserViewCache:
    def __init__(self, client: Optional[redis.Redis], ttl_seconds: int = 3600):
        self._client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "UserViewCache":
        """Connection is lazy: nothing touches Redis until the first command."""
        if not settings.CACHE_ENABLED:
            return cls(None, settings.CACHE_TTL_SECONDS)
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )
        return cls(client, settings.CACHE_TTL_SECONDS)

    def get_field(self, key: str, field: str) -> Optional[Any]:
        """Get cached value, returns None if not found or error"""
        if self._client is None:
            return None
        try:
            value = self._client.hget(key, field)
            return json.loads(value) if value else None
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Redis HGET failed for {key}/{field}: {e}")
            return None

    def set_field(self, key: str, field: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        if self._client is None:
            return False
        try:
            self._client.hset(key, field, json.dumps(value))
            self._client.expire(key, ttl_seconds or self.ttl_seconds)
            return True
        except (redis.RedisError, TypeError) as e:
            logger.warning(f"Redis HSET failed for {key}/{field}: {e}")
            return False

    def delete_field(self, key: str, field: str) -> bool:
        if self._client is None:
            return False
        try:
            self._client.hdel(key, field)
            logger.debug(f"Invalidated cache {key}/{field}")
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis HDEL failed for {key}/{field}: {e}")
            return False

    def close(self):
        """Close connection pool on app shutdown"""
        if self._client is not None:
            self._client.close()

    def invalidate(self, db: Session, key: str, field: str) -> None:
        """Delete a view now and once more after `db` commits."""
        self.delete_field(key, field)
        db.info.setdefault(PENDING_INVALIDATIONS, set()).add((self, key, field))


@event.listens_for(Session, "after_commit")
def _invalidate_after_commit(session):
    for cache, key, field in session.info.pop(PENDING_INVALIDATIONS, ()):
        cache.delete_field(key, field)


@event.listens_for(Session, "after_rollback")
def _forget_after_rollback(session):
    session.info.pop(PENDING_INVALIDATIONS, None)
