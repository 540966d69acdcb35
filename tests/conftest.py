"""
Shared fixtures for the Game Economy Service tests.

Every test gets its own file-backed SQLite database so that committed and
rolled-back units of work behave exactly like they do in production, and a
dict-backed stand-in for the Redis client so cache traffic can be inspected.
"""
import os

# Must be set before game_economy.config is imported anywhere.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CACHE_ENABLED", "false")

import pytest
import redis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from game_economy.cache import UserViewCache
from game_economy.database import unit_of_work
from game_economy.dependencies import build_services
from game_economy.models import Base, ItemStatus, LevelConfig, StoreItem
from game_economy.services.users import create_user


# ──────────────────────────────────────────────────────────────────────────────
# Redis test doubles
# ──────────────────────────────────────────────────────────────────────────────

class FakeRedis:
    """The handful of hash commands the cache uses, backed by a dict."""

    def __init__(self):
        self.hashes = {}
        self.ttls = {}
        self.calls = []

    def hget(self, key, field):
        self.calls.append(("hget", key, field))
        return self.hashes.get(key, {}).get(field)

    def hset(self, key, field, value):
        self.calls.append(("hset", key, field))
        self.hashes.setdefault(key, {})[field] = value
        return 1

    def hdel(self, key, field):
        self.calls.append(("hdel", key, field))
        return 1 if self.hashes.get(key, {}).pop(field, None) is not None else 0

    def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    def close(self):
        pass


class BrokenRedis:
    """Every command fails as if the server were unreachable."""

    def _fail(self, *args, **kwargs):
        raise redis.exceptions.ConnectionError("Connection refused")

    hget = hset = hdel = expire = _fail

    def close(self):
        pass


# ──────────────────────────────────────────────────────────────────────────────
# Database
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'economy.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


# ──────────────────────────────────────────────────────────────────────────────
# Cache and services
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture()
def fake_redis():
    return FakeRedis()


@pytest.fixture()
def cache(fake_redis):
    return UserViewCache(fake_redis, ttl_seconds=3600)


@pytest.fixture()
def broken_cache():
    return UserViewCache(BrokenRedis())


@pytest.fixture()
def services(cache):
    return build_services(cache)


# ──────────────────────────────────────────────────────────────────────────────
# Seed data
# ──────────────────────────────────────────────────────────────────────────────

LEVELS = [
    # level, required_exp, coin, diamond, discount
    (1, 0, 0, 0, 100),
    (2, 200, 50, 5, 95),
    (3, 500, 100, 10, 90),
    (4, 900, 200, 20, 85),
    (5, 1500, 500, 50, 80),
]


@pytest.fixture()
def seed_data(session_factory, services):
    """Level table, a small catalogue and two fresh users (1000 coin / 200 diamond each)."""
    with unit_of_work(session_factory) as db:
        db.add_all([
            LevelConfig(
                level=level, required_exp=required, coin_reward=coin,
                diamond_reward=diamond, discount_percent=discount,
                description=f"Level {level}",
            )
            for level, required, coin, diamond, discount in LEVELS
        ])
        sword = StoreItem(name="Sword", price=100, stock=10, cost_type="coin", tag="good")
        gem = StoreItem(name="Gem", price=30, stock=5, cost_type="diamond", tag="good")
        potion = StoreItem(name="Potion", price=0, stock=100, cost_type="coin", tag="gift")
        relic = StoreItem(name="Relic", price=10, stock=10, cost_type="coin", status=ItemStatus.INACTIVE)
        db.add_all([sword, gem, potion, relic])
        db.flush()

        alice = create_user(db, "alice", "alice@example.com", services.wallet)
        bob = create_user(db, "bob", "bob@example.com", services.wallet)

    return {
        "alice": alice.uid,
        "bob": bob.uid,
        "sword": sword.id,
        "gem": gem.id,
        "potion": potion.id,
        "relic": relic.id,
    }
