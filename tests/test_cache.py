"""
The per-user view cache must never be authoritative and never fatal.
"""
from game_economy.cache import BACKPACK_FIELD, PENDING_INVALIDATIONS, UserViewCache, user_key
from game_economy.config import Settings
from game_economy.database import unit_of_work
from game_economy.dependencies import build_services


class TestUserViewCache:
    def test_key_layout(self):
        assert user_key(10001) == "user:backpack:10001"

    def test_round_trip_sets_ttl(self, cache, fake_redis):
        assert cache.set_field("user:backpack:1", "data", {"items": {}}) is True
        assert cache.get_field("user:backpack:1", "data") == {"items": {}}
        assert fake_redis.ttls["user:backpack:1"] == 3600

    def test_explicit_ttl(self, cache, fake_redis):
        cache.set_field("k", "f", [1], ttl_seconds=5)
        assert fake_redis.ttls["k"] == 5

    def test_miss_is_none(self, cache):
        assert cache.get_field("user:backpack:2", "data") is None

    def test_corrupt_value_is_a_miss(self, cache, fake_redis):
        fake_redis.hashes["k"] = {"f": "{not json"}
        assert cache.get_field("k", "f") is None

    def test_delete(self, cache, fake_redis):
        cache.set_field("k", "f", 1)
        assert cache.delete_field("k", "f") is True
        assert "f" not in fake_redis.hashes["k"]


class TestBrokenRedis:
    def test_errors_are_swallowed(self, broken_cache):
        assert broken_cache.get_field("k", "f") is None
        assert broken_cache.set_field("k", "f", 1) is False
        assert broken_cache.delete_field("k", "f") is False

    def test_purchase_succeeds_without_redis(self, session_factory, seed_data, broken_cache):
        services = build_services(broken_cache)
        uid = seed_data["alice"]
        with unit_of_work(session_factory) as db:
            result = services.store.buy_goods(db, uid, seed_data["sword"], 1)
        assert result["balance_after"] == 900

        with unit_of_work(session_factory) as db:
            snapshot = services.inventory.get_snapshot(db, uid)
            assert snapshot["items"][str(seed_data["sword"])]["quantity"] == 1
            assert services.wallet.get_user_wallets(db, uid)[0]["balance"] == 900


class TestDisabledCache:
    def test_from_settings_disabled(self):
        cache = UserViewCache.from_settings(Settings(CACHE_ENABLED=False, CACHE_TTL_SECONDS=60))
        assert cache.ttl_seconds == 60
        assert cache.get_field(user_key(1), BACKPACK_FIELD) is None
        assert cache.set_field(user_key(1), BACKPACK_FIELD, {}) is False
        assert cache.delete_field(user_key(1), BACKPACK_FIELD) is False
        cache.close()

    def test_from_settings_enabled_builds_lazy_client(self):
        cache = UserViewCache.from_settings(
            Settings(CACHE_ENABLED=True, REDIS_URL="redis://localhost:6399/3")
        )
        assert cache._client is not None
        cache.close()


class TestInvalidationAfterCommit:
    """A reader between a write and its commit must not leave a stale view behind."""

    def test_backpack_read_before_commit_is_not_served_after(self, session_factory, services, fake_redis, seed_data):
        uid, sword = seed_data["alice"], seed_data["sword"]
        with unit_of_work(session_factory) as db:
            services.inventory.add(db, uid, sword, 5, "setup")

        writer = session_factory()
        services.inventory.consume(writer, uid, sword, 5)

        # Sees the committed five swords and caches them
        with unit_of_work(session_factory) as reader:
            assert services.inventory.get_snapshot(reader, uid)["total_items"] == 5
        assert BACKPACK_FIELD in fake_redis.hashes[user_key(uid)]

        writer.commit()
        writer.close()

        assert BACKPACK_FIELD not in fake_redis.hashes[user_key(uid)]
        with unit_of_work(session_factory) as db:
            assert services.inventory.get_snapshot(db, uid)["items"] == {}

    def test_wallet_read_before_commit_is_not_served_after(self, session_factory, services, fake_redis, seed_data):
        uid = seed_data["alice"]
        writer = session_factory()
        services.wallet.credit(writer, uid, "coin", 75, "bonus")

        with unit_of_work(session_factory) as reader:
            assert services.wallet.get_user_wallets(reader, uid)[0]["balance"] == 1000

        writer.commit()
        writer.close()

        with unit_of_work(session_factory) as db:
            assert services.wallet.get_user_wallets(db, uid)[0]["balance"] == 1075

    def test_rollback_forgets_pending_keys(self, session_factory, services, fake_redis, seed_data):
        uid = seed_data["alice"]
        db = session_factory()
        services.wallet.credit(db, uid, "coin", 10, "bonus")
        assert PENDING_INVALIDATIONS in db.info

        db.rollback()
        assert PENDING_INVALIDATIONS not in db.info
        db.close()
