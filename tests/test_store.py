"""
Purchase pipeline tests: the happy path, every refusal, discounts,
experience and the all-or-nothing guarantee.
"""
import pytest
from sqlalchemy import func, select

from game_economy.cache import BACKPACK_FIELD, WALLETS_FIELD, user_key
from game_economy.database import unit_of_work
from game_economy.exceptions import (
    InsufficientFundsError,
    InsufficientStockError,
    InvalidQuantityError,
    ItemInactiveError,
    ItemNotFoundError,
    UserNotFoundError,
)
from game_economy.models import BackpackEntry, CurrencyFlow, LevelHistory, StoreItem, User
from game_economy.services.store import experience_for


def _state(db, services, uid, item_id):
    """Everything a purchase may touch, for before/after comparisons."""
    entry = db.execute(
        select(BackpackEntry).where(BackpackEntry.user_id == uid, BackpackEntry.item_id == item_id)
    ).scalar_one_or_none()
    return {
        "coin": services.wallet.get_balance(db, uid, "coin"),
        "diamond": services.wallet.get_balance(db, uid, "diamond"),
        "stock": db.get(StoreItem, item_id).stock,
        "owned": entry.quantity if entry else 0,
        "flows": db.execute(select(func.count(CurrencyFlow.id))).scalar(),
        "history": db.execute(select(func.count(LevelHistory.id))).scalar(),
    }


class TestBuyGoods:
    def test_buy_three_swords(self, session_factory, services, seed_data):
        uid, sword = seed_data["alice"], seed_data["sword"]
        with unit_of_work(session_factory) as db:
            result = services.store.buy_goods(db, uid, sword, 3)

        assert result["original_price"] == 300
        assert result["charged_price"] == 300
        assert result["balance_after"] == 700
        assert result["stock_after"] == 7
        assert result["experience_gained"] == 150
        assert (result["old_level"], result["new_level"]) == (1, 1)

        with unit_of_work(session_factory) as db:
            assert services.wallet.get_balance(db, uid, "coin") == 700

            flows = db.execute(select(CurrencyFlow).where(CurrencyFlow.user_id == uid)).scalars().all()
            assert len(flows) == 1
            assert flows[0].amount == -300
            assert flows[0].balance_after == 700
            assert flows[0].store_id == sword

            user = db.execute(select(User).where(User.uid == uid)).scalar_one()
            assert user.experience == 150
            assert user.level == 1
            assert user.total_spent == 300

            history = db.execute(select(LevelHistory)).scalars().all()
            assert len(history) == 1
            assert history[0].exp_gained == 150

            snapshot = services.inventory.get_snapshot(db, uid)
            assert snapshot["items"][str(sword)]["quantity"] == 3

    def test_diamond_purchase_grants_full_price_as_experience(self, db_session, services, seed_data):
        uid = seed_data["alice"]
        result = services.store.buy_goods(db_session, uid, seed_data["gem"], 2)

        assert result["cost_type"] == "diamond"
        assert result["experience_gained"] == 60
        assert services.wallet.get_balance(db_session, uid, "diamond") == 140
        assert services.wallet.get_balance(db_session, uid, "coin") == 1000

    def test_purchase_can_trigger_level_up(self, db_session, services, seed_data):
        uid = seed_data["alice"]
        result = services.store.buy_goods(db_session, uid, seed_data["sword"], 4)

        assert result["experience_gained"] == 200
        assert result["new_level"] == 2
        # 1000 - 400 + 50 level-up reward
        assert services.wallet.get_balance(db_session, uid, "coin") == 650
        assert services.wallet.get_balance(db_session, uid, "diamond") == 205

    def test_discount_applies_at_higher_level(self, db_session, services, seed_data):
        uid = seed_data["alice"]
        services.level.add_experience(db_session, uid, 500, "quest")  # level 3, +150 coin
        before = services.wallet.get_balance(db_session, uid, "coin")

        result = services.store.buy_goods(db_session, uid, seed_data["sword"], 2)

        assert result["original_price"] == 200
        assert result["charged_price"] == 180
        # Experience is earned on the list price
        assert result["experience_gained"] == 100
        assert services.wallet.get_balance(db_session, uid, "coin") == before - 180

        user = services.level.get_user_level(db_session, uid)
        assert user.total_spent == 180

    def test_missing_level_config_charges_full_price(self, db_session, services, seed_data):
        uid = seed_data["alice"]
        user = db_session.execute(select(User).where(User.uid == uid)).scalar_one()
        user.level = 9
        db_session.flush()

        result = services.store.buy_goods(db_session, uid, seed_data["sword"], 1)
        assert result["charged_price"] == 100

    def test_free_item_moves_no_currency(self, db_session, services, seed_data):
        """
        A zero charge leaves the balance untouched, so no ledger row is written:
        flows record balance changes, and a free item makes none.
        """
        uid = seed_data["alice"]
        result = services.store.buy_goods(db_session, uid, seed_data["potion"], 5)

        assert result["charged_price"] == 0
        assert result["balance_after"] == 1000
        assert result["experience_gained"] == 0
        assert db_session.execute(select(func.count(CurrencyFlow.id))).scalar() == 0
        assert services.inventory.get_snapshot(db_session, uid)["items"][str(seed_data["potion"])]["quantity"] == 5

    def test_purchase_invalidates_cached_views(self, db_session, services, fake_redis, seed_data):
        uid = seed_data["alice"]
        services.inventory.get_snapshot(db_session, uid)
        services.wallet.get_user_wallets(db_session, uid)

        services.store.buy_goods(db_session, uid, seed_data["sword"], 1)

        fields = fake_redis.hashes[user_key(uid)]
        assert BACKPACK_FIELD not in fields
        assert WALLETS_FIELD not in fields


class TestBuyGoodsRefusals:
    def test_insufficient_stock_changes_nothing(self, session_factory, services, seed_data):
        uid, sword = seed_data["alice"], seed_data["sword"]
        with unit_of_work(session_factory) as db:
            before = _state(db, services, uid, sword)

        with pytest.raises(InsufficientStockError) as exc_info:
            with unit_of_work(session_factory) as db:
                services.store.buy_goods(db, uid, sword, 11)
        assert (exc_info.value.stock, exc_info.value.requested) == (10, 11)

        with unit_of_work(session_factory) as db:
            assert _state(db, services, uid, sword) == before

    def test_insufficient_funds_changes_nothing(self, session_factory, services, seed_data):
        uid, sword = seed_data["alice"], seed_data["sword"]
        with unit_of_work(session_factory) as db:
            services.wallet.update_wallet_balance(db, uid, "coin", -950)
        with unit_of_work(session_factory) as db:
            before = _state(db, services, uid, sword)

        with pytest.raises(InsufficientFundsError) as exc_info:
            with unit_of_work(session_factory) as db:
                services.store.buy_goods(db, uid, sword, 1)
        assert (exc_info.value.balance, exc_info.value.requested) == (50, 100)

        with unit_of_work(session_factory) as db:
            assert _state(db, services, uid, sword) == before
            assert before["coin"] == 50

    def test_failure_after_debit_rolls_everything_back(self, session_factory, services, seed_data, monkeypatch):
        uid, sword = seed_data["alice"], seed_data["sword"]
        with unit_of_work(session_factory) as db:
            before = _state(db, services, uid, sword)

        def boom(*args, **kwargs):
            raise InvalidQuantityError(-1)

        monkeypatch.setattr(services.level, "add_experience", boom)

        with pytest.raises(InvalidQuantityError):
            with unit_of_work(session_factory) as db:
                services.store.buy_goods(db, uid, sword, 2)

        with unit_of_work(session_factory) as db:
            assert _state(db, services, uid, sword) == before

    def test_inactive_item(self, db_session, services, seed_data):
        with pytest.raises(ItemInactiveError):
            services.store.buy_goods(db_session, seed_data["alice"], seed_data["relic"], 1)

    def test_unknown_item(self, db_session, services, seed_data):
        with pytest.raises(ItemNotFoundError):
            services.store.buy_goods(db_session, seed_data["alice"], 4040, 1)

    def test_unknown_user(self, db_session, services, seed_data):
        with pytest.raises(UserNotFoundError):
            services.store.buy_goods(db_session, 1, seed_data["sword"], 1)

    def test_non_positive_count(self, db_session, services, seed_data):
        with pytest.raises(InvalidQuantityError):
            services.store.buy_goods(db_session, seed_data["alice"], seed_data["sword"], 0)

    def test_soft_deleted_user_cannot_buy(self, db_session, services, seed_data):
        uid = seed_data["alice"]
        user = db_session.execute(select(User).where(User.uid == uid)).scalar_one()
        user.is_deleted = True
        db_session.flush()

        with pytest.raises(UserNotFoundError):
            services.store.buy_goods(db_session, uid, seed_data["sword"], 1)


class TestCatalogue:
    def test_list_items_filters_by_tag(self, db_session, services, seed_data):
        items, total = services.store.list_items(db_session, tag="gift")
        assert total == 1
        assert [i.name for i in items] == ["Potion"]

    def test_list_items_paginates(self, db_session, services, seed_data):
        items, total = services.store.list_items(db_session, page=2, page_size=3)
        assert total == 4
        assert [i.name for i in items] == ["Relic"]

    def test_get_item(self, db_session, services, seed_data):
        assert services.store.get_item(db_session, seed_data["gem"]).cost_type == "diamond"
        with pytest.raises(ItemNotFoundError):
            services.store.get_item(db_session, 4040)

    def test_experience_rule(self):
        assert experience_for("coin", 301) == 150
        assert experience_for("diamond", 301) == 301
