"""
Leveling Service: experience accrual, level-up cascade and level discounts.
"""
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from game_economy.exceptions import InvalidQuantityError, LevelConfigNotFoundError
from game_economy.models import CurrencyKind, LevelConfig, LevelHistory, User
from game_economy.services.users import get_active_user
from game_economy.services.wallet import WalletService

logger = logging.getLogger(__name__)


class LevelService:
    def __init__(self, wallet_service: WalletService):
        self.wallet_service = wallet_service

    def get_user_level(self, db: Session, uid: int) -> User:
        return get_active_user(db, uid)

    def get_level_config(self, db: Session, level: int) -> LevelConfig:
        config = db.execute(
            select(LevelConfig).where(LevelConfig.level == level)
        ).scalar_one_or_none()
        if config is None:
            raise LevelConfigNotFoundError(level)
        return config

    def list_level_configs(self, db: Session) -> List[LevelConfig]:
        return db.execute(
            select(LevelConfig).order_by(LevelConfig.level.asc())
        ).scalars().all()

    def get_level_history(self, db: Session, uid: int) -> List[LevelHistory]:
        get_active_user(db, uid)
        return db.execute(
            select(LevelHistory)
            .where(LevelHistory.user_id == uid)
            .order_by(LevelHistory.id.desc())
        ).scalars().all()

    def add_experience(self, db: Session, uid: int, exp: int, description: str) -> LevelHistory:
        """
        Add experience and apply every level-up it unlocks.

        Configs above the current level are walked in ascending order; each
        one whose requirement is met is taken and its rewards accumulated, the
        first unmet one stops the walk. A single grant can therefore jump
        several levels, still producing exactly one history row. The level,
        the reward credits and the history row all live in the caller's
        transaction.
        """
        if exp < 0:
            raise InvalidQuantityError(exp)

        # Locked so two concurrent purchases cannot lose each other's experience.
        user = get_active_user(db, uid, lock=True)
        old_level = user.level
        user.experience += exp

        higher_levels = db.execute(
            select(LevelConfig)
            .where(LevelConfig.level > old_level)
            .order_by(LevelConfig.level.asc())
        ).scalars().all()

        new_level = old_level
        coin_reward = 0
        diamond_reward = 0
        for config in higher_levels:
            if config.required_exp > user.experience:
                break
            new_level = config.level
            coin_reward += config.coin_reward
            diamond_reward += config.diamond_reward

        if new_level > old_level:
            user.level = new_level
            reward_note = f"Level-up reward: level {old_level} -> {new_level}"
            if coin_reward > 0:
                self.wallet_service.credit(db, uid, CurrencyKind.COIN, coin_reward, reward_note)
            if diamond_reward > 0:
                self.wallet_service.credit(db, uid, CurrencyKind.DIAMOND, diamond_reward, reward_note)
            logger.info(
                f"User {uid} levelled up {old_level} -> {new_level} "
                f"(+{coin_reward} coin, +{diamond_reward} diamond)"
            )

        history = LevelHistory(
            user_id=uid,
            old_level=old_level,
            new_level=user.level,
            exp_gained=exp,
            experience=user.experience,
            coin_rewarded=coin_reward,
            diamond_rewarded=diamond_reward,
            description=description,
        )
        db.add(history)
        db.flush()
        return history

    def get_discounted_price(self, db: Session, uid: int, original_price: int) -> int:
        """
        Price after the discount of the user's current level.
        Raises UserNotFoundError / LevelConfigNotFoundError; callers that
        must not fail fall back to the original price.
        """
        user = get_active_user(db, uid)
        config = self.get_level_config(db, user.level)
        return original_price * config.discount_percent // 100
