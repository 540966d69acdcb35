"""
SQLAlchemy ORM models for the Game Economy Service.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Integer, BigInteger, ForeignKey,
    DateTime, Text, Boolean, Index, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


class CurrencyKind:
    COIN = "coin"
    DIAMOND = "diamond"

    ALL = (COIN, DIAMOND)


class ItemStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"


class RewardItemType:
    GOODS = "goods"        # lands in the backpack
    CURRENCY = "currency"  # item_id 0 = diamond, 1 = coin


class RewardFlowType:
    ITEM = "item"
    COIN = "coin"
    DIAMOND = "diamond"


class User(Base):
    """
    A player. `uid` is the public numeric id handed to clients and used as the
    foreign key by every economy table; `id` stays internal.
    Level and experience are only ever changed by the leveling service.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(BigInteger, nullable=False, unique=True, index=True)
    username = Column(String(50), nullable=False, unique=True)
    email = Column(String(100), nullable=False, unique=True)
    level = Column(Integer, nullable=False, default=1)
    experience = Column(BigInteger, nullable=False, default=0)
    total_spent = Column(BigInteger, nullable=False, default=0)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    wallets = relationship("Wallet", back_populates="user")

    __table_args__ = (
        CheckConstraint("level >= 1", name="ck_user_level_positive"),
        CheckConstraint("experience >= 0", name="ck_user_experience_non_negative"),
    )

    def __repr__(self):
        return f"<User uid={self.uid} level={self.level} exp={self.experience}>"


class Wallet(Base):
    """
    One wallet per (user, currency kind). Balance is the always-up-to-date
    snapshot; the currency_flows table is its audit trail.
    """
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.uid"), nullable=False)
    kind = Column(String(20), nullable=False)
    balance = Column(BigInteger, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="wallets")

    __table_args__ = (
        UniqueConstraint("user_id", "kind", name="uq_wallet_user_kind"),
        CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),
    )

    def __repr__(self):
        return f"<Wallet user={self.user_id} kind={self.kind} balance={self.balance}>"


class CurrencyFlow(Base):
    """
    Immutable ledger row: exactly one per wallet balance change.
    Negative amount = debit, positive = credit.
    """
    __tablename__ = "currency_flows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.uid"), nullable=False)
    kind = Column(String(20), nullable=False)
    amount = Column(BigInteger, nullable=False)
    balance_after = Column(BigInteger, nullable=False)
    store_id = Column(Integer, nullable=False, default=0)  # 0 when not a purchase
    description = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_currency_flow_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<CurrencyFlow user={self.user_id} {self.kind} {self.amount:+d}>"


class RewardFlow(Base):
    """Append-only record of everything granted to a user (items and currency)."""
    __tablename__ = "reward_flows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.uid"), nullable=False, index=True)
    item_type = Column(String(20), nullable=False)
    item_id = Column(Integer, nullable=False, default=0)
    quantity = Column(BigInteger, nullable=False)
    source = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class StoreItem(Base):
    __tablename__ = "store_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False, unique=True)
    price = Column(BigInteger, nullable=False)
    stock = Column(BigInteger, nullable=False)
    cost_type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=ItemStatus.ACTIVE)
    tag = Column(String(20), nullable=False, default="good")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_store_item_price_non_negative"),
        CheckConstraint("stock >= 0", name="ck_store_item_stock_non_negative"),
        Index("ix_store_item_tag", "tag"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == ItemStatus.ACTIVE

    def __repr__(self):
        return f"<StoreItem {self.name} {self.price} {self.cost_type} stock={self.stock}>"


class BackpackEntry(Base):
    __tablename__ = "backpack_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.uid"), nullable=False)
    item_id = Column(Integer, ForeignKey("store_items.id"), nullable=False)
    quantity = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    item = relationship("StoreItem")

    __table_args__ = (
        UniqueConstraint("user_id", "item_id", name="uq_backpack_user_item"),
        CheckConstraint("quantity >= 0", name="ck_backpack_quantity_non_negative"),
    )

    def __repr__(self):
        return f"<BackpackEntry user={self.user_id} item={self.item_id} qty={self.quantity}>"


class LevelConfig(Base):
    """Static level table. discount_percent of 100 means full price."""
    __tablename__ = "level_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    level = Column(Integer, nullable=False, unique=True)
    required_exp = Column(BigInteger, nullable=False)
    coin_reward = Column(BigInteger, nullable=False, default=0)
    diamond_reward = Column(BigInteger, nullable=False, default=0)
    discount_percent = Column(Integer, nullable=False, default=100)
    description = Column(String(255), nullable=False, default="")

    def __repr__(self):
        return f"<LevelConfig level={self.level} required={self.required_exp}>"


class LevelHistory(Base):
    __tablename__ = "level_histories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.uid"), nullable=False, index=True)
    old_level = Column(Integer, nullable=False)
    new_level = Column(Integer, nullable=False)
    exp_gained = Column(BigInteger, nullable=False)
    experience = Column(BigInteger, nullable=False)
    coin_rewarded = Column(BigInteger, nullable=False, default=0)
    diamond_rewarded = Column(BigInteger, nullable=False, default=0)
    description = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("new_level >= old_level", name="ck_level_history_no_regression"),
    )


class RewardPackage(Base):
    __tablename__ = "reward_packages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "RewardPackageItem",
        back_populates="package",
        order_by="RewardPackageItem.id",
        cascade="all, delete-orphan",
    )


class RewardPackageItem(Base):
    __tablename__ = "reward_package_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    package_id = Column(Integer, ForeignKey("reward_packages.id"), nullable=False, index=True)
    item_type = Column(String(20), nullable=False)
    item_id = Column(Integer, nullable=False)
    quantity = Column(BigInteger, nullable=False)

    package = relationship("RewardPackage", back_populates="items")


class RewardRecord(Base):
    """One row per successful package grant."""
    __tablename__ = "reward_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.uid"), nullable=False)
    package_id = Column(Integer, nullable=False)  # records outlive deleted packages
    source = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_reward_record_user_created", "user_id", "created_at"),
    )
