"""
Inventory (backpack) service: owned item quantities keyed by (user, item).
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from game_economy.cache import BACKPACK_FIELD, UserViewCache, user_key
from game_economy.exceptions import (
    BackpackItemNotFoundError,
    InsufficientQuantityError,
    InvalidQuantityError,
    ItemNotFoundError,
    SelfTransferError,
)
from game_economy.models import BackpackEntry, RewardFlow, RewardFlowType, StoreItem
from game_economy.services.users import get_active_user

logger = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, cache: UserViewCache):
        self.cache = cache

    def _invalidate(self, db: Session, uid: int) -> None:
        self.cache.invalidate(db, user_key(uid), BACKPACK_FIELD)

    def _get_item(self, db: Session, item_id: int) -> StoreItem:
        item = db.get(StoreItem, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def _lock_entry(self, db: Session, uid: int, item_id: int) -> Optional[BackpackEntry]:
        return db.execute(
            select(BackpackEntry)
            .where(BackpackEntry.user_id == uid, BackpackEntry.item_id == item_id)
            .with_for_update()
        ).scalar_one_or_none()

    # ──────────────────────────────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────────────────────────────

    def get_snapshot(self, db: Session, uid: int) -> dict:
        """
        Everything the user owns with quantity > 0.

        Item ids are string keys so a freshly built snapshot and one that went
        through the JSON cache look identical.
        """
        key = user_key(uid)
        cached = self.cache.get_field(key, BACKPACK_FIELD)
        if cached is not None:
            return cached

        get_active_user(db, uid)
        rows = db.execute(
            select(BackpackEntry, StoreItem.name)
            .join(StoreItem, StoreItem.id == BackpackEntry.item_id)
            .where(BackpackEntry.user_id == uid, BackpackEntry.quantity > 0)
            .order_by(BackpackEntry.item_id)
        ).all()

        snapshot = {
            "user_id": uid,
            "total_items": len(rows),
            "items": {
                str(entry.item_id): {
                    "item_id": entry.item_id,
                    "name": name,
                    "quantity": entry.quantity,
                }
                for entry, name in rows
            },
        }
        self.cache.set_field(key, BACKPACK_FIELD, snapshot)
        return snapshot

    # ──────────────────────────────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────────────────────────────

    def increment(self, db: Session, uid: int, item_id: int, quantity: int) -> BackpackEntry:
        """Upsert the (user, item) entry and add `quantity` to it."""
        if quantity <= 0:
            raise InvalidQuantityError(quantity)

        entry = self._lock_entry(db, uid, item_id)
        if entry is None:
            entry = BackpackEntry(user_id=uid, item_id=item_id, quantity=quantity)
            db.add(entry)
        else:
            entry.quantity += quantity
        db.flush()

        self._invalidate(db, uid)
        return entry

    def add(self, db: Session, uid: int, item_id: int, quantity: int, source: str = "backpack add") -> BackpackEntry:
        """Grant an item: validates user and item, increments and audits."""
        if quantity <= 0:
            raise InvalidQuantityError(quantity)
        get_active_user(db, uid)
        self._get_item(db, item_id)

        entry = self.increment(db, uid, item_id, quantity)
        db.add(RewardFlow(
            user_id=uid,
            item_type=RewardFlowType.ITEM,
            item_id=item_id,
            quantity=quantity,
            source=source,
        ))
        db.flush()
        logger.info(f"Added item {item_id} x{quantity} to backpack of user {uid} ({source})")
        return entry

    def consume(self, db: Session, uid: int, item_id: int, quantity: int) -> BackpackEntry:
        if quantity <= 0:
            raise InvalidQuantityError(quantity)

        entry = self._lock_entry(db, uid, item_id)
        if entry is None:
            raise BackpackItemNotFoundError(uid, item_id)
        if entry.quantity < quantity:
            raise InsufficientQuantityError(item_id, entry.quantity, quantity)

        entry.quantity -= quantity
        db.flush()

        self._invalidate(db, uid)
        logger.info(f"Consumed item {item_id} x{quantity} from backpack of user {uid}")
        return entry

    def transfer(self, db: Session, from_uid: int, to_uid: int, item_id: int, quantity: int) -> BackpackEntry:
        """
        Move items between two backpacks inside the caller's transaction.
        Returns the destination entry.
        """
        if quantity <= 0:
            raise InvalidQuantityError(quantity)
        if from_uid == to_uid:
            raise SelfTransferError(from_uid)

        get_active_user(db, from_uid)
        get_active_user(db, to_uid)
        self._get_item(db, item_id)

        # Always lock in a consistent order (lower uid first) to avoid deadlocks
        for uid in sorted((from_uid, to_uid)):
            self._lock_entry(db, uid, item_id)

        self.consume(db, from_uid, item_id, quantity)
        entry = self.increment(db, to_uid, item_id, quantity)
        logger.info(f"Transferred item {item_id} x{quantity} from user {from_uid} to {to_uid}")
        return entry
