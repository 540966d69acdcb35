"""
Store / Purchase Engine.

Flow: buy_goods
────────────────
  1. Load the active user.
  2. Load the item FOR UPDATE, require it to be on sale.
  3. Require enough stock.
  4. Lock the wallet of the item's currency.
  5. Price the order and apply the level discount (full price on lookup failure).
  6. Require enough funds for the discounted price.
  7. Debit the wallet: one currency-flow row, tagged with the store id.
  8. Decrement stock, bump the user's total_spent.
  9. Credit the backpack (invalidates the cached snapshot).
 10. Grant experience; coin buys earn half the list price, diamond buys all of it.
 11. The caller's unit of work commits.

Every check happens before the first write, and every write shares the
caller's session: any failure leaves the database untouched once the unit of
work rolls back.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from game_economy.exceptions import (
    InsufficientFundsError,
    InsufficientStockError,
    InvalidQuantityError,
    ItemInactiveError,
    ItemNotFoundError,
    LevelConfigNotFoundError,
    UserNotFoundError,
)
from game_economy.models import CurrencyKind, StoreItem
from game_economy.services.inventory import InventoryService
from game_economy.services.leveling import LevelService
from game_economy.services.pagination import clamp_page
from game_economy.services.users import get_active_user
from game_economy.services.wallet import WalletService

logger = logging.getLogger(__name__)


def experience_for(cost_type: str, list_price: int) -> int:
    if cost_type == CurrencyKind.DIAMOND:
        return list_price
    return list_price // 2


class StoreService:
    def __init__(
        self,
        wallet_service: WalletService,
        inventory_service: InventoryService,
        level_service: LevelService,
    ):
        self.wallet_service = wallet_service
        self.inventory_service = inventory_service
        self.level_service = level_service

    # ──────────────────────────────────────────────────────────────────────
    # Catalogue reads
    # ──────────────────────────────────────────────────────────────────────

    def get_item(self, db: Session, item_id: int) -> StoreItem:
        item = db.get(StoreItem, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def list_items(
        self,
        db: Session,
        tag: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[StoreItem], int]:
        page, page_size = clamp_page(page, page_size)
        query = select(StoreItem)
        count_query = select(func.count(StoreItem.id))
        if tag:
            query = query.where(StoreItem.tag == tag)
            count_query = count_query.where(StoreItem.tag == tag)

        total = db.execute(count_query).scalar()
        items = db.execute(
            query.order_by(StoreItem.id).offset((page - 1) * page_size).limit(page_size)
        ).scalars().all()
        return items, total

    # ──────────────────────────────────────────────────────────────────────
    # Purchase
    # ──────────────────────────────────────────────────────────────────────

    def _price_for(self, db: Session, uid: int, original_price: int) -> int:
        try:
            return self.level_service.get_discounted_price(db, uid, original_price)
        except (UserNotFoundError, LevelConfigNotFoundError) as e:
            logger.warning(f"Discount lookup failed for user {uid}, charging full price: {e}")
            return original_price

    def buy_goods(self, db: Session, uid: int, item_id: int, count: int) -> dict:
        if count <= 0:
            raise InvalidQuantityError(count)

        # 1. User
        user = get_active_user(db, uid)

        # 2. Item, locked so concurrent buyers serialise on stock
        item = db.execute(
            select(StoreItem).where(StoreItem.id == item_id).with_for_update()
        ).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(item_id)
        if not item.is_active:
            raise ItemInactiveError(item_id)

        # 3. Stock
        if item.stock < count:
            raise InsufficientStockError(item_id, item.stock, count)

        # 4. Wallet lock
        wallet = self.wallet_service.lock_wallet(db, uid, item.cost_type)

        # 5. Price
        original_price = item.price * count
        charged_price = self._price_for(db, uid, original_price)

        # 6. Funds, checked AFTER acquiring the lock
        if wallet.balance < charged_price:
            raise InsufficientFundsError(wallet.balance, charged_price, item.cost_type)

        # 7. Debit + ledger row
        description = f"Purchase {item.name} x{count} for {charged_price} {item.cost_type}"
        if charged_price > 0:
            wallet = self.wallet_service.debit(
                db, uid, item.cost_type, charged_price, description, store_id=item.id
            )

        # 8. Stock and spend counter
        item.stock -= count
        user.total_spent += charged_price

        # 9. Backpack
        self.inventory_service.increment(db, uid, item.id, count)

        # 10. Experience, scaled on the list price
        history = self.level_service.add_experience(
            db, uid, experience_for(item.cost_type, original_price), description
        )
        db.flush()

        logger.info(
            f"User {uid} bought item {item.id} x{count}: "
            f"list {original_price}, charged {charged_price} {item.cost_type}"
        )

        return {
            "user_id": uid,
            "item_id": item.id,
            "item_name": item.name,
            "count": count,
            "cost_type": item.cost_type,
            "original_price": original_price,
            "charged_price": charged_price,
            "balance_after": wallet.balance,
            "stock_after": item.stock,
            "experience_gained": history.exp_gained,
            "old_level": history.old_level,
            "new_level": history.new_level,
            "message": f"Successfully bought {count} x {item.name}.",
        }
