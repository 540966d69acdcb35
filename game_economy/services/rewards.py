"""
Reward Package Engine: package management and all-or-nothing grants.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from game_economy.exceptions import (
    EmptyPackageError,
    InvalidQuantityError,
    PackageNotFoundError,
    RewardRecordNotFoundError,
    UnsupportedRewardKindError,
)
from game_economy.models import (
    CurrencyKind,
    RewardFlow,
    RewardItemType,
    RewardPackage,
    RewardPackageItem,
    RewardRecord,
)
from game_economy.services.inventory import InventoryService
from game_economy.services.pagination import clamp_page
from game_economy.services.users import get_active_user
from game_economy.services.wallet import WalletService

logger = logging.getLogger(__name__)

# Currency package items point at a wallet through their item_id.
CURRENCY_BY_ITEM_ID = {
    0: CurrencyKind.DIAMOND,
    1: CurrencyKind.COIN,
}


class RewardPackageService:
    def __init__(self, wallet_service: WalletService, inventory_service: InventoryService):
        self.wallet_service = wallet_service
        self.inventory_service = inventory_service

    # ──────────────────────────────────────────────────────────────────────
    # Package management
    # ──────────────────────────────────────────────────────────────────────

    def _build_items(self, package_id: int, items: Iterable[dict]) -> List[RewardPackageItem]:
        built = []
        for item in items:
            if item["quantity"] <= 0:
                raise InvalidQuantityError(item["quantity"])
            built.append(RewardPackageItem(
                package_id=package_id,
                item_type=item["item_type"],
                item_id=item["item_id"],
                quantity=item["quantity"],
            ))
        return built

    def create_package(
        self,
        db: Session,
        name: str,
        items: Iterable[dict],
        description: Optional[str] = None,
    ) -> RewardPackage:
        package = RewardPackage(name=name, description=description)
        db.add(package)
        db.flush()
        db.add_all(self._build_items(package.id, items))
        db.flush()
        db.refresh(package)
        return package

    def get_package(self, db: Session, package_id: int) -> RewardPackage:
        package = db.get(RewardPackage, package_id)
        if package is None:
            raise PackageNotFoundError(package_id)
        return package

    def get_package_items(self, db: Session, package_id: int) -> List[RewardPackageItem]:
        return db.execute(
            select(RewardPackageItem)
            .where(RewardPackageItem.package_id == package_id)
            .order_by(RewardPackageItem.id)
        ).scalars().all()

    def update_package(
        self,
        db: Session,
        package_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> RewardPackage:
        package = self.get_package(db, package_id)
        if name is not None:
            package.name = name
        if description is not None:
            package.description = description
        db.flush()
        return package

    def replace_package_items(self, db: Session, package_id: int, items: Iterable[dict]) -> RewardPackage:
        package = self.get_package(db, package_id)
        db.execute(delete(RewardPackageItem).where(RewardPackageItem.package_id == package_id))
        db.add_all(self._build_items(package_id, items))
        db.flush()
        db.refresh(package)
        return package

    def list_packages(self, db: Session, page: int = 1, page_size: int = 10) -> Tuple[list, int]:
        page, page_size = clamp_page(page, page_size)
        total = db.execute(select(func.count(RewardPackage.id))).scalar()
        packages = db.execute(
            select(RewardPackage)
            .order_by(RewardPackage.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).scalars().all()
        return packages, total

    def delete_package(self, db: Session, package_id: int) -> None:
        package = self.get_package(db, package_id)
        db.delete(package)
        db.flush()

    # ──────────────────────────────────────────────────────────────────────
    # Records and flows
    # ──────────────────────────────────────────────────────────────────────

    def get_reward_record(self, db: Session, record_id: int) -> RewardRecord:
        record = db.get(RewardRecord, record_id)
        if record is None:
            raise RewardRecordNotFoundError(record_id)
        return record

    def list_reward_records(self, db: Session, uid: int, page: int = 1, page_size: int = 10) -> Tuple[list, int]:
        page, page_size = clamp_page(page, page_size)
        total = db.execute(
            select(func.count(RewardRecord.id)).where(RewardRecord.user_id == uid)
        ).scalar()
        records = db.execute(
            select(RewardRecord)
            .where(RewardRecord.user_id == uid)
            .order_by(RewardRecord.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).scalars().all()
        return records, total

    def list_reward_flows(self, db: Session, uid: int, page: int = 1, page_size: int = 10) -> Tuple[list, int]:
        page, page_size = clamp_page(page, page_size)
        total = db.execute(
            select(func.count(RewardFlow.id)).where(RewardFlow.user_id == uid)
        ).scalar()
        flows = db.execute(
            select(RewardFlow)
            .where(RewardFlow.user_id == uid)
            .order_by(RewardFlow.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).scalars().all()
        return flows, total

    # ──────────────────────────────────────────────────────────────────────
    # Grant
    # ──────────────────────────────────────────────────────────────────────

    def _apply_item(self, db: Session, uid: int, item: RewardPackageItem) -> None:
        note = f"Reward package {item.package_id}"
        if item.item_type == RewardItemType.GOODS:
            self.inventory_service.add(db, uid, item.item_id, item.quantity, source=note)
        elif item.item_type == RewardItemType.CURRENCY:
            kind = CURRENCY_BY_ITEM_ID.get(item.item_id)
            if kind is None:
                raise UnsupportedRewardKindError(item.item_type, item.item_id)
            self.wallet_service.credit(db, uid, kind, item.quantity, note)
        else:
            raise UnsupportedRewardKindError(item.item_type, item.item_id)

    def grant_reward(self, db: Session, uid: int, package_id: int, source: str) -> RewardRecord:
        """
        Apply every item of a package to a user.

        Items are applied in id order inside the caller's transaction; the
        first failing item raises and the unit of work discards the record
        together with any item already applied.
        """
        self.get_package(db, package_id)
        items = self.get_package_items(db, package_id)
        if not items:
            raise EmptyPackageError(package_id)
        get_active_user(db, uid)

        record = RewardRecord(user_id=uid, package_id=package_id, source=source)
        db.add(record)
        db.flush()

        for item in items:
            self._apply_item(db, uid, item)

        logger.info(f"Granted package {package_id} to user {uid} from {source} ({len(items)} items)")
        return record
