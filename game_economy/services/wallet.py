"""
Wallet Ledger Service: every coin/diamond balance change goes through here.

Concurrency Strategy
────────────────────
We use **pessimistic row-level locking** (`SELECT ... FOR UPDATE`) on the
wallet row before every read-modify-write. Two purchases debiting the same
wallet serialise at the database: the second blocks until the first commits
or rolls back. The `CHECK (balance >= 0)` constraint stays as a last line of
defence.

Ledger
──────
Each mutation appends exactly one `CurrencyFlow` row carrying the same signed
amount, so the sum of a user's flows always reconciles with the balance delta.
Positive credits that come from grants (level-ups, reward packages) are also
written to `reward_flows`.

Transactions
────────────
Nothing here commits. Every method runs inside the caller's session; the unit
of work (router or `database.unit_of_work`) decides commit vs. rollback.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from game_economy.cache import WALLETS_FIELD, UserViewCache, user_key
from game_economy.config import settings
from game_economy.exceptions import (
    InsufficientFundsError,
    InvalidQuantityError,
    NegativeBalanceError,
    UnsupportedCurrencyError,
    WalletAlreadyInitializedError,
    WalletNotFoundError,
)
from game_economy.models import CurrencyFlow, CurrencyKind, RewardFlow, Wallet
from game_economy.services.users import get_active_user

logger = logging.getLogger(__name__)


def _validate_kind(kind: str) -> str:
    if kind not in CurrencyKind.ALL:
        raise UnsupportedCurrencyError(kind)
    return kind


class WalletService:
    def __init__(self, cache: UserViewCache):
        self.cache = cache

    # ──────────────────────────────────────────────────────────────────────
    # Initialization
    # ──────────────────────────────────────────────────────────────────────

    def initialize_wallet(self, db: Session, uid: int) -> List[Wallet]:
        """Create the coin and diamond wallets for a freshly created user."""
        existing = db.execute(
            select(func.count(Wallet.id)).where(Wallet.user_id == uid)
        ).scalar()
        if existing:
            raise WalletAlreadyInitializedError(uid)

        wallets = [
            Wallet(user_id=uid, kind=CurrencyKind.COIN, balance=settings.INITIAL_COIN_BALANCE, version=0),
            Wallet(user_id=uid, kind=CurrencyKind.DIAMOND, balance=settings.INITIAL_DIAMOND_BALANCE, version=0),
        ]
        db.add_all(wallets)
        db.flush()
        return wallets

    # ──────────────────────────────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────────────────────────────

    def get_wallet(self, db: Session, uid: int, kind: str) -> Wallet:
        _validate_kind(kind)
        wallet = db.execute(
            select(Wallet).where(Wallet.user_id == uid, Wallet.kind == kind)
        ).scalar_one_or_none()
        if wallet is None:
            raise WalletNotFoundError(uid, kind)
        return wallet

    def get_balance(self, db: Session, uid: int, kind: str) -> int:
        return self.get_wallet(db, uid, kind).balance

    def get_user_wallets(self, db: Session, uid: int) -> List[dict]:
        """Both wallets as plain dicts; served from the cache when possible."""
        key = user_key(uid)
        cached = self.cache.get_field(key, WALLETS_FIELD)
        if cached:
            return cached

        get_active_user(db, uid)
        wallets = db.execute(
            select(Wallet).where(Wallet.user_id == uid).order_by(Wallet.kind)
        ).scalars().all()
        view = [
            {"user_id": w.user_id, "kind": w.kind, "balance": w.balance}
            for w in wallets
        ]
        if view:
            self.cache.set_field(key, WALLETS_FIELD, view)
        return view

    def list_currency_flows(
        self,
        db: Session,
        uid: int,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[list, int]:
        """Return paginated ledger history for a user, newest first."""
        get_active_user(db, uid)
        total = db.execute(
            select(func.count(CurrencyFlow.id)).where(CurrencyFlow.user_id == uid)
        ).scalar()
        flows = db.execute(
            select(CurrencyFlow)
            .where(CurrencyFlow.user_id == uid)
            .order_by(CurrencyFlow.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()
        return flows, total

    # ──────────────────────────────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────────────────────────────

    def lock_wallet(self, db: Session, uid: int, kind: str) -> Wallet:
        """
        Acquire a pessimistic row-level lock on the wallet row.

        `SELECT ... FOR UPDATE` blocks any other transaction that tries to lock
        the same row until this one commits or rolls back.
        """
        _validate_kind(kind)
        wallet = db.execute(
            select(Wallet)
            .where(Wallet.user_id == uid, Wallet.kind == kind)
            .with_for_update()
        ).scalar_one_or_none()
        if wallet is None:
            raise WalletNotFoundError(uid, kind)
        return wallet

    def apply_delta(
        self,
        db: Session,
        uid: int,
        kind: str,
        amount: int,
        description: str,
        store_id: int = 0,
    ) -> Wallet:
        """
        Add a signed amount to a wallet and record the ledger entry.

        Funds are the caller's responsibility: the purchase path checks the
        balance before it gets here. Going below zero anyway is an integrity
        violation, not a user error.
        """
        wallet = self.lock_wallet(db, uid, kind)

        new_balance = wallet.balance + amount
        if new_balance < 0:
            raise NegativeBalanceError(uid, kind, new_balance)

        wallet.balance = new_balance
        wallet.version += 1
        wallet.updated_at = datetime.now(timezone.utc)

        db.add(CurrencyFlow(
            user_id=uid,
            kind=kind,
            amount=amount,
            balance_after=new_balance,
            store_id=store_id,
            description=description,
        ))
        if amount > 0:
            db.add(RewardFlow(
                user_id=uid,
                item_type=kind,
                item_id=0 if kind == CurrencyKind.DIAMOND else 1,
                quantity=amount,
                source=description,
            ))
        db.flush()

        self.cache.invalidate(db, user_key(uid), WALLETS_FIELD)
        logger.info(f"Wallet {kind} of user {uid} {amount:+d} -> {new_balance} ({description})")
        return wallet

    def credit(self, db: Session, uid: int, kind: str, amount: int, description: str) -> Wallet:
        if amount <= 0:
            raise InvalidQuantityError(amount)
        return self.apply_delta(db, uid, kind, amount, description)

    def debit(
        self,
        db: Session,
        uid: int,
        kind: str,
        amount: int,
        description: str,
        store_id: int = 0,
    ) -> Wallet:
        if amount <= 0:
            raise InvalidQuantityError(amount)
        return self.apply_delta(db, uid, kind, -amount, description, store_id=store_id)

    def update_wallet_balance(
        self,
        db: Session,
        uid: int,
        kind: str,
        amount: int,
        description: Optional[str] = None,
    ) -> Wallet:
        """
        Externally exposed adjustment (admin top-up / deduction).
        Unlike apply_delta it refuses an overdraft with InsufficientFundsError.
        """
        get_active_user(db, uid)
        wallet = self.lock_wallet(db, uid, kind)
        # Check balance AFTER acquiring lock to close the TOCTOU window
        if amount < 0 and wallet.balance < -amount:
            raise InsufficientFundsError(wallet.balance, -amount, kind)
        return self.apply_delta(
            db, uid, kind, amount,
            description or f"Wallet balance adjustment {amount:+d} {kind}",
        )
