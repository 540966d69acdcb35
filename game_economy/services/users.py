"""
User lookups shared by every economy service, and user creation.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from game_economy.config import settings
from game_economy.exceptions import DuplicateUserError, UserNotFoundError
from game_economy.models import User

logger = logging.getLogger(__name__)


def get_active_user(db: Session, uid: int, lock: bool = False) -> User:
    """Fetch a non-deleted user by public uid, optionally under FOR UPDATE."""
    query = select(User).where(User.uid == uid, User.is_deleted == False)  # noqa: E712
    if lock:
        query = query.with_for_update()
    user = db.execute(query).scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(uid)
    return user


def next_uid(db: Session) -> int:
    """Public uids are handed out sequentially from FIRST_USER_UID."""
    current = db.execute(select(func.max(User.uid))).scalar()
    if current is None or current < settings.FIRST_USER_UID:
        return settings.FIRST_USER_UID
    return current + 1


def create_user(db: Session, username: str, email: str, wallet_service) -> User:
    """
    Register a user and seed both wallets in the caller's transaction.
    A failure in either step leaves nothing behind once the caller rolls back.
    """
    if db.execute(select(User.id).where(User.username == username)).first():
        raise DuplicateUserError("username", username)
    if db.execute(select(User.id).where(User.email == email)).first():
        raise DuplicateUserError("email", email)

    user = User(
        uid=next_uid(db),
        username=username,
        email=email,
        level=1,
        experience=0,
        total_spent=0,
        is_deleted=False,
    )
    db.add(user)
    db.flush()

    wallet_service.initialize_wallet(db, user.uid)
    logger.info(f"Created user uid={user.uid} username={username}")
    return user
