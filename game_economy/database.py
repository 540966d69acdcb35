"""
Database connection, session management and the unit-of-work boundary.
"""
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from game_economy.config import settings
from game_economy.exceptions import EconomyError, PersistenceError

# Build engine kwargs: SQLite needs check_same_thread=False
_connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    _connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args,
    pool_pre_ping=True,    # verify connection health before checkout
    echo=settings.DB_ECHO,
    # pool_size / max_overflow only valid for non-SQLite engines
    **({} if settings.DATABASE_URL.startswith("sqlite") else {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_recycle": 1800,
    })
)

# Enable WAL mode on SQLite for better concurrent read performance
if settings.DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def get_db() -> Iterator[Session]:
    """FastAPI dependency: yields a database session and ensures cleanup."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(session_factory: Optional[Callable[[], Session]] = None) -> Iterator[Session]:
    """
    Transaction boundary for callers outside FastAPI.

    Services only flush; this commits when the block finishes and rolls back
    everything on the first error, which is re-raised unchanged. Raw
    SQLAlchemy failures surface as PersistenceError.
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except EconomyError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(str(exc)) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
