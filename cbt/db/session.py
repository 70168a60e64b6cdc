# cbt/db/session.py
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import sessionmaker
from cbt.core.config import settings
from cbt.core.exceptions import StoreUnavailable


def build_engine(uri: str):
    """Creates an engine; SQLite connections are shared across request threads."""
    connect_args = {}
    if uri.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(uri, connect_args=connect_args, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URI)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def translate_store_errors(db, logger=None):
    """
    Rolls back and re-raises connectivity failures as StoreUnavailable.
    """
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        db.rollback()
        if logger is not None:
            logger.error(f"Database unavailable: {e}")
        raise StoreUnavailable() from e
