"""
Database engine, session factory and transaction helpers.

The engine is built lazily from the configured database URL so tests can
swap in their own engine before anything touches storage.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


_engine: Optional[Engine] = None
SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False)


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        connect_args = {}
        if settings.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(settings.database_url, echo=settings.database_echo, connect_args=connect_args)
        SessionLocal.configure(bind=_engine)
        logger.info("Database engine created", extra={"dialect": _engine.dialect.name})
    return _engine


def init_db(engine: Optional[Engine] = None) -> None:
    """Create tables that do not exist yet. Existing tables are left untouched."""
    # Model import registers the tables on Base.metadata
    import models  # noqa: F401

    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Database models synchronized")


def get_session() -> Iterator[Session]:
    """FastAPI dependency yielding a session that is closed after the request."""
    get_engine()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def transaction_scope(session: Session) -> Iterator[Session]:
    """
    Commit everything done inside the block, or roll all of it back.

    Any exception raised inside the block triggers a rollback and is re-raised.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("Transaction rolled back")
        raise
