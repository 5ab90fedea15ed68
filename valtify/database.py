import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from valtify.errors import Unavailable

logger = logging.getLogger(__name__)


def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, timeout: int = 5) -> Engine:
    """Create the engine; ``timeout`` bounds how long a call waits on the store."""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )
        event.listen(engine, "connect", enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_timeout=timeout,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@contextmanager
def store_errors(session: Session) -> Generator[None, None, None]:
    """
    Translate store outages into Unavailable.

    Rolls the session back so a failed write never leaves a half-applied record.
    """
    try:
        yield
    except (OperationalError, PoolTimeoutError) as exc:
        session.rollback()
        logger.error("Persistent store unavailable: %s", type(exc).__name__)
        raise Unavailable() from exc
    except DBAPIError as exc:
        session.rollback()
        if exc.connection_invalidated:
            logger.error("Persistent store connection lost")
            raise Unavailable() from exc
        raise
