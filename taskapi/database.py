"""Database configuration and session management."""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager
import logging
import threading
import weakref

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from taskapi.config import get_settings
from taskapi.errors import StorageError

logger = logging.getLogger("taskapi.database")

settings = get_settings()

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if "sqlite" in settings.database_url else {},
    pool_pre_ping=True,
    echo=settings.debug,
)


def enable_sqlite_transactions(bind: Engine) -> None:
    """Make SQLAlchemy emit BEGIN itself on pysqlite connections.

    The driver defers BEGIN until the first DML statement, so a SAVEPOINT can
    open the transaction and its RELEASE then commits on its own. With the
    driver out of transaction handling, savepoints nest inside one transaction.
    """

    @event.listens_for(bind, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(bind, "begin")
    def _emit_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN")


if engine.dialect.name == "sqlite":
    enable_sqlite_transactions(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

_schema_lock = threading.Lock()
_schema_ready: "weakref.WeakSet[Engine]" = weakref.WeakSet()


def ensure_schema(bind: Engine | None = None) -> None:
    """Create tables and constraints if they do not exist yet.

    Safe to call repeatedly: the work runs once per engine.
    """
    bind = bind or engine
    if bind in _schema_ready:
        return
    with _schema_lock:
        if bind in _schema_ready:
            return
        # Import models so they are registered on Base.metadata
        import taskapi.models  # noqa: F401

        logger.info("Ensuring database schema on %s", bind.url.render_as_string(hide_password=True))
        try:
            Base.metadata.create_all(bind=bind)
        except SQLAlchemyError as exc:
            logger.error("Error initializing database: %s", exc, exc_info=True)
            raise StorageError("Error initializing database", error=str(exc)) from exc
        tables = inspect(bind).get_table_names()
        logger.info("Available tables after init: %s", tables)
        _schema_ready.add(bind)


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting a pooled database session.

    The session goes back to the pool on every exit path.
    """
    ensure_schema()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def storage_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and convert driver failures into `StorageError`.

    Args:
        db: Session the failing statement ran on.
        action: Short description used in the message, e.g. "fetching users".
    """
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Storage failure while %s: %s", action, exc, exc_info=True)
        raise StorageError(f"Error {action}", error=str(exc)) from exc


def check_connection(bind: Engine | None = None) -> None:
    """Run a trivial query, raising `StorageError` when the database is unreachable."""
    bind = bind or engine
    try:
        with bind.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        raise StorageError("Database unavailable", error=str(exc)) from exc
