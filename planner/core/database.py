"""Database configuration and session management.

The engine is built from ``settings.database_url``. SQLite is the default
backend; any SQLAlchemy URL works for the ORM code.

SQLite Configuration Choices:
    - **Foreign Keys**: SQLite ships with foreign key enforcement disabled.
      We turn it on per connection so that deleting a Plan cascades to its
      Participants and Items, and deleting a Participant clears item
      assignments (ON DELETE SET NULL).

    - **WAL (Write-Ahead Logging)**: Lets readers proceed while a request
      writes. Only applied to file databases; in-memory databases do not
      support it.

    - **check_same_thread=False**: FastAPI runs sync dependencies in a
      threadpool, so a connection may be used by a different thread than
      the one that opened it.

Storage errors are classified here, at the storage boundary, into a closed
``StorageErrorKind`` so that callers never inspect error message text.
"""

import enum

from sqlalchemy import event as sa_event
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from planner.core.config import settings


class StorageErrorKind(enum.Enum):
    """Whether a storage failure is worth retrying."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


_TRANSIENT_ERRORS = (
    sa_exc.OperationalError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
)


def classify_storage_error(error: Exception) -> StorageErrorKind:
    """Map a SQLAlchemy exception onto TRANSIENT or PERMANENT."""
    if isinstance(error, _TRANSIENT_ERRORS):
        return StorageErrorKind.TRANSIENT
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return StorageErrorKind.TRANSIENT
    return StorageErrorKind.PERMANENT


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def configure_sqlite(engine: Engine, wal: bool = False) -> None:
    """Register per-connection SQLite pragmas on ``engine``.

    These settings are connection-level, not database-level, so they must
    be set each time a new connection is established from the pool.
    """

    @sa_event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


connect_args = {"check_same_thread": False} if _is_sqlite(settings.database_url) else {}

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)

if _is_sqlite(settings.database_url):
    configure_sqlite(engine, wal=":memory:" not in settings.database_url and settings.database_url != "sqlite://")


def create_db_and_tables():
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
