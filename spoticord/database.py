"""SQLAlchemy engine and session factory."""

from __future__ import annotations

from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from spoticord.config import Settings


def create_engine(settings: Settings) -> Engine:
    """Create the pooled engine used by every repository.

    The pool never grows past ``db_pool_size`` connections and waits
    ``db_pool_timeout`` seconds for one before giving up.
    """
    url = make_url(settings.database_url)
    connect_args: dict = {}
    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
    elif url.get_driver_name() == "psycopg":
        # Never reuse server-side prepared statements across operations
        connect_args["prepare_threshold"] = None

    engine = sa_create_engine(
        url,
        echo=False,
        pool_size=settings.db_pool_size,
        max_overflow=0,
        pool_timeout=settings.db_pool_timeout,
        pool_pre_ping=True,
        connect_args=connect_args,
    )

    # Enable SQLite foreign keys (needed for ON DELETE CASCADE)
    if url.get_backend_name() == "sqlite":

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory whose objects stay readable after commit."""
    return sessionmaker(engine, expire_on_commit=False)
