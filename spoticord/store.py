"""Credential store: connection setup, migrations and repository access."""

from __future__ import annotations

from pathlib import Path

import structlog
from alembic import command
from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.engine import Engine

from spoticord.config import Settings
from spoticord.database import create_engine, create_session_factory
from spoticord.errors import MigrationFailure, StoreConnectionError
from spoticord.repositories import (
    AccountRepository,
    LinkRequestRepository,
    UserRepository,
)
from spoticord.retry import BlockingExecutor
from spoticord.spotify_oauth import SpotifyOAuth

logger = structlog.get_logger()

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def run_migrations(engine: Engine) -> None:
    """Upgrade the schema to the latest Alembic revision."""
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    with engine.begin() as connection:
        alembic_cfg.attributes["connection"] = connection
        command.upgrade(alembic_cfg, "head")


def _ping(engine: Engine) -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


class Store:
    """Entry point for the command and linking layers.

    Build one with :meth:`connect`; it owns the engine, the worker pool and
    its settings until :meth:`close` is awaited.
    """

    def __init__(
        self,
        engine: Engine,
        executor: BlockingExecutor,
        settings: Settings,
        oauth: SpotifyOAuth,
    ) -> None:
        self.engine = engine
        self.executor = executor
        self.settings = settings

        session_factory = create_session_factory(engine)
        self.users = UserRepository(session_factory, executor)
        self.accounts = AccountRepository(
            session_factory,
            executor,
            oauth,
            refresh_margin=settings.token_refresh_margin,
        )
        self.link_requests = LinkRequestRepository(
            session_factory,
            executor,
            ttl=settings.link_request_ttl,
            token_length=settings.link_token_length,
        )

    @classmethod
    async def connect(
        cls, settings: Settings, oauth: SpotifyOAuth | None = None
    ) -> Store:
        """Connect to the database and bring the schema up to date.

        Raises:
            StoreConnectionError: The database cannot be reached.
            MigrationFailure: The schema could not be migrated.
        """
        executor = BlockingExecutor(
            max_workers=settings.db_pool_size,
            transient_signature=settings.transient_error_signature,
        )
        try:
            engine = create_engine(settings)
        except Exception as e:
            executor.shutdown()
            raise StoreConnectionError(f"Invalid database URL: {e}") from e

        try:
            await executor.run(lambda: _ping(engine))
        except Exception as e:
            logger.error("database_connect_failed", error=str(e))
            executor.shutdown()
            engine.dispose()
            raise StoreConnectionError(f"Could not connect to the database: {e}") from e

        try:
            await executor.run(lambda: run_migrations(engine))
        except Exception as e:
            logger.error("database_migration_failed", error=str(e))
            executor.shutdown()
            engine.dispose()
            raise MigrationFailure(f"Could not run migrations: {e}") from e

        if oauth is None:
            oauth = SpotifyOAuth(settings.spotify_client_id, settings.spotify_client_secret)

        logger.info(
            "store_connected",
            backend=engine.url.get_backend_name(),
            pool_size=settings.db_pool_size,
        )
        return cls(engine, executor, settings, oauth)

    @classmethod
    async def connect_with_url(
        cls,
        database_url: str,
        settings: Settings | None = None,
        oauth: SpotifyOAuth | None = None,
    ) -> Store:
        """Same as :meth:`connect`, overriding the configured database URL."""
        settings = settings or Settings()
        return await cls.connect(
            settings.model_copy(update={"database_url": database_url}), oauth=oauth
        )

    async def close(self) -> None:
        self.executor.shutdown()
        self.engine.dispose()

    async def __aenter__(self) -> Store:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
