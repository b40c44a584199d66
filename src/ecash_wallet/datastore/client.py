"""Datastore client: async SQLAlchemy engine & session management.

Central datastore abstraction providing:
- Engine lifecycle (create, dispose)
- Async session factory
- Table creation
- Creation of the per-identity state directory for file-backed SQLite
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ecash_wallet.datastore.engines import create_engine

if TYPE_CHECKING:
    from sqlalchemy.orm import DeclarativeBase

    from ecash_wallet.config.settings import StoreConfig


class Datastore:
    """Async datastore wrapping a SQLAlchemy engine and session factory.

    One ``Datastore`` serves exactly one identity store and is owned by the
    running process for its lifetime.

    Usage::

        ds = Datastore(config.store.dsn_for(fingerprint), config.store)
        await ds.open(base=Base)
        async with ds.session() as session:
            ...
        await ds.close()
    """

    def __init__(self, dsn: str, config: StoreConfig) -> None:
        self._dsn = dsn
        self._config = config
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def dsn(self) -> str:
        """Return the database URL of this store."""
        return self._dsn

    @property
    def engine(self) -> AsyncEngine:
        """Return the underlying async engine.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._engine is None:
            msg = "Datastore is not open. Call open() first."
            raise RuntimeError(msg)
        return self._engine

    def sqlite_path(self) -> Path | None:
        """Return the database file for file-backed SQLite, else None."""
        url = make_url(self._dsn)
        if not url.drivername.startswith("sqlite"):
            return None
        if not url.database or url.database == ":memory:":
            return None
        return Path(url.database)

    async def open(self, *, base: type[DeclarativeBase] | None = None) -> None:
        """Open the datastore: create engine and optionally create tables.

        Args:
            base: If provided, create all tables defined by this declarative base.
        """
        path = self.sqlite_path()
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)

        self._engine = create_engine(self._dsn, self._config)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        if base is not None:
            async with self._engine.begin() as conn:
                await conn.run_sync(base.metadata.create_all)

    async def close(self) -> None:
        """Dispose the engine and release all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def session(self) -> AsyncSession:
        """Create a new async session from the session factory.

        Returns:
            An ``AsyncSession`` instance. Use as an async context manager.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._session_factory is None:
            msg = "Datastore is not open. Call open() first."
            raise RuntimeError(msg)
        return self._session_factory()

    @property
    def is_open(self) -> bool:
        """Check if the datastore is open."""
        return self._engine is not None
