"""Database engine factory: SQLite (per-identity file) or any async SQLAlchemy URL.

Provides async SQLAlchemy engine creation with support for:
- SQLite (aiosqlite driver), the default one-file-per-fingerprint layout
- Server databases via URL, with configurable pool sizes
- Echo/debug settings
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

if TYPE_CHECKING:
    from ecash_wallet.config.settings import StoreConfig


def create_engine(dsn: str, config: StoreConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine for one wallet store.

    Args:
        dsn: Async database URL of the store.
        config: Store configuration with pool and echo settings.

    Returns:
        A configured ``AsyncEngine`` ready for use.
    """
    kwargs: dict = {
        "echo": config.debug_sql,
    }

    # SQLite doesn't support pool settings in the same way
    if "sqlite" not in dsn:
        kwargs["pool_size"] = config.max_idle_connections
        kwargs["max_overflow"] = config.max_open_connections - config.max_idle_connections
        kwargs["pool_pre_ping"] = True

    return create_async_engine(dsn, **kwargs)
