"""Schema creation for the wallet store.

The store has two tables (``proofs`` and ``counters``) created from the ORM
models; there is no versioned migration history yet.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ecash_wallet.engine.models.base import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


async def run_auto_migrate(engine: AsyncEngine) -> None:
    """Create all tables defined by the ORM models if missing.

    Args:
        engine: The async SQLAlchemy engine to migrate.
    """
    # Import all models to register them with Base.metadata
    import ecash_wallet.engine.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_all_tables(engine: AsyncEngine) -> None:
    """Drop all tables (test utility only; destroys counter history).

    Args:
        engine: The async SQLAlchemy engine.
    """
    import ecash_wallet.engine.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
