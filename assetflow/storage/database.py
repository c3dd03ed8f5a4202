"""Database engine creation and schema management."""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base

# Base class for all models
Base = declarative_base()


def create_engine(async_database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine used by DataClient."""
    connect_args = {}
    if async_database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_async_engine(
        async_database_url,
        echo=echo,
        future=True,
        connect_args=connect_args,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables known to Base.metadata."""
    # Import models to ensure they're registered with Base.metadata
    from assetflow.storage import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

