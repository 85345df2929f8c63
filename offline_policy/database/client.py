"""Database client used by application startup, shutdown and the database connectivity probe."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from offline_policy.database.base import Base, engine
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DatabaseClient:
    """Wraps the async engine behind the policy database."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._connected = False

    async def prepare(self, create_tables: bool = True) -> None:
        """Check the database answers and create missing policy tables.

        Args:
            create_tables: Run ``create_all`` for the policy models

        Raises:
            Exception: Whatever the driver raises when the database is unreachable
        """
        # Register models on Base.metadata
        from offline_policy.database import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if create_tables:
                await conn.run_sync(Base.metadata.create_all)

        self._connected = True
        LOGGER.info("Policy database ready", extra={"create_tables": create_tables})

    async def dispose(self) -> None:
        await self.engine.dispose()
        self._connected = False
        LOGGER.info("Database connection closed")

    async def health_check(self) -> dict:
        """Run ``SELECT 1`` against the policy database.

        Returns:
            dict: ``{"status": "healthy"}`` or ``{"status": "unhealthy", "error": ...}``
        """
        try:
            async with self.engine.connect() as conn:
                await conn.scalar(text("SELECT 1"))
        except Exception as e:
            self._connected = False
            LOGGER.warning("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "error": str(e)}

        self._connected = True
        return {"status": "healthy"}

    @property
    def is_connected(self) -> bool:
        """Result of the last prepare or health check."""
        return self._connected


db_client = DatabaseClient(engine)


async def init_database(auto_migrate: bool = True) -> None:
    """Prepare the policy database at startup.

    Args:
        auto_migrate: Whether to create missing tables
    """
    LOGGER.info("Initializing database connection...")
    await db_client.prepare(create_tables=auto_migrate)


async def close_database() -> None:
    LOGGER.info("Closing database connection...")
    await db_client.dispose()
