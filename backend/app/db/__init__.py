import logging

from backend.app.db.session import engine
from backend.app.db.base import Base

logger = logging.getLogger(__name__)


async def init_models(drop_existing: bool = False) -> None:
    """Create every table registered on Base.metadata."""
    # Register all mapped classes on the metadata before create_all
    from backend.app import models  # noqa: F401

    try:
        async with engine.begin() as conn:
            if drop_existing:
                logger.warning("Dropping all tables before re-creating them")
                await conn.run_sync(Base.metadata.drop_all)

            logger.info("Creating database tables...")
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables are ready.")
    except Exception:
        logger.exception("Failed to create database tables")
        raise
