import asyncio
import logging

from backend.app.core.logging import setup_logging
from backend.app.db import init_models

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    setup_logging()
    # Drops and re-creates every table. Local development only.
    asyncio.run(init_models(drop_existing=True))
    logger.info(">>> Tables Created Successfully!")
