# backend/skillswap/init_db.py
"""
Create the SkillSwap tables on the configured database.

Usage:
    python -m skillswap.init_db
"""

import logging

from .core.config import settings
from .core.logging import setup_logging
from .database import Base, get_engine
from . import models  # noqa: F401  (registers tables on Base.metadata)

logger = logging.getLogger(__name__)


def init_db() -> None:
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Created tables: %s", ", ".join(sorted(Base.metadata.tables)))


def main() -> None:
    setup_logging()
    logger.info("Initializing database for environment %s", settings.environment)
    init_db()


if __name__ == "__main__":
    main()
