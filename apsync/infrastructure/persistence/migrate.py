"""Database migration utilities.

Migrations run synchronously before the async server starts. Alembic's
``env.py`` drives the async engine itself, so the configured async URL is used
as-is.
"""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig

from apsync.infrastructure.persistence.database import expand_sqlite_path

logger = logging.getLogger(__name__)

# Project root where alembic.ini lives
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


def get_alembic_config(database_url: str) -> AlembicConfig:
    config = AlembicConfig(str(PROJECT_ROOT / "alembic.ini"))
    config.attributes["configure_logger"] = False
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    config.set_main_option("sqlalchemy.url", expand_sqlite_path(database_url))
    return config


def run_migrations(database_url: str) -> None:
    """Upgrade the database to head. Must not be called from a running event loop."""
    command.upgrade(get_alembic_config(database_url), "head")
    logger.info("Database migrations complete")
