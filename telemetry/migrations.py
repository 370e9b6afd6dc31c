"""Database migration utilities.

The schema (including the partial unique index alert deduplication
relies on) and the default alert rules are provisioned by Alembic
revisions under ``migrations/``.
"""

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import text

from telemetry.database import get_engine
from telemetry.logging_config import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_alembic_config() -> Config:
    """Alembic configuration for this project."""
    alembic_ini = PROJECT_ROOT / "alembic.ini"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"alembic.ini not found at {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    # The service configures logging itself
    config.attributes["configure_logger"] = False
    return config


def run_migrations() -> None:
    """Upgrade the database to the latest revision.

    Blocking; the migration environment runs its own event loop, so call
    this from a worker thread when an event loop is already running.
    """
    logger.info("Running database migrations...")
    try:
        command.upgrade(get_alembic_config(), "head")
    except Exception as e:
        logger.error("Database migration failed", error=str(e))
        raise
    logger.info("Database migrations completed successfully")


def get_head_revision() -> str | None:
    """Latest revision shipped with the code."""
    return ScriptDirectory.from_config(get_alembic_config()).get_current_head()


async def get_database_revision() -> str | None:
    """Revision the database is currently at, or None if unmigrated."""
    try:
        async with get_engine().connect() as conn:
            result = await conn.execute(
                text("SELECT version_num FROM alembic_version LIMIT 1")
            )
            return result.scalar_one_or_none()
    except Exception as e:
        logger.warning("Could not read database revision", error=str(e))
        return None


async def check_migrations_current() -> bool:
    """True if the database is at the latest revision."""
    return await get_database_revision() == get_head_revision()
