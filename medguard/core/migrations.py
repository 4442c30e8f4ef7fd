"""Database migration utilities."""

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from medguard.database import get_engine
from medguard.logging_config import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def get_alembic_config() -> Config:
    """Alembic configuration rooted at the project directory."""
    alembic_ini = PROJECT_ROOT / "alembic.ini"
    if not alembic_ini.exists():
        msg = f"alembic.ini not found at {alembic_ini}"
        raise FileNotFoundError(msg)

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    return config


def run_migrations() -> None:
    """Upgrade the database to the latest revision.

    Run before the API starts (``medguard-migrate``).
    """
    logger.info("Running database migrations")
    try:
        command.upgrade(get_alembic_config(), "head")
    except Exception:
        logger.exception("Database migration failed")
        raise
    logger.info("Database migrations completed")


def get_head_revision() -> str | None:
    """Latest revision id known to the migration scripts."""
    return ScriptDirectory.from_config(get_alembic_config()).get_current_head()


async def check_migrations_current() -> bool:
    """True if the database is stamped with the head revision."""
    try:
        async with get_engine().connect() as conn:
            result = await conn.execute(
                text("SELECT version_num FROM alembic_version LIMIT 1")
            )
            row = result.fetchone()
    except SQLAlchemyError:
        return False
    return row is not None and row[0] == get_head_revision()
