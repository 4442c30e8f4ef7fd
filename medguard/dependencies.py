"""FastAPI dependencies shared by the routers.

``get_now`` is the only place the API reads the wall clock; tests
override it to pin "now".
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from medguard.config import settings
from medguard.database import get_db
from medguard.services.log_store import SqlAlchemyLogStore
from medguard.services.safety_gate import SafetyGate


def get_now() -> datetime:
    """Current instant in the configured timezone."""
    return datetime.now(ZoneInfo(settings.timezone))


def get_log_store(db: AsyncSession = Depends(get_db)) -> SqlAlchemyLogStore:
    return SqlAlchemyLogStore(db)


def get_safety_gate(
    log_store: SqlAlchemyLogStore = Depends(get_log_store),
) -> SafetyGate:
    return SafetyGate(log_store)
