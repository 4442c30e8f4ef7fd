"""Today's schedule router."""

from datetime import datetime, time, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from medguard.config import settings
from medguard.core.dosage_safety.scheduler import (
    build_daily_schedule,
    has_overdue_medications,
    overdue_medications,
    pending_medications,
    taken_today_count,
)
from medguard.database import get_db
from medguard.dependencies import get_log_store, get_now
from medguard.schemas.schedule import (
    OverdueDoseResponse,
    PendingDoseResponse,
    ScheduledSlotResponse,
    TodayScheduleResponse,
)
from medguard.services.log_store import SqlAlchemyLogStore
from medguard.services.medications import list_medications

router = APIRouter(prefix="/api/schedule", tags=["schedule"])


def _chronological(items):
    return sorted(items, key=lambda item: (item.scheduled_at, item.medication.name))


@router.get("/today", response_model=TodayScheduleResponse)
async def get_today_schedule(
    db: AsyncSession = Depends(get_db),
    log_store: SqlAlchemyLogStore = Depends(get_log_store),
    now: datetime = Depends(get_now),
) -> TodayScheduleResponse:
    """Every active medication's slots for today with pending/overdue status."""
    medications = await list_medications(db, active_only=True)
    logs = await log_store.list_logs(
        start=datetime.combine(now.date(), time.min, tzinfo=now.tzinfo),
        end=now,
    )
    grace_period = timedelta(minutes=settings.overdue_grace_minutes)

    slots = [
        slot
        for medication in medications
        for slot in build_daily_schedule(
            medication, now, logs, grace_period=grace_period
        )
    ]

    return TodayScheduleResponse(
        date=now.date(),
        generated_at=now,
        slots=[ScheduledSlotResponse.from_slot(slot) for slot in _chronological(slots)],
        pending=[
            PendingDoseResponse.from_pending(dose)
            for dose in _chronological(
                pending_medications(medications, now, logs, grace_period=grace_period)
            )
        ],
        overdue=[
            OverdueDoseResponse.from_overdue(dose)
            for dose in _chronological(
                overdue_medications(medications, now, logs, grace_period=grace_period)
            )
        ],
        taken_today_count=taken_today_count(now, logs),
        has_overdue=has_overdue_medications(
            medications, now, logs, grace_period=grace_period
        ),
    )
