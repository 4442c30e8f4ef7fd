"""Schemas for today's dose schedule."""

import uuid
from datetime import date, datetime, time

from pydantic import BaseModel

from medguard.core.dosage_safety.enums import SlotStatus
from medguard.core.dosage_safety.models import (
    OverdueDose,
    PendingDose,
    ScheduledDoseSlot,
)


class ScheduledSlotResponse(BaseModel):
    medication_id: uuid.UUID
    medication_name: str
    scheduled_at: datetime
    time_of_day: time
    status: SlotStatus
    log_id: uuid.UUID | None = None

    @classmethod
    def from_slot(cls, slot: ScheduledDoseSlot) -> "ScheduledSlotResponse":
        return cls(
            medication_id=slot.medication.id,
            medication_name=slot.medication.display_string,
            scheduled_at=slot.scheduled_at,
            time_of_day=slot.time_of_day,
            status=slot.status,
            log_id=slot.log.id if slot.log else None,
        )


class PendingDoseResponse(BaseModel):
    medication_id: uuid.UUID
    medication_name: str
    scheduled_at: datetime

    @classmethod
    def from_pending(cls, dose: PendingDose) -> "PendingDoseResponse":
        return cls(
            medication_id=dose.medication.id,
            medication_name=dose.medication.display_string,
            scheduled_at=dose.scheduled_at,
        )


class OverdueDoseResponse(BaseModel):
    medication_id: uuid.UUID
    medication_name: str
    scheduled_at: datetime
    overdue_by_minutes: int

    @classmethod
    def from_overdue(cls, dose: OverdueDose) -> "OverdueDoseResponse":
        return cls(
            medication_id=dose.medication.id,
            medication_name=dose.medication.display_string,
            scheduled_at=dose.scheduled_at,
            overdue_by_minutes=int(dose.overdue_by.total_seconds() // 60),
        )


class TodayScheduleResponse(BaseModel):
    """Response from GET /api/schedule/today."""

    date: date
    generated_at: datetime
    slots: list[ScheduledSlotResponse]
    pending: list[PendingDoseResponse]
    overdue: list[OverdueDoseResponse]
    taken_today_count: int
    has_overdue: bool
