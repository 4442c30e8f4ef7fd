"""Daily dose scheduler.

Projects a medication's frequency onto today's dose slots and
classifies each slot against the intake log. "Today" is the calendar
day of ``now`` in ``now``'s timezone; callers pass ``now`` explicitly.

Slot assignment: slot *i* claims logs in ``[slot_i, slot_{i+1})``; the
first slot's window opens at midnight so an early dose still counts
toward it. Logs are consumed oldest first and a slot keeps the first
log it receives, so a duplicate dose never fills a later slot.
"""

from bisect import bisect_right
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta, tzinfo

from medguard.config import settings
from medguard.core.dosage_safety.constants import (
    DEFAULT_OVERDUE_GRACE,
    DEFAULT_SLOT_TIMES,
    FIRST_DEFAULT_SLOT,
    LAST_DEFAULT_SLOT,
)
from medguard.core.dosage_safety.enums import (
    LogStatus,
    MedicationFrequency,
    SlotStatus,
)
from medguard.core.dosage_safety.exceptions import InvalidMedicationConfiguration
from medguard.core.dosage_safety.models import (
    Medication,
    MedicationLog,
    OverdueDose,
    PendingDose,
    ScheduledDoseSlot,
)
from medguard.logging_config import get_logger

logger = get_logger(__name__)


def expected_doses_per_day(medication: Medication) -> int:
    """Scheduled slots per day; 0 for as_needed."""
    return medication.daily_dose_count


def slot_times(medication: Medication, count: int) -> list[time]:
    """Times of day for ``count`` slots, honouring configured reminders."""
    if medication.reminder_times and len(medication.reminder_times) == count:
        return sorted(medication.reminder_times)
    if count in DEFAULT_SLOT_TIMES:
        return list(DEFAULT_SLOT_TIMES[count])

    # Spread custom counts evenly between the first and last default slot.
    start = datetime.combine(date.min, FIRST_DEFAULT_SLOT)
    span = datetime.combine(date.min, LAST_DEFAULT_SLOT) - start
    step = span / (count - 1)
    return [
        (start + step * i).time().replace(second=0, microsecond=0)
        for i in range(count)
    ]


def logs_for_date(
    logs: Iterable[MedicationLog],
    day: date,
    tz: tzinfo | None,
) -> list[MedicationLog]:
    """Logs whose local (``tz``) calendar date is ``day``, oldest first."""
    return sorted(
        (log for log in logs if log.timestamp.astimezone(tz).date() == day),
        key=lambda log: log.timestamp,
    )


def _resolve_slot_count(medication: Medication, strict: bool | None) -> int:
    count = expected_doses_per_day(medication)
    if count > 0 or medication.frequency == MedicationFrequency.as_needed:
        return count

    # Only reachable when a medication bypassed validation.
    strict = settings.strict_invariants if strict is None else strict
    msg = (
        f"Medication {medication.id} has frequency {medication.frequency} "
        f"but {count} daily doses"
    )
    if strict:
        raise InvalidMedicationConfiguration(msg)
    logger.error(
        "Malformed medication frequency; scheduling no slots",
        medication_id=str(medication.id),
        frequency=str(medication.frequency),
        daily_dose_count=count,
    )
    return 0


def build_daily_schedule(
    medication: Medication,
    now: datetime,
    logs: Iterable[MedicationLog],
    *,
    grace_period: timedelta = DEFAULT_OVERDUE_GRACE,
    strict: bool | None = None,
) -> list[ScheduledDoseSlot]:
    """Today's dose slots for ``medication`` with their status at ``now``.

    Args:
        medication: The medication to schedule.
        now: Current instant (timezone-aware); defines "today".
        logs: Intake logs; other medications and future logs are ignored.
        grace_period: How long past its time a slot stays pending.
        strict: Raise on a malformed frequency instead of returning no
            slots. Defaults to ``settings.strict_invariants``.

    Returns:
        Slots ordered by time of day. Empty for as_needed medications.
    """
    count = _resolve_slot_count(medication, strict)
    if count == 0:
        return []

    tz = now.tzinfo
    today = now.date()
    starts = [
        datetime.combine(today, slot_time, tzinfo=tz)
        for slot_time in slot_times(medication, count)
    ]

    todays_logs = logs_for_date(
        (
            log
            for log in logs
            if log.medication_id == medication.id and log.timestamp <= now
        ),
        today,
        tz,
    )

    assigned: list[MedicationLog | None] = [None] * count
    for log in todays_logs:
        index = max(bisect_right(starts, log.timestamp) - 1, 0)
        if assigned[index] is None:
            assigned[index] = log

    slots = []
    for scheduled_at, log in zip(starts, assigned, strict=True):
        if log is not None:
            status = (
                SlotStatus.taken if log.status == LogStatus.taken else SlotStatus.skipped
            )
        elif scheduled_at + grace_period < now:
            status = SlotStatus.overdue
        else:
            status = SlotStatus.pending
        slots.append(
            ScheduledDoseSlot(
                medication=medication,
                scheduled_at=scheduled_at,
                status=status,
                log=log,
            )
        )
    return slots


def _active_slots(
    medications: Sequence[Medication],
    now: datetime,
    logs: Sequence[MedicationLog],
    grace_period: timedelta,
    strict: bool | None,
) -> list[ScheduledDoseSlot]:
    slots = []
    for medication in medications:
        if not medication.is_active:
            continue
        slots.extend(
            build_daily_schedule(
                medication, now, logs, grace_period=grace_period, strict=strict
            )
        )
    return slots


def pending_medications(
    medications: Sequence[Medication],
    now: datetime,
    logs: Sequence[MedicationLog],
    *,
    grace_period: timedelta = DEFAULT_OVERDUE_GRACE,
    strict: bool | None = None,
) -> list[PendingDose]:
    """Slots still open today (not yet due, or within the grace period)."""
    return [
        PendingDose(medication=slot.medication, scheduled_at=slot.scheduled_at)
        for slot in _active_slots(medications, now, logs, grace_period, strict)
        if slot.status == SlotStatus.pending
    ]


def overdue_medications(
    medications: Sequence[Medication],
    now: datetime,
    logs: Sequence[MedicationLog],
    *,
    grace_period: timedelta = DEFAULT_OVERDUE_GRACE,
    strict: bool | None = None,
) -> list[OverdueDose]:
    """Slots past their grace period with neither a taken nor a skip log."""
    return [
        OverdueDose(
            medication=slot.medication,
            scheduled_at=slot.scheduled_at,
            overdue_by=now - slot.scheduled_at,
        )
        for slot in _active_slots(medications, now, logs, grace_period, strict)
        if slot.status == SlotStatus.overdue
    ]


def has_overdue_medications(
    medications: Sequence[Medication],
    now: datetime,
    logs: Sequence[MedicationLog],
    *,
    grace_period: timedelta = DEFAULT_OVERDUE_GRACE,
    strict: bool | None = None,
) -> bool:
    return bool(
        overdue_medications(
            medications, now, logs, grace_period=grace_period, strict=strict
        )
    )


def taken_today_count(now: datetime, logs: Iterable[MedicationLog]) -> int:
    """Number of distinct medications with a taken log today."""
    todays = logs_for_date(
        (log for log in logs if log.timestamp <= now), now.date(), now.tzinfo
    )
    return len({log.medication_id for log in todays if log.status == LogStatus.taken})


def was_taken_today(
    medication: Medication,
    now: datetime,
    logs: Iterable[MedicationLog],
) -> bool:
    return any(
        log.medication_id == medication.id
        and log.status == LogStatus.taken
        and log.timestamp <= now
        for log in logs_for_date(logs, now.date(), now.tzinfo)
    )
