"""Builders for domain values used across the test modules."""

from datetime import UTC, datetime
from decimal import Decimal

from medguard.core.dosage_safety.enums import LogStatus
from medguard.core.dosage_safety.models import Medication, MedicationLog

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def at(hour: int, minute: int = 0, *, day: int = 10) -> datetime:
    """A UTC instant on the fixed test date (2026-03-<day>)."""
    return datetime(2026, 3, day, hour, minute, tzinfo=UTC)


def make_medication(**overrides) -> Medication:
    defaults = {
        "name": "Ibuprofen",
        "dosage": "400mg",
        "frequency": "as_needed",
    }
    defaults.update(overrides)
    return Medication(**defaults)


def taken(
    medication: Medication,
    timestamp: datetime,
    amount: Decimal | None = None,
) -> MedicationLog:
    return MedicationLog(
        medication_id=medication.id,
        medication_name=medication.display_string,
        timestamp=timestamp,
        status=LogStatus.taken,
        amount=amount,
    )


def skipped(medication: Medication, timestamp: datetime) -> MedicationLog:
    return MedicationLog(
        medication_id=medication.id,
        medication_name=medication.display_string,
        timestamp=timestamp,
        status=LogStatus.skipped,
    )
