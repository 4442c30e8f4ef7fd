"""Adherence summary over a date range.

Computed at runtime from the intake log, never persisted.
"""

from collections.abc import Iterable
from datetime import date, tzinfo

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from medguard.core.dosage_safety.enums import LogStatus
from medguard.core.dosage_safety.models import Medication, MedicationLog


class AdherenceSummary(BaseModel):
    """Expected vs. logged doses for one medication over a date range."""

    model_config = ConfigDict(frozen=True)

    medication_id: str
    start_date: date
    end_date: date
    total_expected: int = Field(ge=0)
    total_taken: int = Field(ge=0)
    total_skipped: int = Field(ge=0)
    total_missed: int = Field(ge=0)

    @model_validator(mode="after")
    def check_range(self) -> "AdherenceSummary":
        if self.end_date < self.start_date:
            msg = "end_date must not be before start_date"
            raise ValueError(msg)
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def adherence_rate(self) -> float:
        """Taken doses as a percentage of expected (100 when none expected).

        Capped at 100: extra doses beyond the schedule do not raise it.
        """
        if self.total_expected == 0:
            return 100.0
        return round(min(self.total_taken / self.total_expected, 1.0) * 100, 1)


def summarize_adherence(
    medication: Medication,
    logs: Iterable[MedicationLog],
    start_date: date,
    end_date: date,
    tz: tzinfo | None = None,
) -> AdherenceSummary:
    """Summarise adherence between two calendar dates (inclusive).

    Log timestamps are bucketed by their calendar date in ``tz``.
    """
    days = (end_date - start_date).days + 1
    expected = max(days, 0) * medication.daily_dose_count

    taken = skipped = 0
    for log in logs:
        if log.medication_id != medication.id:
            continue
        if not start_date <= log.timestamp.astimezone(tz).date() <= end_date:
            continue
        if log.status == LogStatus.taken:
            taken += 1
        else:
            skipped += 1

    return AdherenceSummary(
        medication_id=str(medication.id),
        start_date=start_date,
        end_date=end_date,
        total_expected=expected,
        total_taken=taken,
        total_skipped=skipped,
        total_missed=max(expected - taken - skipped, 0),
    )
