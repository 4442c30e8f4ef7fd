"""Dosage safety Pydantic models.

Pure data models for dosage safety evaluation. No database
dependencies, no SQLAlchemy. All models are frozen; edits produce a new
value through ``replace_medication``.

See __init__.py for the advisory-only enforcement policy.
"""

import uuid
from datetime import UTC, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Self

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from medguard.core.dosage_safety.constants import MAX_DAILY_DOSES
from medguard.core.dosage_safety.constraints import (
    DosageConstraint,
    MaxCumulativeAmount,
)
from medguard.core.dosage_safety.enums import (
    LogStatus,
    MedicationCategory,
    MedicationFrequency,
    SlotStatus,
)
from medguard.core.dosage_safety.exceptions import (
    InvalidConstraintConfiguration,
    InvalidMedicationConfiguration,
)

# Slot counts for the fixed frequencies. custom_count reads
# Medication.custom_daily_count instead.
FIXED_DAILY_DOSES: dict[MedicationFrequency, int] = {
    MedicationFrequency.as_needed: 0,
    MedicationFrequency.once_daily: 1,
    MedicationFrequency.twice_daily: 2,
    MedicationFrequency.three_times_daily: 3,
    MedicationFrequency.four_times_daily: 4,
}


class Medication(BaseModel):
    """A medication the user tracks, with its dosage constraints.

    ``dosage`` is display text only ("500mg"). Amount-based constraints
    use the structured ``dose_amount`` / ``dose_unit`` pair.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str = Field(min_length=1, max_length=200)
    dosage: str | None = Field(default=None, max_length=100)
    frequency: MedicationFrequency = MedicationFrequency.once_daily
    custom_daily_count: int | None = Field(default=None, ge=1, le=MAX_DAILY_DOSES)
    category: MedicationCategory = MedicationCategory.prescription
    instructions: str | None = None
    purpose: str | None = None
    prescribed_by: str | None = None
    notes: str | None = None
    dose_amount: Decimal | None = Field(default=None, gt=0)
    dose_unit: str | None = Field(default=None, min_length=1, max_length=32)
    reminder_times: tuple[time, ...] | None = None
    constraints: tuple[DosageConstraint, ...] = ()
    is_active: bool = True
    created_at: AwareDatetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def check_configuration(self) -> Self:
        """Reject frequency, reminder and amount settings that disagree."""
        if self.frequency == MedicationFrequency.custom_count:
            if self.custom_daily_count is None:
                msg = "custom_count frequency requires custom_daily_count"
                raise ValueError(msg)
        elif self.custom_daily_count is not None:
            msg = "custom_daily_count is only allowed with custom_count frequency"
            raise ValueError(msg)

        if self.reminder_times is not None:
            if self.frequency == MedicationFrequency.as_needed:
                msg = "as_needed medications have no reminder times"
                raise ValueError(msg)
            expected = self.daily_dose_count
            if len(set(self.reminder_times)) != len(self.reminder_times):
                msg = "reminder_times must be distinct"
                raise ValueError(msg)
            if len(self.reminder_times) != expected:
                msg = (
                    f"{self.frequency.display_name} needs {expected} reminder "
                    f"times, got {len(self.reminder_times)}"
                )
                raise ValueError(msg)

        for constraint in self.constraints:
            if isinstance(constraint, MaxCumulativeAmount):
                self._check_cumulative_amount(constraint)
        return self

    def _check_cumulative_amount(self, constraint: MaxCumulativeAmount) -> None:
        if self.dose_amount is None or self.dose_unit is None:
            msg = "amount-based constraints require dose_amount and dose_unit"
            raise ValueError(msg)
        if self.dose_unit.strip().lower() != constraint.unit.lower():
            msg = (
                f"constraint unit {constraint.unit!r} does not match "
                f"dose unit {self.dose_unit!r}"
            )
            raise ValueError(msg)
        if self.dose_amount > constraint.max_amount:
            msg = (
                f"a single dose of {self.dose_amount}{self.dose_unit} exceeds "
                f"the cap of {constraint.max_amount}{constraint.unit}"
            )
            raise ValueError(msg)

    @property
    def daily_dose_count(self) -> int:
        """Scheduled slots per day (0 for as_needed)."""
        if self.frequency == MedicationFrequency.custom_count:
            return self.custom_daily_count or 0
        return FIXED_DAILY_DOSES[self.frequency]

    @property
    def display_string(self) -> str:
        if self.dosage:
            return f"{self.name} {self.dosage}"
        return self.name

    @property
    def summary(self) -> str:
        parts = []
        if self.dosage:
            parts.append(self.dosage)
        parts.append(self.frequency.display_name)
        return " · ".join(parts)


def build_medication(**fields: Any) -> Medication:
    """Construct a validated Medication.

    Raises:
        InvalidConstraintConfiguration: If any constraint is malformed.
        InvalidMedicationConfiguration: If the medication's own settings
            are inconsistent.
    """
    try:
        return Medication(**fields)
    except ValidationError as exc:
        if any(error["loc"][:1] == ("constraints",) for error in exc.errors()):
            raise InvalidConstraintConfiguration(str(exc)) from exc
        raise InvalidMedicationConfiguration(str(exc)) from exc


def replace_medication(medication: Medication, **changes: Any) -> Medication:
    """Return a re-validated copy of ``medication`` with ``changes`` applied.

    ``constraints`` in ``changes`` replaces the whole set.
    """
    fields = medication.model_dump()
    fields.update(changes)
    return build_medication(**fields)


class MedicationLog(BaseModel):
    """A recorded intake (taken) or deliberate skip.

    Immutable once created; undo deletes the whole record.
    ``medication_name`` is a snapshot that survives renames and deletes.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    medication_id: uuid.UUID
    medication_name: str = Field(min_length=1)
    timestamp: AwareDatetime
    status: LogStatus
    skip_reason: str | None = None
    notes: str | None = None
    amount: Decimal | None = Field(default=None, gt=0)
    overridden: bool = False

    @model_validator(mode="after")
    def check_status_fields(self) -> Self:
        if self.status != LogStatus.skipped and self.skip_reason is not None:
            msg = "skip_reason is only allowed on skipped logs"
            raise ValueError(msg)
        if self.status != LogStatus.taken and (
            self.amount is not None or self.overridden
        ):
            msg = "amount and overridden are only allowed on taken logs"
            raise ValueError(msg)
        return self


class ConstraintViolation(BaseModel):
    """A constraint that taking a dose now would break."""

    model_config = ConfigDict(frozen=True)

    constraint: DosageConstraint
    message: str = Field(min_length=1)
    details: dict[str, Any] | None = None
    available_at: AwareDatetime | None = Field(
        default=None,
        description="When this constraint alone stops being violated.",
    )


class DoseAssessment(BaseModel):
    """Violations plus the earliest instant every constraint is satisfied."""

    model_config = ConfigDict(frozen=True)

    checked_at: AwareDatetime
    violations: list[ConstraintViolation] = Field(default_factory=list)
    next_available_at: AwareDatetime | None = None

    @property
    def is_safe(self) -> bool:
        return not self.violations


class ScheduledDoseSlot(BaseModel):
    """One of today's scheduled doses for a medication."""

    model_config = ConfigDict(frozen=True)

    medication: Medication
    scheduled_at: AwareDatetime
    status: SlotStatus
    log: MedicationLog | None = None

    @property
    def time_of_day(self) -> time:
        return self.scheduled_at.timetz().replace(tzinfo=None)


class PendingDose(BaseModel):
    model_config = ConfigDict(frozen=True)

    medication: Medication
    scheduled_at: AwareDatetime


class OverdueDose(BaseModel):
    model_config = ConfigDict(frozen=True)

    medication: Medication
    scheduled_at: AwareDatetime
    overdue_by: timedelta
