"""Medication schemas."""

import uuid
from datetime import datetime, time
from decimal import Decimal

from pydantic import BaseModel, Field

from medguard.core.dosage_safety.constants import MAX_DAILY_DOSES
from medguard.core.dosage_safety.constraints import DosageConstraint
from medguard.core.dosage_safety.enums import MedicationCategory, MedicationFrequency
from medguard.core.dosage_safety.models import Medication


class MedicationWrite(BaseModel):
    """Request body for creating or fully replacing a medication.

    ``constraints`` replaces the whole constraint set; send the complete
    list on every update.
    """

    name: str = Field(min_length=1, max_length=200)
    dosage: str | None = Field(
        default=None,
        max_length=100,
        description='Display text only, e.g. "500mg".',
    )
    frequency: MedicationFrequency = MedicationFrequency.once_daily
    custom_daily_count: int | None = Field(
        default=None,
        ge=1,
        le=MAX_DAILY_DOSES,
        description="Slots per day; required for custom_count frequency.",
    )
    category: MedicationCategory = MedicationCategory.prescription
    instructions: str | None = Field(default=None, max_length=2000)
    purpose: str | None = Field(default=None, max_length=500)
    prescribed_by: str | None = Field(default=None, max_length=200)
    notes: str | None = Field(default=None, max_length=2000)
    dose_amount: Decimal | None = Field(
        default=None,
        gt=0,
        description="Structured per-dose amount, required by amount caps.",
    )
    dose_unit: str | None = Field(default=None, min_length=1, max_length=32)
    reminder_times: list[time] | None = Field(
        default=None,
        description="One time of day per scheduled slot.",
    )
    constraints: list[DosageConstraint] = Field(default_factory=list)
    is_active: bool = True


class MedicationResponse(BaseModel):
    """Response schema for a medication."""

    id: uuid.UUID
    name: str
    dosage: str | None
    display_string: str
    summary: str
    frequency: MedicationFrequency
    frequency_short_name: str
    custom_daily_count: int | None
    daily_dose_count: int
    category: MedicationCategory
    instructions: str | None
    purpose: str | None
    prescribed_by: str | None
    notes: str | None
    dose_amount: Decimal | None
    dose_unit: str | None
    reminder_times: list[time] | None
    constraints: list[DosageConstraint]
    constraint_descriptions: list[str]
    is_active: bool
    created_at: datetime

    @classmethod
    def from_medication(cls, medication: Medication) -> "MedicationResponse":
        return cls(
            id=medication.id,
            name=medication.name,
            dosage=medication.dosage,
            display_string=medication.display_string,
            summary=medication.summary,
            frequency=medication.frequency,
            frequency_short_name=medication.frequency.short_name,
            custom_daily_count=medication.custom_daily_count,
            daily_dose_count=medication.daily_dose_count,
            category=medication.category,
            instructions=medication.instructions,
            purpose=medication.purpose,
            prescribed_by=medication.prescribed_by,
            notes=medication.notes,
            dose_amount=medication.dose_amount,
            dose_unit=medication.dose_unit,
            reminder_times=(
                list(medication.reminder_times) if medication.reminder_times else None
            ),
            constraints=list(medication.constraints),
            constraint_descriptions=[c.describe() for c in medication.constraints],
            is_active=medication.is_active,
            created_at=medication.created_at,
        )


class MedicationListResponse(BaseModel):
    medications: list[MedicationResponse]
    count: int


class MedicationDeleteResponse(BaseModel):
    id: uuid.UUID
    removed_logs: int
