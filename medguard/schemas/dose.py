"""Schemas for dose checks, gated dose logging and log history."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from medguard.core.dosage_safety.enums import LogStatus
from medguard.core.dosage_safety.evaluator import remaining_wait
from medguard.core.dosage_safety.models import ConstraintViolation, MedicationLog

ADVISORY_DISCLAIMER = (
    "Dosage checks are based only on the limits you configured and the doses "
    "you logged. They do not replace advice from your prescriber or "
    "pharmacist."
)


class DoseRequest(BaseModel):
    """POST body for logging a taken dose (gated or override)."""

    notes: str | None = Field(default=None, max_length=1000)


class SkipRequest(BaseModel):
    """POST body for logging a skipped dose."""

    reason: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)


class MedicationLogResponse(BaseModel):
    """A stored taken/skipped log entry."""

    id: uuid.UUID
    medication_id: uuid.UUID
    medication_name: str
    timestamp: datetime
    status: LogStatus
    skip_reason: str | None
    notes: str | None
    amount: Decimal | None
    overridden: bool

    @classmethod
    def from_log(cls, log: MedicationLog) -> "MedicationLogResponse":
        return cls(**log.model_dump())


class ViolationResponse(BaseModel):
    """One violated constraint."""

    kind: str
    description: str
    message: str
    details: dict[str, Any] | None = None
    available_at: datetime | None = Field(
        default=None,
        description="When this constraint alone clears.",
    )
    wait_seconds: float | None = None

    @classmethod
    def from_violation(
        cls,
        violation: ConstraintViolation,
        now: datetime,
    ) -> "ViolationResponse":
        wait = remaining_wait(violation, now)
        return cls(
            kind=violation.constraint.kind,
            description=violation.constraint.describe(),
            message=violation.message,
            details=violation.details,
            available_at=violation.available_at,
            wait_seconds=wait.total_seconds() if wait is not None else None,
        )


class DoseCheckResponse(BaseModel):
    """Response from GET /api/medications/{id}/check."""

    medication_id: uuid.UUID
    safe: bool
    checked_at: datetime
    violations: list[ViolationResponse] = Field(default_factory=list)
    next_available_at: datetime | None = Field(
        default=None,
        description="Earliest instant every constraint is satisfied (null if safe).",
    )
    disclaimer: str = ADVISORY_DISCLAIMER


class DoseLogResponse(BaseModel):
    """Response from the gated and override dose endpoints."""

    committed: bool
    overridden: bool = False
    log: MedicationLogResponse | None = None
    violations: list[ViolationResponse] = Field(default_factory=list)
    next_available_at: datetime | None = None
    disclaimer: str = ADVISORY_DISCLAIMER


class MedicationLogListResponse(BaseModel):
    logs: list[MedicationLogResponse]
    count: int
