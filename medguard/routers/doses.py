"""Dose router.

Safety check, gated dose logging, override, skips and log history. A
gated dose that would violate a constraint is not written and comes
back as 409 with the violations and the next available time; the
client may then retry through the override endpoint.
"""

import uuid
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from medguard.core.dosage_safety.models import Medication
from medguard.dependencies import get_log_store, get_now, get_safety_gate
from medguard.routers.medications import load_medication
from medguard.schemas.dose import (
    DoseCheckResponse,
    DoseLogResponse,
    DoseRequest,
    MedicationLogListResponse,
    MedicationLogResponse,
    SkipRequest,
    ViolationResponse,
)
from medguard.services.log_store import SqlAlchemyLogStore
from medguard.services.safety_gate import GateResult, SafetyGate

DEFAULT_HISTORY_WINDOW = timedelta(days=30)

router = APIRouter(prefix="/api", tags=["doses"])


def _dose_log_response(result: GateResult, now: datetime) -> DoseLogResponse:
    return DoseLogResponse(
        committed=result.committed,
        overridden=result.overridden,
        log=MedicationLogResponse.from_log(result.log) if result.log else None,
        violations=[ViolationResponse.from_violation(v, now) for v in result.violations],
        next_available_at=result.next_available_at,
    )


@router.get(
    "/medications/{medication_id}/check",
    response_model=DoseCheckResponse,
)
async def check_dose(
    medication: Medication = Depends(load_medication),
    gate: SafetyGate = Depends(get_safety_gate),
    now: datetime = Depends(get_now),
) -> DoseCheckResponse:
    """Would taking a dose now violate any configured limit?

    Read-only; nothing is logged.
    """
    assessment = await gate.check(medication, now)
    return DoseCheckResponse(
        medication_id=medication.id,
        safe=assessment.is_safe,
        checked_at=assessment.checked_at,
        violations=[
            ViolationResponse.from_violation(v, now) for v in assessment.violations
        ],
        next_available_at=assessment.next_available_at,
    )


@router.post(
    "/medications/{medication_id}/doses",
    response_model=DoseLogResponse,
    responses={
        404: {"description": "Medication not found"},
        409: {
            "model": DoseLogResponse,
            "description": "Not logged: one or more constraints violated",
        },
    },
)
async def log_dose(
    body: DoseRequest | None = None,
    medication: Medication = Depends(load_medication),
    gate: SafetyGate = Depends(get_safety_gate),
    now: datetime = Depends(get_now),
) -> DoseLogResponse | JSONResponse:
    """Log a taken dose if every constraint allows it."""
    notes = body.notes if body else None
    result = await gate.attempt_log_taken(medication, now, notes=notes)
    response = _dose_log_response(result, now)
    if not result.committed:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=response.model_dump(mode="json"),
        )
    return response


@router.post(
    "/medications/{medication_id}/doses/override",
    response_model=DoseLogResponse,
)
async def override_dose(
    body: DoseRequest | None = None,
    medication: Medication = Depends(load_medication),
    gate: SafetyGate = Depends(get_safety_gate),
    now: datetime = Depends(get_now),
) -> DoseLogResponse:
    """Log a taken dose regardless of constraints.

    Violations present at the time are returned and the log is flagged
    as overridden.
    """
    notes = body.notes if body else None
    result = await gate.force_log_taken(medication, now, notes=notes)
    return _dose_log_response(result, now)


@router.post(
    "/medications/{medication_id}/skips",
    response_model=MedicationLogResponse,
    status_code=status.HTTP_201_CREATED,
)
async def skip_dose(
    body: SkipRequest | None = None,
    medication: Medication = Depends(load_medication),
    gate: SafetyGate = Depends(get_safety_gate),
    now: datetime = Depends(get_now),
) -> MedicationLogResponse:
    body = body or SkipRequest()
    log = await gate.attempt_log_skipped(
        medication, now, body.reason, notes=body.notes
    )
    return MedicationLogResponse.from_log(log)


@router.get(
    "/medications/{medication_id}/logs",
    response_model=MedicationLogListResponse,
)
async def get_logs(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    medication: Medication = Depends(load_medication),
    log_store: SqlAlchemyLogStore = Depends(get_log_store),
    now: datetime = Depends(get_now),
) -> MedicationLogListResponse:
    """Taken and skipped logs, oldest first.

    Defaults to the last 30 days. Naive bounds are read in the
    configured timezone.
    """
    end = end or now
    start = start or end - DEFAULT_HISTORY_WINDOW
    if start.tzinfo is None:
        start = start.replace(tzinfo=now.tzinfo)
    if end.tzinfo is None:
        end = end.replace(tzinfo=now.tzinfo)
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end must not be before start",
        )

    logs = await log_store.list_logs(medication.id, start=start, end=end)
    return MedicationLogListResponse(
        logs=[MedicationLogResponse.from_log(log) for log in logs],
        count=len(logs),
    )


@router.delete(
    "/medication-logs/{log_id}",
    response_model=MedicationLogResponse,
    responses={404: {"description": "Log not found"}},
)
async def undo_log(
    log_id: uuid.UUID,
    gate: SafetyGate = Depends(get_safety_gate),
) -> MedicationLogResponse:
    """Delete one log (undo). Returns the removed entry."""
    removed = await gate.delete_log(log_id)
    if removed is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Medication log not found",
        )
    return MedicationLogResponse.from_log(removed)
