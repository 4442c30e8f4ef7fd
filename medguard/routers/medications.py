"""Medications router.

CRUD for medications plus the adherence summary. Constraint and
frequency validation failures surface as 422.
"""

import uuid
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from medguard.core.dosage_safety.adherence import (
    AdherenceSummary,
    summarize_adherence,
)
from medguard.core.dosage_safety.exceptions import (
    InvalidConstraintConfiguration,
    InvalidMedicationConfiguration,
)
from medguard.core.dosage_safety.models import Medication, build_medication
from medguard.database import get_db
from medguard.dependencies import get_log_store, get_now
from medguard.schemas.medication import (
    MedicationDeleteResponse,
    MedicationListResponse,
    MedicationResponse,
    MedicationWrite,
)
from medguard.services.log_store import SqlAlchemyLogStore
from medguard.services.medications import (
    MedicationNotFoundError,
    create_medication,
    delete_medication,
    get_medication,
    list_medications,
    set_medication_active,
    update_medication,
)

router = APIRouter(prefix="/api/medications", tags=["medications"])


def _not_found(exc: MedicationNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _invalid(
    exc: InvalidConstraintConfiguration | InvalidMedicationConfiguration,
) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=str(exc),
    )


async def load_medication(
    medication_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Medication:
    """Path dependency resolving ``medication_id`` or failing with 404."""
    try:
        return await get_medication(medication_id, db)
    except MedicationNotFoundError as exc:
        raise _not_found(exc) from exc


@router.post(
    "",
    response_model=MedicationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"description": "Invalid medication or constraint"}},
)
async def add_medication(
    body: MedicationWrite,
    db: AsyncSession = Depends(get_db),
) -> MedicationResponse:
    """Create a medication with its dosage constraints."""
    try:
        medication = build_medication(**body.model_dump())
    except (InvalidConstraintConfiguration, InvalidMedicationConfiguration) as exc:
        raise _invalid(exc) from exc

    return MedicationResponse.from_medication(await create_medication(medication, db))


@router.get("", response_model=MedicationListResponse)
async def get_medications(
    active_only: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
) -> MedicationListResponse:
    medications = await list_medications(db, active_only=active_only)
    return MedicationListResponse(
        medications=[MedicationResponse.from_medication(m) for m in medications],
        count=len(medications),
    )


@router.get("/{medication_id}", response_model=MedicationResponse)
async def get_one_medication(
    medication: Medication = Depends(load_medication),
) -> MedicationResponse:
    return MedicationResponse.from_medication(medication)


@router.put(
    "/{medication_id}",
    response_model=MedicationResponse,
    responses={
        404: {"description": "Medication not found"},
        422: {"description": "Invalid medication or constraint"},
    },
)
async def replace_medication_settings(
    medication_id: uuid.UUID,
    body: MedicationWrite,
    db: AsyncSession = Depends(get_db),
) -> MedicationResponse:
    """Replace every field of a medication, including its constraints.

    Existing logs are kept; the new constraints apply to them from now on.
    """
    try:
        medication = await update_medication(medication_id, body.model_dump(), db)
    except MedicationNotFoundError as exc:
        raise _not_found(exc) from exc
    except (InvalidConstraintConfiguration, InvalidMedicationConfiguration) as exc:
        raise _invalid(exc) from exc

    return MedicationResponse.from_medication(medication)


async def _set_active(
    medication_id: uuid.UUID,
    is_active: bool,
    db: AsyncSession,
) -> MedicationResponse:
    try:
        medication = await set_medication_active(medication_id, is_active, db)
    except MedicationNotFoundError as exc:
        raise _not_found(exc) from exc
    return MedicationResponse.from_medication(medication)


@router.post("/{medication_id}/deactivate", response_model=MedicationResponse)
async def deactivate_medication(
    medication_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> MedicationResponse:
    """Mark a medication discontinued; it drops out of today's schedule."""
    return await _set_active(medication_id, False, db)


@router.post("/{medication_id}/reactivate", response_model=MedicationResponse)
async def reactivate_medication(
    medication_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> MedicationResponse:
    return await _set_active(medication_id, True, db)


@router.delete("/{medication_id}", response_model=MedicationDeleteResponse)
async def remove_medication(
    medication_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> MedicationDeleteResponse:
    """Delete a medication together with all of its logs."""
    try:
        removed_logs = await delete_medication(medication_id, db)
    except MedicationNotFoundError as exc:
        raise _not_found(exc) from exc
    return MedicationDeleteResponse(id=medication_id, removed_logs=removed_logs)


@router.get("/{medication_id}/adherence", response_model=AdherenceSummary)
async def get_adherence(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    medication: Medication = Depends(load_medication),
    log_store: SqlAlchemyLogStore = Depends(get_log_store),
    now: datetime = Depends(get_now),
) -> AdherenceSummary:
    """Expected vs. logged doses between two dates (inclusive).

    Defaults to the last seven days ending today.
    """
    end_date = end_date or now.date()
    start_date = start_date or end_date - timedelta(days=6)
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_date must not be before start_date",
        )

    tz = now.tzinfo
    logs = await log_store.list_logs(
        medication.id,
        start=datetime.combine(start_date, time.min, tzinfo=tz),
        end=datetime.combine(end_date, time.max, tzinfo=tz),
    )
    return summarize_adherence(medication, logs, start_date, end_date, tz)
