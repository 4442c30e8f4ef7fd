"""Medication repository service.

Create, read, update, deactivate and delete medications. Every write
goes through ``build_medication`` / ``replace_medication`` first, so an
invalid constraint or frequency is rejected before it is attached to a
stored medication.
"""

import uuid
from datetime import time
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medguard.core.dosage_safety.constraints import (
    parse_constraint,
    serialize_constraint,
)
from medguard.core.dosage_safety.models import Medication, replace_medication
from medguard.logging_config import get_logger
from medguard.models.medication import MedicationRecord
from medguard.models.medication_log import MedicationLogRecord
from medguard.services.log_store import ensure_utc

logger = get_logger(__name__)


class MedicationNotFoundError(LookupError):
    """No medication exists with the requested id."""


def medication_from_record(record: MedicationRecord) -> Medication:
    """Rebuild the immutable domain value from its stored row."""
    reminder_times = (
        tuple(time.fromisoformat(value) for value in record.reminder_times)
        if record.reminder_times
        else None
    )
    return Medication(
        id=record.id,
        name=record.name,
        dosage=record.dosage,
        frequency=record.frequency,
        custom_daily_count=record.custom_daily_count,
        category=record.category,
        instructions=record.instructions,
        purpose=record.purpose,
        prescribed_by=record.prescribed_by,
        notes=record.notes,
        dose_amount=record.dose_amount,
        dose_unit=record.dose_unit,
        reminder_times=reminder_times,
        constraints=tuple(parse_constraint(data) for data in record.constraints),
        is_active=record.is_active,
        created_at=ensure_utc(record.created_at),
    )


def _apply_to_record(record: MedicationRecord, medication: Medication) -> None:
    record.name = medication.name
    record.dosage = medication.dosage
    record.frequency = medication.frequency.value
    record.custom_daily_count = medication.custom_daily_count
    record.category = medication.category.value
    record.instructions = medication.instructions
    record.purpose = medication.purpose
    record.prescribed_by = medication.prescribed_by
    record.notes = medication.notes
    record.dose_amount = medication.dose_amount
    record.dose_unit = medication.dose_unit
    record.reminder_times = (
        [value.isoformat() for value in medication.reminder_times]
        if medication.reminder_times
        else None
    )
    record.constraints = [serialize_constraint(c) for c in medication.constraints]
    record.is_active = medication.is_active


async def _get_record(medication_id: uuid.UUID, db: AsyncSession) -> MedicationRecord:
    record = await db.get(MedicationRecord, medication_id)
    if record is None:
        msg = f"Medication {medication_id} not found"
        raise MedicationNotFoundError(msg)
    return record


async def create_medication(medication: Medication, db: AsyncSession) -> Medication:
    """Persist a new, already validated medication."""
    record = MedicationRecord(id=medication.id, created_at=medication.created_at)
    _apply_to_record(record, medication)
    db.add(record)
    await db.commit()
    await db.refresh(record)

    logger.info(
        "Created medication",
        medication_id=str(medication.id),
        frequency=medication.frequency.value,
        constraint_count=len(medication.constraints),
    )
    return medication_from_record(record)


async def get_medication(medication_id: uuid.UUID, db: AsyncSession) -> Medication:
    """Load one medication.

    Raises:
        MedicationNotFoundError: If no such medication exists.
    """
    return medication_from_record(await _get_record(medication_id, db))


async def list_medications(
    db: AsyncSession,
    *,
    active_only: bool = False,
) -> list[Medication]:
    """All medications, sorted by name."""
    query = select(MedicationRecord).order_by(MedicationRecord.name)
    if active_only:
        query = query.where(MedicationRecord.is_active.is_(True))
    result = await db.execute(query)
    return [medication_from_record(record) for record in result.scalars().all()]


async def update_medication(
    medication_id: uuid.UUID,
    changes: dict[str, Any],
    db: AsyncSession,
) -> Medication:
    """Apply ``changes`` and persist the re-validated medication.

    A ``constraints`` entry replaces the whole constraint set.

    Raises:
        MedicationNotFoundError: If no such medication exists.
        InvalidConstraintConfiguration: If a new constraint is malformed.
        InvalidMedicationConfiguration: If the result is inconsistent.
    """
    record = await _get_record(medication_id, db)
    current = medication_from_record(record)
    updated = replace_medication(current, **changes)

    _apply_to_record(record, updated)
    await db.commit()
    await db.refresh(record)

    logger.info(
        "Updated medication",
        medication_id=str(medication_id),
        fields=sorted(changes),
    )
    return medication_from_record(record)


async def set_medication_active(
    medication_id: uuid.UUID,
    is_active: bool,
    db: AsyncSession,
) -> Medication:
    """Deactivate (discontinue) or reactivate a medication."""
    return await update_medication(medication_id, {"is_active": is_active}, db)


async def delete_medication(medication_id: uuid.UUID, db: AsyncSession) -> int:
    """Delete a medication and all of its logs.

    Returns:
        Number of logs removed along with the medication.
    """
    record = await _get_record(medication_id, db)
    # Logs and the medication are removed under a single commit
    try:
        result = await db.execute(
            delete(MedicationLogRecord).where(
                MedicationLogRecord.medication_id == medication_id
            )
        )
        await db.delete(record)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(
            "Failed to delete medication", medication_id=str(medication_id)
        )
        raise
    removed_logs = result.rowcount or 0

    logger.info(
        "Deleted medication",
        medication_id=str(medication_id),
        removed_logs=removed_logs,
    )
    return removed_logs
