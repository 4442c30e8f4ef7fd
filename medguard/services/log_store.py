"""Medication log store.

Defines the contract the safety gate needs from intake-log storage and
provides two implementations: an in-memory store (embedding, tests) and
a SQLAlchemy store backed by the ``medication_logs`` table.

Appends must be serialised per medication so two near-simultaneous
"take" requests cannot both observe "no violations" before either one
writes. Callers hold ``lock(medication_id)`` across snapshot, evaluate
and append.
"""

import asyncio
import uuid
import weakref
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medguard.core.dosage_safety.enums import LogStatus
from medguard.core.dosage_safety.exceptions import MissingLogData
from medguard.core.dosage_safety.models import MedicationLog
from medguard.logging_config import get_logger
from medguard.models.medication_log import MedicationLogRecord

logger = get_logger(__name__)

# Advisory lock namespace to avoid collisions with other lock users.
_MEDICATION_LOG_LOCK_NS = 0x4D454453  # "MEDS" as int32


class LogStore(Protocol):
    """Read/append/delete access to intake logs, keyed by medication."""

    def lock(self, medication_id: uuid.UUID) -> AbstractAsyncContextManager[None]:
        """Serialise check-then-append for one medication."""
        ...

    async def list_logs(
        self,
        medication_id: uuid.UUID | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[MedicationLog]:
        """Logs with ``start <= timestamp <= end``, oldest first.

        ``medication_id=None`` returns logs for every medication.
        """
        ...

    async def get(self, log_id: uuid.UUID) -> MedicationLog | None: ...

    async def append(self, log: MedicationLog) -> MedicationLog: ...

    async def delete(self, log_id: uuid.UUID) -> MedicationLog | None:
        """Remove one log; returns it, or None if it did not exist."""
        ...

    async def delete_for_medication(self, medication_id: uuid.UUID) -> int:
        """Remove every log of a medication; returns the count removed."""
        ...


def _in_range(
    timestamp: datetime,
    start: datetime | None,
    end: datetime | None,
) -> bool:
    if start is not None and timestamp < start:
        return False
    return end is None or timestamp <= end


class InMemoryLogStore:
    """Log store held in process memory. Not shared between processes."""

    def __init__(self, logs: list[MedicationLog] | None = None) -> None:
        self._logs: dict[uuid.UUID, MedicationLog] = {
            log.id: log for log in logs or []
        }
        # An entry lives only while a coroutine holds or awaits its lock
        self._locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock(self, medication_id: uuid.UUID) -> asyncio.Lock:
        return self._locks.setdefault(medication_id, asyncio.Lock())

    async def list_logs(
        self,
        medication_id: uuid.UUID | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[MedicationLog]:
        return sorted(
            (
                log
                for log in self._logs.values()
                if (medication_id is None or log.medication_id == medication_id)
                and _in_range(log.timestamp, start, end)
            ),
            key=lambda log: log.timestamp,
        )

    async def get(self, log_id: uuid.UUID) -> MedicationLog | None:
        return self._logs.get(log_id)

    async def append(self, log: MedicationLog) -> MedicationLog:
        self._logs[log.id] = log
        return log

    async def delete(self, log_id: uuid.UUID) -> MedicationLog | None:
        return self._logs.pop(log_id, None)

    async def delete_for_medication(self, medication_id: uuid.UUID) -> int:
        doomed = [
            log_id
            for log_id, log in self._logs.items()
            if log.medication_id == medication_id
        ]
        for log_id in doomed:
            del self._logs[log_id]
        return len(doomed)


def ensure_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def log_from_record(record: MedicationLogRecord) -> MedicationLog:
    return MedicationLog(
        id=record.id,
        medication_id=record.medication_id,
        medication_name=record.medication_name,
        timestamp=ensure_utc(record.timestamp),
        status=LogStatus(record.status),
        skip_reason=record.skip_reason,
        notes=record.notes,
        amount=record.amount,
        overridden=record.overridden,
    )


# Per-process locks, dropped once idle; the PostgreSQL advisory lock
# extends the guarantee across processes.
_process_locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = (
    weakref.WeakValueDictionary()
)


class SqlAlchemyLogStore:
    """Log store backed by the ``medication_logs`` table.

    Each append/delete commits immediately so the per-medication lock
    is released only after the write is durable. Database errors are
    surfaced as ``MissingLogData``.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    @asynccontextmanager
    async def lock(self, medication_id: uuid.UUID) -> AsyncIterator[None]:
        async with _process_locks.setdefault(medication_id, asyncio.Lock()):
            try:
                if self._db.get_bind().dialect.name == "postgresql":
                    # Released automatically when the transaction ends.
                    await self._db.execute(
                        text("SELECT pg_advisory_xact_lock(:ns, :key)"),
                        {
                            "ns": _MEDICATION_LOG_LOCK_NS,
                            "key": int(medication_id.int % (2**31)),
                        },
                    )
                yield
            except BaseException:
                await self._db.rollback()
                raise
            else:
                # End the read transaction so the advisory lock is released.
                await self._db.commit()

    async def list_logs(
        self,
        medication_id: uuid.UUID | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[MedicationLog]:
        query = select(MedicationLogRecord)
        if medication_id is not None:
            query = query.where(MedicationLogRecord.medication_id == medication_id)
        if start is not None:
            query = query.where(MedicationLogRecord.timestamp >= start.astimezone(UTC))
        if end is not None:
            query = query.where(MedicationLogRecord.timestamp <= end.astimezone(UTC))
        query = query.order_by(MedicationLogRecord.timestamp.asc())

        try:
            result = await self._db.execute(query)
        except SQLAlchemyError as exc:
            logger.exception(
                "Failed to load medication logs",
                medication_id=str(medication_id) if medication_id else None,
            )
            raise MissingLogData("Medication log store is unavailable") from exc
        return [log_from_record(record) for record in result.scalars().all()]

    async def get(self, log_id: uuid.UUID) -> MedicationLog | None:
        try:
            record = await self._db.get(MedicationLogRecord, log_id)
        except SQLAlchemyError as exc:
            logger.exception("Failed to load medication log", log_id=str(log_id))
            raise MissingLogData("Medication log store is unavailable") from exc
        return log_from_record(record) if record is not None else None

    async def append(self, log: MedicationLog) -> MedicationLog:
        record = MedicationLogRecord(
            id=log.id,
            medication_id=log.medication_id,
            medication_name=log.medication_name,
            timestamp=log.timestamp.astimezone(UTC),
            status=log.status.value,
            skip_reason=log.skip_reason,
            notes=log.notes,
            amount=log.amount,
            overridden=log.overridden,
        )
        self._db.add(record)
        try:
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.exception(
                "Failed to append medication log",
                medication_id=str(log.medication_id),
            )
            raise MissingLogData("Medication log store is unavailable") from exc
        return log

    async def delete(self, log_id: uuid.UUID) -> MedicationLog | None:
        try:
            record = await self._db.get(MedicationLogRecord, log_id)
            if record is None:
                return None
            removed = log_from_record(record)
            await self._db.delete(record)
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.exception("Failed to delete medication log", log_id=str(log_id))
            raise MissingLogData("Medication log store is unavailable") from exc
        return removed

    async def delete_for_medication(self, medication_id: uuid.UUID) -> int:
        try:
            result = await self._db.execute(
                delete(MedicationLogRecord).where(
                    MedicationLogRecord.medication_id == medication_id
                )
            )
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.exception(
                "Failed to delete medication logs",
                medication_id=str(medication_id),
            )
            raise MissingLogData("Medication log store is unavailable") from exc
        return result.rowcount or 0
