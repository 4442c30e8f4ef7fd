"""Safety gate service.

The one mutating workflow of the dosage safety subsystem. Consults the
evaluator before logging a dose and commits only when no constraint is
violated, unless the caller explicitly overrides. The gate warns, it
never categorically blocks: ``force_log_taken`` always commits.

Check-then-append runs under the log store's per-medication lock so two
near-simultaneous requests cannot both pass the check.
"""

import uuid
from datetime import datetime, timedelta

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from medguard.core.dosage_safety.availability import assess_dose
from medguard.core.dosage_safety.constants import MIN_SNAPSHOT_LOOKBACK
from medguard.core.dosage_safety.constraints import (
    MaxCumulativeAmount,
    MaxPerPeriod,
    MinTimeBetween,
)
from medguard.core.dosage_safety.enums import LogStatus
from medguard.core.dosage_safety.models import (
    ConstraintViolation,
    DoseAssessment,
    Medication,
    MedicationLog,
)
from medguard.logging_config import get_logger
from medguard.services.log_store import LogStore

logger = get_logger(__name__)


class GateResult(BaseModel):
    """Outcome of a gated log operation."""

    model_config = ConfigDict(frozen=True)

    committed: bool
    log: MedicationLog | None = None
    violations: list[ConstraintViolation] = Field(default_factory=list)
    next_available_at: AwareDatetime | None = None
    overridden: bool = False


def snapshot_lookback(medication: Medication) -> timedelta:
    """How far back history must reach to evaluate every constraint."""
    windows = [MIN_SNAPSHOT_LOOKBACK]
    for constraint in medication.constraints:
        if isinstance(constraint, MinTimeBetween):
            windows.append(constraint.min_gap)
        elif isinstance(constraint, (MaxPerPeriod, MaxCumulativeAmount)):
            windows.append(constraint.period)
    return max(windows)


class SafetyGate:
    """Gated logging of taken/skipped doses against a log store.

    Stateless apart from the injected store; a new gate per request is
    cheap.
    """

    def __init__(self, log_store: LogStore) -> None:
        self._store = log_store

    async def snapshot(
        self,
        medication: Medication,
        now: datetime,
    ) -> list[MedicationLog]:
        """Logs of ``medication`` needed to evaluate its constraints at ``now``."""
        return await self._store.list_logs(
            medication.id,
            start=now - snapshot_lookback(medication),
            end=now,
        )

    async def check(self, medication: Medication, now: datetime) -> DoseAssessment:
        """Read-only evaluation of a dose at ``now``."""
        return assess_dose(medication, now, await self.snapshot(medication, now))

    def _taken_log(
        self,
        medication: Medication,
        now: datetime,
        notes: str | None,
        overridden: bool,
    ) -> MedicationLog:
        return MedicationLog(
            medication_id=medication.id,
            medication_name=medication.display_string,
            timestamp=now,
            status=LogStatus.taken,
            notes=notes,
            amount=medication.dose_amount,
            overridden=overridden,
        )

    async def attempt_log_taken(
        self,
        medication: Medication,
        now: datetime,
        *,
        notes: str | None = None,
    ) -> GateResult:
        """Log a taken dose only if no constraint is violated.

        On violations nothing is written; the result carries the
        violations and the next available time so the caller can offer
        the override path.
        """
        async with self._store.lock(medication.id):
            assessment = assess_dose(
                medication, now, await self.snapshot(medication, now)
            )
            if not assessment.is_safe:
                logger.info(
                    "Dose not logged: constraint violations",
                    medication_id=str(medication.id),
                    violation_count=len(assessment.violations),
                    next_available_at=(
                        assessment.next_available_at.isoformat()
                        if assessment.next_available_at
                        else None
                    ),
                )
                return GateResult(
                    committed=False,
                    violations=assessment.violations,
                    next_available_at=assessment.next_available_at,
                )

            log = await self._store.append(
                self._taken_log(medication, now, notes, overridden=False)
            )

        logger.info(
            "Dose logged",
            medication_id=str(medication.id),
            log_id=str(log.id),
        )
        return GateResult(committed=True, log=log)

    async def force_log_taken(
        self,
        medication: Medication,
        now: datetime,
        *,
        notes: str | None = None,
    ) -> GateResult:
        """Log a taken dose unconditionally (explicit user override).

        Any violations present are returned and recorded on the log as
        ``overridden`` for later review.
        """
        async with self._store.lock(medication.id):
            assessment = assess_dose(
                medication, now, await self.snapshot(medication, now)
            )
            overridden = not assessment.is_safe
            log = await self._store.append(
                self._taken_log(medication, now, notes, overridden=overridden)
            )

        if overridden:
            logger.warning(
                "Dose override recorded",
                medication_id=str(medication.id),
                log_id=str(log.id),
                violations=[v.constraint.kind for v in assessment.violations],
            )
        else:
            logger.info(
                "Dose logged",
                medication_id=str(medication.id),
                log_id=str(log.id),
            )
        return GateResult(
            committed=True,
            log=log,
            violations=assessment.violations,
            next_available_at=assessment.next_available_at,
            overridden=overridden,
        )

    async def attempt_log_skipped(
        self,
        medication: Medication,
        now: datetime,
        reason: str | None = None,
        *,
        notes: str | None = None,
    ) -> MedicationLog:
        """Log a skipped dose and return the stored entry.

        Skips are never constrained, so there is nothing to report back
        beyond the log itself.
        """
        log = MedicationLog(
            medication_id=medication.id,
            medication_name=medication.display_string,
            timestamp=now,
            status=LogStatus.skipped,
            skip_reason=reason,
            notes=notes,
        )
        async with self._store.lock(medication.id):
            log = await self._store.append(log)

        logger.info(
            "Dose skipped",
            medication_id=str(medication.id),
            log_id=str(log.id),
        )
        return log

    async def delete_log(self, log_id: uuid.UUID) -> MedicationLog | None:
        """Undo one log.

        No re-check is needed: removing a log can only reduce future
        violations.
        """
        removed = await self._store.delete(log_id)
        if removed is not None:
            logger.info(
                "Medication log deleted",
                medication_id=str(removed.medication_id),
                log_id=str(log_id),
            )
        return removed
