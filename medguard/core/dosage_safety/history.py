"""Intake history view used by the evaluator and availability calculator."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from medguard.core.dosage_safety.enums import LogStatus
from medguard.core.dosage_safety.models import Medication, MedicationLog


@dataclass(frozen=True)
class IntakeHistory:
    """Taken doses of one medication at or before ``as_of``, oldest first.

    Skipped logs never count toward any constraint, and logs dated after
    ``as_of`` are ignored.
    """

    medication: Medication
    as_of: datetime
    taken: tuple[MedicationLog, ...]

    @classmethod
    def from_logs(
        cls,
        medication: Medication,
        as_of: datetime,
        logs: Iterable[MedicationLog],
    ) -> "IntakeHistory":
        taken = sorted(
            (
                log
                for log in logs
                if log.medication_id == medication.id
                and log.status == LogStatus.taken
                and log.timestamp <= as_of
            ),
            key=lambda log: log.timestamp,
        )
        return cls(medication=medication, as_of=as_of, taken=tuple(taken))

    @property
    def is_empty(self) -> bool:
        return not self.taken

    def last_taken(self) -> MedicationLog | None:
        return self.taken[-1] if self.taken else None

    def taken_within(self, period: timedelta) -> list[MedicationLog]:
        """Taken logs in the rolling window ``(as_of - period, as_of]``."""
        cutoff = self.as_of - period
        return [log for log in self.taken if log.timestamp > cutoff]

    def amount_of(self, log: MedicationLog) -> Decimal:
        """Per-dose amount, falling back to the medication's current dose."""
        if log.amount is not None:
            return log.amount
        return self.medication.dose_amount or Decimal(0)
