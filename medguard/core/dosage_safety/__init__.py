"""Medication dosage safety and scheduling.

Given a medication's dosage constraints and its intake history, this
package answers four questions:

1. Would taking a dose now violate any constraint?
2. Which constraints, and by how much?
3. When is the earliest instant a dose becomes safe?
4. Which of today's scheduled doses are pending, taken, skipped or
   overdue?

Everything here is a pure function over an explicit ``now`` and an
immutable log snapshot. The only mutating workflow (logging or undoing
a dose) lives in ``medguard.services.safety_gate``.

IMPORTANT: enforcement is advisory. Violations are warnings with
explanatory detail; the safety gate always offers an explicit override
and never categorically blocks a dose. This is a personal tracking aid
and does NOT replace advice from a prescriber or pharmacist.
"""

from medguard.core.dosage_safety.adherence import AdherenceSummary, summarize_adherence
from medguard.core.dosage_safety.availability import (
    assess_dose,
    constraint_clear_time,
    get_next_available_time,
)
from medguard.core.dosage_safety.constraints import (
    Custom,
    DosageConstraint,
    MaxCumulativeAmount,
    MaxPerPeriod,
    MinTimeBetween,
    TimeWindow,
    parse_constraint,
    serialize_constraint,
)
from medguard.core.dosage_safety.enums import (
    LogStatus,
    MedicationCategory,
    MedicationFrequency,
    SlotStatus,
)
from medguard.core.dosage_safety.evaluator import check_constraints, is_safe_to_take
from medguard.core.dosage_safety.exceptions import (
    InvalidConstraintConfiguration,
    InvalidMedicationConfiguration,
    MissingLogData,
    UnreachableDoseError,
)
from medguard.core.dosage_safety.models import (
    ConstraintViolation,
    DoseAssessment,
    Medication,
    MedicationLog,
    OverdueDose,
    PendingDose,
    ScheduledDoseSlot,
    build_medication,
    replace_medication,
)
from medguard.core.dosage_safety.scheduler import (
    build_daily_schedule,
    expected_doses_per_day,
    has_overdue_medications,
    overdue_medications,
    pending_medications,
    taken_today_count,
    was_taken_today,
)

__all__ = [
    "AdherenceSummary",
    "ConstraintViolation",
    "Custom",
    "DosageConstraint",
    "DoseAssessment",
    "InvalidConstraintConfiguration",
    "InvalidMedicationConfiguration",
    "LogStatus",
    "MaxCumulativeAmount",
    "MaxPerPeriod",
    "Medication",
    "MedicationCategory",
    "MedicationFrequency",
    "MedicationLog",
    "MinTimeBetween",
    "MissingLogData",
    "OverdueDose",
    "PendingDose",
    "ScheduledDoseSlot",
    "SlotStatus",
    "TimeWindow",
    "UnreachableDoseError",
    "assess_dose",
    "build_daily_schedule",
    "build_medication",
    "check_constraints",
    "constraint_clear_time",
    "expected_doses_per_day",
    "get_next_available_time",
    "has_overdue_medications",
    "is_safe_to_take",
    "overdue_medications",
    "parse_constraint",
    "pending_medications",
    "replace_medication",
    "serialize_constraint",
    "summarize_adherence",
    "taken_today_count",
    "was_taken_today",
]
