"""Dosage constraint evaluator.

Checks a candidate "take now" instant against every constraint on a
medication. Pure and synchronous: ``now`` and the log snapshot are
always passed in, nothing reads the clock or touches storage here, so
the functions are safe to call concurrently from any number of readers.

Every constraint is evaluated (no short-circuit) in declaration order,
so callers receive the complete violation set at once.

Empty history is fail-open: with no taken logs, the spacing, count and
amount rules have nothing to count and report no violation. Callers
that could not load history must surface ``MissingLogData`` instead of
passing an empty snapshot. Time windows still apply.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import assert_never

from medguard.core.dosage_safety.constraints import (
    ROLLING_CONSTRAINT_TYPES,
    Custom,
    DosageConstraint,
    MaxCumulativeAmount,
    MaxPerPeriod,
    MinTimeBetween,
    TimeWindow,
    format_duration,
)
from medguard.core.dosage_safety.history import IntakeHistory
from medguard.core.dosage_safety.models import (
    ConstraintViolation,
    Medication,
    MedicationLog,
)
from medguard.logging_config import get_logger

logger = get_logger(__name__)


def resolve_candidate_amount(
    medication: Medication,
    candidate_amount: Decimal | None = None,
) -> Decimal:
    """Amount of the dose about to be taken (the medication's dose by default)."""
    if candidate_amount is not None:
        if candidate_amount <= 0:
            msg = f"candidate_amount must be positive, got {candidate_amount}"
            raise ValueError(msg)
        return candidate_amount
    return medication.dose_amount or Decimal(0)


def day_bounds(
    now: datetime,
    window: TimeWindow,
) -> tuple[datetime | None, datetime | None]:
    """The window's bounds as full timestamps on ``now``'s calendar day."""
    day = now.date()
    not_before = (
        datetime.combine(day, window.not_before, tzinfo=now.tzinfo)
        if window.not_before is not None
        else None
    )
    not_after = (
        datetime.combine(day, window.not_after, tzinfo=now.tzinfo)
        if window.not_after is not None
        else None
    )
    return not_before, not_after


def check_constraints(
    medication: Medication,
    now: datetime,
    logs: Iterable[MedicationLog],
    *,
    candidate_amount: Decimal | None = None,
) -> list[ConstraintViolation]:
    """Return every constraint a dose taken at ``now`` would violate.

    Args:
        medication: The medication, including its constraint set.
        now: The candidate intake instant (timezone-aware).
        logs: Snapshot of the medication's intake history. Logs for other
            medications and logs dated after ``now`` are ignored.
        candidate_amount: Amount of the candidate dose; defaults to the
            medication's ``dose_amount``.

    Returns:
        Violations in constraint declaration order. Empty means safe.
    """
    return evaluate_constraints(
        medication, now, logs, resolve_candidate_amount(medication, candidate_amount)
    )


def evaluate_constraints(
    medication: Medication,
    now: datetime,
    logs: Iterable[MedicationLog],
    amount: Decimal,
) -> list[ConstraintViolation]:
    """``check_constraints`` for an amount already passed through
    ``resolve_candidate_amount`` (zero when the medication has no
    structured dose)."""
    history = IntakeHistory.from_logs(medication, now, logs)

    if history.is_empty and any(
        isinstance(c, ROLLING_CONSTRAINT_TYPES) for c in medication.constraints
    ):
        logger.debug(
            "No taken doses in snapshot; rolling limits evaluate as clear",
            medication_id=str(medication.id),
        )

    violations: list[ConstraintViolation] = []
    for constraint in medication.constraints:
        violation = check_constraint(constraint, history, amount)
        if violation is not None:
            violations.append(violation)
    return violations


def is_safe_to_take(
    medication: Medication,
    now: datetime,
    logs: Iterable[MedicationLog],
    *,
    candidate_amount: Decimal | None = None,
) -> bool:
    return not check_constraints(
        medication, now, logs, candidate_amount=candidate_amount
    )


def check_constraint(
    constraint: DosageConstraint,
    history: IntakeHistory,
    candidate_amount: Decimal,
) -> ConstraintViolation | None:
    """Evaluate a single constraint at ``history.as_of``."""
    match constraint:
        case MinTimeBetween():
            return _check_min_time_between(constraint, history)
        case MaxPerPeriod():
            return _check_max_per_period(constraint, history)
        case MaxCumulativeAmount():
            return _check_max_cumulative_amount(constraint, history, candidate_amount)
        case TimeWindow():
            return _check_time_window(constraint, history.as_of)
        case Custom():
            return None
        case _:
            assert_never(constraint)


def _check_min_time_between(
    constraint: MinTimeBetween,
    history: IntakeHistory,
) -> ConstraintViolation | None:
    last = history.last_taken()
    if last is None:
        return None

    elapsed = history.as_of - last.timestamp
    if elapsed >= constraint.min_gap:
        return None

    remaining = constraint.min_gap - elapsed
    return ConstraintViolation(
        constraint=constraint,
        message=(
            f"Last dose was {format_duration(elapsed)} ago; wait "
            f"{format_duration(remaining)} more (minimum "
            f"{format_duration(constraint.min_gap)} between doses)"
        ),
        details={
            "last_taken_at": last.timestamp.isoformat(),
            "elapsed_seconds": elapsed.total_seconds(),
            "remaining_seconds": remaining.total_seconds(),
            "min_gap_seconds": constraint.min_gap.total_seconds(),
        },
    )


def _check_max_per_period(
    constraint: MaxPerPeriod,
    history: IntakeHistory,
) -> ConstraintViolation | None:
    count = len(history.taken_within(constraint.period))
    if count < constraint.max_count:
        return None

    return ConstraintViolation(
        constraint=constraint,
        message=(
            f"{count} doses already taken in the last "
            f"{format_duration(constraint.period)} (limit: {constraint.max_count})"
        ),
        details={
            "count": count,
            "max_count": constraint.max_count,
            "period_seconds": constraint.period.total_seconds(),
        },
    )


def _check_max_cumulative_amount(
    constraint: MaxCumulativeAmount,
    history: IntakeHistory,
    candidate_amount: Decimal,
) -> ConstraintViolation | None:
    window = history.taken_within(constraint.period)
    taken_amount = sum((history.amount_of(log) for log in window), Decimal(0))
    projected = taken_amount + candidate_amount
    if projected <= constraint.max_amount:
        return None

    unit = constraint.unit
    return ConstraintViolation(
        constraint=constraint,
        message=(
            f"Projected total {projected}{unit} in the last "
            f"{format_duration(constraint.period)} exceeds the limit of "
            f"{constraint.max_amount}{unit}"
        ),
        details={
            "taken_amount": str(taken_amount),
            "candidate_amount": str(candidate_amount),
            "projected_amount": str(projected),
            "max_amount": str(constraint.max_amount),
            "unit": unit,
            "period_seconds": constraint.period.total_seconds(),
        },
    )


def _check_time_window(
    constraint: TimeWindow,
    now: datetime,
) -> ConstraintViolation | None:
    not_before, not_after = day_bounds(now, constraint)

    if not_before is not None and now < not_before:
        message = (
            f"Too early: not before {constraint.not_before:%H:%M} "
            f"(now {now:%H:%M})"
        )
    elif not_after is not None and now > not_after:
        message = (
            f"Too late: not after {constraint.not_after:%H:%M} (now {now:%H:%M})"
        )
    else:
        return None

    return ConstraintViolation(
        constraint=constraint,
        message=message,
        details={
            "now": now.isoformat(),
            "not_before": not_before.isoformat() if not_before else None,
            "not_after": not_after.isoformat() if not_after else None,
        },
    )


def remaining_wait(violation: ConstraintViolation, now: datetime) -> timedelta | None:
    """Time left until the violated constraint clears, when known."""
    if violation.available_at is None:
        return None
    return max(violation.available_at - now, timedelta(0))
