"""Next-available-time calculator.

For every violated constraint, computes independently when that
constraint alone clears; the dose becomes safe at the latest of those
instants. Because a rolling clear time can land outside a daily time
window, the candidate instant is re-checked and pushed forward until
nothing is violated, so the returned time is always a fixed point:
``check_constraints`` at that instant (same snapshot) returns nothing.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import assert_never

from medguard.core.dosage_safety.constants import MAX_AVAILABILITY_ITERATIONS
from medguard.core.dosage_safety.constraints import (
    Custom,
    DosageConstraint,
    MaxCumulativeAmount,
    MaxPerPeriod,
    MinTimeBetween,
    TimeWindow,
)
from medguard.core.dosage_safety.evaluator import (
    evaluate_constraints,
    day_bounds,
    resolve_candidate_amount,
)
from medguard.core.dosage_safety.exceptions import UnreachableDoseError
from medguard.core.dosage_safety.history import IntakeHistory
from medguard.core.dosage_safety.models import (
    ConstraintViolation,
    DoseAssessment,
    Medication,
    MedicationLog,
)


def constraint_clear_time(
    constraint: DosageConstraint,
    history: IntakeHistory,
    candidate_amount: Decimal,
) -> datetime | None:
    """When ``constraint`` alone stops being violated, evaluated at
    ``history.as_of``.

    Returns ``history.as_of`` if the constraint is not violated, and
    ``None`` if it can never clear.
    """
    match constraint:
        case MinTimeBetween():
            return _min_time_between_clear(constraint, history)
        case MaxPerPeriod():
            return _max_per_period_clear(constraint, history)
        case MaxCumulativeAmount():
            return _max_cumulative_clear(constraint, history, candidate_amount)
        case TimeWindow():
            return _time_window_clear(constraint, history.as_of)
        case Custom():
            return history.as_of
        case _:
            assert_never(constraint)


def _min_time_between_clear(
    constraint: MinTimeBetween,
    history: IntakeHistory,
) -> datetime:
    last = history.last_taken()
    if last is None:
        return history.as_of
    return max(history.as_of, last.timestamp + constraint.min_gap)


def _max_per_period_clear(
    constraint: MaxPerPeriod,
    history: IntakeHistory,
) -> datetime:
    window = history.taken_within(constraint.period)
    excess = len(window) - constraint.max_count
    if excess < 0:
        return history.as_of
    # The oldest (excess + 1) doses must leave the window; the last of
    # them is the max_count-th most recent dose.
    return window[excess].timestamp + constraint.period


def _max_cumulative_clear(
    constraint: MaxCumulativeAmount,
    history: IntakeHistory,
    candidate_amount: Decimal,
) -> datetime | None:
    window = history.taken_within(constraint.period)
    remaining = sum((history.amount_of(log) for log in window), Decimal(0))
    if remaining + candidate_amount <= constraint.max_amount:
        return history.as_of

    for log in window:
        remaining -= history.amount_of(log)
        if remaining + candidate_amount <= constraint.max_amount:
            return log.timestamp + constraint.period
    return None


def _time_window_clear(constraint: TimeWindow, now: datetime) -> datetime:
    not_before, not_after = day_bounds(now, constraint)
    if not_before is not None and now < not_before:
        return not_before
    if not_after is not None and now > not_after:
        tomorrow = now.date() + timedelta(days=1)
        opens_at = constraint.not_before or time.min
        return datetime.combine(tomorrow, opens_at, tzinfo=now.tzinfo)
    return now


def _clear_times(
    violations: Sequence[ConstraintViolation],
    history: IntakeHistory,
    candidate_amount: Decimal,
) -> list[datetime]:
    clear_times = []
    for violation in violations:
        cleared_at = constraint_clear_time(
            violation.constraint, history, candidate_amount
        )
        if cleared_at is None:
            msg = (
                f"A dose of {candidate_amount} can never satisfy "
                f"'{violation.constraint.describe()}'"
            )
            raise UnreachableDoseError(msg)
        clear_times.append(cleared_at)
    return clear_times


def get_next_available_time(
    medication: Medication,
    now: datetime,
    logs: Iterable[MedicationLog],
    *,
    candidate_amount: Decimal | None = None,
) -> datetime | None:
    """Earliest instant at which every constraint is satisfied.

    Returns:
        ``None`` when a dose is already safe at ``now``; otherwise the
        earliest later instant with no violations (same snapshot).

    Raises:
        UnreachableDoseError: If the candidate dose alone exceeds a
            cumulative cap.
    """
    return _next_available(
        medication,
        now,
        list(logs),
        resolve_candidate_amount(medication, candidate_amount),
    )


def _next_available(
    medication: Medication,
    now: datetime,
    logs: list[MedicationLog],
    amount: Decimal,
) -> datetime | None:
    candidate = now
    for _ in range(MAX_AVAILABILITY_ITERATIONS):
        violations = evaluate_constraints(medication, candidate, logs, amount)
        if not violations:
            return None if candidate == now else candidate
        history = IntakeHistory.from_logs(medication, candidate, logs)
        candidate = max(_clear_times(violations, history, amount))

    msg = f"next available time did not settle for medication {medication.id}"
    raise RuntimeError(msg)


def assess_dose(
    medication: Medication,
    now: datetime,
    logs: Iterable[MedicationLog],
    *,
    candidate_amount: Decimal | None = None,
) -> DoseAssessment:
    """Violations at ``now`` (each with its own clear time) plus the
    overall next available time."""
    logs = list(logs)
    amount = resolve_candidate_amount(medication, candidate_amount)
    violations = evaluate_constraints(medication, now, logs, amount)
    if not violations:
        return DoseAssessment(checked_at=now)

    history = IntakeHistory.from_logs(medication, now, logs)
    annotated = [
        violation.model_copy(
            update={
                "available_at": constraint_clear_time(
                    violation.constraint, history, amount
                )
            }
        )
        for violation in violations
    ]
    return DoseAssessment(
        checked_at=now,
        violations=annotated,
        next_available_at=_next_available(medication, now, logs, amount),
    )
