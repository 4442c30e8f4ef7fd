"""Dosage constraint models.

A ``DosageConstraint`` is a closed tagged union discriminated by
``kind``. Evaluation and next-available-time logic match on the concrete
class and end with ``assert_never`` so a new variant cannot be added
without handling it everywhere.

Constraints are frozen values. A medication's constraint set is replaced
wholesale on edit, never mutated in place.
"""

from datetime import time, timedelta
from decimal import Decimal
from typing import Annotated, Any, Literal, Self

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from medguard.core.dosage_safety.exceptions import InvalidConstraintConfiguration


def format_duration(value: timedelta) -> str:
    """Render a duration compactly, e.g. ``1d 2h``, ``3h 59m``, ``45s``."""
    total_seconds = int(value.total_seconds())
    if total_seconds < 60:
        return f"{max(total_seconds, 0)}s"

    days, remainder = divmod(total_seconds, 86_400)
    hours, remainder = divmod(remainder, 3_600)
    minutes = remainder // 60

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    return " ".join(parts)


def _require_positive_duration(value: timedelta) -> timedelta:
    if value <= timedelta(0):
        msg = f"duration must be positive, got {value}"
        raise ValueError(msg)
    return value


PositiveDuration = Annotated[timedelta, AfterValidator(_require_positive_duration)]


class _ConstraintBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class MinTimeBetween(_ConstraintBase):
    """Floor on spacing between consecutive taken doses."""

    kind: Literal["min_time_between"] = "min_time_between"
    min_gap: PositiveDuration

    def describe(self) -> str:
        return f"At least {format_duration(self.min_gap)} between doses"


class MaxPerPeriod(_ConstraintBase):
    """Cap on the number of taken doses in a rolling window."""

    kind: Literal["max_per_period"] = "max_per_period"
    max_count: int = Field(gt=0)
    period: PositiveDuration

    def describe(self) -> str:
        noun = "dose" if self.max_count == 1 else "doses"
        return f"At most {self.max_count} {noun} per {format_duration(self.period)}"


class MaxCumulativeAmount(_ConstraintBase):
    """Cap on the summed dose amount in a rolling window.

    Amounts come from each taken log's ``amount`` (falling back to the
    medication's ``dose_amount``), never from the free-text dosage.
    """

    kind: Literal["max_cumulative_amount"] = "max_cumulative_amount"
    max_amount: Decimal = Field(gt=0)
    unit: str = Field(min_length=1, max_length=32)
    period: PositiveDuration

    @field_validator("unit")
    @classmethod
    def strip_unit(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "unit must not be blank"
            raise ValueError(msg)
        return value

    def describe(self) -> str:
        return (
            f"At most {self.max_amount}{self.unit} per "
            f"{format_duration(self.period)}"
        )


class TimeWindow(_ConstraintBase):
    """Restricts dosing to a daily clock window.

    Bounds are interpreted on the calendar day of the instant being
    checked, in that instant's timezone. Both bounds are inclusive.
    """

    kind: Literal["time_window"] = "time_window"
    not_before: time | None = None
    not_after: time | None = None

    @model_validator(mode="after")
    def check_bounds(self) -> Self:
        if self.not_before is None and self.not_after is None:
            msg = "time window needs at least one of not_before / not_after"
            raise ValueError(msg)
        if (
            self.not_before is not None
            and self.not_after is not None
            and self.not_before >= self.not_after
        ):
            msg = "not_before must be earlier than not_after"
            raise ValueError(msg)
        return self

    def describe(self) -> str:
        if self.not_before is not None and self.not_after is not None:
            return (
                f"Only between {self.not_before:%H:%M} and {self.not_after:%H:%M}"
            )
        if self.not_before is not None:
            return f"Not before {self.not_before:%H:%M}"
        return f"Not after {self.not_after:%H:%M}"


class Custom(_ConstraintBase):
    """Free-text note shown alongside the medication. Never evaluated."""

    kind: Literal["custom"] = "custom"
    description: str = Field(min_length=1, max_length=500)

    def describe(self) -> str:
        return self.description


DosageConstraint = Annotated[
    MinTimeBetween | MaxPerPeriod | MaxCumulativeAmount | TimeWindow | Custom,
    Field(discriminator="kind"),
]

ROLLING_CONSTRAINT_TYPES = (MinTimeBetween, MaxPerPeriod, MaxCumulativeAmount)

_constraint_adapter: TypeAdapter[DosageConstraint] = TypeAdapter(DosageConstraint)


def parse_constraint(data: Any) -> DosageConstraint:
    """Validate a serialised constraint (e.g. from a JSON column).

    Raises:
        InvalidConstraintConfiguration: If the payload is not a valid
            constraint of any known kind.
    """
    try:
        return _constraint_adapter.validate_python(data)
    except ValidationError as exc:
        raise InvalidConstraintConfiguration(str(exc)) from exc


def serialize_constraint(constraint: DosageConstraint) -> dict[str, Any]:
    """JSON-safe form of a constraint; ``parse_constraint`` reverses it."""
    return constraint.model_dump(mode="json")
