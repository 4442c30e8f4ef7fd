"""Dosage safety errors.

Constraint violations are data (``ConstraintViolation``), never
exceptions. The errors here cover configuration that must be rejected
before it reaches the evaluator, and history that could not be loaded.
"""


class InvalidConstraintConfiguration(ValueError):
    """A dosage constraint has a non-positive duration, count or amount,
    or is otherwise malformed."""


class InvalidMedicationConfiguration(ValueError):
    """A medication's frequency, reminder times or dose amount are
    inconsistent with each other or with its constraints."""


class MissingLogData(RuntimeError):
    """The intake history could not be loaded from the log store."""


class UnreachableDoseError(ValueError):
    """The candidate dose alone exceeds a cumulative cap, so no amount of
    waiting makes it safe."""
