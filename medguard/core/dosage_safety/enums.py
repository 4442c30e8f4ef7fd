"""Dosage safety enums.

Frequencies, categories and statuses shared by the dosage safety
subsystem. See __init__.py for the advisory-only enforcement policy.
"""

from enum import StrEnum, auto


class MedicationFrequency(StrEnum):
    """How often a medication is scheduled to be taken.

    ``as_needed`` medications have no scheduled slots; they are logged
    ad hoc and only ever checked against their dosage constraints.
    ``custom_count`` takes its slot count from the medication's
    ``custom_daily_count``.
    """

    as_needed = auto()
    once_daily = auto()
    twice_daily = auto()
    three_times_daily = auto()
    four_times_daily = auto()
    custom_count = auto()

    @property
    def display_name(self) -> str:
        return _FREQUENCY_DISPLAY_NAMES[self]

    @property
    def short_name(self) -> str:
        return _FREQUENCY_SHORT_NAMES[self]


_FREQUENCY_DISPLAY_NAMES: dict[MedicationFrequency, str] = {
    MedicationFrequency.as_needed: "As needed",
    MedicationFrequency.once_daily: "Once daily",
    MedicationFrequency.twice_daily: "Twice daily",
    MedicationFrequency.three_times_daily: "3 times daily",
    MedicationFrequency.four_times_daily: "4 times daily",
    MedicationFrequency.custom_count: "Custom schedule",
}

_FREQUENCY_SHORT_NAMES: dict[MedicationFrequency, str] = {
    MedicationFrequency.as_needed: "PRN",
    MedicationFrequency.once_daily: "QD",
    MedicationFrequency.twice_daily: "BID",
    MedicationFrequency.three_times_daily: "TID",
    MedicationFrequency.four_times_daily: "QID",
    MedicationFrequency.custom_count: "Custom",
}


class MedicationCategory(StrEnum):
    """Category of medication, for organisation only."""

    prescription = auto()
    over_the_counter = auto()
    vitamin = auto()
    supplement = auto()
    herbal = auto()
    other = auto()


class LogStatus(StrEnum):
    """Outcome recorded by a medication log entry."""

    taken = auto()
    skipped = auto()


class SlotStatus(StrEnum):
    """Status of a scheduled dose slot for today."""

    pending = auto()
    taken = auto()
    skipped = auto()
    overdue = auto()
