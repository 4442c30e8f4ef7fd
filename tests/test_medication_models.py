"""Tests for Medication / MedicationLog validation and build helpers."""

from datetime import UTC, datetime, time, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from medguard.core.dosage_safety.constraints import (
    MaxCumulativeAmount,
    MinTimeBetween,
)
from medguard.core.dosage_safety.enums import LogStatus, MedicationFrequency
from medguard.core.dosage_safety.exceptions import (
    InvalidConstraintConfiguration,
    InvalidMedicationConfiguration,
)
from medguard.core.dosage_safety.models import (
    MedicationLog,
    build_medication,
    replace_medication,
)

from factories import make_medication

_CAP = {
    "kind": "max_cumulative_amount",
    "max_amount": "3000",
    "unit": "mg",
    "period": "PT24H",
}


class TestDailyDoseCount:
    @pytest.mark.parametrize(
        ("frequency", "expected"),
        [
            ("as_needed", 0),
            ("once_daily", 1),
            ("twice_daily", 2),
            ("three_times_daily", 3),
            ("four_times_daily", 4),
        ],
    )
    def test_fixed_frequencies(self, frequency, expected):
        assert make_medication(frequency=frequency).daily_dose_count == expected

    def test_custom_count(self):
        medication = make_medication(frequency="custom_count", custom_daily_count=6)
        assert medication.daily_dose_count == 6


class TestBuildMedication:
    def test_custom_count_requires_count(self):
        with pytest.raises(InvalidMedicationConfiguration):
            build_medication(name="Levothyroxine", frequency="custom_count")

    def test_count_only_with_custom_frequency(self):
        with pytest.raises(InvalidMedicationConfiguration):
            build_medication(
                name="Levothyroxine", frequency="once_daily", custom_daily_count=2
            )

    def test_custom_count_upper_bound(self):
        with pytest.raises(InvalidMedicationConfiguration):
            build_medication(
                name="Drops", frequency="custom_count", custom_daily_count=25
            )

    def test_bad_constraint_reported_as_constraint_error(self):
        with pytest.raises(InvalidConstraintConfiguration):
            build_medication(
                name="Ibuprofen",
                constraints=[{"kind": "min_time_between", "min_gap": -60}],
            )

    def test_reminder_times_must_match_slot_count(self):
        with pytest.raises(InvalidMedicationConfiguration):
            build_medication(
                name="Metformin",
                frequency="twice_daily",
                reminder_times=[time(8, 0)],
            )

    def test_reminder_times_must_be_distinct(self):
        with pytest.raises(InvalidMedicationConfiguration):
            build_medication(
                name="Metformin",
                frequency="twice_daily",
                reminder_times=[time(8, 0), time(8, 0)],
            )

    def test_as_needed_has_no_reminders(self):
        with pytest.raises(InvalidMedicationConfiguration):
            build_medication(
                name="Ibuprofen",
                frequency="as_needed",
                reminder_times=[time(8, 0)],
            )

    def test_cumulative_cap_needs_structured_dose(self):
        with pytest.raises(InvalidMedicationConfiguration):
            build_medication(name="Acetaminophen", constraints=[_CAP])

    def test_cumulative_cap_unit_must_match(self):
        with pytest.raises(InvalidMedicationConfiguration):
            build_medication(
                name="Acetaminophen",
                dose_amount=Decimal("500"),
                dose_unit="g",
                constraints=[_CAP],
            )

    def test_single_dose_over_cap_rejected(self):
        with pytest.raises(InvalidMedicationConfiguration):
            build_medication(
                name="Acetaminophen",
                dose_amount=Decimal("3500"),
                dose_unit="mg",
                constraints=[_CAP],
            )

    def test_valid_medication(self):
        medication = build_medication(
            name="Acetaminophen",
            dosage="500mg",
            dose_amount=Decimal("500"),
            dose_unit="MG",
            constraints=[_CAP, {"kind": "min_time_between", "min_gap": "PT4H"}],
        )
        assert isinstance(medication.constraints[0], MaxCumulativeAmount)
        assert medication.constraints[1] == MinTimeBetween(min_gap=timedelta(hours=4))
        assert medication.display_string == "Acetaminophen 500mg"


class TestReplaceMedication:
    def test_returns_new_value(self):
        medication = make_medication()
        renamed = replace_medication(medication, name="Advil")
        assert renamed.name == "Advil"
        assert medication.name == "Ibuprofen"
        assert renamed.id == medication.id
        assert renamed.created_at == medication.created_at

    def test_constraints_replaced_wholesale(self):
        medication = make_medication(
            constraints=[MinTimeBetween(min_gap=timedelta(hours=4))]
        )
        updated = replace_medication(
            medication,
            constraints=[{"kind": "max_per_period", "max_count": 3, "period": "P1D"}],
        )
        assert len(updated.constraints) == 1
        assert updated.constraints[0].kind == "max_per_period"

    def test_invalid_change_rejected(self):
        medication = make_medication(frequency="twice_daily")
        with pytest.raises(InvalidMedicationConfiguration):
            replace_medication(medication, frequency=MedicationFrequency.custom_count)


class TestDisplay:
    def test_summary(self):
        medication = make_medication(dosage="500mg", frequency="twice_daily")
        assert medication.summary == "500mg · Twice daily"

    def test_display_string_without_dosage(self):
        assert make_medication(dosage=None).display_string == "Ibuprofen"


class TestMedicationLog:
    def test_requires_aware_timestamp(self):
        medication = make_medication()
        with pytest.raises(ValidationError):
            MedicationLog(
                medication_id=medication.id,
                medication_name="Ibuprofen",
                timestamp=datetime(2026, 3, 10, 8, 0),
                status=LogStatus.taken,
            )

    def test_skip_reason_only_on_skips(self):
        medication = make_medication()
        with pytest.raises(ValidationError):
            MedicationLog(
                medication_id=medication.id,
                medication_name="Ibuprofen",
                timestamp=datetime(2026, 3, 10, 8, 0, tzinfo=UTC),
                status=LogStatus.taken,
                skip_reason="nausea",
            )

    def test_skips_carry_no_amount(self):
        medication = make_medication()
        with pytest.raises(ValidationError):
            MedicationLog(
                medication_id=medication.id,
                medication_name="Ibuprofen",
                timestamp=datetime(2026, 3, 10, 8, 0, tzinfo=UTC),
                status=LogStatus.skipped,
                amount=Decimal("400"),
            )
