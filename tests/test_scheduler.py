"""Tests for the daily dose scheduler."""

from datetime import time, timedelta

import pytest

from medguard.core.dosage_safety.enums import SlotStatus
from medguard.core.dosage_safety.exceptions import InvalidMedicationConfiguration
from medguard.core.dosage_safety.scheduler import (
    build_daily_schedule,
    has_overdue_medications,
    overdue_medications,
    pending_medications,
    slot_times,
    taken_today_count,
    was_taken_today,
)

from factories import at, make_medication, skipped, taken


def _statuses(slots):
    return [slot.status for slot in slots]


class TestSlotTimes:
    def test_default_twice_daily(self):
        medication = make_medication(frequency="twice_daily")
        assert slot_times(medication, 2) == [time(8, 0), time(20, 0)]

    def test_reminder_times_override_defaults(self):
        medication = make_medication(
            frequency="twice_daily", reminder_times=[time(21, 0), time(9, 0)]
        )
        assert slot_times(medication, 2) == [time(9, 0), time(21, 0)]

    def test_custom_count_spread_between_defaults(self):
        medication = make_medication(frequency="custom_count", custom_daily_count=5)
        assert slot_times(medication, 5) == [
            time(8, 0),
            time(11, 0),
            time(14, 0),
            time(17, 0),
            time(20, 0),
        ]


class TestBuildDailySchedule:
    def test_as_needed_has_no_slots(self):
        assert build_daily_schedule(make_medication(), at(12), []) == []

    def test_twice_daily_both_overdue(self):
        medication = make_medication(frequency="twice_daily")
        slots = build_daily_schedule(medication, at(21), [])
        assert _statuses(slots) == [SlotStatus.overdue, SlotStatus.overdue]

    def test_one_taken_log_fills_exactly_one_slot(self):
        medication = make_medication(frequency="twice_daily")
        logs = [taken(medication, at(8, 15))]
        slots = build_daily_schedule(medication, at(21), logs)
        assert _statuses(slots) == [SlotStatus.taken, SlotStatus.overdue]
        assert slots[0].log == logs[0]

    def test_untaken_slot_status_depends_on_its_own_time(self):
        medication = make_medication(frequency="twice_daily")
        logs = [taken(medication, at(8, 15))]
        slots = build_daily_schedule(medication, at(12), logs)
        assert _statuses(slots) == [SlotStatus.taken, SlotStatus.pending]

    def test_grace_period(self):
        medication = make_medication(frequency="once_daily")
        assert _statuses(build_daily_schedule(medication, at(8, 30), [])) == [
            SlotStatus.pending
        ]
        assert _statuses(build_daily_schedule(medication, at(8, 31), [])) == [
            SlotStatus.overdue
        ]
        slots = build_daily_schedule(
            medication, at(8, 31), [], grace_period=timedelta(hours=1)
        )
        assert _statuses(slots) == [SlotStatus.pending]

    def test_early_dose_counts_for_first_slot(self):
        medication = make_medication(frequency="twice_daily")
        logs = [taken(medication, at(6))]
        slots = build_daily_schedule(medication, at(9), logs)
        assert _statuses(slots) == [SlotStatus.taken, SlotStatus.pending]

    def test_duplicate_dose_does_not_fill_next_slot(self):
        medication = make_medication(frequency="twice_daily")
        logs = [taken(medication, at(8)), taken(medication, at(9))]
        slots = build_daily_schedule(medication, at(21), logs)
        assert _statuses(slots) == [SlotStatus.taken, SlotStatus.overdue]

    def test_skip_marks_slot_skipped(self):
        medication = make_medication(frequency="once_daily")
        slots = build_daily_schedule(medication, at(12), [skipped(medication, at(9))])
        assert _statuses(slots) == [SlotStatus.skipped]

    def test_yesterdays_logs_ignored(self):
        medication = make_medication(frequency="once_daily")
        logs = [taken(medication, at(8, day=9))]
        slots = build_daily_schedule(medication, at(12), logs)
        assert _statuses(slots) == [SlotStatus.overdue]

    def test_slots_carry_time_of_day(self):
        medication = make_medication(frequency="three_times_daily")
        slots = build_daily_schedule(medication, at(7), [])
        assert [slot.time_of_day for slot in slots] == [
            time(8, 0),
            time(14, 0),
            time(20, 0),
        ]
        assert _statuses(slots) == [SlotStatus.pending] * 3

    def test_malformed_frequency_raises_when_strict(self):
        medication = make_medication(frequency="custom_count", custom_daily_count=2)
        broken = medication.model_copy(update={"custom_daily_count": None})
        with pytest.raises(InvalidMedicationConfiguration):
            build_daily_schedule(broken, at(12), [], strict=True)

    def test_malformed_frequency_fails_closed(self):
        medication = make_medication(frequency="custom_count", custom_daily_count=2)
        broken = medication.model_copy(update={"custom_daily_count": None})
        assert build_daily_schedule(broken, at(12), [], strict=False) == []


class TestAggregates:
    def test_pending_and_overdue(self):
        morning = make_medication(name="Levothyroxine", frequency="once_daily")
        evening = make_medication(
            name="Atorvastatin",
            frequency="once_daily",
            reminder_times=[time(21, 0)],
        )
        overdue = overdue_medications([morning, evening], at(12), [])
        assert [d.medication.name for d in overdue] == ["Levothyroxine"]
        assert overdue[0].overdue_by == timedelta(hours=4)

        pending = pending_medications([morning, evening], at(12), [])
        assert [d.medication.name for d in pending] == ["Atorvastatin"]
        assert has_overdue_medications([morning, evening], at(12), [])

    def test_inactive_medications_skipped(self):
        medication = make_medication(frequency="once_daily", is_active=False)
        assert overdue_medications([medication], at(12), []) == []
        assert not has_overdue_medications([medication], at(12), [])

    def test_taken_today_count_counts_distinct_medications(self):
        first = make_medication(name="A")
        second = make_medication(name="B")
        logs = [
            taken(first, at(8)),
            taken(first, at(10)),
            taken(second, at(9)),
            taken(second, at(23, day=9)),
            skipped(make_medication(name="C"), at(9)),
        ]
        assert taken_today_count(at(12), logs) == 2

    def test_was_taken_today(self):
        medication = make_medication()
        assert was_taken_today(medication, at(12), [taken(medication, at(7))])
        assert not was_taken_today(medication, at(12), [skipped(medication, at(7))])
        assert not was_taken_today(
            medication, at(12), [taken(medication, at(7, day=9))]
        )
