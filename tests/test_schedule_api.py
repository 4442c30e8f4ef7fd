"""Tests for GET /api/schedule/today."""

from factories import at


async def _create(client, **payload) -> str:
    response = await client.post("/api/medications", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


class TestTodaySchedule:
    async def test_empty(self, client):
        response = await client.get("/api/schedule/today")
        assert response.status_code == 200
        data = response.json()
        assert data["date"] == "2026-03-10"
        assert data["slots"] == []
        assert data["has_overdue"] is False
        assert data["taken_today_count"] == 0

    async def test_twice_daily_overdue_then_taken(self, client, clock):
        medication_id = await _create(
            client, name="Metformin", dosage="500mg", frequency="twice_daily"
        )
        clock.set(at(21))

        data = (await client.get("/api/schedule/today")).json()
        assert [slot["status"] for slot in data["slots"]] == ["overdue", "overdue"]
        assert data["has_overdue"] is True
        assert [d["overdue_by_minutes"] for d in data["overdue"]] == [780, 60]

        clock.set(at(8, 10))
        response = await client.post(f"/api/medications/{medication_id}/doses")
        assert response.status_code == 200
        log_id = response.json()["log"]["id"]

        clock.set(at(21))
        data = (await client.get("/api/schedule/today")).json()
        assert [slot["status"] for slot in data["slots"]] == ["taken", "overdue"]
        assert data["slots"][0]["log_id"] == log_id
        assert data["slots"][0]["time_of_day"] == "08:00:00"
        assert data["taken_today_count"] == 1
        assert len(data["overdue"]) == 1

    async def test_pending_and_reminder_times(self, client):
        await _create(
            client,
            name="Atorvastatin",
            frequency="once_daily",
            reminder_times=["21:00:00"],
        )
        data = (await client.get("/api/schedule/today")).json()
        assert [slot["status"] for slot in data["slots"]] == ["pending"]
        assert data["pending"][0]["medication_name"] == "Atorvastatin"
        assert data["overdue"] == []

    async def test_inactive_and_as_needed_excluded(self, client):
        medication_id = await _create(client, name="Lisinopril", frequency="once_daily")
        await _create(client, name="Ibuprofen", frequency="as_needed")
        await client.post(f"/api/medications/{medication_id}/deactivate")

        data = (await client.get("/api/schedule/today")).json()
        assert data["slots"] == []
        assert data["has_overdue"] is False

    async def test_slots_ordered_by_time(self, client):
        await _create(
            client, name="Evening", frequency="once_daily", reminder_times=["20:00"]
        )
        await _create(
            client, name="Morning", frequency="once_daily", reminder_times=["07:00"]
        )
        data = (await client.get("/api/schedule/today")).json()
        assert [slot["medication_name"] for slot in data["slots"]] == [
            "Morning",
            "Evening",
        ]

    async def test_aggregates_across_medications(self, client):
        await _create(
            client, name="Evening", frequency="once_daily", reminder_times=["20:00"]
        )
        await _create(
            client, name="Lunch", frequency="once_daily", reminder_times=["11:50"]
        )
        await _create(
            client, name="Morning", frequency="once_daily", reminder_times=["07:00"]
        )

        data = (await client.get("/api/schedule/today")).json()

        assert [d["medication_name"] for d in data["pending"]] == ["Lunch", "Evening"]
        assert [d["medication_name"] for d in data["overdue"]] == ["Morning"]
        assert data["overdue"][0]["overdue_by_minutes"] == 300
        assert data["has_overdue"] is True
