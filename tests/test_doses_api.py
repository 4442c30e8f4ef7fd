"""Tests for the dose check, logging, override, skip and undo endpoints."""

import uuid
from datetime import datetime

from medguard.core.dosage_safety.exceptions import MissingLogData
from medguard.dependencies import get_safety_gate
from medguard.main import app
from medguard.services.log_store import InMemoryLogStore
from medguard.services.safety_gate import SafetyGate

from factories import at

_ACETAMINOPHEN = {
    "name": "Acetaminophen",
    "dosage": "400mg",
    "frequency": "as_needed",
    "dose_amount": "400",
    "dose_unit": "mg",
    "constraints": [
        {
            "kind": "max_cumulative_amount",
            "max_amount": "3000",
            "unit": "mg",
            "period": "PT24H",
        },
        {"kind": "min_time_between", "min_gap": "PT4H"},
    ],
}


class _UnavailableLogStore(InMemoryLogStore):
    async def list_logs(self, medication_id=None, *, start=None, end=None):
        raise MissingLogData("Medication log store is unavailable")


async def _create(client, payload=_ACETAMINOPHEN) -> str:
    response = await client.post("/api/medications", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value)


class TestCheck:
    async def test_safe_with_no_history(self, client):
        medication_id = await _create(client)
        response = await client.get(f"/api/medications/{medication_id}/check")
        assert response.status_code == 200
        data = response.json()
        assert data["safe"] is True
        assert data["violations"] == []
        assert data["next_available_at"] is None
        assert data["disclaimer"]

    async def test_check_does_not_log(self, client):
        medication_id = await _create(client)
        await client.get(f"/api/medications/{medication_id}/check")
        logs = (await client.get(f"/api/medications/{medication_id}/logs")).json()
        assert logs["count"] == 0

    async def test_not_found(self, client):
        response = await client.get(f"/api/medications/{uuid.uuid4()}/check")
        assert response.status_code == 404


class TestGatedDose:
    async def test_spacing_violation_reported_under_amount_cap(self, client, clock):
        medication_id = await _create(client)
        for hour in (8, 12, 16):
            clock.set(at(hour))
            response = await client.post(f"/api/medications/{medication_id}/doses")
            assert response.status_code == 200, response.text

        clock.set(at(17))
        response = await client.post(f"/api/medications/{medication_id}/doses")
        assert response.status_code == 409
        data = response.json()
        assert data["committed"] is False
        assert data["log"] is None
        assert [v["kind"] for v in data["violations"]] == ["min_time_between"]
        assert data["violations"][0]["wait_seconds"] == 3 * 3600
        assert _parse(data["next_available_at"]) == at(20)

        logs = (await client.get(f"/api/medications/{medication_id}/logs")).json()
        assert logs["count"] == 3

    async def test_committed_dose(self, client):
        medication_id = await _create(client)
        response = await client.post(
            f"/api/medications/{medication_id}/doses",
            json={"notes": "after lunch"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["committed"] is True
        assert data["overridden"] is False
        assert data["log"]["status"] == "taken"
        assert data["log"]["notes"] == "after lunch"
        assert data["log"]["medication_name"] == "Acetaminophen 400mg"
        assert _parse(data["log"]["timestamp"]) == at(12)

    async def test_check_reflects_logged_dose(self, client, clock):
        medication_id = await _create(client)
        await client.post(f"/api/medications/{medication_id}/doses")

        clock.set(at(13))
        data = (await client.get(f"/api/medications/{medication_id}/check")).json()
        assert data["safe"] is False
        assert _parse(data["next_available_at"]) == at(16)
        assert _parse(data["violations"][0]["available_at"]) == at(16)


class TestOverride:
    async def test_override_commits_and_flags(self, client, clock):
        medication_id = await _create(client)
        await client.post(f"/api/medications/{medication_id}/doses")

        clock.set(at(13))
        response = await client.post(
            f"/api/medications/{medication_id}/doses/override",
            json={"notes": "severe pain"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["committed"] is True
        assert data["overridden"] is True
        assert data["log"]["overridden"] is True
        assert [v["kind"] for v in data["violations"]] == ["min_time_between"]

        logs = (await client.get(f"/api/medications/{medication_id}/logs")).json()
        assert logs["count"] == 2
        assert [log["overridden"] for log in logs["logs"]] == [False, True]


class TestSkips:
    async def test_skip_with_reason(self, client):
        medication_id = await _create(client)
        response = await client.post(
            f"/api/medications/{medication_id}/skips",
            json={"reason": "felt fine"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "skipped"
        assert data["skip_reason"] == "felt fine"
        assert data["amount"] is None

    async def test_skip_does_not_block_next_dose(self, client):
        medication_id = await _create(client)
        await client.post(f"/api/medications/{medication_id}/skips", json={})
        response = await client.post(f"/api/medications/{medication_id}/doses")
        assert response.status_code == 200


class TestLogs:
    async def test_range_filter(self, client, clock):
        medication_id = await _create(client)
        for hour in (4, 8, 12):
            clock.set(at(hour))
            await client.post(f"/api/medications/{medication_id}/doses")

        response = await client.get(
            f"/api/medications/{medication_id}/logs",
            params={
                "start": at(6).isoformat(),
                "end": at(10).isoformat(),
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert _parse(data["logs"][0]["timestamp"]) == at(8)

    async def test_reversed_range_rejected(self, client):
        medication_id = await _create(client)
        response = await client.get(
            f"/api/medications/{medication_id}/logs",
            params={"start": at(10).isoformat(), "end": at(6).isoformat()},
        )
        assert response.status_code == 422


class TestUndo:
    async def test_delete_restores_prior_state(self, client, clock):
        medication_id = await _create(client)
        clock.set(at(8))
        first = (await client.post(f"/api/medications/{medication_id}/doses")).json()

        clock.set(at(10))
        before = (await client.get(f"/api/medications/{medication_id}/check")).json()
        assert before["safe"] is False

        response = await client.delete(f"/api/medication-logs/{first['log']['id']}")
        assert response.status_code == 200
        assert response.json()["id"] == first["log"]["id"]

        after = (await client.get(f"/api/medications/{medication_id}/check")).json()
        assert after["safe"] is True

        clock.set(at(8))
        first_again = await client.post(f"/api/medications/{medication_id}/doses")
        assert first_again.status_code == 200
        clock.set(at(10))
        again = (await client.get(f"/api/medications/{medication_id}/check")).json()
        assert again["violations"] == before["violations"]

    async def test_delete_unknown_log(self, client):
        response = await client.delete(f"/api/medication-logs/{uuid.uuid4()}")
        assert response.status_code == 404


class TestLogStoreUnavailable:
    async def test_returns_503(self, client):
        medication_id = await _create(client)
        app.dependency_overrides[get_safety_gate] = lambda: SafetyGate(
            _UnavailableLogStore()
        )
        response = await client.post(f"/api/medications/{medication_id}/doses")
        assert response.status_code == 503

        response = await client.get(f"/api/medications/{medication_id}/check")
        assert response.status_code == 503
