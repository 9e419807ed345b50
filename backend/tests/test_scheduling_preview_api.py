from __future__ import annotations

from fastapi.testclient import TestClient

from dreamplan.main import app


def _payload(start_date: str, end_date: str | None, actions: list[dict]) -> dict:
    return {
        "context": {"user_id": "user-1", "timezone": "Europe/London"},
        "input": {
            "dream": {"id": "dream-1", "start_date": start_date, "end_date": end_date},
            "areas": [{"id": "area-1", "dream_id": "dream-1", "position": 0}],
            "actions": actions,
            "existing_occurrences": [],
        },
    }


def test_preview_returns_scheduled_occurrences() -> None:
    client = TestClient(app)
    response = client.post(
        "/scheduling/preview",
        json=_payload("2024-01-01", "2024-01-07", [{"id": "task-1", "area_id": "area-1", "position": 0}]),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["too_tight"] is False
    assert [occ["due_on"] for occ in data["occurrences"]] == ["2024-01-01"]
    assert response.headers.get("X-Request-Id")


def test_preview_reports_invalid_dates_in_body() -> None:
    client = TestClient(app)
    response = client.post(
        "/scheduling/preview",
        json=_payload("invalid-date", "2024-01-07", [{"id": "task-1", "area_id": "area-1"}]),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert len(data["errors"]) == 1
    assert data["occurrences"] == []


def test_preview_reports_compaction() -> None:
    client = TestClient(app)
    actions = [{"id": f"task-{idx}", "area_id": "area-1", "position": idx} for idx in range(10)]
    response = client.post("/scheduling/preview", json=_payload("2024-01-01", "2024-01-31", actions))

    data = response.json()
    assert data["auto_compacted"] is True
    assert data["recommended_end"] == "2024-01-07"
    assert all(occ["due_on"] <= data["recommended_end"] for occ in data["occurrences"])


def test_preview_rejects_malformed_action() -> None:
    client = TestClient(app)
    response = client.post(
        "/scheduling/preview",
        json=_payload("2024-01-01", "2024-01-07", [{"id": "task-1", "area_id": "area-1", "repeat_every_days": 0}]),
    )

    assert response.status_code == 422
