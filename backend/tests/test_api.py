"""Tests for the calendar HTTP endpoints."""

from fastapi.testclient import TestClient

from bizcal.exceptions import StorageUnavailable
from bizcal.services.event_store import StorageResult
from conftest import at


def event_payload(start, end, title="Planning", **fields) -> dict:
    return {"title": title, "start": start.isoformat(), "end": end.isoformat(), **fields}


def test_health(client: TestClient):
    """Test the health endpoints."""
    assert client.get("/").json()["status"] == "healthy"
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "in-memory"


def test_create_event(client: TestClient):
    """Test creating an event."""
    response = client.post(
        "/api/calendar/events",
        json=event_payload(
            at(0, 9),
            at(0, 10),
            attendees=[{"email": "ana@example.com", "name": "Ana"}],
        ),
        headers={"X-User-Id": "owner-1"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Planning"
    assert data["organizer_id"] == "owner-1"
    assert data["conflicts"] == []
    assert data["attendees"][0]["status"] == "PENDING"
    assert data["is_durable"] is True


def test_create_event_with_overlap(client: TestClient):
    """Test a conflicting event comes back with its conflicts."""
    first = client.post(
        "/api/calendar/events",
        json=event_payload(at(0, 10), at(0, 11), title="Board review", priority="HIGH"),
    ).json()

    response = client.post("/api/calendar/events", json=event_payload(at(0, 10, 30), at(0, 11, 30)))

    conflicts = response.json()["conflicts"]
    assert len(conflicts) == 1
    assert conflicts[0]["conflicting_event_id"] == first["id"]
    assert conflicts[0]["conflict_type"] == "OVERLAP"
    assert conflicts[0]["severity"] == "HIGH"
    assert 'Board review' in conflicts[0]["suggested_resolution"]["description"]


def test_create_event_invalid_interval(client: TestClient):
    """Test an end before start is rejected."""
    response = client.post("/api/calendar/events", json=event_payload(at(0, 10), at(0, 9)))
    assert response.status_code == 422


def test_get_event_not_found(client: TestClient):
    """Test getting a non-existent event."""
    response = client.get("/api/calendar/events/missing")
    assert response.status_code == 404


def test_list_events(client: TestClient):
    """Test listing events filtered by window and search."""
    client.post("/api/calendar/events", json=event_payload(at(0, 9), at(0, 10), title="Standup"))
    client.post("/api/calendar/events", json=event_payload(at(1, 9), at(1, 10), title="Retro"))

    response = client.get(
        "/api/calendar/events",
        params={"start": at(0, 0).isoformat(), "end": at(1, 0).isoformat()},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["events"][0]["title"] == "Standup"

    response = client.get("/api/calendar/events", params={"search": "retro", "page_size": 1})
    assert [e["title"] for e in response.json()["events"]] == ["Retro"]


def test_update_event(client: TestClient):
    """Test updating an event moves it and recomputes conflicts."""
    client.post("/api/calendar/events", json=event_payload(at(0, 10), at(0, 11)))
    event = client.post("/api/calendar/events", json=event_payload(at(0, 10), at(0, 11))).json()
    assert event["conflicts"]

    response = client.patch(
        f"/api/calendar/events/{event['id']}",
        json={"start": at(0, 14).isoformat(), "end": at(0, 15).isoformat()},
    )
    assert response.status_code == 200
    assert response.json()["conflicts"] == []


def test_update_event_errors(client: TestClient):
    """Test update reports missing events and bad intervals."""
    event = client.post("/api/calendar/events", json=event_payload(at(0, 9), at(0, 10))).json()

    missing = client.patch("/api/calendar/events/missing", json={"title": "x"})
    inverted = client.patch(
        f"/api/calendar/events/{event['id']}", json={"start": at(0, 11).isoformat()}
    )

    assert missing.status_code == 404
    assert inverted.status_code == 422


def test_delete_event(client: TestClient):
    """Test deleting an event."""
    event = client.post("/api/calendar/events", json=event_payload(at(0, 9), at(0, 10))).json()

    response = client.delete(f"/api/calendar/events/{event['id']}")
    assert response.status_code == 204
    assert client.get(f"/api/calendar/events/{event['id']}").status_code == 404
    assert client.delete(f"/api/calendar/events/{event['id']}").status_code == 404


def test_redetect_conflicts(client: TestClient):
    """Test explicit re-detection picks up later events."""
    event = client.post("/api/calendar/events", json=event_payload(at(0, 9), at(0, 10))).json()
    client.post("/api/calendar/events", json=event_payload(at(0, 9, 30), at(0, 10, 30)))

    response = client.post(f"/api/calendar/events/{event['id']}/conflicts")

    assert response.status_code == 200
    assert [c["conflict_type"] for c in response.json()] == ["OVERLAP"]
    assert client.post("/api/calendar/events/missing/conflicts").status_code == 404


def test_suggest_times(client: TestClient):
    """Test proposing meeting times."""
    response = client.post(
        "/api/calendar/schedule/suggest",
        json={"title": "Sync", "duration": 60, "attendee_emails": ["ana@example.com"]},
    )
    assert response.status_code == 200
    data = response.json()
    assert len(data["suggested_times"]) == 5
    assert "Prepare meeting agenda" in data["preparation_suggestions"]


def test_suggest_times_validation(client: TestClient):
    """Test an empty attendee list is rejected."""
    response = client.post(
        "/api/calendar/schedule/suggest",
        json={"title": "Sync", "duration": 60, "attendee_emails": []},
    )
    assert response.status_code == 422


def test_preferences(client: TestClient):
    """Test reading defaults and replacing preferences."""
    headers = {"X-User-Id": "pref-user"}
    defaults = client.get("/api/calendar/preferences", headers=headers).json()
    assert defaults["time_zone"] == "UTC"
    assert defaults["working_hours"]["saturday"]["is_working_day"] is False

    defaults["time_zone"] = "Europe/Berlin"
    response = client.put("/api/calendar/preferences", json=defaults, headers=headers)
    assert response.status_code == 200

    assert client.get("/api/calendar/preferences", headers=headers).json()["time_zone"] == "Europe/Berlin"
    assert client.get("/api/calendar/preferences").json()["time_zone"] == "UTC"


def test_preferences_reject_unknown_time_zone(client: TestClient):
    """Test an unknown time zone is a validation error and nothing is stored."""
    headers = {"X-User-Id": "tz-user"}
    body = client.get("/api/calendar/preferences", headers=headers).json()
    body["time_zone"] = "Mars/Olympus"

    response = client.put("/api/calendar/preferences", json=body, headers=headers)

    assert response.status_code == 422
    assert client.get("/api/calendar/preferences", headers=headers).json()["time_zone"] == "UTC"
    suggest = client.post(
        "/api/calendar/schedule/suggest",
        json={"title": "Sync", "duration": 60, "attendee_emails": ["ana@example.com"]},
        headers=headers,
    )
    assert suggest.status_code == 200


def test_delete_event_while_store_rejects_writes(client: TestClient, store):
    """Test a delete the store cannot apply still hides the event."""
    event = client.post("/api/calendar/events", json=event_payload(at(0, 9), at(0, 10))).json()

    async def refuse(event_id):
        return StorageResult.failure(StorageUnavailable("delete"))

    store.delete = refuse
    assert client.delete(f"/api/calendar/events/{event['id']}").status_code == 204

    assert client.get(f"/api/calendar/events/{event['id']}").status_code == 404
    assert client.get("/api/calendar/events").json()["total"] == 0
    clash = client.post("/api/calendar/events", json=event_payload(at(0, 9), at(0, 10))).json()
    assert clash["conflicts"] == []
