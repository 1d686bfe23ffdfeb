"""
HTTP surface tests: routing, identity headers and error mapping.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import CLIENT, OTHER_CLIENT, PROVIDER, TOMORROW
from app.application.exceptions import StoreUnavailableError
from app.main import app
from app.wiring.dependencies import get_schedule_gateway

SYSTEM = {"X-Actor-Id": "reaper", "X-Actor-Role": "system"}


def _headers(actor) -> dict[str, str]:
    return {"X-Actor-Id": actor.id, "X-Actor-Role": actor.role.value}


@pytest.fixture
def client(gateway):
    app.dependency_overrides[get_schedule_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _declare(client, hour: int) -> dict:
    resp = client.post(
        "/api/v1/providers/me/windows",
        json={"work_date": TOMORROW.isoformat(), "start": f"{hour:02d}:00", "end": f"{hour + 1:02d}:00"},
        headers=_headers(PROVIDER),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _request(client, actor, hour: int, offering_id: str = "haircut") -> dict:
    resp = client.post(
        "/api/v1/bookings",
        json={
            "provider_id": PROVIDER.id,
            "offering_id": offering_id,
            "requested_at": f"{TOMORROW.isoformat()}T{hour:02d}:00:00+00:00",
        },
        headers=_headers(actor),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_identity_is_401(client):
    assert client.get("/api/v1/bookings").status_code == 401
    resp = client.get("/api/v1/bookings", headers={"X-Actor-Id": "x", "X-Actor-Role": "admin"})
    assert resp.status_code == 401


def test_ids_that_could_name_other_files_are_refused(client):
    resp = client.get("/api/v1/bookings", headers={"X-Actor-Id": "../../tmp/x", "X-Actor-Role": "client"})
    assert resp.status_code == 401

    resp = client.post(
        "/api/v1/bookings",
        json={
            "provider_id": "../provider-1",
            "offering_id": "haircut",
            "requested_at": f"{TOMORROW.isoformat()}T10:00:00+00:00",
        },
        headers=_headers(CLIENT),
    )
    assert resp.status_code == 422

    resp = client.get("/api/v1/bookings/..%5Cescape", headers=_headers(CLIENT))
    assert resp.status_code == 422


def test_window_lifecycle(client):
    window = _declare(client, 9)
    assert window["status"] == "available"

    resp = client.patch(
        f"/api/v1/providers/me/windows/{window['id']}",
        json={"status": "blocked_manual", "note": "errand"},
        headers=_headers(PROVIDER),
    )
    assert resp.status_code == 200
    assert resp.json()["note"] == "errand"

    schedule = client.get(f"/api/v1/providers/{PROVIDER.id}/schedule", params={"date_from": TOMORROW.isoformat()})
    assert schedule.json()[0]["windows"][0]["status"] == "blocked_manual"

    resp = client.delete(f"/api/v1/providers/me/windows/{window['id']}", headers=_headers(PROVIDER))
    assert resp.status_code == 204


def test_duplicate_window_is_409_with_error_body(client):
    _declare(client, 9)
    resp = client.post(
        "/api/v1/providers/me/windows",
        json={"work_date": TOMORROW.isoformat(), "start": "09:00", "end": "10:00"},
        headers=_headers(PROVIDER),
    )

    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "DuplicateWindow"
    assert body["context"]["start"] == "09:00"


def test_inverted_window_is_400(client):
    resp = client.post(
        "/api/v1/providers/me/windows",
        json={"work_date": TOMORROW.isoformat(), "start": "11:00", "end": "10:00"},
        headers=_headers(PROVIDER),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidRange"


def test_clients_cannot_declare_windows(client):
    resp = client.post(
        "/api/v1/providers/me/windows",
        json={"work_date": TOMORROW.isoformat(), "start": "09:00", "end": "10:00"},
        headers=_headers(CLIENT),
    )
    assert resp.status_code == 403


def test_booking_flow_over_http(client):
    _declare(client, 10)
    _declare(client, 11)
    booking = _request(client, CLIENT, 10, offering_id="coloring")
    assert booking["status"] == "pending"

    resp = client.post(
        f"/api/v1/bookings/{booking['id']}/confirm",
        json={"price": "110.00", "notes": "bring reference photos"},
        headers=_headers(PROVIDER),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "confirmed"

    availability = client.get(
        f"/api/v1/providers/{PROVIDER.id}/availability", params={"date_from": TOMORROW.isoformat()}
    )
    assert availability.json() == [{"day": TOMORROW.isoformat(), "windows": []}]

    resp = client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=_headers(CLIENT))
    assert resp.json()["status"] == "cancelled"

    availability = client.get(
        f"/api/v1/providers/{PROVIDER.id}/availability", params={"date_from": TOMORROW.isoformat()}
    )
    assert len(availability.json()[0]["windows"]) == 2


def test_alternative_flow_over_http(client):
    booking = _request(client, CLIENT, 10)

    resp = client.post(
        f"/api/v1/bookings/{booking['id']}/propose",
        json={"proposed_at": f"{TOMORROW.isoformat()}T15:00:00+00:00"},
        headers=_headers(PROVIDER),
    )
    assert resp.json()["status"] == "alternative_proposed"

    resp = client.post(f"/api/v1/bookings/{booking['id']}/accept", headers=_headers(CLIENT))
    assert resp.status_code == 200
    assert resp.json()["confirmed_at"].startswith(f"{TOMORROW.isoformat()}T15:00")


def test_wrong_party_and_wrong_state(client):
    booking = _request(client, CLIENT, 10)

    resp = client.get(f"/api/v1/bookings/{booking['id']}", headers=_headers(OTHER_CLIENT))
    assert resp.status_code == 403

    resp = client.post(f"/api/v1/bookings/{booking['id']}/accept", headers=_headers(CLIENT))
    assert resp.status_code == 409
    assert resp.json()["error"] == "InvalidTransition"

    resp = client.get("/api/v1/bookings/missing", headers=_headers(CLIENT))
    assert resp.status_code == 404


def test_complete_too_early_is_400(client):
    booking = _request(client, CLIENT, 10)
    client.post(f"/api/v1/bookings/{booking['id']}/confirm", headers=_headers(PROVIDER))

    resp = client.post(
        f"/api/v1/bookings/{booking['id']}/complete", json={"rating": 5}, headers=_headers(PROVIDER)
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "TooEarly"


def test_list_bookings_by_status(client):
    first = _request(client, CLIENT, 10)
    _request(client, CLIENT, 11)
    client.post(f"/api/v1/bookings/{first['id']}/decline", headers=_headers(PROVIDER))

    resp = client.get("/api/v1/bookings", params={"status": "declined"}, headers=_headers(CLIENT))
    assert [b["id"] for b in resp.json()] == [first["id"]]


def test_expire_endpoint_requires_system(client, clock):
    booking = _request(client, CLIENT, 10)
    assert client.post("/api/v1/system/bookings/expire", headers=_headers(PROVIDER)).status_code == 403

    clock.advance(minutes=5)
    resp = client.post("/api/v1/system/bookings/expire", headers=SYSTEM)
    assert resp.json() == {"expired": [booking["id"]]}


def test_store_failure_is_503(client, bookings, monkeypatch):
    def broken_add(_booking):
        raise StoreUnavailableError("disk gone")

    monkeypatch.setattr(bookings, "add", broken_add)
    resp = client.post(
        "/api/v1/bookings",
        json={
            "provider_id": PROVIDER.id,
            "offering_id": "haircut",
            "requested_at": f"{TOMORROW.isoformat()}T10:00:00+00:00",
        },
        headers=_headers(CLIENT),
    )

    assert resp.status_code == 503
    assert resp.json()["error"] == "StoreUnavailable"


def test_shutdown_closes_the_notifier(monkeypatch, notifier):
    closed: list[bool] = []
    monkeypatch.setattr(notifier, "close", lambda: closed.append(True))
    monkeypatch.setattr("app.main.get_notifier", lambda: notifier)

    with TestClient(app) as test_client:
        assert test_client.get("/health").status_code == 200
        assert closed == []

    assert closed == [True]
