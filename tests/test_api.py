"""End-to-end tests for the HTTP surface."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.domain.models import Admin, Room, Worker
from app.main import (
    app,
    customer_repo,
    history_repo,
    reservation_repo,
    room_repo,
)

from factories import interval

ADMIN = {"X-Customer-Id": "admin"}
ALICE = {"X-Customer-Id": "alice"}
BOB = {"X-Customer-Id": "bob"}


def _clear() -> None:
    room_repo._store.clear()
    customer_repo._store.clear()
    reservation_repo._store.clear()
    history_repo._entries.clear()


@pytest.fixture(autouse=True)
def _reset_repos():
    """Reset in-memory repos and load a small fixture set before each test."""
    _clear()
    customer_repo.add(Admin(id="admin", username="admin"))
    customer_repo.add(Worker(id="alice", username="alice"))
    customer_repo.add(Worker(id="bob", username="bob", is_priority=True))
    room_repo.add(Room(id="R101", name="R101", is_priority=True))
    room_repo.add(Room(id="R102", name="R102"))
    yield
    _clear()


@pytest.fixture()
def client():
    return TestClient(app)


def _body(start: float, end: float, **extra) -> dict:
    slot = interval(start, end)
    return {
        "start_time": slot.start.isoformat(),
        "end_time": slot.end.isoformat(),
        **extra,
    }


# ---------------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------------


def test_book_room(client):
    resp = client.post("/rooms/R102/reservations", json=_body(9, 10), headers=ALICE)
    assert resp.status_code == 201
    data = resp.json()
    assert data["reservation"]["status"] == "active"
    assert data["reservation"]["customer_id"] == "alice"
    assert data["preempted"] == []


def test_conflict_returns_409(client):
    client.post("/rooms/R102/reservations", json=_body(9, 10), headers=ALICE)
    resp = client.post(
        "/rooms/R102/priority-reservations", json=_body(9.5, 10.5), headers=BOB
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "room_unavailable"
    assert len(resp.json()["blocking_reservation_ids"]) == 1


def test_priority_booking_preempts(client):
    first = client.post("/rooms/R101/reservations", json=_body(10, 11), headers=ALICE)
    first_id = first.json()["reservation"]["id"]

    resp = client.post(
        "/rooms/R101/priority-reservations", json=_body(10.5, 11.5), headers=BOB
    )

    assert resp.status_code == 201
    assert [r["id"] for r in resp.json()["preempted"]] == [first_id]
    bumped = client.get(f"/reservations/{first_id}").json()
    assert bumped["status"] == "cancelled"
    history = client.get(f"/reservations/{first_id}/history").json()
    assert [e["type"] for e in history] == ["created", "preempted"]


def test_invalid_interval_returns_422(client):
    resp = client.post("/rooms/R102/reservations", json=_body(10, 9), headers=ALICE)
    assert resp.status_code == 422
    assert resp.json()["code"] == "invalid_interval"


def test_unknown_room_returns_404(client):
    resp = client.post("/rooms/nope/reservations", json=_body(9, 10), headers=ALICE)
    assert resp.status_code == 404


def test_booking_requires_worker(client):
    resp = client.post("/rooms/R102/reservations", json=_body(9, 10), headers=ADMIN)
    assert resp.status_code == 403


@pytest.mark.parametrize("headers", [{}, {"X-Customer-Id": "ghost"}])
def test_booking_requires_known_actor(client, headers):
    resp = client.post("/rooms/R102/reservations", json=_body(9, 10), headers=headers)
    assert resp.status_code == 401


def test_weekly_reports_skips(client):
    client.post(
        "/rooms/R102/reservations",
        json={
            "start_time": interval(9, 10).start.replace(day=9).isoformat(),
            "end_time": interval(9, 10).end.replace(day=9).isoformat(),
        },
        headers=BOB,
    )
    resp = client.post(
        "/rooms/R102/weekly", json=_body(9, 10, occurrences=3), headers=ALICE
    )
    assert resp.status_code == 201
    statuses = [o["status"] for o in resp.json()["occurrences"]]
    assert statuses == ["created", "skipped", "created"]


def test_weekly_rejects_bad_count(client):
    resp = client.post(
        "/rooms/R102/weekly", json=_body(9, 10, occurrences=0), headers=ALICE
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "invalid_occurrence_count"


# ---------------------------------------------------------------------------
# Cancellation and sweep
# ---------------------------------------------------------------------------


def test_owner_cancels(client):
    created = client.post("/rooms/R102/reservations", json=_body(9, 10), headers=ALICE)
    reservation_id = created.json()["reservation"]["id"]

    resp = client.delete(f"/reservations/{reservation_id}", headers=ALICE)
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"

    again = client.delete(f"/reservations/{reservation_id}", headers=ALICE)
    assert again.status_code == 409
    assert again.json()["code"] == "already_terminal"


def test_stranger_cannot_cancel(client):
    created = client.post("/rooms/R102/reservations", json=_body(9, 10), headers=ALICE)
    reservation_id = created.json()["reservation"]["id"]

    resp = client.delete(f"/reservations/{reservation_id}", headers=BOB)
    assert resp.status_code == 403
    assert resp.json()["code"] == "not_owner_or_admin"
    assert client.get(f"/reservations/{reservation_id}").json()["status"] == "active"


def test_cancel_missing_reservation(client):
    assert client.delete("/reservations/missing", headers=ADMIN).status_code == 404


def test_sweep(client):
    client.post("/rooms/R102/reservations", json=_body(9, 10), headers=ALICE)
    now = interval(11, 12).start.isoformat()

    resp = client.post("/reservations/sweep", params={"now": now}, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["finished"] == 1

    again = client.post("/reservations/sweep", params={"now": now}, headers=ADMIN)
    assert again.json()["finished"] == 0


def test_sweep_requires_admin(client):
    assert client.post("/reservations/sweep", headers=ALICE).status_code == 403


# ---------------------------------------------------------------------------
# Rooms and customers
# ---------------------------------------------------------------------------


def test_admin_manages_rooms_and_priority(client):
    resp = client.post(
        "/rooms", json={"name": "Boardroom", "capacity": 12}, headers=ADMIN
    )
    assert resp.status_code == 201
    room_id = resp.json()["id"]
    assert resp.json()["is_priority"] is False

    updated = client.put(
        f"/rooms/{room_id}/priority", json={"is_priority": True}, headers=ADMIN
    )
    assert updated.json()["is_priority"] is True


def test_admin_updates_room(client):
    body = {"id": "R102", "name": "Studio", "capacity": 4, "equipment": ["tv"]}
    resp = client.put("/rooms/R102", json=body, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Studio"
    assert client.get("/rooms/R102").json()["equipment"] == ["tv"]

    mismatched = client.put("/rooms/R101", json=body, headers=ADMIN)
    assert mismatched.status_code == 422
    assert mismatched.json()["code"] == "room_id_mismatch"

    missing = client.put("/rooms/R999", json={**body, "id": "R999"}, headers=ADMIN)
    assert missing.status_code == 404

    by_worker = client.put("/rooms/R102", json=body, headers=ALICE)
    assert by_worker.status_code == 403


def test_worker_cannot_create_rooms(client):
    resp = client.post("/rooms", json={"name": "Closet"}, headers=ALICE)
    assert resp.status_code == 403


def test_availability(client):
    client.post("/rooms/R102/reservations", json=_body(9, 10), headers=ALICE)
    slot = interval(8, 12)
    resp = client.get(
        "/rooms/R102/availability",
        params={"start": slot.start.isoformat(), "end": slot.end.isoformat()},
    )
    assert resp.status_code == 200
    assert len(resp.json()["active"]) == 1
    assert resp.json()["cancelled"] == []


def test_customer_priority(client):
    created = client.post(
        "/customers/workers", json={"username": "carol"}, headers=ADMIN
    )
    assert created.status_code == 201
    worker_id = created.json()["id"]

    resp = client.put(
        f"/customers/{worker_id}/priority", json={"is_priority": True}, headers=ADMIN
    )
    assert resp.status_code == 200
    assert resp.json()["is_priority"] is True

    on_admin = client.put(
        "/customers/admin/priority", json={"is_priority": True}, headers=ADMIN
    )
    assert on_admin.status_code == 422
    assert on_admin.json()["code"] == "not_a_worker"


def test_current_customer(client):
    resp = client.get("/customers/current", headers=BOB)
    assert resp.json()["username"] == "bob"
    assert resp.json()["role"] == "worker"


def test_customer_reservations(client):
    late = client.post("/rooms/R102/reservations", json=_body(14, 15), headers=ALICE)
    early = client.post("/rooms/R101/reservations", json=_body(9, 10), headers=ALICE)
    client.post("/rooms/R102/reservations", json=_body(11, 12), headers=BOB)

    resp = client.get("/customers/alice/reservations")
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()] == [
        early.json()["reservation"]["id"],
        late.json()["reservation"]["id"],
    ]

    assert client.get("/customers/nobody/reservations").status_code == 404
