"""
Tests for the booking, oven and admin endpoints.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from conftest import headers_for


def booking_body(oven_id: int, start: str = "2024-01-01T08:00:00Z", end: str = "2024-01-01T12:00:00Z", **overrides):
    body = {
        "oven_id": oven_id,
        "start_date": start,
        "end_date": end,
        "purpose": "Drying samples",
        "usage_temp": 150,
        "flap": 20,
    }
    body.update(overrides)
    return body


async def create(client: AsyncClient, actor, body) -> dict:
    response = await client.post("/api/v1/bookings/", json=body, headers=headers_for(actor))
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, lab):
    response = await client.post("/api/v1/bookings/", json=booking_body(lab.o1), headers=headers_for(lab.alice))

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Booking created successfully!"
    assert body["data"]["status"] == "ACTIVE"
    assert body["data"]["oven_id"] == lab.o1
    assert body["data"]["owner_id"] == lab.alice.id


@pytest.mark.asyncio
async def test_create_booking_requires_user_header(client: AsyncClient, lab):
    response = await client.post("/api/v1/bookings/", json=booking_body(lab.o1))

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "message": "You must be logged in",
        "error_code": "AUTHORIZATION",
    }


@pytest.mark.asyncio
async def test_create_booking_unknown_user(client: AsyncClient, lab):
    response = await client.post("/api/v1/bookings/", json=booking_body(lab.o1), headers={"X-User-Id": "9999"})

    assert response.status_code == 401
    assert response.json()["message"] == "Unknown user"
    assert response.json()["error_code"] == "AUTHORIZATION"


@pytest.mark.asyncio
async def test_overlap_is_409_with_error_code(client: AsyncClient, lab):
    first = await create(client, lab.alice, booking_body(lab.o1))

    response = await client.post(
        "/api/v1/bookings/",
        json=booking_body(lab.o1, start="2024-01-01T11:00:00Z", end="2024-01-01T13:00:00Z"),
        headers=headers_for(lab.bob),
    )

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "OVERLAP"
    assert body["details"]["conflicting_booking_id"] == first["id"]
    assert "data" not in body


@pytest.mark.asyncio
async def test_temperature_rejection_is_400(client: AsyncClient, lab):
    response = await client.post(
        "/api/v1/bookings/", json=booking_body(lab.o1, usage_temp=250), headers=headers_for(lab.alice)
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "TEMPERATURE_EXCEEDED"


@pytest.mark.asyncio
async def test_malformed_body_is_422(client: AsyncClient, lab):
    response = await client.post(
        "/api/v1/bookings/", json={"oven_id": lab.o1, "start_date": "tomorrow"}, headers=headers_for(lab.alice)
    )

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "VALIDATION"
    assert body["message"].startswith("start_date: ")
    assert body["details"] == {"field": "start_date"}
    assert "detail" not in body


@pytest.mark.asyncio
async def test_naive_times_are_lab_local(client: AsyncClient, lab):
    data = await create(
        client,
        lab.alice,
        booking_body(lab.o1, start="2024-01-01T15:00:00", end="2024-01-01T19:00:00"),
    )

    assert data["start_date"].startswith("2024-01-01T08:00:00")
    assert data["end_date"].startswith("2024-01-01T12:00:00")


@pytest.mark.asyncio
async def test_list_my_bookings(client: AsyncClient, lab, clock):
    kept = await create(client, lab.alice, booking_body(lab.o1))
    await create(client, lab.bob, booking_body(lab.o2, usage_temp=100))
    clock.advance(timedelta(minutes=1))
    dropped = await create(
        client,
        lab.alice,
        booking_body(lab.o2, start="2024-01-01T13:00:00Z", end="2024-01-01T15:00:00Z", usage_temp=100),
    )
    await client.post(f"/api/v1/bookings/{dropped['id']}/cancel", headers=headers_for(lab.alice))

    response = await client.get("/api/v1/bookings/", headers=headers_for(lab.alice))

    assert response.status_code == 200
    rows = [(booking["id"], booking["status"]) for booking in response.json()["data"]]
    assert rows == [(dropped["id"], "CANCELLED"), (kept["id"], "ACTIVE")]

    active = await client.get("/api/v1/bookings/?status=ACTIVE", headers=headers_for(lab.alice))
    assert [booking["id"] for booking in active.json()["data"]] == [kept["id"]]


@pytest.mark.asyncio
async def test_my_bookings_show_expired_as_completed(client: AsyncClient, lab, clock):
    await create(client, lab.alice, booking_body(lab.o1, start="2024-01-01T08:00:00Z", end="2024-01-01T09:00:00Z"))
    await create(client, lab.alice, booking_body(lab.o1, start="2024-01-01T10:00:00Z", end="2024-01-01T11:00:00Z"))
    clock.set(datetime(2024, 1, 2, tzinfo=timezone.utc))

    response = await client.get("/api/v1/bookings/", headers=headers_for(lab.alice))
    assert [booking["status"] for booking in response.json()["data"]] == ["COMPLETED", "COMPLETED"]

    # Completed bookings no longer count toward the active-booking limit
    await create(client, lab.alice, booking_body(lab.o1, start="2024-01-03T08:00:00Z", end="2024-01-03T09:00:00Z"))


@pytest.mark.asyncio
async def test_edit_and_history(client: AsyncClient, lab):
    booking = await create(client, lab.alice, booking_body(lab.o1))

    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}",
        json=booking_body(lab.o1, purpose="Annealing run"),
        headers=headers_for(lab.alice),
    )
    assert response.status_code == 200
    assert response.json()["data"]["purpose"] == "Annealing run"

    history = await client.get(f"/api/v1/bookings/{booking['id']}/events", headers=headers_for(lab.alice))
    events = history.json()["data"]
    assert [event["event_type"] for event in events] == ["CREATED", "EDITED"]
    assert events[1]["payload"] == {
        "before": {"purpose": "Drying samples"},
        "after": {"purpose": "Annealing run"},
    }


@pytest.mark.asyncio
async def test_cancel_without_body(client: AsyncClient, lab):
    booking = await create(client, lab.alice, booking_body(lab.o1))

    response = await client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=headers_for(lab.alice))

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "CANCELLED"
    assert response.json()["data"]["cancel_reason"] == "Cancelled by user"


@pytest.mark.asyncio
async def test_cancel_after_window_is_403(client: AsyncClient, lab, clock):
    booking = await create(client, lab.alice, booking_body(lab.o1))
    clock.advance(timedelta(minutes=20))

    late = await client.post(
        f"/api/v1/bookings/{booking['id']}/cancel",
        json={"reason": "Changed my mind"},
        headers=headers_for(lab.alice),
    )
    assert late.status_code == 403
    assert late.json()["error_code"] == "WINDOW_EXPIRED"

    by_admin = await client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=headers_for(lab.admin))
    assert by_admin.status_code == 200
    assert by_admin.json()["data"]["cancel_reason"] == "Cancelled by admin"


@pytest.mark.asyncio
async def test_unknown_booking_is_404(client: AsyncClient, lab):
    response = await client.post("/api/v1/bookings/nope/cancel", headers=headers_for(lab.alice))

    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_calendar(client: AsyncClient, lab):
    booking = await create(client, lab.alice, booking_body(lab.o1))

    response = await client.get("/api/v1/bookings/calendar", headers=headers_for(lab.bob))

    assert response.status_code == 200
    entries = response.json()["data"]
    assert len(entries) == 1
    assert entries[0]["id"] == booking["id"]
    assert entries[0]["oven_name"] == "O1"
    assert entries[0]["owner_name"] == "Alice"

    other_oven = await client.get(f"/api/v1/bookings/calendar?oven_id={lab.o2}", headers=headers_for(lab.bob))
    assert other_oven.json()["data"] == []


# ── Admin ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_admin_complete_and_remove(client: AsyncClient, lab):
    booking = await create(client, lab.alice, booking_body(lab.o1))

    forbidden = await client.post(f"/api/v1/admin/bookings/{booking['id']}/complete", headers=headers_for(lab.alice))
    assert forbidden.status_code == 403

    completed = await client.post(f"/api/v1/admin/bookings/{booking['id']}/complete", headers=headers_for(lab.admin))
    assert completed.status_code == 200
    assert completed.json()["data"]["status"] == "COMPLETED"

    again = await client.post(f"/api/v1/admin/bookings/{booking['id']}/complete", headers=headers_for(lab.admin))
    assert again.status_code == 409
    assert again.json()["message"] == "Booking is already completed"

    removed = await client.delete(f"/api/v1/admin/bookings/{booking['id']}", headers=headers_for(lab.admin))
    assert removed.status_code == 200
    assert removed.json()["data"]["deleted_by"] == lab.admin.id

    listed = await client.get("/api/v1/admin/bookings/", headers=headers_for(lab.admin))
    assert listed.json()["data"] == []
    with_removed = await client.get("/api/v1/admin/bookings/?include_removed=true", headers=headers_for(lab.admin))
    assert [row["id"] for row in with_removed.json()["data"]] == [booking["id"]]


@pytest.mark.asyncio
async def test_admin_list_shows_expired_as_completed(client: AsyncClient, lab, clock):
    booking = await create(client, lab.bob, booking_body(lab.o1))
    clock.set(datetime(2024, 1, 2, tzinfo=timezone.utc))

    listed = await client.get("/api/v1/admin/bookings/", headers=headers_for(lab.admin))

    assert [(row["id"], row["status"]) for row in listed.json()["data"]] == [(booking["id"], "COMPLETED")]


@pytest.mark.asyncio
async def test_admin_auto_complete(client: AsyncClient, lab, clock):
    await create(client, lab.alice, booking_body(lab.o1))
    clock.set(datetime(2024, 1, 2, tzinfo=timezone.utc))

    forbidden = await client.post("/api/v1/admin/bookings/auto-complete", headers=headers_for(lab.alice))
    assert forbidden.status_code == 403

    response = await client.post("/api/v1/admin/bookings/auto-complete", headers=headers_for(lab.admin))
    assert response.status_code == 200
    assert response.json()["data"] == {"completed": 1}


# ── Ovens ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_oven_board_sweeps_expired_bookings(client: AsyncClient, lab, clock):
    booking = await create(client, lab.alice, booking_body(lab.o1))

    clock.set(datetime(2024, 1, 1, 9, tzinfo=timezone.utc))
    during = await client.get("/api/v1/ovens/")
    assert during.status_code == 200
    board = {row["oven"]["id"]: row for row in during.json()["data"]["ovens"]}
    assert board[lab.o1]["current_booking"]["id"] == booking["id"]
    assert board[lab.o2]["current_booking"] is None
    assert during.json()["data"]["cached"] is False

    clock.set(datetime(2024, 1, 1, 13, tzinfo=timezone.utc))
    after = await client.get("/api/v1/ovens/")
    board = {row["oven"]["id"]: row for row in after.json()["data"]["ovens"]}
    assert board[lab.o1]["current_booking"] is None

    mine = await client.get("/api/v1/bookings/", headers=headers_for(lab.alice))
    assert [row["status"] for row in mine.json()["data"]] == ["COMPLETED"]


@pytest.mark.asyncio
async def test_maintenance_endpoints(client: AsyncClient, lab):
    await create(client, lab.alice, booking_body(lab.o1))

    denied = await client.post(f"/api/v1/ovens/{lab.o1}/maintenance", headers=headers_for(lab.alice))
    assert denied.status_code == 403

    response = await client.post(f"/api/v1/ovens/{lab.o1}/maintenance", headers=headers_for(lab.admin))
    assert response.status_code == 200
    assert response.json()["data"] == {"oven_id": lab.o1, "status": "MAINTENANCE", "auto_cancelled": 1}

    blocked = await client.post("/api/v1/bookings/", json=booking_body(lab.o1), headers=headers_for(lab.bob))
    assert blocked.status_code == 409
    assert blocked.json()["error_code"] == "RESOURCE_UNAVAILABLE"

    cleared = await client.delete(f"/api/v1/ovens/{lab.o1}/maintenance", headers=headers_for(lab.admin))
    assert cleared.status_code == 200
    assert cleared.json()["data"]["status"] == "AVAILABLE"


@pytest.mark.asyncio
async def test_oven_crud(client: AsyncClient, lab):
    created = await client.post(
        "/api/v1/ovens/",
        json={"name": "Oven 3", "type": "AQUEOUS", "max_temp": 150},
        headers=headers_for(lab.admin),
    )
    assert created.status_code == 201
    oven_id = created.json()["data"]["id"]

    updated = await client.patch(f"/api/v1/ovens/{oven_id}", json={"max_temp": 175}, headers=headers_for(lab.admin))
    assert updated.json()["data"]["max_temp"] == 175

    fetched = await client.get(f"/api/v1/ovens/{oven_id}")
    assert fetched.json()["data"]["name"] == "Oven 3"

    deleted = await client.delete(f"/api/v1/ovens/{oven_id}", headers=headers_for(lab.admin))
    assert deleted.status_code == 200

    missing = await client.get(f"/api/v1/ovens/{oven_id}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["cache"] == {"status": "disabled"}
