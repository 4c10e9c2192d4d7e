"""
Tests for booking endpoints: create, cancel, delete and the read views.
"""

import re

import pytest
from httpx import AsyncClient


async def book(client: AsyncClient, headers: dict, event_id: int, seats: int = 1):
    return await client.post(
        "/api/v1/bookings",
        json={"event_id": event_id, "number_of_seats": seats},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_book_seats(client: AsyncClient, auth_headers, test_user, test_event):
    """Successful booking decrements available seats and snapshots the event."""
    response = await book(client, auth_headers, test_event.id, 2)
    assert response.status_code == 201
    data = response.json()
    assert data["event_id"] == test_event.id
    assert data["user_id"] == test_user.id
    assert data["number_of_seats"] == 2
    assert data["status"] == "confirmed"
    assert data["price_per_seat"] == 100.0
    assert data["total_amount"] == 200.0
    assert data["event_title"] == "Test Concert Night"
    assert data["event_location"] == "Test Venue, Springfield"
    assert data["user_email"] == "test@example.com"
    assert data["payment"] == {"method": "stripe", "status": "completed"}
    assert re.fullmatch(r"[A-Z0-9]{10}", data["ticket_code"])
    assert data["booking_code"].startswith("BK-")

    event_response = await client.get(f"/api/v1/events/{test_event.id}")
    event = event_response.json()
    assert event["available_seats"] == 8
    assert event["booked_seats"] == 2
    assert event["stats"]["total_bookings"] == 2
    assert event["stats"]["total_revenue"] == 200.0


@pytest.mark.asyncio
async def test_book_seats_unauthenticated(client: AsyncClient, test_event):
    """Unauthenticated booking returns 401."""
    response = await client.post(
        "/api/v1/bookings", json={"event_id": test_event.id, "number_of_seats": 1},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_more_than_available(client: AsyncClient, auth_headers, small_event):
    """Requesting more seats than remain returns 409 and changes nothing."""
    assert (await book(client, auth_headers, small_event.id, 4)).status_code == 201

    response = await book(client, auth_headers, small_event.id, 2)
    assert response.status_code == 409
    assert response.json()["error"] == "insufficient_inventory"
    assert "Available: 1" in response.json()["message"]

    event = (await client.get(f"/api/v1/events/{small_event.id}")).json()
    assert event["available_seats"] == 1


@pytest.mark.asyncio
async def test_book_seat_count_out_of_range(client: AsyncClient, auth_headers, test_event):
    for seats in (0, 11):
        response = await book(client, auth_headers, test_event.id, seats)
        assert response.status_code == 422


@pytest.mark.asyncio
async def test_same_user_may_book_twice(client: AsyncClient, auth_headers, test_event):
    """Repeat purchases are separate bookings with separate tickets."""
    first = await book(client, auth_headers, test_event.id, 1)
    second = await book(client, auth_headers, test_event.id, 1)
    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["ticket_code"] != second.json()["ticket_code"]


@pytest.mark.asyncio
async def test_book_nonexistent_event(client: AsyncClient, auth_headers):
    """Booking non-existent event returns 404."""
    response = await book(client, auth_headers, 99999)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_booking(client: AsyncClient, auth_headers, test_event):
    """Cancellation restores seats and revenue to the event."""
    booking_id = (await book(client, auth_headers, test_event.id, 3)).json()["id"]

    cancel_response = await client.post(
        f"/api/v1/bookings/{booking_id}/cancel",
        json={"reason": "Plans changed"},
        headers=auth_headers,
    )
    assert cancel_response.status_code == 200
    assert cancel_response.json() == {
        "message": "Booking cancelled",
        "booking_id": booking_id,
        "status": "cancelled",
        "seats_released": 3,
    }

    booking = (await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers)).json()
    assert booking["cancellation"]["is_cancelled"] is True
    assert booking["cancellation"]["cancelled_by"] == "user"
    assert booking["cancellation"]["reason"] == "Plans changed"

    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    assert event["available_seats"] == 10
    assert event["booked_seats"] == 0
    assert event["stats"]["total_revenue"] == 0.0


@pytest.mark.asyncio
async def test_cancel_already_cancelled(client: AsyncClient, auth_headers, test_event):
    """Double-cancelling returns 409 and releases seats only once."""
    booking_id = (await book(client, auth_headers, test_event.id, 2)).json()["id"]

    first = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
    assert first.status_code == 200

    second = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
    assert second.status_code == 409
    assert second.json()["error"] == "already_cancelled"

    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    assert event["available_seats"] == 10


@pytest.mark.asyncio
async def test_cancel_by_event_organizer(client: AsyncClient, auth_headers, organizer_headers, test_event):
    booking_id = (await book(client, auth_headers, test_event.id)).json()["id"]

    response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=organizer_headers)
    assert response.status_code == 200

    booking = (await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers)).json()
    assert booking["cancellation"]["cancelled_by"] == "organizer"


@pytest.mark.asyncio
async def test_cancel_by_stranger_forbidden(
    client: AsyncClient, auth_headers, other_user, make_headers, test_event,
):
    booking_id = (await book(client, auth_headers, test_event.id)).json()["id"]

    response = await client.post(
        f"/api/v1/bookings/{booking_id}/cancel", headers=make_headers(other_user),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_unknown_booking(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/bookings/424242/cancel", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_user_bookings(client: AsyncClient, auth_headers, test_event, small_event):
    """User sees their own bookings, newest first."""
    await book(client, auth_headers, test_event.id)
    await book(client, auth_headers, small_event.id)

    response = await client.get("/api/v1/bookings/me", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert [b["event_id"] for b in data] == [small_event.id, test_event.id]


@pytest.mark.asyncio
async def test_get_booking_visibility(
    client: AsyncClient, auth_headers, organizer_headers, admin_headers,
    other_user, make_headers, test_event,
):
    booking_id = (await book(client, auth_headers, test_event.id)).json()["id"]
    url = f"/api/v1/bookings/{booking_id}"

    assert (await client.get(url, headers=auth_headers)).status_code == 200
    assert (await client.get(url, headers=organizer_headers)).status_code == 200
    assert (await client.get(url, headers=admin_headers)).status_code == 200
    assert (await client.get(url, headers=make_headers(other_user))).status_code == 403


@pytest.mark.asyncio
async def test_event_bookings_for_organizer_only(
    client: AsyncClient, auth_headers, organizer_headers, other_organizer, make_headers, test_event,
):
    await book(client, auth_headers, test_event.id, 2)

    response = await client.get(f"/api/v1/events/{test_event.id}/bookings", headers=organizer_headers)
    assert response.status_code == 200
    assert len(response.json()) == 1

    response = await client.get(
        f"/api/v1/events/{test_event.id}/bookings", headers=make_headers(other_organizer),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_lists_all_bookings(client: AsyncClient, auth_headers, admin_headers, test_event):
    first = (await book(client, auth_headers, test_event.id)).json()["id"]
    await book(client, auth_headers, test_event.id)
    await client.post(f"/api/v1/bookings/{first}/cancel", headers=auth_headers)

    response = await client.get("/api/v1/bookings", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 2

    response = await client.get("/api/v1/bookings?status=cancelled", headers=admin_headers)
    data = response.json()
    assert data["total"] == 1
    assert data["bookings"][0]["id"] == first

    assert (await client.get("/api/v1/bookings", headers=auth_headers)).status_code == 403


@pytest.mark.asyncio
async def test_admin_delete_does_not_restore_seats(
    client: AsyncClient, auth_headers, admin_headers, test_event,
):
    booking_id = (await book(client, auth_headers, test_event.id, 4)).json()["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=admin_headers)
    assert response.status_code == 200

    assert (await client.get(f"/api/v1/bookings/{booking_id}", headers=admin_headers)).status_code == 404
    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    assert event["available_seats"] == 6
    assert event["booked_seats"] == 4


@pytest.mark.asyncio
async def test_delete_booking_requires_admin(client: AsyncClient, auth_headers, test_event):
    booking_id = (await book(client, auth_headers, test_event.id)).json()["id"]
    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_booking_survives_event_deletion(
    client: AsyncClient, auth_headers, organizer_headers, test_event,
):
    booking_id = (await book(client, auth_headers, test_event.id, 2)).json()["id"]
    assert (await client.delete(f"/api/v1/events/{test_event.id}", headers=organizer_headers)).status_code == 200

    booking = await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    assert booking.status_code == 200
    assert booking.json()["event_title"] == "Test Concert Night"

    cancelled = await client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
