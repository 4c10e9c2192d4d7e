"""
Tests for the application shell: health, metrics, request IDs and error bodies.
"""

import sqlite3

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError, OperationalError

from eventhub.core.exceptions import (
    InsufficientInventory, TransientError, ValidationError, is_transient_db_error,
)


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


@pytest.mark.asyncio
async def test_metrics_exposes_booking_counters(client: AsyncClient, auth_headers, test_event):
    await client.post(
        "/api/v1/bookings",
        json={"event_id": test_event.id, "number_of_seats": 1},
        headers=auth_headers,
    )
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "eventhub_booking_attempts_total" in response.text
    assert "eventhub_seats_booked_total" in response.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"

    response = await client.get("/health")
    assert response.headers["X-Request-ID"]
    assert response.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body(client: AsyncClient):
    response = await client.get("/api/v1/nowhere")
    assert response.status_code == 404
    assert response.json() == {"message": "Not Found", "error": "http_error"}


def test_insufficient_inventory_message():
    assert InsufficientInventory(3, 1).message == "Not enough seats available. Requested: 3, Available: 1"
    assert InsufficientInventory(3).available is None


def test_validation_error_carries_field():
    error = ValidationError("bad date", field="event_date")
    assert error.field == "event_date"
    assert error.status_code == 400


def test_transient_error_default_status():
    assert TransientError().status_code == 503


def test_is_transient_db_error():
    locked = OperationalError("UPDATE events", {}, sqlite3.OperationalError("database is locked"))
    assert is_transient_db_error(locked)

    duplicate = IntegrityError("INSERT", {}, sqlite3.IntegrityError("UNIQUE constraint failed"))
    assert not is_transient_db_error(duplicate)
    assert not is_transient_db_error(ValueError("nope"))
