"""
Locust load test suite for the EventHub API.

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Race for a 10-seat event
  locust -f locustfile.py --tags throughput   # Cached public listing
  locust -f locustfile.py --tags edge         # Bad input handling
  locust -f locustfile.py                     # All tests

Events are created in `pending`. Set LOCUST_ADMIN_EMAIL / LOCUST_ADMIN_PASSWORD
to an existing admin account to have them approved so they show up in the
public listing.
"""

import os
import random
import string
import uuid
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

PASSWORD = "loadtest-password"
ADMIN_EMAIL = os.environ.get("LOCUST_ADMIN_EMAIL")
ADMIN_PASSWORD = os.environ.get("LOCUST_ADMIN_PASSWORD")

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
CONCURRENCY_SEATS = 10


def random_email() -> str:
    return f"load_{uuid.uuid4().hex[:12]}@test.com"


def random_name() -> str:
    return "Load " + "".join(random.choices(string.ascii_lowercase, k=8))


def event_payload(title: str, seats: int) -> dict:
    future = datetime.now(timezone.utc) + timedelta(days=random.randint(1, 90))
    return {
        "title": title,
        "description": "Load test event generated by locust.",
        "category": "load-test",
        "event_date": future.isoformat(),
        "event_time": "20:00",
        "location": {
            "venue": "Load Arena",
            "address": "1 Benchmark Way",
            "city": "Testville",
            "country": "US",
        },
        "total_seats": seats,
        "price": "10.00",
    }


def sign_up(client, role: str = "user") -> dict:
    """Register a fresh account and return its auth headers ({} on failure)."""
    resp = client.post("/api/v1/auth/register", json={
        "name": random_name(),
        "email": random_email(),
        "password": PASSWORD,
        "role": role,
    }, name="/api/v1/auth/register")
    if resp.status_code != 201:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def approve(client, event_id: int) -> None:
    if not (ADMIN_EMAIL and ADMIN_PASSWORD):
        return
    resp = client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    if resp.status_code == 200:
        headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
        client.post(f"/api/v1/events/{event_id}/approve", headers=headers,
                    name="/api/v1/events/{id}/approve")


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"EventHub load test against {environment.host}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many users, 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After the run, verify:
      SELECT SUM(number_of_seats) FROM bookings
       WHERE event_id = X AND status <> 'cancelled';
    Must be <= 10, and events.available_seats must be >= 0.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONCURRENCY_EVENT_ID
        self.headers = sign_up(self.client)

        if CONCURRENCY_EVENT_ID is None:
            organizer_headers = sign_up(self.client, role="organizer")
            resp = self.client.post(
                "/api/v1/events",
                json=event_payload(f"Concurrency Test {uuid.uuid4().hex[:6]}", CONCURRENCY_SEATS),
                headers=organizer_headers,
            )
            if resp.status_code == 201 and CONCURRENCY_EVENT_ID is None:
                CONCURRENCY_EVENT_ID = resp.json()["id"]
                approve(self.client, CONCURRENCY_EVENT_ID)
                print(f"\nCreated event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_SEATS} seats\n")

    @tag("concurrency")
    @task
    def book_limited_seats(self):
        """All users fight for the same seats."""
        if not CONCURRENCY_EVENT_ID or not self.headers:
            return

        with self.client.post(
            "/api/v1/bookings",
            json={"event_id": CONCURRENCY_EVENT_ID, "number_of_seats": 1},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: sold out, expected
            elif resp.status_code == 503:
                resp.success()  # transient write conflict, client may retry
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - cache effectiveness

    Run twice, with REDIS_ENABLED=true and false:
      locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    Compare average latency, requests/sec and P95/P99.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/events?page={page}&page_size=20",
                               name="/api/v1/events [cached]")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}",
                            name="/api/v1/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input must yield proper error codes, never a 500

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = sign_up(self.client)

    def _expect(self, payload, allowed, headers=None, **kwargs):
        with self.client.post(
            "/api/v1/bookings",
            json=payload,
            headers=self.headers if headers is None else headers,
            catch_response=True,
            **kwargs,
        ) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        self._expect({"event_id": 999999, "number_of_seats": 1}, (404,))

    @tag("edge")
    @task
    def negative_seats(self):
        self._expect({"event_id": 1, "number_of_seats": -5}, (422,))

    @tag("edge")
    @task
    def zero_seats(self):
        self._expect({"event_id": 1, "number_of_seats": 0}, (422,))

    @tag("edge")
    @task
    def too_many_seats(self):
        self._expect({"event_id": 1, "number_of_seats": 11}, (422,))

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect({"event_id": 1, "number_of_seats": 1}, (401,), headers={})

    @tag("edge")
    @task
    def cancel_unknown_booking(self):
        with self.client.post("/api/v1/bookings/999999/cancel", headers=self.headers,
                              catch_response=True, name="/api/v1/bookings/{id}/cancel") as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some bookings and cancellations, rare event creation.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = sign_up(self.client, role=random.choice(["user", "user", "organizer"]))
        self.booking_ids = []

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events?page=1&page_size=20")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @task(10)
    def book_seats(self):
        if EVENT_IDS and self.headers:
            resp = self.client.post(
                "/api/v1/bookings",
                json={"event_id": random.choice(EVENT_IDS), "number_of_seats": random.randint(1, 3)},
                headers=self.headers,
            )
            if resp.status_code == 201:
                self.booking_ids.append(resp.json()["id"])

    @task(3)
    def cancel_booking(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop()
            self.client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=self.headers,
                             name="/api/v1/bookings/{id}/cancel")

    @task(2)
    def my_bookings(self):
        if self.headers:
            self.client.get("/api/v1/bookings/me", headers=self.headers)

    @task(1)
    def create_event(self):
        if self.headers:
            resp = self.client.post(
                "/api/v1/events",
                json=event_payload(f"Event {uuid.uuid4().hex[:8]}", random.randint(10, 500)),
                headers=self.headers,
            )
            if resp.status_code == 201:
                approve(self.client, resp.json()["id"])
