"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Last-slot contention
  locust -f locustfile.py --tags churn        # Enroll/cancel on one event
  locust -f locustfile.py --tags throughput   # Cached event listing
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
CHURN_EVENT_ID = None
PASSWORD = "loadtest123"


def random_email():
    return f"load_{random.randint(10000, 99999)}@test.com"


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def random_emp_id():
    return f"{random.choice(['INT', 'JMD'])}{random.randint(0, 999):03d}"


def event_payload(title, available_slots, days_ahead=30):
    day = (datetime.now(timezone.utc) + timedelta(days=days_ahead)).date()
    return {
        "title": title,
        "description": "Load test event",
        "date": day.isoformat(),
        "start_time": "10:00:00",
        "end_time": "12:00:00",
        "venue": "Test Hall",
        "contact_email": "load@test.com",
        "available_slots": available_slots,
    }


def sign_up(client):
    """Register a fresh user and return bearer headers, or {} on failure."""
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "username": random_username(),
        "emp_id": random_emp_id(),
        "designation": "Engineer",
        "password": PASSWORD,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: first users create the contention events")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many users, 10 slots

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT slots_booked FROM events WHERE id = X;               -- exactly 10
      SELECT COUNT(*) FROM bookings
        WHERE event_id = X AND status = 'Confirmed';               -- exactly 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = sign_up(self.client)
        if self.headers and not CONCURRENCY_EVENT_ID:
            resp = self.client.post(
                "/api/v1/events/",
                json=event_payload("Concurrency Test Event", 10),
                headers=self.headers,
            )
            if resp.status_code == 201:
                globals()["CONCURRENCY_EVENT_ID"] = resp.json()["id"]
                print(f"\nCreated event {CONCURRENCY_EVENT_ID} with 10 slots\n")

    @tag("concurrency")
    @task
    def enroll_limited_slots(self):
        """All users fight for the same 10 slots."""
        if not CONCURRENCY_EVENT_ID or not self.headers:
            return

        with self.client.post(
            "/api/v1/bookings/",
            json={"event_id": CONCURRENCY_EVENT_ID},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: full, or already enrolled
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ChurnUser(HttpUser):
    """
    TEST 2: Enroll/cancel churn on a 5-slot event

    Run: locust -f locustfile.py --tags churn -u 50 -r 25 --run-time 60s

    After test, verify slots_booked equals the Confirmed booking count.
    """
    wait_time = between(0, 0.2)

    def on_start(self):
        self.headers = sign_up(self.client)
        self.booking_id = None
        if self.headers and not CHURN_EVENT_ID:
            resp = self.client.post(
                "/api/v1/events/",
                json=event_payload("Churn Test Event", 5),
                headers=self.headers,
            )
            if resp.status_code == 201:
                globals()["CHURN_EVENT_ID"] = resp.json()["id"]

    @tag("churn")
    @task
    def enroll_or_cancel(self):
        if not CHURN_EVENT_ID or not self.headers:
            return

        if self.booking_id is None:
            with self.client.post(
                "/api/v1/bookings/",
                json={"event_id": CHURN_EVENT_ID},
                headers=self.headers,
                catch_response=True,
            ) as resp:
                if resp.status_code == 201:
                    self.booking_id = resp.json()["id"]
                    resp.success()
                elif resp.status_code == 409:
                    resp.success()
                else:
                    resp.failure(f"Unexpected: {resp.status_code}")
        else:
            with self.client.delete(
                f"/api/v1/bookings/{self.booking_id}",
                headers=self.headers,
                name="/api/v1/bookings/{id}",
                catch_response=True,
            ) as resp:
                if resp.status_code == 200:
                    resp.success()
                else:
                    resp.failure(f"Unexpected: {resp.status_code}")
                self.booking_id = None


class ThroughputUser(HttpUser):
    """
    TEST 3: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        upcoming = random.choice(["true", "false"])
        resp = self.client.get(
            f"/api/v1/events/?upcoming_only={upcoming}",
            name="/api/v1/events/ [cached]",
        )
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(
                f"/api/v1/events/{random.choice(EVENT_IDS)}",
                name="/api/v1/events/{id}",
            )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 4: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = sign_up(self.client)

    def _expect(self, method, url, expected, **kwargs):
        with self.client.request(method, url, catch_response=True, **kwargs) as resp:
            if resp.status_code in expected:
                resp.success()
            else:
                resp.failure(f"Expected {expected}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        self._expect("POST", "/api/v1/bookings/", (404,),
                     json={"event_id": 999999}, headers=self.headers)

    @tag("edge")
    @task
    def missing_event_id(self):
        self._expect("POST", "/api/v1/bookings/", (422,), json={}, headers=self.headers)

    @tag("edge")
    @task
    def cancel_unknown_booking(self):
        self._expect("DELETE", "/api/v1/bookings/999999", (404,),
                     headers=self.headers, name="/api/v1/bookings/{id}")

    @tag("edge")
    @task
    def zero_slot_event(self):
        self._expect("POST", "/api/v1/events/", (422,),
                     json=event_payload("Empty", 0), headers=self.headers)

    @tag("edge")
    @task
    def malformed_json(self):
        self._expect("POST", "/api/v1/bookings/", (400, 422),
                     data="not json at all", headers=self.headers)

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect("POST", "/api/v1/bookings/", (401,), json={"event_id": 1})
