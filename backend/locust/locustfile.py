"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Many users race for one oven slot
  locust -f locustfile.py --tags throughput   # Status board and calendar reads
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

The concurrency scenario needs an approved admin to approve the load users:
  ADMIN_USER_ID=1 locust -f locustfile.py --tags concurrency
"""

import os
import random
from datetime import datetime, timedelta, timezone

from locust import HttpUser, between, events, tag, task

ADMIN_HEADERS = {"X-User-Id": os.getenv("ADMIN_USER_ID", "1")}
CONTESTED_OVEN_ID = int(os.getenv("CONTESTED_OVEN_ID", "1"))

# Every ConcurrencyUser asks for exactly this interval
CONTESTED_START = (datetime.now(timezone.utc) + timedelta(days=3)).replace(minute=0, second=0, microsecond=0)
CONTESTED_END = CONTESTED_START + timedelta(hours=4)


def random_email():
    return f"load_{random.randint(100000, 999999)}@test.com"


def register_and_approve(client) -> dict:
    resp = client.post("/api/v1/users/register", json={
        "name": "Load Tester",
        "email": random_email(),
    })
    if resp.status_code != 201:
        return {}
    user_id = resp.json()["data"]["id"]
    client.post(f"/api/v1/users/{user_id}/approve", headers=ADMIN_HEADERS, name="/api/v1/users/{id}/approve")
    return {"X-User-Id": str(user_id)}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Contested slot: oven {CONTESTED_OVEN_ID} {CONTESTED_START.isoformat()} -> {CONTESTED_END.isoformat()}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - N users -> one oven slot

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings
      WHERE oven_id = X AND status = 'ACTIVE' AND start_date = '<start>';
    Should be exactly 1
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_and_approve(self.client)

    @tag("concurrency")
    @task
    def book_contested_slot(self):
        if not self.headers:
            return

        with self.client.post("/api/v1/bookings/",
            json={
                "oven_id": CONTESTED_OVEN_ID,
                "start_date": CONTESTED_START.isoformat(),
                "end_date": CONTESTED_END.isoformat(),
                "purpose": "Load test drying run",
                "usage_temp": 80,
                "flap": 0,
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: OVERLAP or CAPACITY
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the API, run again
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = ADMIN_HEADERS

    @tag("throughput", "read")
    @task(10)
    def oven_board(self):
        self.client.get("/api/v1/ovens/", name="/api/v1/ovens/ [cached]")

    @tag("throughput", "read")
    @task(5)
    def calendar(self):
        oven_id = random.choice([None, 1, 2])
        url = "/api/v1/bookings/calendar" + (f"?oven_id={oven_id}" if oven_id else "")
        self.client.get(url, headers=self.headers, name="/api/v1/bookings/calendar [cached]")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    Every request must be rejected with a 4xx, never a 500.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register_and_approve(self.client)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    def _booking(self, **overrides):
        start = datetime.now(timezone.utc) + timedelta(days=random.randint(10, 60))
        body = {
            "oven_id": 1,
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(hours=2)).isoformat(),
            "purpose": "Edge case",
            "usage_temp": 50,
            "flap": 0,
        }
        body.update(overrides)
        return body

    @tag("edge")
    @task
    def unknown_oven(self):
        with self.client.post("/api/v1/bookings/", json=self._booking(oven_id=999999),
                              headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [409])

    @tag("edge")
    @task
    def too_hot(self):
        with self.client.post("/api/v1/bookings/", json=self._booking(usage_temp=99999),
                              headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [400, 409])

    @tag("edge")
    @task
    def reversed_interval(self):
        now = datetime.now(timezone.utc) + timedelta(days=5)
        body = self._booking(start_date=now.isoformat(), end_date=(now - timedelta(hours=1)).isoformat())
        with self.client.post("/api/v1/bookings/", json=body,
                              headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [400, 409])

    @tag("edge")
    @task
    def flap_out_of_range(self):
        with self.client.post("/api/v1/bookings/", json=self._booking(flap=150),
                              headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [400, 409])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/", data="not json at all",
                              headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_user(self):
        with self.client.post("/api/v1/bookings/", json=self._booking(),
                              catch_response=True) as resp:
            self._expect(resp, [401])
