"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Guests racing for the last seats
  locust -f locustfile.py --tags host         # Host decisions under load
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import uuid

from locust import HttpUser, between, events, tag, task

# Shared state
HOST_ID = str(uuid.uuid4())
CONCURRENCY_EVENT_ID = str(uuid.uuid4())
CONCURRENCY_CAPACITY = 10
EVENT_IDS = []
PENDING_REQUEST_IDS = []


def actor_headers(user_id=None):
    return {"X-Actor-Id": user_id or str(uuid.uuid4())}


def sync_event(client, event_id, capacity):
    return client.put(
        f"/api/v1/events/{event_id}",
        json={"host_id": HOST_ID, "capacity_total": capacity},
        name="/api/v1/events/{id} [sync]",
    )


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: concurrency event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_CAPACITY} seats")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 guests -> 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      GET /api/v1/events/{CONCURRENCY_EVENT_ID}/availability
    held + confirmed should be <= 10 and available >= 0
    """

    wait_time = between(0, 0.1)

    def on_start(self):
        # Idempotent: every user re-syncs the same capacity
        sync_event(self.client, CONCURRENCY_EVENT_ID, CONCURRENCY_CAPACITY)

    @tag("concurrency")
    @task(5)
    def request_last_seats(self):
        """Every guest asks for one seat of the same 10."""
        with self.client.post(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/requests",
            json={"party_size": 1},
            headers=actor_headers(),
            name="/api/v1/events/{id}/requests",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: no capacity left, or busy
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency", "read")
    @task(1)
    def check_never_overbooked(self):
        with self.client.get(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/availability",
            name="/api/v1/events/{id}/availability",
            catch_response=True,
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Unexpected: {resp.status_code}")
            elif resp.json()["available"] < 0:
                resp.failure(f"Overbooked: {resp.json()}")
            else:
                resp.success()


class HostUser(HttpUser):
    """
    TEST 2: Host decisions racing guest requests

    Run: locust -f locustfile.py --tags host -u 50 -r 10 --run-time 60s

    Guests keep requesting small parties; hosts approve, decline or waitlist
    whatever is pending. 409s are expected (capacity or state), 5xx are not.
    """

    wait_time = between(0.1, 0.5)

    def on_start(self):
        event_id = str(uuid.uuid4())
        if sync_event(self.client, event_id, random.randint(10, 50)).status_code == 200:
            EVENT_IDS.append(event_id)

    @tag("host")
    @task(6)
    def guest_requests(self):
        if not EVENT_IDS:
            return
        resp = self.client.post(
            f"/api/v1/events/{random.choice(EVENT_IDS)}/requests",
            json={"party_size": random.randint(1, 4)},
            headers=actor_headers(),
            name="/api/v1/events/{id}/requests",
        )
        if resp.status_code == 201:
            PENDING_REQUEST_IDS.append(resp.json()["id"])

    @tag("host")
    @task(4)
    def host_decides(self):
        if not PENDING_REQUEST_IDS:
            return
        request_id = PENDING_REQUEST_IDS.pop(random.randrange(len(PENDING_REQUEST_IDS)))
        action = random.choice(["approve", "approve", "decline", "waitlist"])
        with self.client.patch(
            f"/api/v1/requests/{request_id}/{action}",
            headers=actor_headers(HOST_ID),
            name=f"/api/v1/requests/{{id}}/{action}",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("host")
    @task(1)
    def host_promotes(self):
        if EVENT_IDS:
            self.client.post(
                f"/api/v1/events/{random.choice(EVENT_IDS)}/requests/promote",
                headers=actor_headers(HOST_ID),
                name="/api/v1/events/{id}/requests/promote",
            )

    @tag("host", "read")
    @task(2)
    def host_lists_pending(self):
        if EVENT_IDS:
            self.client.get(
                f"/api/v1/events/{random.choice(EVENT_IDS)}/requests?status=pending&limit=25",
                headers=actor_headers(HOST_ID),
                name="/api/v1/events/{id}/requests [list]",
            )

    @tag("host")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """

    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post(
            f"/api/v1/events/{uuid.uuid4()}/requests",
            json={"party_size": 1},
            headers=actor_headers(),
            name="/api/v1/events/{id}/requests [unknown]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def zero_party(self):
        with self.client.post(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/requests",
            json={"party_size": 0},
            headers=actor_headers(),
            name="/api/v1/events/{id}/requests [invalid]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def huge_party(self):
        with self.client.post(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/requests",
            json={"party_size": 999999},
            headers=actor_headers(),
            name="/api/v1/events/{id}/requests [huge]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [404, 409])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/requests",
            data="not json at all",
            headers=actor_headers(),
            name="/api/v1/events/{id}/requests [garbage]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def missing_actor(self):
        with self.client.post(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/requests",
            json={"party_size": 1},
            name="/api/v1/events/{id}/requests [anonymous]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [401])

    @tag("edge")
    @task
    def approve_unknown_request(self):
        with self.client.patch(
            f"/api/v1/requests/{uuid.uuid4()}/approve",
            headers=actor_headers(HOST_ID),
            name="/api/v1/requests/{id}/approve [unknown]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])
