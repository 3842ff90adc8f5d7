import os

import pytest
from fastapi.testclient import TestClient

# Set env vars BEFORE importing the app module, which builds a default app.
os.environ["TASKVERSE_DEV_AUTH_BYPASS"] = "1"
os.environ["TASKVERSE_LATENCY_SECONDS"] = "0"
os.environ["TASKVERSE_LEDGER_LATENCY_SECONDS"] = "0"

from api.main import create_app  # noqa: E402
from taskverse.config import Settings  # noqa: E402
from taskverse.persistence import find_user_by_email  # noqa: E402

USER_HEADERS = {"X-User-Email": "tester@example.com"}
OTHER_HEADERS = {"X-User-Email": "other@example.com"}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("TASKVERSE_DEV_AUTH_BYPASS", "1")
    app = create_app(Settings(environment="test", latency_seconds=0.0, ledger_latency_seconds=0.0))
    with TestClient(app) as test_client:
        yield test_client


def _ids(body: dict) -> list:
    return [task["id"] for task in body["tasks"]]


class TestHealthAndAuth:
    def test_health_check(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["environment"] == "test"
        assert body["targetChainId"] == "0x13881"

    def test_missing_user_header_is_unauthorized(self, client):
        resp = client.get("/tasks")
        assert resp.status_code == 401

    def test_missing_bearer_token_without_bypass(self, client, monkeypatch):
        monkeypatch.setenv("TASKVERSE_DEV_AUTH_BYPASS", "0")
        resp = client.get("/tasks", headers=USER_HEADERS)
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Missing Bearer token."

    def test_register_and_login(self, client):
        payload = {"name": "Tester", "email": "Tester@Example.com", "password": "password123"}
        resp = client.post("/auth/register", json=payload)
        assert resp.status_code == 201
        user = resp.json()["user"]
        assert user["email"] == "tester@example.com"
        assert "password" not in user and "passwordHash" not in user

        dup = client.post("/auth/register", json=payload)
        assert dup.status_code == 400
        assert dup.json()["detail"]["code"] == "validation_error"

        ok = client.post("/auth/login", json={"email": "tester@example.com", "password": "password123"})
        assert ok.status_code == 200
        bad = client.post("/auth/login", json={"email": "tester@example.com", "password": "nope"})
        assert bad.status_code == 401


class TestTasks:
    def test_list_tasks_default_view(self, client):
        resp = client.get("/tasks", headers=USER_HEADERS)
        assert resp.status_code == 200
        body = resp.json()
        assert _ids(body) == ["2", "4", "3", "5", "1"]
        assert body["filter"] == "all" and body["sort"] == "dueDate"
        assert body["total"] == 5

    def test_query_overrides_do_not_change_view(self, client):
        resp = client.get("/tasks?filter=completed", headers=USER_HEADERS)
        assert _ids(resp.json()) == ["4"]

        resp = client.get("/tasks", headers=USER_HEADERS)
        assert resp.json()["count"] == 5

    def test_invalid_filter_is_bad_request(self, client):
        resp = client.get("/tasks?filter=archived", headers=USER_HEADERS)
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "validation_error"

    def test_update_view_settings(self, client):
        resp = client.put("/tasks/view", json={"filter": "pending", "sort": "priority"}, headers=USER_HEADERS)
        assert resp.status_code == 200
        assert _ids(resp.json()) == ["1", "2", "3", "5"]

        resp = client.get("/tasks", headers=USER_HEADERS)
        assert resp.json()["sort"] == "priority"

    def test_invalid_view_settings_change_nothing(self, client):
        resp = client.put("/tasks/view", json={"filter": "pending", "sort": "title"}, headers=USER_HEADERS)
        assert resp.status_code == 400

        body = client.get("/tasks", headers=USER_HEADERS).json()
        assert body["filter"] == "all"
        assert body["count"] == 5

    def test_create_task(self, client):
        resp = client.post(
            "/tasks",
            json={"title": "Audit contract", "dueDate": "2025-04-18", "priority": "high"},
            headers=USER_HEADERS,
        )
        assert resp.status_code == 201
        task = resp.json()["task"]
        assert task["status"] == "pending"
        assert task["blockchainVerified"] is False

        listing = client.get("/tasks", headers=USER_HEADERS).json()
        assert _ids(listing)[0] == task["id"]

    def test_create_task_with_blank_title(self, client):
        resp = client.post("/tasks", json={"title": "  "}, headers=USER_HEADERS)
        assert resp.status_code == 400

    def test_update_task(self, client):
        resp = client.put("/tasks/1", json={"title": "Ship MVP", "priority": "low"}, headers=USER_HEADERS)
        assert resp.status_code == 200
        task = resp.json()["task"]
        assert task["title"] == "Ship MVP"
        assert task["priority"] == "low"
        assert task["description"] == "Finish the initial version of the decentralized todo app"

    def test_update_missing_task(self, client):
        resp = client.put("/tasks/missing", json={"title": "x"}, headers=USER_HEADERS)
        assert resp.status_code == 404

    def test_delete_is_idempotent(self, client):
        assert client.delete("/tasks/3", headers=USER_HEADERS).status_code == 200
        assert client.delete("/tasks/3", headers=USER_HEADERS).status_code == 200
        assert client.get("/tasks", headers=USER_HEADERS).json()["total"] == 4

    def test_complete_toggles(self, client):
        first = client.post("/tasks/1/complete", headers=USER_HEADERS).json()["task"]
        second = client.post("/tasks/1/complete", headers=USER_HEADERS).json()["task"]
        assert first["status"] == "completed"
        assert second["status"] == "pending"
        assert second["updatedAt"] > first["updatedAt"]

    def test_complete_missing_task(self, client):
        resp = client.post("/tasks/nope/complete", headers=USER_HEADERS)
        assert resp.status_code == 404
        assert resp.json()["detail"]["code"] == "not_found"

    def test_sessions_are_per_user(self, client):
        client.delete("/tasks/1", headers=USER_HEADERS)
        assert client.get("/tasks", headers=OTHER_HEADERS).json()["total"] == 5

    def test_prioritize_and_analytics(self, client):
        resp = client.post("/tasks/prioritize", headers=USER_HEADERS)
        assert resp.status_code == 200
        assert resp.json()["motivationalTip"]
        assert client.get("/tasks", headers=USER_HEADERS).json()["aiMotivationalTip"]

        analytics = client.get("/tasks/analytics", headers=USER_HEADERS).json()
        assert analytics["totalTasks"] == 5
        assert analytics["completionRate"] == 20.0
        assert len(analytics["weeklyCompletion"]) == 7


class TestWallet:
    def test_connect_and_switch_network(self, client):
        state = client.get("/wallet", headers=USER_HEADERS).json()
        assert state["phase"] == "provider_idle"

        resp = client.post("/wallet/connect", headers=USER_HEADERS)
        assert resp.status_code == 200
        state = resp.json()
        assert state["connected"] is True
        assert state["correctNetwork"] is False
        assert state["balance"] == "1.0000"

        again = client.post("/wallet/connect", headers=USER_HEADERS)
        assert again.status_code == 409

        switched = client.post("/wallet/switch-network", headers=USER_HEADERS).json()
        assert switched["correctNetwork"] is True
        assert switched["networkId"] == "0x13881"

        rejected = client.post("/wallet/switch-network", headers=USER_HEADERS)
        assert rejected.status_code == 409
        assert rejected.json()["detail"]["code"] == "invalid_transition"

        state = client.post("/wallet/disconnect", headers=USER_HEADERS).json()
        assert state["connected"] is False
        assert state["address"] is None

    def test_connect_stores_address_for_registered_user(self, client):
        client.post(
            "/auth/register",
            json={"name": "Tester", "email": "tester@example.com", "password": "password123"},
        )
        state = client.post("/wallet/connect", headers=USER_HEADERS).json()
        assert find_user_by_email("tester@example.com").wallet_address == state["address"]

    def test_verify_requires_connected_wallet(self, client):
        resp = client.post("/tasks/1/verify", headers=USER_HEADERS)
        assert resp.status_code == 409

    def test_verify_flow(self, client):
        client.post("/wallet/connect", headers=USER_HEADERS)

        anchored = client.post("/tasks/1/verify", headers=USER_HEADERS).json()
        assert anchored["receipt"]["action"] == "anchored"
        assert anchored["receipt"]["txHash"].startswith("0x")
        assert anchored["task"]["blockchainVerified"] is False

        client.post("/tasks/1/complete", headers=USER_HEADERS)
        verified = client.post("/tasks/1/verify", headers=USER_HEADERS).json()
        assert verified["receipt"]["action"] == "verified"
        assert verified["task"]["blockchainVerified"] is True
        assert verified["wallet"]["loading"] is False

        repeat = client.post("/tasks/1/verify", headers=USER_HEADERS).json()
        assert repeat["receipt"]["action"] == "already_verified"


def test_activity_feed_lists_user_entries(client):
    client.post("/tasks", json={"title": "Log me"}, headers=USER_HEADERS)
    client.post("/tasks", json={"title": "Not mine"}, headers=OTHER_HEADERS)

    resp = client.get("/activity", headers=USER_HEADERS)
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 1
    assert body["entries"][0]["title"] == "Task added"


def test_stored_tasks_survive_an_app_restart():
    settings = Settings(
        environment="test",
        latency_seconds=0.0,
        ledger_latency_seconds=0.0,
        seed_tasks=False,
        task_backend="store",
    )
    with TestClient(create_app(settings)) as first:
        created = first.post("/tasks", json={"title": "Persist me"}, headers=USER_HEADERS).json()["task"]

    with TestClient(create_app(settings)) as second:
        body = second.get("/tasks", headers=USER_HEADERS).json()

    assert _ids(body) == [created["id"]]
