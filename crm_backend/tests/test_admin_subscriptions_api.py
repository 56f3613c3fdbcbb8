"""
Test admin subscription routes.

Tests:
- X-Admin-Key required on every admin route
- Generator dry run vs generate over HTTP
- Start-time preview and manual grants
- Error responses carry the standard shape and request id
"""
import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient

from crm_backend.api.admin_subscriptions import get_job_sink
from crm_backend.features.subscriptions import repository
from crm_backend.features.users.service import register_user
from crm_backend.main import app
from crm_backend.models.generator import GENERATE_SUBSCRIPTION_MESSAGE
from crm_backend.tests.mocks import FakeSink


@pytest.fixture
def sink():
    fake = FakeSink(job_id="job-api")
    app.dependency_overrides[get_job_sink] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_job_sink, None)


@pytest.fixture
def client(db):
    return TestClient(app)


def test_admin_routes_require_key(client, admin_headers):
    resp = client.get("/v1/admin/subscription-types")
    assert resp.status_code == 403
    body = resp.json()
    assert body["error"]["code"] == "forbidden"
    assert body["error"]["request_id"] == resp.headers.get("x-request-id")

    resp = client.get("/v1/admin/subscription-types", headers={"X-Admin-Key": "wrong"})
    assert resp.status_code == 403


def test_list_active_types(client, admin_headers):
    repository.create_type("Yearly", 365)
    repository.create_type("Hidden", 30, active=False)

    resp = client.get("/v1/admin/subscription-types", headers=admin_headers)
    assert resp.status_code == 200
    assert [t["name"] for t in resp.json()] == ["Yearly"]


def test_generator_dry_run(client, admin_headers, sink):
    monthly = repository.create_type("Monthly", 30)
    register_user("known@example.com")

    resp = client.post(
        "/v1/admin/subscriptions/generate",
        headers=admin_headers,
        json={
            "subscription_type_id": monthly.id,
            "emails": "known@example.com\nnew@example.com\nbroken",
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["dispatched"] is False
    assert body["job_id"] is None
    assert body["counters"]["registrations"] == 2
    assert body["counters"]["inactive"] == 1
    assert body["warnings"] == ["Invalid email: broken"]
    assert {m["type"] for m in body["messages"]} == {"warning"}
    assert sink.messages == []


def test_generator_generate_dispatches(client, admin_headers, sink):
    monthly = repository.create_type("Monthly", 30)

    resp = client.post(
        "/v1/admin/subscriptions/generate",
        headers=admin_headers,
        json={
            "subscription_type_id": monthly.id,
            "emails": "new@example.com",
            "start_time": "2030-01-01T00:00:00Z",
            "generate": True,
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["dispatched"] is True
    assert body["job_id"] == "job-api"

    assert len(sink.messages) == 1
    message_type, payload = sink.messages[0]
    assert message_type == GENERATE_SUBSCRIPTION_MESSAGE
    assert [job["email"] for job in payload["register"]] == ["new@example.com"]
    assert payload["subscribe"][0]["subscription_type_id"] == monthly.id


def test_generator_unknown_type(client, admin_headers, sink):
    resp = client.post(
        "/v1/admin/subscriptions/generate",
        headers=admin_headers,
        json={"subscription_type_id": 999, "emails": "a@example.com"},
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


def test_generator_blank_emails(client, admin_headers, sink):
    monthly = repository.create_type("Monthly", 30)
    resp = client.post(
        "/v1/admin/subscriptions/generate",
        headers=admin_headers,
        json={"subscription_type_id": monthly.id, "emails": "\n  \n"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_start_time_preview(client, admin_headers):
    user = register_user("a@example.com")
    monthly = repository.create_type("Monthly", 30)
    end = datetime.now(timezone.utc) + timedelta(days=10)
    repository.add_subscription(user.id, monthly.id, datetime.now(timezone.utc) - timedelta(days=5), end)

    resp = client.get(
        f"/v1/admin/users/{user.id}/subscriptions/start-time",
        headers=admin_headers,
        params={"subscription_type_id": monthly.id},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["is_extending"] is True
    assert datetime.fromisoformat(body["date"].replace("Z", "+00:00")) == end


def test_manual_grant(client, admin_headers):
    user = register_user("a@example.com")
    monthly = repository.create_type("Monthly", 30)

    resp = client.post(
        f"/v1/admin/users/{user.id}/subscriptions",
        headers=admin_headers,
        json={
            "subscription_type_id": monthly.id,
            "type": "gift",
            "start_time": "2030-01-01T00:00:00Z",
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["type"] == "gift"
    assert body["user_id"] == user.id
    assert len(repository.user_subscriptions(user.id)) == 1


def test_manual_grant_unknown_user(client, admin_headers):
    monthly = repository.create_type("Monthly", 30)
    resp = client.post(
        "/v1/admin/users/999/subscriptions",
        headers=admin_headers,
        json={"subscription_type_id": monthly.id},
    )
    assert resp.status_code == 404


def test_request_id_echoed(client, admin_headers):
    resp = client.get(
        "/v1/admin/subscription-types",
        headers={**admin_headers, "X-Request-Id": "rid-123"},
    )
    assert resp.headers.get("x-request-id") == "rid-123"


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readyz_with_tables(client):
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": "ok", "missing_tables": []}


def test_readyz_reports_unreachable_database(client, monkeypatch):
    from crm_backend.api import health

    monkeypatch.setattr(health, "check_connection", lambda: False)
    resp = client.get("/readyz")
    assert resp.status_code == 503
    body = resp.json()
    assert body["database"] == "unreachable"
    assert "missing_tables" not in body


def test_readyz_reports_missing_tables(client):
    from crm_backend.core.database import drop_all_tables

    drop_all_tables()
    resp = client.get("/readyz")
    assert resp.status_code == 503
    body = resp.json()
    assert body["database"] == "ok"
    assert body["missing_tables"] == ["app_users", "subscription_types", "subscriptions"]
