import asyncio
import time
from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from workorbit.auth.models import User
from workorbit.core.database import utcnow
from workorbit.core.enums import RequestedRole
from workorbit.core.middleware import AuthRateLimitMiddleware
from workorbit.hierarchy.service import HierarchyService
from workorbit.notifications.service import notification_dispatcher

PASSWORD = "Secret123"


def _admin_payload(email="owner@example.com", organization_name="Acme Corp"):
    return {
        "email": email,
        "password": PASSWORD,
        "name": "Olivia Owner",
        "organization_name": organization_name
    }


@pytest.fixture
def published(monkeypatch):
    events = []

    def record(event_type, organization_id, **kwargs):
        events.append({"type": event_type, "organization_id": organization_id, **kwargs})
        return True

    monkeypatch.setattr(notification_dispatcher, "publish", record)
    return events


def test_register_admin_creates_organization(client):
    response = client.post("/api/v1/auth/register/admin", json=_admin_payload())

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["organization"]["org_code"] == "ORG001"
    assert data["user"]["role"] == "admin"
    assert data["user"]["status"] == "active"
    assert data["user"]["org_code"] == "ORG001"
    assert data["access_token"] and data["refresh_token"]


def test_second_admin_gets_next_org_code(client):
    client.post("/api/v1/auth/register/admin", json=_admin_payload())
    response = client.post(
        "/api/v1/auth/register/admin", json=_admin_payload(email="second@example.com", organization_name="Beta")
    )
    assert response.json()["data"]["organization"]["org_code"] == "ORG002"


def test_duplicate_email_is_conflict(client):
    client.post("/api/v1/auth/register/admin", json=_admin_payload())
    response = client.post("/api/v1/auth/register/admin", json=_admin_payload(email="OWNER@example.com"))

    assert response.status_code == 409
    assert response.json()["success"] is False


def test_weak_password_is_rejected(client):
    payload = _admin_payload()
    payload["password"] = "lettersonly"

    response = client.post("/api/v1/auth/register/admin", json=payload)

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_register_hr_creates_pending_join_request(client, factory, published):
    factory.admin()

    response = client.post("/api/v1/auth/register/staff", json={
        "email": "hr@example.com",
        "password": PASSWORD,
        "name": "Hannah HR",
        "role": "hr",
        "requested_org_code": "ORG001"
    })

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["user"]["status"] == "pending_hr_approval"
    assert data["user"]["is_assigned"] is False
    assert data["request_status"] == "pending"
    assert [event["type"] for event in published] == ["employee_registered"]


def test_register_employee_with_hr_code(client, factory):
    admin, organization = factory.admin()
    hr_user = factory.hr(admin, organization)

    response = client.post("/api/v1/auth/register/staff", json={
        "email": "emp@example.com",
        "password": PASSWORD,
        "name": "Evan Employee",
        "role": "employee",
        "requested_hr_code": hr_user.hr_code
    })

    assert response.status_code == 201
    assert response.json()["data"]["user"]["status"] == "pending_staff_approval"


@pytest.mark.parametrize("payload,status_code", [
    ({"role": "hr"}, 400),
    ({"role": "hr", "requested_org_code": "ORG42"}, 400),
    ({"role": "hr", "requested_org_code": "ORG999"}, 404),
    ({"role": "employee"}, 400),
    ({"role": "employee", "requested_hr_code": "HR009-ORG001"}, 404),
    ({"role": "admin", "requested_org_code": "ORG001"}, 422),
])
def test_register_staff_rejects_bad_codes(client, factory, payload, status_code):
    factory.admin()
    body = {"email": "someone@example.com", "password": PASSWORD, "name": "Some One", **payload}

    response = client.post("/api/v1/auth/register/staff", json=body)

    assert response.status_code == status_code
    assert response.json()["success"] is False


def test_login_and_me(client, factory):
    admin, _ = factory.admin(email="boss@example.com")

    response = client.post("/api/v1/auth/login", json={"email": "boss@example.com", "password": PASSWORD})
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == str(admin.id)


def test_pending_user_can_log_in(client, factory):
    factory.admin()
    factory.staff_request(RequestedRole.HR, org_code="ORG001", email="waiting@example.com")

    response = client.post("/api/v1/auth/login", json={"email": "waiting@example.com", "password": PASSWORD})

    assert response.status_code == 200
    assert response.json()["data"]["user"]["status"] == "pending_hr_approval"


def test_rejected_user_cannot_log_in(client, factory):
    admin, _ = factory.admin()
    _, join_request = factory.staff_request(RequestedRole.HR, org_code="ORG001", email="nope@example.com")
    HierarchyService(factory.db).reject(join_request.id, admin)

    response = client.post("/api/v1/auth/login", json={"email": "nope@example.com", "password": PASSWORD})

    assert response.status_code == 400
    assert response.json()["error_code"] == "RESOURCE_INACTIVE"


def test_wrong_password_reports_remaining_attempts(client, factory):
    factory.admin(email="boss@example.com")

    response = client.post("/api/v1/auth/login", json={"email": "boss@example.com", "password": "Wrong1234"})

    assert response.status_code == 401
    assert response.json()["error_data"]["remaining_attempts"] == 4


def test_account_locks_after_max_attempts(client, db, factory, published):
    factory.admin(email="boss@example.com")
    wrong = {"email": "boss@example.com", "password": "Wrong1234"}

    statuses = [client.post("/api/v1/auth/login", json=wrong).status_code for _ in range(5)]
    assert statuses == [401, 401, 401, 401, 423]

    # The correct password is refused while the lock holds
    response = client.post("/api/v1/auth/login", json={"email": "boss@example.com", "password": PASSWORD})
    assert response.status_code == 423
    assert response.json()["error_code"] == "ACCOUNT_LOCKED"

    types = [event["type"] for event in published]
    assert types.count("failed_login_attempts") == 3
    assert types.count("account_lockout") == 1


def test_expired_lock_starts_a_fresh_window(db, factory):
    admin, _ = factory.admin()
    admin.login_attempts = 5
    admin.lock_until = utcnow() - timedelta(minutes=1)
    db.commit()

    assert admin.is_locked() is False
    assert admin.register_failed_login(max_attempts=5, lock_minutes=15) is False
    assert admin.login_attempts == 1
    assert admin.lock_until is None


def test_successful_login_resets_attempts(client, db, factory):
    factory.admin(email="boss@example.com")
    client.post("/api/v1/auth/login", json={"email": "boss@example.com", "password": "Wrong1234"})
    client.post("/api/v1/auth/login", json={"email": "boss@example.com", "password": PASSWORD})

    user = db.query(User).filter(User.email == "boss@example.com").one()
    assert user.login_attempts == 0
    assert user.last_login is not None


def test_refresh_token(client, factory, refresh_token_for, auth_headers):
    admin, _ = factory.admin()

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token_for(admin)})
    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"

    access_token = auth_headers(admin)["Authorization"].split()[1]
    response = client.post("/api/v1/auth/refresh", json={"refresh_token": access_token})
    assert response.status_code == 401
    assert response.json()["error_code"] == "INVALID_TOKEN"


def test_responses_carry_tracking_headers(client, db):
    response = client.get("/health")
    assert response.status_code == 200
    assert "X-Request-ID" in response.headers
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_auth_rate_limit_only_applies_to_auth_paths():
    app = FastAPI()
    app.add_middleware(AuthRateLimitMiddleware, requests_per_minute=2)

    @app.get("/api/v1/auth/ping")
    async def auth_ping():
        return {"ok": True}

    @app.get("/api/v1/other")
    async def other():
        return {"ok": True}

    client = TestClient(app)
    statuses = [client.get("/api/v1/auth/ping").status_code for _ in range(3)]
    assert statuses == [200, 200, 429]
    assert client.get("/api/v1/other").status_code == 200


def test_failed_login_alerts_are_published_off_the_event_loop(client, factory, monkeypatch):
    factory.admin(email="boss@example.com")
    on_loop = []

    def record(event_type, organization_id, **kwargs):
        try:
            asyncio.get_running_loop()
            on_loop.append(True)
        except RuntimeError:
            on_loop.append(False)
        return True

    monkeypatch.setattr(notification_dispatcher, "publish", record)
    wrong = {"email": "boss@example.com", "password": "Wrong1234"}
    for _ in range(3):
        client.post("/api/v1/auth/login", json=wrong)

    assert on_loop == [False]


def test_auth_rate_limit_forgets_expired_windows():
    limiter = AuthRateLimitMiddleware(FastAPI(), requests_per_minute=2)
    now = time.time()
    limiter.request_counts = {"10.0.0.1": 2, "10.0.0.2": 1}
    limiter.window_start_time = {"10.0.0.1": now - 120, "10.0.0.2": now - 5}

    limiter._prune_expired(now)

    assert limiter.request_counts == {"10.0.0.2": 1}
    assert limiter.window_start_time == {"10.0.0.2": now - 5}

    # Pruning runs at most once a minute
    limiter.window_start_time["10.0.0.2"] = now - 90
    limiter._prune_expired(now + 1)
    assert "10.0.0.2" in limiter.window_start_time
