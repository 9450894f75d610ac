from __future__ import annotations

from sqlalchemy import select

from cashmais.auth.sessions import create_session
from cashmais.auth.realms import ADMIN
import cashmais.auth.dependencies as auth_dependencies
from cashmais.core.errors import SessionStoreError
from cashmais.storage.models import AdminAuditLog, AdminSession, AdminUser
from tests.conftest import seed_admin


def _login(portal, *, username: str = "root", password: str = "admin-pass-123"):
    return portal.client.post("/api/admin/login", json={"username": username, "password": password})


def test_admin_login_me_and_logout(portal) -> None:
    admin_id = seed_admin(portal.session_factory)

    login_response = _login(portal)
    assert login_response.status_code == 200
    payload = login_response.json()
    assert payload["success"] is True
    assert payload["admin"]["id"] == admin_id
    assert payload["admin"]["username"] == "root"
    assert "password_hash" not in payload["admin"]

    set_cookie = login_response.headers["set-cookie"]
    assert "admin_session=" in set_cookie
    assert "HttpOnly" in set_cookie
    assert "Max-Age=86400" in set_cookie

    me_response = portal.client.get("/api/admin/me")
    assert me_response.status_code == 200
    assert me_response.json()["admin"]["email"] == "root@cashmais.local"

    logout_response = portal.client.post("/api/admin/logout")
    assert logout_response.status_code == 200
    assert logout_response.json() == {"success": True}

    with portal.session_factory() as session:
        assert session.scalars(select(AdminSession)).all() == []

    portal.client.cookies.clear()
    assert portal.client.get("/api/admin/me").status_code == 401


def test_admin_login_records_audit_and_last_login(portal) -> None:
    admin_id = seed_admin(portal.session_factory)

    response = portal.client.post(
        "/api/admin/login",
        json={"username": "root", "password": "admin-pass-123"},
        headers={"x-forwarded-for": "203.0.113.9, 10.0.0.1", "user-agent": "pytest-agent"},
    )
    assert response.status_code == 200

    with portal.session_factory() as session:
        admin = session.get(AdminUser, admin_id)
        row = session.scalar(select(AdminSession))
        audit = session.scalar(select(AdminAuditLog))

    assert admin.last_login_at is not None
    assert row.ip_address == "203.0.113.9"
    assert row.user_agent == "pytest-agent"
    assert audit.action == "LOGIN"
    assert audit.admin_user_id == admin_id


def test_admin_login_rejects_bad_credentials(portal) -> None:
    seed_admin(portal.session_factory)
    seed_admin(portal.session_factory, username="ghost", is_active=False)

    assert _login(portal, password="wrong").status_code == 401
    assert _login(portal, username="nobody").status_code == 401

    inactive = _login(portal, username="ghost")
    assert inactive.status_code == 401
    assert inactive.json() == {"error": "Invalid credentials"}


def test_admin_login_validation_error_shape(portal) -> None:
    response = portal.client.post("/api/admin/login", json={"username": "root"})

    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "Invalid data"
    assert payload["details"]


def test_admin_me_accepts_every_token_location(portal) -> None:
    admin_id = seed_admin(portal.session_factory)
    with portal.session_factory() as session:
        token = create_session(session, ADMIN, admin_id).session_token

    for headers in (
        {"x-admin-token": token},
        {"x-session-token": token},
        {"Authorization": f"bearer {token}"},
        {"Cookie": f"admin_session={token}"},
    ):
        response = portal.client.get("/api/admin/me", headers=headers)
        assert response.status_code == 200, headers
        assert response.json()["admin"]["id"] == admin_id


def test_admin_me_without_token_skips_lookup(portal, monkeypatch) -> None:
    calls = []

    def fake_resolve(*args, **kwargs):
        calls.append((args, kwargs))
        return None

    monkeypatch.setattr(auth_dependencies, "resolve_session", fake_resolve)
    response = portal.client.get("/api/admin/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated"}
    assert calls == []


def test_admin_me_with_unknown_token_is_invalid_session(portal) -> None:
    response = portal.client.get("/api/admin/me", headers={"x-admin-token": "f" * 64})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid session"}
    assert "f" * 64 not in response.text


def test_admin_me_reports_store_failure_as_500(portal, monkeypatch) -> None:
    def broken_resolve(*args, **kwargs):
        raise SessionStoreError("connection refused")

    monkeypatch.setattr(auth_dependencies, "resolve_session", broken_resolve)
    response = portal.client.get("/api/admin/me", headers={"x-admin-token": "abc"})

    assert response.status_code == 500
    assert response.json() == {"error": "Session store unavailable", "details": "connection refused"}


def test_admin_debug_reports_token_diagnostics(portal) -> None:
    admin_id = seed_admin(portal.session_factory)
    with portal.session_factory() as session:
        token = create_session(session, ADMIN, admin_id).session_token

    response = portal.client.get("/api/admin/debug", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["token_source"] == "authorization"
    assert payload["token_preview"] == token[:12] + "..."
    assert payload["backend_url_preview"] == "projref"
    assert payload["service_role_key_present"] is False
    assert payload["session_lookup_found"] is True
    assert token not in response.text


def test_admin_debug_without_token(portal) -> None:
    response = portal.client.get("/api/admin/debug")

    assert response.status_code == 200
    payload = response.json()
    assert payload["token_source"] == "none"
    assert payload["token_preview"] == "none"
    assert payload["session_lookup_found"] is False
