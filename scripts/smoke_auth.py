"""Log in to one portal realm, call its "me" endpoint and log out again.

Session cookies are issued with the Secure flag, so an HTTP client drops them
on plain ``http://`` URLs. The token is read from the login response and sent
back in the ``x-session-token`` header, which every realm accepts, so the
check works against local HTTP servers as well as HTTPS deployments.
"""

from __future__ import annotations

import argparse
import os
import time
from typing import Iterable

import httpx


SESSION_HEADER = "x-session-token"

REALM_ROUTES = {
    "admin": ("/api/admin/login", "/api/admin/me", "/api/admin/logout", "username", "password", "admin_session"),
    "affiliate": (
        "/api/affiliate/login",
        "/api/affiliate/me",
        "/api/affiliate/logout",
        "cpf",
        "password",
        "affiliate_session",
    ),
    "company": ("/api/empresa/login", "/api/empresa/me", "/api/empresa/logout", "email", "senha", "company_session"),
    "cashier": ("/api/caixa/login", "/api/caixa/me", "/api/caixa/logout", "cpf", "password", "cashier_session"),
}


def run_smoke(
    *,
    base_url: str,
    realm: str,
    identifier: str,
    password: str,
    timeout_seconds: float,
    verify_tls: bool,
) -> dict[str, object]:
    login_path, me_path, logout_path, id_field, password_field, cookie_name = REALM_ROUTES[realm]
    started_at = time.perf_counter()

    me = logout = after_logout = None
    with httpx.Client(base_url=base_url, timeout=timeout_seconds, verify=verify_tls) as client:
        login = client.post(login_path, json={id_field: identifier, password_field: password})
        token = login.cookies.get(cookie_name) or ""
        if login.is_success and token:
            headers = {SESSION_HEADER: token}
            me = client.get(me_path, headers=headers)
            logout = client.post(logout_path, headers=headers)
            after_logout = client.get(me_path, headers=headers)

    return {
        "realm": realm,
        "login_status": login.status_code,
        "session_token_issued": bool(token),
        "me_status": me.status_code if me is not None else 0,
        "logout_status": logout.status_code if logout is not None else 0,
        "me_after_logout_status": after_logout.status_code if after_logout is not None else 0,
        "elapsed_seconds": time.perf_counter() - started_at,
    }


def _format_report(result: dict[str, object]) -> Iterable[str]:
    for key, value in result.items():
        if isinstance(value, float):
            yield f"{key}={value:.2f}"
        else:
            yield f"{key}={value}"


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a CashMais login/me/logout smoke check.")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--realm", choices=sorted(REALM_ROUTES), default="admin")
    parser.add_argument("--identifier", required=True, help="username, CPF or email depending on realm")
    parser.add_argument("--timeout", type=float, default=5.0)
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Disable TLS certificate validation (useful for self-signed test domains).",
    )
    args = parser.parse_args()

    password = os.getenv("CASHMAIS_SMOKE_PASSWORD", "")
    if not password:
        raise ValueError("CASHMAIS_SMOKE_PASSWORD must be set")

    result = run_smoke(
        base_url=args.base_url,
        realm=args.realm,
        identifier=args.identifier,
        password=password,
        timeout_seconds=args.timeout,
        verify_tls=not args.insecure,
    )
    for line in _format_report(result):
        print(line)

    healthy = result["login_status"] == 200 and result["me_status"] == 200 and result["me_after_logout_status"] == 401
    raise SystemExit(0 if healthy else 1)


if __name__ == "__main__":
    main()
