"""Client-side authentication gate for portal views.

A gate asks the realm's "current user" endpoint who the caller is, once per
mount. It holds the principal while authenticated and otherwise points the
view at the realm's login page. There is no retry and nothing is cached
beyond the gate instance.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, TypeVar

import httpx

from cashmais.auth.tokens import SECONDARY_TOKEN_HEADER
from cashmais.core.logger import get_logger


T = TypeVar("T")
logger = get_logger("cashmais.client.gate")


class GateState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    PENDING = "pending"
    AUTHENTICATED = "authenticated"
    REDIRECTED = "redirected"


@dataclass(frozen=True)
class GatePreset:
    me_path: str
    login_path: str
    principal_key: Optional[str] = None


ADMIN_GATE = GatePreset(me_path="/api/admin/me", login_path="/admin/login", principal_key="admin")
COMPANY_GATE = GatePreset(me_path="/api/empresa/me", login_path="/empresa/login", principal_key="company")
CASHIER_GATE = GatePreset(me_path="/api/caixa/me", login_path="/empresa/caixa/login", principal_key="cashier")
AFFILIATE_GATE = GatePreset(me_path="/api/affiliate/me", login_path="/login")


def build_gate_client(
    base_url: str,
    *,
    session_token: str = "",
    cookies: Optional[Mapping[str, str]] = None,
    timeout_seconds: float = 20.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    headers = {"Accept": "application/json"}
    if session_token:
        headers[SECONDARY_TOKEN_HEADER] = session_token
    return httpx.Client(
        base_url=base_url,
        headers=headers,
        cookies=dict(cookies or {}),
        timeout=timeout_seconds,
        transport=transport,
    )


class AuthGate:
    def __init__(self, preset: GatePreset, *, client: httpx.Client) -> None:
        self._preset = preset
        self._client = client
        self.state = GateState.UNAUTHENTICATED
        self.principal: Optional[dict[str, Any]] = None
        self.redirect_to: Optional[str] = None

    def _redirect(self, reason: str) -> GateState:
        self.principal = None
        self.redirect_to = self._preset.login_path
        self.state = GateState.REDIRECTED
        logger.info("auth_gate_redirect", me_path=self._preset.me_path, reason=reason)
        return self.state

    def mount(self) -> GateState:
        self.state = GateState.PENDING
        self.principal = None
        self.redirect_to = None

        try:
            response = self._client.get(self._preset.me_path)
        except httpx.HTTPError as exc:
            return self._redirect(f"network_error: {exc}")

        if not response.is_success:
            return self._redirect(f"status_{response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            return self._redirect("invalid_json")

        principal = payload
        if self._preset.principal_key and isinstance(payload, dict):
            principal = payload.get(self._preset.principal_key)
        if not isinstance(principal, dict):
            return self._redirect("missing_principal")

        self.principal = principal
        self.state = GateState.AUTHENTICATED
        return self.state

    @property
    def is_authenticated(self) -> bool:
        return self.state is GateState.AUTHENTICATED

    def render(self, children: Callable[[dict[str, Any]], T]) -> Optional[T]:
        if not self.is_authenticated or self.principal is None:
            return None
        return children(self.principal)
