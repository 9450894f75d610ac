"""FastAPI dependencies for realm session enforcement and cookie handling."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request, Response, status
from sqlalchemy.orm import Session

from cashmais.auth.realms import Realm
from cashmais.auth.sessions import ResolvedSession, resolve_session
from cashmais.auth.tokens import extract_session_token
from cashmais.core.config import Settings
from cashmais.core.errors import ApiError
from cashmais.core.logger import bind_realm
from cashmais.storage.db import get_session


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def request_session_token(request: Request, realm: Realm) -> str:
    return extract_session_token(request.headers, realm.locations)


def client_ip(request: Request) -> str:
    for header in ("cf-connecting-ip", "x-forwarded-for"):
        value = request.headers.get(header)
        if value:
            first = value.split(",")[0].strip()
            if first:
                return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def require_session(realm: Realm) -> Callable[..., ResolvedSession]:
    """Build a dependency that resolves the caller's session in `realm` or answers 401."""

    def dependency(request: Request, db: Session = Depends(get_session)) -> ResolvedSession:
        bind_realm(realm.name)
        token = request_session_token(request, realm)
        if not token:
            raise ApiError(status.HTTP_401_UNAUTHORIZED, "Not authenticated")

        resolved = resolve_session(db, realm, token)
        if resolved is None:
            raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid session")
        return resolved

    return dependency


def set_session_cookie(response: Response, realm: Realm, token: str, settings: Settings) -> None:
    secure = settings.cookie_secure
    response.set_cookie(
        key=realm.cookie_name,
        value=token,
        max_age=int(realm.ttl.total_seconds()),
        path="/",
        secure=secure,
        httponly=True,
        samesite="none" if secure else "lax",
    )


def clear_session_cookie(response: Response, realm: Realm, settings: Settings) -> None:
    secure = settings.cookie_secure
    response.delete_cookie(
        key=realm.cookie_name,
        path="/",
        secure=secure,
        httponly=True,
        samesite="none" if secure else "lax",
    )
