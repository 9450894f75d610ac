"""Admin session and reporting API routes."""

from __future__ import annotations

import re

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from cashmais.admin.service import affiliate_stats, authenticate_admin, list_affiliates, record_admin_login
from cashmais.auth.dependencies import (
    clear_session_cookie,
    client_ip,
    get_app_settings,
    request_session_token,
    require_session,
    set_session_cookie,
)
from cashmais.auth.realms import ADMIN
from cashmais.auth.sessions import ResolvedSession, create_session, resolve_session, revoke_session
from cashmais.auth.tokens import detect_token_source
from cashmais.core.config import Settings
from cashmais.core.errors import ApiError, SessionStoreError
from cashmais.core.logger import get_logger, mask_token
from cashmais.core.metrics import record_login_attempt
from cashmais.schemas.admin import (
    AdminAffiliateListResponse,
    AdminAffiliateStatsResponse,
    AdminDebugResponse,
    AdminLoginRequest,
    AdminLoginResponse,
    AdminMeResponse,
    AdminProfile,
)
from cashmais.storage.db import get_session


router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = get_logger("cashmais.admin")

require_admin = require_session(ADMIN)


def _profile(admin) -> AdminProfile:
    return AdminProfile(
        id=admin.id,
        username=admin.username,
        email=admin.email,
        full_name=admin.full_name,
    )


@router.post("/login", response_model=AdminLoginResponse)
def login(
    payload: AdminLoginRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> AdminLoginResponse:
    try:
        admin = authenticate_admin(session, username=payload.username, password=payload.password)
    except ApiError:
        record_login_attempt(realm=ADMIN.name, outcome="rejected")
        logger.warning("admin_login_failed", username=payload.username)
        raise

    ip_address = client_ip(request)
    user_agent = request.headers.get("user-agent", "unknown")
    row = create_session(session, ADMIN, admin.id, ip_address=ip_address, user_agent=user_agent)
    record_admin_login(session, admin, ip_address=ip_address, user_agent=user_agent)
    set_session_cookie(response, ADMIN, row.session_token, settings)

    record_login_attempt(realm=ADMIN.name, outcome="accepted")
    logger.info("admin_login_succeeded", admin_user_id=admin.id, token=mask_token(row.session_token))
    return AdminLoginResponse(admin=_profile(admin))


@router.get("/me", response_model=AdminMeResponse)
def me(auth: ResolvedSession = Depends(require_admin)) -> AdminMeResponse:
    return AdminMeResponse(admin=_profile(auth.principal))


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, bool]:
    token = request_session_token(request, ADMIN)
    if revoke_session(session, ADMIN, token):
        logger.info("admin_logout", token=mask_token(token))
    clear_session_cookie(response, ADMIN, settings)
    return {"success": True}


@router.get("/debug", response_model=AdminDebugResponse)
def debug(
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> AdminDebugResponse:
    token = request_session_token(request, ADMIN)
    found = False
    if token:
        try:
            found = resolve_session(session, ADMIN, token) is not None
        except SessionStoreError as exc:
            logger.warning("admin_debug_lookup_failed", error=str(exc))

    backend_url = settings.supabase_url.strip()
    backend_preview = re.sub(r"^https?://", "", backend_url).split(".")[0] if backend_url else "none"

    return AdminDebugResponse(
        token_source=detect_token_source(request.headers, ADMIN.locations),
        token_preview=mask_token(token, visible=12),
        backend_url_preview=backend_preview,
        service_role_key_present=bool(settings.supabase_service_role_key.strip()),
        session_lookup_found=found,
    )


@router.get("/affiliates", response_model=AdminAffiliateListResponse)
def affiliates(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    search: str = Query(default="", max_length=120),
    auth: ResolvedSession = Depends(require_admin),
    session: Session = Depends(get_session),
) -> AdminAffiliateListResponse:
    del auth
    return AdminAffiliateListResponse(**list_affiliates(session, page=page, limit=limit, search=search))


@router.get("/affiliates/stats", response_model=AdminAffiliateStatsResponse)
def affiliates_stats(
    auth: ResolvedSession = Depends(require_admin),
    session: Session = Depends(get_session),
) -> AdminAffiliateStatsResponse:
    del auth
    return AdminAffiliateStatsResponse(**affiliate_stats(session))
