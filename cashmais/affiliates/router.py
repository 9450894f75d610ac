"""Affiliate registration and session API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from cashmais.affiliates.service import authenticate_affiliate, register_affiliate, touch_last_access
from cashmais.auth.dependencies import (
    clear_session_cookie,
    client_ip,
    get_app_settings,
    request_session_token,
    require_session,
    set_session_cookie,
)
from cashmais.auth.realms import AFFILIATE
from cashmais.auth.sessions import ResolvedSession, create_session, revoke_session
from cashmais.core.config import Settings
from cashmais.core.errors import ApiError
from cashmais.core.logger import get_logger, mask_document, mask_token
from cashmais.core.metrics import record_login_attempt
from cashmais.schemas.affiliate import (
    AffiliateAuthResponse,
    AffiliateLoginRequest,
    AffiliateProfile,
    AffiliateRegisterRequest,
    AffiliateSummary,
)
from cashmais.storage.db import get_session
from cashmais.storage.models import Affiliate


router = APIRouter(prefix="/api/affiliate", tags=["affiliate"])
logger = get_logger("cashmais.affiliates")

require_affiliate = require_session(AFFILIATE)


def _summary(affiliate: Affiliate) -> AffiliateSummary:
    # The CPF doubles as the affiliate's customer coupon.
    return AffiliateSummary(
        id=affiliate.id,
        full_name=affiliate.full_name,
        email=affiliate.email,
        referral_code=affiliate.referral_code,
        customer_coupon=affiliate.cpf,
    )


@router.post("/register", response_model=AffiliateAuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: AffiliateRegisterRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> AffiliateAuthResponse:
    affiliate = register_affiliate(session, payload)
    row = create_session(session, AFFILIATE, affiliate.id)
    set_session_cookie(response, AFFILIATE, row.session_token, settings)

    logger.info(
        "affiliate_registered",
        affiliate_id=affiliate.id,
        cpf=mask_document(affiliate.cpf),
        sponsor_id=affiliate.sponsor_id,
        ip=client_ip(request),
    )
    return AffiliateAuthResponse(affiliate=_summary(affiliate))


@router.post("/login", response_model=AffiliateAuthResponse)
def login(
    payload: AffiliateLoginRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> AffiliateAuthResponse:
    try:
        affiliate = authenticate_affiliate(session, cpf=payload.cpf, password=payload.password)
    except ApiError as exc:
        record_login_attempt(realm=AFFILIATE.name, outcome="rejected")
        logger.warning(
            "affiliate_login_failed",
            cpf=mask_document(payload.cpf),
            ip=client_ip(request),
            reason=exc.error,
        )
        raise

    row = create_session(session, AFFILIATE, affiliate.id)
    set_session_cookie(response, AFFILIATE, row.session_token, settings)

    record_login_attempt(realm=AFFILIATE.name, outcome="accepted")
    logger.info(
        "affiliate_login_succeeded",
        affiliate_id=affiliate.id,
        cpf=mask_document(affiliate.cpf),
        token=mask_token(row.session_token),
    )
    return AffiliateAuthResponse(affiliate=_summary(affiliate))


@router.get("/me", response_model=AffiliateProfile)
def me(
    auth: ResolvedSession = Depends(require_affiliate),
    session: Session = Depends(get_session),
) -> AffiliateProfile:
    affiliate: Affiliate = auth.principal
    touch_last_access(session, affiliate)
    return AffiliateProfile(
        id=affiliate.id,
        full_name=affiliate.full_name,
        cpf=affiliate.cpf,
        email=affiliate.email,
        whatsapp=affiliate.whatsapp,
        referral_code=affiliate.referral_code,
        customer_coupon=affiliate.cpf,
        sponsor_id=affiliate.sponsor_id,
        is_verified=bool(affiliate.is_verified),
        created_at=affiliate.created_at,
    )


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, bool]:
    token = request_session_token(request, AFFILIATE)
    revoke_session(session, AFFILIATE, token)
    clear_session_cookie(response, AFFILIATE, settings)
    return {"success": True}
