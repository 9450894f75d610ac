"""Affiliate registration and credential checks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import status
from sqlalchemy import select
from sqlalchemy.orm import Session

from cashmais.core.errors import ApiError
from cashmais.schemas.affiliate import AffiliateRegisterRequest
from cashmais.storage.models import Affiliate
from cashmais.storage.security import generate_referral_code, hash_password, verify_password


REFERRAL_CODE_ATTEMPTS = 10


def _check_digit(digits: str, weight_start: int) -> int:
    total = sum(int(digit) * weight for digit, weight in zip(digits, range(weight_start, 1, -1)))
    remainder = (total * 10) % 11
    return 0 if remainder == 10 else remainder


def validate_cpf(cpf: str) -> bool:
    """Check a bare 11-digit CPF against its two check digits."""

    if len(cpf) != 11 or not cpf.isdigit():
        return False
    if cpf == cpf[0] * 11:
        return False
    if _check_digit(cpf[:9], 10) != int(cpf[9]):
        return False
    return _check_digit(cpf[:10], 11) == int(cpf[10])


def _unique_referral_code(session: Session) -> str:
    for _ in range(REFERRAL_CODE_ATTEMPTS):
        code = generate_referral_code()
        if session.scalar(select(Affiliate.id).where(Affiliate.referral_code == code)) is None:
            return code
    raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not generate referral code")


def register_affiliate(session: Session, payload: AffiliateRegisterRequest) -> Affiliate:
    if not validate_cpf(payload.cpf):
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Invalid data", field_errors={"cpf": "Invalid CPF"})

    if session.scalar(select(Affiliate.id).where(Affiliate.cpf == payload.cpf)) is not None:
        raise ApiError(status.HTTP_409_CONFLICT, "CPF already registered", field="cpf")

    email = str(payload.email).lower()
    if session.scalar(select(Affiliate.id).where(Affiliate.email == email)) is not None:
        raise ApiError(status.HTTP_409_CONFLICT, "Email already registered", field="email")

    sponsor_id: Optional[str] = None
    if payload.referral_code:
        sponsor_id = session.scalar(
            select(Affiliate.id).where(
                Affiliate.referral_code == payload.referral_code.strip().upper(),
                Affiliate.is_active.is_(True),
            )
        )
        if sponsor_id is None:
            raise ApiError(
                status.HTTP_400_BAD_REQUEST,
                "Invalid data",
                field_errors={"referral_code": "Invalid referral code"},
            )

    affiliate = Affiliate(
        full_name=payload.full_name.strip(),
        cpf=payload.cpf,
        email=email,
        whatsapp=payload.whatsapp or None,
        password_hash=hash_password(payload.password),
        referral_code=_unique_referral_code(session),
        sponsor_id=sponsor_id,
        is_active=True,
    )
    session.add(affiliate)
    session.commit()
    return affiliate


def authenticate_affiliate(session: Session, *, cpf: str, password: str) -> Affiliate:
    if not validate_cpf(cpf):
        raise ApiError(status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid CPF")

    affiliate = session.scalar(select(Affiliate).where(Affiliate.cpf == cpf))
    if affiliate is None:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid CPF or password")
    if not affiliate.is_active:
        raise ApiError(status.HTTP_403_FORBIDDEN, "Account inactive. Contact support.")
    if not verify_password(password, affiliate.password_hash):
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid CPF or password")
    return affiliate


def touch_last_access(session: Session, affiliate: Affiliate, *, now: Optional[datetime] = None) -> None:
    affiliate.last_access_at = now or datetime.now(timezone.utc)
    session.commit()
