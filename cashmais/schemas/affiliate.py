"""Pydantic schemas for affiliate registration and session API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class AffiliateRegisterRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    cpf: str = Field(pattern=r"^\d{11}$")
    email: EmailStr
    whatsapp: Optional[str] = Field(default=None, max_length=32)
    password: str = Field(min_length=6, max_length=255)
    referral_code: Optional[str] = Field(default=None, max_length=16)


class AffiliateLoginRequest(BaseModel):
    cpf: str = Field(pattern=r"^\d{11}$")
    password: str = Field(min_length=1, max_length=255)


class AffiliateSummary(BaseModel):
    id: str
    full_name: str
    email: str
    referral_code: str
    customer_coupon: str


class AffiliateAuthResponse(BaseModel):
    success: bool = True
    affiliate: AffiliateSummary


class AffiliateProfile(BaseModel):
    id: str
    full_name: str
    cpf: str
    email: str
    whatsapp: Optional[str] = None
    referral_code: str
    customer_coupon: str
    sponsor_id: Optional[str] = None
    is_verified: bool
    created_at: Optional[datetime] = None
