"""Pydantic schemas for the admin API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AdminLoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=80)
    password: str = Field(min_length=1, max_length=255)


class AdminProfile(BaseModel):
    id: str
    username: str
    email: str
    full_name: str


class AdminMeResponse(BaseModel):
    admin: AdminProfile


class AdminLoginResponse(BaseModel):
    success: bool = True
    admin: AdminProfile


class AdminDebugResponse(BaseModel):
    token_source: str
    token_preview: str
    backend_url_preview: str
    service_role_key_present: bool
    session_lookup_found: bool


class AdminAffiliateItem(BaseModel):
    id: str
    full_name: str
    email: str
    cpf: str
    whatsapp: Optional[str] = None
    referral_code: str
    sponsor_id: Optional[str] = None
    is_active: bool
    is_verified: bool
    created_at: Optional[datetime] = None
    last_access_at: Optional[datetime] = None
    direct_referrals: int
    total_cashback: float
    pending_commissions: float


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class AdminAffiliateListResponse(BaseModel):
    affiliates: list[AdminAffiliateItem]
    pagination: Pagination


class AdminAffiliateStatsResponse(BaseModel):
    totalActive: int
    totalInactive: int
    totalCashbackGenerated: float
    totalCommissionsPending: float
    newAffiliatesThisMonth: int
