"""Pydantic schemas for company and cashier API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class CompanyRegisterRequest(BaseModel):
    razao_social: str = Field(min_length=1, max_length=255)
    nome_fantasia: str = Field(min_length=1, max_length=255)
    cnpj: str = Field(min_length=14, max_length=18)
    email: EmailStr
    telefone: str = Field(min_length=10, max_length=32)
    responsavel: str = Field(min_length=1, max_length=255)
    senha: str = Field(min_length=6, max_length=255)
    endereco: Optional[str] = None
    site_instagram: Optional[str] = None


class CompanyLoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    cnpj: Optional[str] = Field(default=None, max_length=18)
    senha: str = Field(min_length=1, max_length=255)


class CompanyProfile(BaseModel):
    id: str
    razao_social: str
    nome_fantasia: str
    email: str
    role: Literal["company"] = "company"


class CompanyMeResponse(BaseModel):
    company: CompanyProfile


class CompanyLoginResponse(BaseModel):
    success: bool = True
    company: CompanyProfile


class CompanyRegisterResponse(BaseModel):
    success: bool = True
    message: str = "Company registered"


class CashierLoginRequest(BaseModel):
    cpf: str = Field(min_length=10, max_length=14)
    password: str = Field(min_length=1, max_length=255)


class CashierProfile(BaseModel):
    id: str
    name: str
    cpf: str
    company_name: str
    role: Literal["cashier"] = "cashier"


class CashierMeResponse(BaseModel):
    cashier: CashierProfile


class CashierLoginResponse(BaseModel):
    success: bool = True
    cashier: CashierProfile


class CashierCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    cpf: str = Field(min_length=11, max_length=14)
    password: str = Field(min_length=6, max_length=255)


class CashierUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    password: Optional[str] = Field(default=None, min_length=6, max_length=255)


class CashierItem(BaseModel):
    id: str
    name: str
    cpf: str
    is_active: bool
    last_access_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CashierListResponse(BaseModel):
    cashiers: list[CashierItem]


class CashierCreateResponse(BaseModel):
    success: bool = True
    message: str = "Cashier created"
    cashier: CashierItem


class CashierToggleResponse(BaseModel):
    success: bool = True
    message: str
    is_active: bool


class CashbackUpdateRequest(BaseModel):
    cashback_percentage: float


class CompanyActionResponse(BaseModel):
    success: bool = True
    message: str


class PurchaseRequest(BaseModel):
    customer_coupon: str = Field(min_length=1, max_length=32)
    purchase_value: float = Field(ge=0.01)


class PurchaseResponse(BaseModel):
    success: bool = True
    message: str
    cashback_generated: float
    customer_name: str


class PurchaseReportItem(BaseModel):
    id: str
    cashier_id: Optional[str] = None
    cashier_name: Optional[str] = None
    customer_coupon: str
    purchase_value: float
    cashback_generated: float
    created_at: Optional[datetime] = None


class PurchaseReportResponse(BaseModel):
    purchases: list[PurchaseReportItem]


class SalesTotals(BaseModel):
    sales_count: int
    sales_value: float
    cashback_generated: float


class CompanyStatisticsResponse(BaseModel):
    total: SalesTotals
    monthly: SalesTotals
    cashback_percentage: float
