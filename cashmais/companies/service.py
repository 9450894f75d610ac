"""Company and cashier accounts, cashier management and purchase registration."""

from __future__ import annotations

from datetime import datetime, timezone
import re
from typing import Any, Optional

from fastapi import status
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from cashmais.admin.service import month_bounds
from cashmais.core.errors import ApiError
from cashmais.schemas.company import (
    CashierCreateRequest,
    CashierUpdateRequest,
    CompanyLoginRequest,
    CompanyRegisterRequest,
)
from cashmais.storage.models import Affiliate, CashierSession, Company, CompanyCashier, CompanyPurchase
from cashmais.storage.security import hash_password, verify_password


DEFAULT_CASHBACK_PERCENTAGE = 5.0
MIN_CASHBACK_PERCENTAGE = 1.0
MAX_CASHBACK_PERCENTAGE = 20.0
REPORT_LIMIT = 100


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def register_company(session: Session, payload: CompanyRegisterRequest) -> Company:
    email = str(payload.email).lower()
    if session.scalar(select(Company.id).where(Company.email == email)) is not None:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Email already registered", field="email")

    company = Company(
        razao_social=payload.razao_social.strip(),
        nome_fantasia=payload.nome_fantasia.strip(),
        cnpj=payload.cnpj.strip(),
        email=email,
        telefone=payload.telefone.strip(),
        responsavel=payload.responsavel.strip(),
        senha_hash=hash_password(payload.senha),
        endereco=payload.endereco or "",
        site_instagram=payload.site_instagram or "",
        cashback_percentage=DEFAULT_CASHBACK_PERCENTAGE,
        is_active=True,
    )
    session.add(company)
    session.commit()
    return company


def _active_company_by_cnpj(session: Session, cnpj: str) -> Optional[Company]:
    """Match a CNPJ stored either bare or masked."""

    candidates = [digits_only(cnpj)]
    if cnpj.strip() not in candidates:
        candidates.append(cnpj.strip())
    for candidate in candidates:
        company = session.scalar(
            select(Company).where(Company.cnpj == candidate, Company.is_active.is_(True))
        )
        if company is not None:
            return company
    return None


def authenticate_company(session: Session, payload: CompanyLoginRequest) -> Company:
    if payload.email:
        company = session.scalar(
            select(Company).where(Company.email == str(payload.email).lower(), Company.is_active.is_(True))
        )
        failure = "Invalid email or password"
    elif payload.cnpj:
        company = _active_company_by_cnpj(session, payload.cnpj)
        failure = "Invalid CNPJ or password"
    else:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Email or CNPJ is required")

    if company is None or not verify_password(payload.senha, company.senha_hash):
        raise ApiError(status.HTTP_401_UNAUTHORIZED, failure)
    return company


def authenticate_cashier(
    session: Session,
    *,
    cpf: str,
    password: str,
    now: Optional[datetime] = None,
) -> CompanyCashier:
    clean_cpf = digits_only(cpf)
    candidates = [clean_cpf] if clean_cpf == cpf else [clean_cpf, cpf]

    cashier = None
    for candidate in candidates:
        cashier = session.scalar(
            select(CompanyCashier)
            .join(Company, CompanyCashier.company_id == Company.id)
            .where(
                CompanyCashier.cpf == candidate,
                CompanyCashier.is_active.is_(True),
                Company.is_active.is_(True),
            )
        )
        if cashier is not None:
            break

    if cashier is None or not verify_password(password, cashier.password_hash):
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid CPF or password")

    cashier.last_access_at = now or datetime.now(timezone.utc)
    session.commit()
    return cashier


def cashier_item(cashier: CompanyCashier) -> dict[str, Any]:
    return {
        "id": cashier.id,
        "name": cashier.name,
        "cpf": cashier.cpf,
        "is_active": bool(cashier.is_active),
        "last_access_at": cashier.last_access_at,
        "created_at": cashier.created_at,
    }


def create_cashier(session: Session, company: Company, payload: CashierCreateRequest) -> CompanyCashier:
    cpf = digits_only(payload.cpf)
    duplicate = session.scalar(
        select(CompanyCashier.id).where(CompanyCashier.company_id == company.id, CompanyCashier.cpf == cpf)
    )
    if duplicate is not None:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "CPF already registered for this company", field="cpf")

    cashier = CompanyCashier(
        company_id=company.id,
        name=payload.name.strip(),
        cpf=cpf,
        password_hash=hash_password(payload.password),
        is_active=True,
    )
    session.add(cashier)
    session.commit()
    return cashier


def list_cashiers(session: Session, company: Company) -> list[CompanyCashier]:
    return list(
        session.scalars(
            select(CompanyCashier)
            .where(CompanyCashier.company_id == company.id)
            .order_by(CompanyCashier.created_at.desc(), CompanyCashier.id)
        ).all()
    )


def get_company_cashier(session: Session, company: Company, cashier_id: str) -> CompanyCashier:
    """Return one of the company's cashiers or raise 404."""

    cashier = session.scalar(
        select(CompanyCashier).where(CompanyCashier.id == cashier_id, CompanyCashier.company_id == company.id)
    )
    if cashier is None:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Cashier not found")
    return cashier


def update_cashier(
    session: Session,
    company: Company,
    cashier_id: str,
    payload: CashierUpdateRequest,
) -> CompanyCashier:
    cashier = get_company_cashier(session, company, cashier_id)
    if payload.name:
        cashier.name = payload.name.strip()
    if payload.password:
        cashier.password_hash = hash_password(payload.password)
    session.commit()
    return cashier


def toggle_cashier(session: Session, company: Company, cashier_id: str) -> CompanyCashier:
    """Flip a cashier between active and blocked. Blocking ends open sessions."""

    cashier = get_company_cashier(session, company, cashier_id)
    cashier.is_active = not cashier.is_active
    if not cashier.is_active:
        session.execute(delete(CashierSession).where(CashierSession.cashier_id == cashier.id))
    session.commit()
    return cashier


def delete_cashier(session: Session, company: Company, cashier_id: str) -> None:
    cashier = get_company_cashier(session, company, cashier_id)
    sales = int(
        session.scalar(
            select(func.count()).select_from(CompanyPurchase).where(CompanyPurchase.cashier_id == cashier.id)
        )
        or 0
    )
    if sales:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Cannot delete cashier with recorded sales. Block instead.",
        )

    session.execute(delete(CashierSession).where(CashierSession.cashier_id == cashier.id))
    session.delete(cashier)
    session.commit()


def update_cashback_percentage(session: Session, company: Company, percentage: float) -> Company:
    if not MIN_CASHBACK_PERCENTAGE <= percentage <= MAX_CASHBACK_PERCENTAGE:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Cashback percentage must be between 1% and 20%")
    company.cashback_percentage = percentage
    session.commit()
    return company


def record_purchase(
    session: Session,
    cashier: CompanyCashier,
    *,
    customer_coupon: str,
    purchase_value: float,
) -> tuple[CompanyPurchase, Affiliate]:
    """Register a sale made by a cashier and the cashback it generates.

    The coupon is the customer's CPF and must belong to an active affiliate.
    Cashback is ``purchase_value * cashback_percentage / 100`` of the
    cashier's company, rounded to cents.
    """

    coupon = digits_only(customer_coupon)
    if coupon == digits_only(cashier.cpf):
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Cashier cannot use their own CPF", field="customer_coupon")

    customer = session.scalar(
        select(Affiliate).where(Affiliate.cpf == coupon, Affiliate.is_active.is_(True))
    )
    if customer is None:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "CPF not found or customer inactive",
            field="customer_coupon",
        )

    company = cashier.company
    percentage = company.cashback_percentage or DEFAULT_CASHBACK_PERCENTAGE
    purchase = CompanyPurchase(
        company_id=company.id,
        cashier_id=cashier.id,
        customer_coupon=coupon,
        purchase_value=purchase_value,
        cashback_generated=round(purchase_value * percentage / 100, 2),
    )
    session.add(purchase)
    session.commit()
    return purchase, customer


def purchase_report(session: Session, company: Company) -> list[dict[str, Any]]:
    rows = session.execute(
        select(CompanyPurchase, CompanyCashier.name)
        .outerjoin(CompanyCashier, CompanyPurchase.cashier_id == CompanyCashier.id)
        .where(CompanyPurchase.company_id == company.id)
        .order_by(CompanyPurchase.created_at.desc(), CompanyPurchase.id)
        .limit(REPORT_LIMIT)
    ).all()
    return [
        {
            "id": purchase.id,
            "cashier_id": purchase.cashier_id,
            "cashier_name": cashier_name,
            "customer_coupon": purchase.customer_coupon,
            "purchase_value": float(purchase.purchase_value or 0),
            "cashback_generated": float(purchase.cashback_generated or 0),
            "created_at": purchase.created_at,
        }
        for purchase, cashier_name in rows
    ]


def company_statistics(session: Session, company: Company, *, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    month_start, next_month_start = month_bounds(now)

    def _totals(*conditions) -> dict[str, Any]:
        count, value, cashback = session.execute(
            select(
                func.count(CompanyPurchase.id),
                func.coalesce(func.sum(CompanyPurchase.purchase_value), 0),
                func.coalesce(func.sum(CompanyPurchase.cashback_generated), 0),
            ).where(CompanyPurchase.company_id == company.id, *conditions)
        ).one()
        return {
            "sales_count": int(count or 0),
            "sales_value": float(value or 0),
            "cashback_generated": float(cashback or 0),
        }

    return {
        "total": _totals(),
        "monthly": _totals(
            CompanyPurchase.created_at >= month_start,
            CompanyPurchase.created_at < next_month_start,
        ),
        "cashback_percentage": float(company.cashback_percentage or DEFAULT_CASHBACK_PERCENTAGE),
    }
