"""Company (`/api/empresa`) and cashier (`/api/caixa`) API routes: accounts, cashiers, purchases."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from cashmais.auth.dependencies import (
    clear_session_cookie,
    get_app_settings,
    request_session_token,
    require_session,
    set_session_cookie,
)
from cashmais.auth.realms import CASHIER, COMPANY
from cashmais.auth.sessions import ResolvedSession, create_session, revoke_session
from cashmais.companies.service import (
    authenticate_cashier,
    authenticate_company,
    cashier_item,
    company_statistics,
    create_cashier,
    delete_cashier,
    list_cashiers,
    purchase_report,
    record_purchase,
    register_company,
    toggle_cashier,
    update_cashback_percentage,
    update_cashier,
)
from cashmais.core.config import Settings
from cashmais.core.errors import ApiError
from cashmais.core.logger import get_logger, mask_document
from cashmais.core.metrics import record_login_attempt
from cashmais.schemas.company import (
    CashbackUpdateRequest,
    CashierCreateRequest,
    CashierCreateResponse,
    CashierItem,
    CashierListResponse,
    CashierLoginRequest,
    CashierLoginResponse,
    CashierMeResponse,
    CashierProfile,
    CashierToggleResponse,
    CashierUpdateRequest,
    CompanyActionResponse,
    CompanyLoginRequest,
    CompanyLoginResponse,
    CompanyMeResponse,
    CompanyProfile,
    CompanyRegisterRequest,
    CompanyRegisterResponse,
    CompanyStatisticsResponse,
    PurchaseReportResponse,
    PurchaseRequest,
    PurchaseResponse,
)
from cashmais.storage.db import get_session
from cashmais.storage.models import Company, CompanyCashier


company_router = APIRouter(prefix="/api/empresa", tags=["company"])
cashier_router = APIRouter(prefix="/api/caixa", tags=["cashier"])
logger = get_logger("cashmais.companies")

require_company = require_session(COMPANY)
require_cashier = require_session(CASHIER)


def _company_profile(company: Company) -> CompanyProfile:
    return CompanyProfile(
        id=company.id,
        razao_social=company.razao_social,
        nome_fantasia=company.nome_fantasia,
        email=company.email,
    )


def _cashier_profile(cashier: CompanyCashier) -> CashierProfile:
    return CashierProfile(
        id=cashier.id,
        name=cashier.name,
        cpf=cashier.cpf,
        company_name=cashier.company.nome_fantasia,
    )


@company_router.post("/registrar", response_model=CompanyRegisterResponse)
def register(payload: CompanyRegisterRequest, session: Session = Depends(get_session)) -> CompanyRegisterResponse:
    company = register_company(session, payload)
    logger.info("company_registered", company_id=company.id, cnpj=mask_document(company.cnpj))
    return CompanyRegisterResponse()


@company_router.post("/login", response_model=CompanyLoginResponse)
def company_login(
    payload: CompanyLoginRequest,
    response: Response,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> CompanyLoginResponse:
    try:
        company = authenticate_company(session, payload)
    except ApiError as exc:
        record_login_attempt(realm=COMPANY.name, outcome="rejected")
        logger.warning("company_login_failed", reason=exc.error)
        raise

    row = create_session(session, COMPANY, company.id)
    set_session_cookie(response, COMPANY, row.session_token, settings)
    record_login_attempt(realm=COMPANY.name, outcome="accepted")
    return CompanyLoginResponse(company=_company_profile(company))


@company_router.get("/me", response_model=CompanyMeResponse)
def company_me(auth: ResolvedSession = Depends(require_company)) -> CompanyMeResponse:
    return CompanyMeResponse(company=_company_profile(auth.principal))


@company_router.post("/logout")
def company_logout(
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, bool]:
    revoke_session(session, COMPANY, request_session_token(request, COMPANY))
    clear_session_cookie(response, COMPANY, settings)
    return {"success": True}


@company_router.post("/caixas", response_model=CashierCreateResponse)
def company_create_cashier(
    payload: CashierCreateRequest,
    auth: ResolvedSession = Depends(require_company),
    session: Session = Depends(get_session),
) -> CashierCreateResponse:
    cashier = create_cashier(session, auth.principal, payload)
    logger.info(
        "cashier_created",
        company_id=auth.principal_id,
        cashier_id=cashier.id,
        cpf=mask_document(cashier.cpf),
    )
    return CashierCreateResponse(cashier=CashierItem(**cashier_item(cashier)))


@company_router.get("/caixas", response_model=CashierListResponse)
def company_list_cashiers(
    auth: ResolvedSession = Depends(require_company),
    session: Session = Depends(get_session),
) -> CashierListResponse:
    cashiers = list_cashiers(session, auth.principal)
    return CashierListResponse(cashiers=[CashierItem(**cashier_item(cashier)) for cashier in cashiers])


@company_router.put("/caixas/{cashier_id}", response_model=CompanyActionResponse)
def company_update_cashier(
    cashier_id: str,
    payload: CashierUpdateRequest,
    auth: ResolvedSession = Depends(require_company),
    session: Session = Depends(get_session),
) -> CompanyActionResponse:
    update_cashier(session, auth.principal, cashier_id, payload)
    logger.info("cashier_updated", company_id=auth.principal_id, cashier_id=cashier_id)
    return CompanyActionResponse(message="Cashier updated")


@company_router.patch("/caixas/{cashier_id}/toggle", response_model=CashierToggleResponse)
def company_toggle_cashier(
    cashier_id: str,
    auth: ResolvedSession = Depends(require_company),
    session: Session = Depends(get_session),
) -> CashierToggleResponse:
    cashier = toggle_cashier(session, auth.principal, cashier_id)
    logger.info("cashier_toggled", company_id=auth.principal_id, cashier_id=cashier_id, is_active=cashier.is_active)
    return CashierToggleResponse(
        message="Cashier activated" if cashier.is_active else "Cashier blocked",
        is_active=cashier.is_active,
    )


@company_router.delete("/caixas/{cashier_id}", response_model=CompanyActionResponse)
def company_delete_cashier(
    cashier_id: str,
    auth: ResolvedSession = Depends(require_company),
    session: Session = Depends(get_session),
) -> CompanyActionResponse:
    delete_cashier(session, auth.principal, cashier_id)
    logger.info("cashier_deleted", company_id=auth.principal_id, cashier_id=cashier_id)
    return CompanyActionResponse(message="Cashier deleted")


@company_router.put("/cashback", response_model=CompanyActionResponse)
def company_update_cashback(
    payload: CashbackUpdateRequest,
    auth: ResolvedSession = Depends(require_company),
    session: Session = Depends(get_session),
) -> CompanyActionResponse:
    update_cashback_percentage(session, auth.principal, payload.cashback_percentage)
    logger.info(
        "cashback_percentage_updated",
        company_id=auth.principal_id,
        cashback_percentage=payload.cashback_percentage,
    )
    return CompanyActionResponse(message="Cashback percentage updated")


@company_router.get("/relatorio", response_model=PurchaseReportResponse)
def company_purchase_report(
    auth: ResolvedSession = Depends(require_company),
    session: Session = Depends(get_session),
) -> PurchaseReportResponse:
    return PurchaseReportResponse(purchases=purchase_report(session, auth.principal))


@company_router.get("/estatisticas", response_model=CompanyStatisticsResponse)
def company_stats(
    auth: ResolvedSession = Depends(require_company),
    session: Session = Depends(get_session),
) -> CompanyStatisticsResponse:
    return CompanyStatisticsResponse(**company_statistics(session, auth.principal))


@cashier_router.post("/login", response_model=CashierLoginResponse)
def cashier_login(
    payload: CashierLoginRequest,
    response: Response,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> CashierLoginResponse:
    try:
        cashier = authenticate_cashier(session, cpf=payload.cpf, password=payload.password)
    except ApiError:
        record_login_attempt(realm=CASHIER.name, outcome="rejected")
        logger.warning("cashier_login_failed", cpf=mask_document(payload.cpf))
        raise

    row = create_session(session, CASHIER, cashier.id)
    set_session_cookie(response, CASHIER, row.session_token, settings)
    record_login_attempt(realm=CASHIER.name, outcome="accepted")
    return CashierLoginResponse(cashier=_cashier_profile(cashier))


@cashier_router.get("/me", response_model=CashierMeResponse)
def cashier_me(auth: ResolvedSession = Depends(require_cashier)) -> CashierMeResponse:
    return CashierMeResponse(cashier=_cashier_profile(auth.principal))


@cashier_router.post("/logout")
def cashier_logout(
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, bool]:
    revoke_session(session, CASHIER, request_session_token(request, CASHIER))
    clear_session_cookie(response, CASHIER, settings)
    return {"success": True}


@cashier_router.post("/compra", response_model=PurchaseResponse)
def cashier_record_purchase(
    payload: PurchaseRequest,
    auth: ResolvedSession = Depends(require_cashier),
    session: Session = Depends(get_session),
) -> PurchaseResponse:
    try:
        purchase, customer = record_purchase(
            session,
            auth.principal,
            customer_coupon=payload.customer_coupon,
            purchase_value=payload.purchase_value,
        )
    except ApiError as exc:
        logger.warning(
            "purchase_rejected",
            cashier_id=auth.principal_id,
            customer_coupon=mask_document(payload.customer_coupon),
            reason=exc.error,
        )
        raise

    cashback = float(purchase.cashback_generated)
    logger.info(
        "purchase_recorded",
        company_id=purchase.company_id,
        cashier_id=purchase.cashier_id,
        customer_coupon=mask_document(purchase.customer_coupon),
        purchase_value=purchase.purchase_value,
        cashback_generated=cashback,
    )
    return PurchaseResponse(
        message=f"Purchase recorded. Cashback of R$ {cashback:.2f} generated for {customer.full_name}",
        cashback_generated=cashback,
        customer_name=customer.full_name,
    )
