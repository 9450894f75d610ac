from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cashmais.api.main import create_app
from cashmais.core.config import build_settings
from cashmais.core.metrics import reset_metrics_for_tests
from cashmais.storage.db import Base, Database, get_session, load_models
from cashmais.storage.models import AdminUser, Affiliate, Company, CompanyCashier, CompanyPurchase
from cashmais.storage.security import hash_password


def build_sqlite_session_factory() -> sessionmaker:
    load_models()
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def build_test_settings(**overrides: Any):
    values: dict[str, Any] = {
        "env": "development",
        "database_url": "sqlite+pysqlite://",
        "cookie_secure": False,
        "metrics_enabled": True,
        "sentry_dsn": "",
        "supabase_url": "https://projref.supabase.co",
        "supabase_edge_url": "",
        "next_public_supabase_url": "",
        "supabase_anon_key": "anon-key-123",
        "next_public_supabase_anon_key": "",
        "vite_supabase_anon_key": "",
        "supabase_service_role_key": "",
    }
    values.update(overrides)
    return build_settings(**values)


@dataclass
class PortalTestContext:
    client: TestClient
    session_factory: sessionmaker
    app: Any


def create_portal_test_context(**settings_overrides: Any) -> PortalTestContext:
    session_factory = build_sqlite_session_factory()
    app = create_app(build_test_settings(**settings_overrides), database=Database("sqlite+pysqlite://"))

    def override_get_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_get_session
    return PortalTestContext(client=TestClient(app), session_factory=session_factory, app=app)


@pytest.fixture
def portal() -> PortalTestContext:
    reset_metrics_for_tests()
    context = create_portal_test_context()
    yield context
    context.app.dependency_overrides.clear()


def seed_admin(
    session_factory: sessionmaker,
    *,
    username: str = "root",
    password: str = "admin-pass-123",
    is_active: bool = True,
) -> str:
    with session_factory() as session:
        admin = AdminUser(
            username=username,
            email=f"{username}@cashmais.local",
            full_name="Portal Admin",
            password_hash=hash_password(password),
            is_active=is_active,
        )
        session.add(admin)
        session.commit()
        return admin.id


def seed_affiliate(
    session_factory: sessionmaker,
    *,
    cpf: str = "52998224725",
    email: str = "ana@example.com",
    password: str = "affiliate-pass",
    referral_code: str = "ANA12345",
    sponsor_id: Optional[str] = None,
    is_active: bool = True,
) -> str:
    with session_factory() as session:
        affiliate = Affiliate(
            full_name="Ana Souza",
            cpf=cpf,
            email=email,
            password_hash=hash_password(password),
            referral_code=referral_code,
            sponsor_id=sponsor_id,
            is_active=is_active,
        )
        session.add(affiliate)
        session.commit()
        return affiliate.id


def seed_company(
    session_factory: sessionmaker,
    *,
    email: str = "loja@example.com",
    cnpj: str = "11222333000181",
    senha: str = "company-pass",
    is_active: bool = True,
) -> str:
    with session_factory() as session:
        company = Company(
            razao_social="Loja Exemplo LTDA",
            nome_fantasia="Loja Exemplo",
            cnpj=cnpj,
            email=email,
            telefone="11999990000",
            responsavel="Carlos",
            senha_hash=hash_password(senha),
            is_active=is_active,
        )
        session.add(company)
        session.commit()
        return company.id


def seed_cashier(
    session_factory: sessionmaker,
    *,
    company_id: str,
    cpf: str = "11144477735",
    password: str = "cashier-pass",
    is_active: bool = True,
) -> str:
    with session_factory() as session:
        cashier = CompanyCashier(
            company_id=company_id,
            name="Bruno Caixa",
            cpf=cpf,
            password_hash=hash_password(password),
            is_active=is_active,
        )
        session.add(cashier)
        session.commit()
        return cashier.id


def seed_purchase(
    session_factory: sessionmaker,
    *,
    company_id: str,
    customer_coupon: str,
    purchase_value: float,
    cashback_generated: float,
    cashier_id: Optional[str] = None,
) -> None:
    with session_factory() as session:
        session.add(
            CompanyPurchase(
                company_id=company_id,
                cashier_id=cashier_id,
                customer_coupon=customer_coupon,
                purchase_value=purchase_value,
                cashback_generated=cashback_generated,
            )
        )
        session.commit()
