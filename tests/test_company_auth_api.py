from __future__ import annotations

from sqlalchemy import select

from cashmais.companies.service import digits_only
from cashmais.storage.models import CashierSession, Company, CompanyCashier
from tests.conftest import seed_cashier, seed_company


def _company_payload(**overrides):
    payload = {
        "razao_social": "Padaria Central LTDA",
        "nome_fantasia": "Padaria Central",
        "cnpj": "11.222.333/0001-81",
        "email": "Contato@Padaria.com.br",
        "telefone": "1133334444",
        "responsavel": "Marina",
        "senha": "padaria123",
    }
    payload.update(overrides)
    return payload


def test_digits_only() -> None:
    assert digits_only("11.222.333/0001-81") == "11222333000181"
    assert digits_only("") == ""


def test_company_register_login_me_logout(portal) -> None:
    register_response = portal.client.post("/api/empresa/registrar", json=_company_payload())
    assert register_response.status_code == 200
    assert register_response.json() == {"success": True, "message": "Company registered"}

    with portal.session_factory() as session:
        company = session.scalar(select(Company))
        assert company.email == "contato@padaria.com.br"
        assert company.cashback_percentage == 5.0
        assert company.senha_hash != "padaria123"

    login_response = portal.client.post(
        "/api/empresa/login",
        json={"email": "contato@padaria.com.br", "senha": "padaria123"},
    )
    assert login_response.status_code == 200
    assert login_response.json()["company"]["role"] == "company"
    assert "company_session=" in login_response.headers["set-cookie"]

    me_response = portal.client.get("/api/empresa/me")
    assert me_response.status_code == 200
    assert me_response.json()["company"]["nome_fantasia"] == "Padaria Central"

    assert portal.client.post("/api/empresa/logout").json() == {"success": True}
    portal.client.cookies.clear()
    assert portal.client.get("/api/empresa/me").status_code == 401


def test_company_register_rejects_duplicate_email(portal) -> None:
    seed_company(portal.session_factory, email="contato@padaria.com.br")

    response = portal.client.post("/api/empresa/registrar", json=_company_payload())

    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered", "field": "email"}


def test_company_login_by_cnpj_bare_or_masked(portal) -> None:
    seed_company(portal.session_factory, cnpj="11222333000181")
    seed_company(portal.session_factory, email="outra@example.com", cnpj="44.555.666/0001-00")

    bare = portal.client.post("/api/empresa/login", json={"cnpj": "11.222.333/0001-81", "senha": "company-pass"})
    assert bare.status_code == 200

    masked = portal.client.post("/api/empresa/login", json={"cnpj": "44.555.666/0001-00", "senha": "company-pass"})
    assert masked.status_code == 200


def test_company_login_errors(portal) -> None:
    seed_company(portal.session_factory)
    seed_company(portal.session_factory, email="fechada@example.com", cnpj="99888777000166", is_active=False)

    missing = portal.client.post("/api/empresa/login", json={"senha": "company-pass"})
    assert missing.status_code == 400
    assert missing.json() == {"error": "Email or CNPJ is required"}

    wrong = portal.client.post("/api/empresa/login", json={"email": "loja@example.com", "senha": "nope"})
    assert wrong.status_code == 401
    assert wrong.json() == {"error": "Invalid email or password"}

    inactive = portal.client.post("/api/empresa/login", json={"cnpj": "99888777000166", "senha": "company-pass"})
    assert inactive.status_code == 401
    assert inactive.json() == {"error": "Invalid CNPJ or password"}


def test_company_session_is_rejected_once_company_is_deactivated(portal) -> None:
    company_id = seed_company(portal.session_factory)
    login_response = portal.client.post("/api/empresa/login", json={"email": "loja@example.com", "senha": "company-pass"})
    assert login_response.status_code == 200

    with portal.session_factory() as session:
        session.get(Company, company_id).is_active = False
        session.commit()

    response = portal.client.get("/api/empresa/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid session"}


def test_cashier_login_me_logout(portal) -> None:
    company_id = seed_company(portal.session_factory)
    cashier_id = seed_cashier(portal.session_factory, company_id=company_id)

    login_response = portal.client.post("/api/caixa/login", json={"cpf": "111.444.777-35", "password": "cashier-pass"})
    assert login_response.status_code == 200
    cashier = login_response.json()["cashier"]
    assert cashier == {
        "id": cashier_id,
        "name": "Bruno Caixa",
        "cpf": "11144477735",
        "company_name": "Loja Exemplo",
        "role": "cashier",
    }
    assert "Max-Age=28800" in login_response.headers["set-cookie"]

    with portal.session_factory() as session:
        assert session.get(CompanyCashier, cashier_id).last_access_at is not None

    me_response = portal.client.get("/api/caixa/me")
    assert me_response.status_code == 200
    assert me_response.json()["cashier"]["id"] == cashier_id

    assert portal.client.post("/api/caixa/logout").json() == {"success": True}
    with portal.session_factory() as session:
        assert session.scalars(select(CashierSession)).all() == []


def test_cashier_login_rejects_inactive_company_or_cashier(portal) -> None:
    closed_company_id = seed_company(portal.session_factory, is_active=False)
    seed_cashier(portal.session_factory, company_id=closed_company_id)
    open_company_id = seed_company(portal.session_factory, email="aberta@example.com")
    seed_cashier(portal.session_factory, company_id=open_company_id, cpf="12345678909", is_active=False)

    closed = portal.client.post("/api/caixa/login", json={"cpf": "11144477735", "password": "cashier-pass"})
    assert closed.status_code == 401
    assert closed.json() == {"error": "Invalid CPF or password"}

    inactive = portal.client.post("/api/caixa/login", json={"cpf": "12345678909", "password": "cashier-pass"})
    assert inactive.status_code == 401


def test_company_token_does_not_open_cashier_routes(portal) -> None:
    seed_company(portal.session_factory)
    login_response = portal.client.post("/api/empresa/login", json={"email": "loja@example.com", "senha": "company-pass"})
    token = login_response.cookies.get("company_session")

    response = portal.client.get("/api/caixa/me", headers={"x-session-token": token})

    assert response.status_code == 401


def test_cashier_session_is_rejected_once_company_is_deactivated(portal) -> None:
    company_id = seed_company(portal.session_factory)
    seed_cashier(portal.session_factory, company_id=company_id)
    login_response = portal.client.post("/api/caixa/login", json={"cpf": "11144477735", "password": "cashier-pass"})
    assert login_response.status_code == 200
    assert portal.client.get("/api/caixa/me").status_code == 200

    with portal.session_factory() as session:
        session.get(Company, company_id).is_active = False
        session.commit()

    response = portal.client.get("/api/caixa/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid session"}
