"""Authentication realms: which tables, token locations and TTL each principal kind uses."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from cashmais.auth.tokens import TokenLocations
from cashmais.storage.models import (
    AdminSession,
    AdminUser,
    Affiliate,
    AffiliateSession,
    CashierSession,
    Company,
    CompanyCashier,
    CompanySession,
)


@dataclass(frozen=True)
class Realm:
    name: str
    session_model: type
    principal_model: type
    principal_key: str
    locations: TokenLocations
    ttl: timedelta
    replace_existing_sessions: bool = False
    # Optional owner of the principal that must also be active, e.g. a cashier's company.
    parent_model: Optional[type] = None
    parent_key: Optional[str] = None

    @property
    def cookie_name(self) -> str:
        return self.locations.cookie_name

    @property
    def principal_column(self) -> Any:
        return getattr(self.session_model, self.principal_key)

    @property
    def parent_column(self) -> Any:
        if self.parent_model is None or self.parent_key is None:
            return None
        return getattr(self.principal_model, self.parent_key)


ADMIN = Realm(
    name="admin",
    session_model=AdminSession,
    principal_model=AdminUser,
    principal_key="admin_user_id",
    locations=TokenLocations(primary_header="x-admin-token", cookie_name="admin_session"),
    ttl=timedelta(hours=24),
)

AFFILIATE = Realm(
    name="affiliate",
    session_model=AffiliateSession,
    principal_model=Affiliate,
    principal_key="affiliate_id",
    locations=TokenLocations(primary_header="x-affiliate-token", cookie_name="affiliate_session"),
    ttl=timedelta(days=30),
    replace_existing_sessions=True,
)

COMPANY = Realm(
    name="company",
    session_model=CompanySession,
    principal_model=Company,
    principal_key="company_id",
    locations=TokenLocations(primary_header="x-company-token", cookie_name="company_session"),
    ttl=timedelta(hours=24),
)

CASHIER = Realm(
    name="cashier",
    session_model=CashierSession,
    principal_model=CompanyCashier,
    principal_key="cashier_id",
    locations=TokenLocations(primary_header="x-cashier-token", cookie_name="cashier_session"),
    ttl=timedelta(hours=8),
    parent_model=Company,
    parent_key="company_id",
)

REALMS: dict[str, Realm] = {realm.name: realm for realm in (ADMIN, AFFILIATE, COMPANY, CASHIER)}


def get_realm(name: str) -> Realm:
    try:
        return REALMS[name]
    except KeyError as exc:
        raise ValueError(f"Unknown realm: {name}") from exc
