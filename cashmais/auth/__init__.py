"""Session-token authentication shared by the admin, affiliate, company and cashier realms."""

from cashmais.auth.realms import ADMIN, AFFILIATE, CASHIER, COMPANY, REALMS, Realm, get_realm
from cashmais.auth.sessions import ResolvedSession, create_session, resolve_session, revoke_session
from cashmais.auth.tokens import TokenLocations, detect_token_source, extract_session_token

__all__ = [
    "ADMIN",
    "AFFILIATE",
    "CASHIER",
    "COMPANY",
    "REALMS",
    "Realm",
    "ResolvedSession",
    "TokenLocations",
    "create_session",
    "detect_token_source",
    "extract_session_token",
    "get_realm",
    "resolve_session",
    "revoke_session",
]
