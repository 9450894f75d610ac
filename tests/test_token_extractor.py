from __future__ import annotations

from cashmais.auth.realms import ADMIN, AFFILIATE
from cashmais.auth.tokens import (
    TokenLocations,
    detect_token_source,
    extract_bearer_token,
    extract_cookie_value,
    extract_session_token,
)


LOCATIONS = TokenLocations(primary_header="x-admin-token", cookie_name="admin_session")


def test_primary_header_wins_over_every_other_source() -> None:
    headers = {
        "x-admin-token": "primary",
        "x-session-token": "secondary",
        "Authorization": "Bearer bearer-token",
        "Cookie": "admin_session=cookie-token",
    }

    assert extract_session_token(headers, LOCATIONS) == "primary"
    assert detect_token_source(headers, LOCATIONS) == "x-admin-token"


def test_falls_through_sources_in_order() -> None:
    headers = {
        "x-session-token": "secondary",
        "Authorization": "Bearer bearer-token",
        "Cookie": "admin_session=cookie-token",
    }
    assert extract_session_token(headers, LOCATIONS) == "secondary"

    headers.pop("x-session-token")
    assert extract_session_token(headers, LOCATIONS) == "bearer-token"
    assert detect_token_source(headers, LOCATIONS) == "authorization"

    headers.pop("Authorization")
    assert extract_session_token(headers, LOCATIONS) == "cookie-token"
    assert detect_token_source(headers, LOCATIONS) == "cookie"


def test_blank_header_values_are_skipped() -> None:
    headers = {"x-admin-token": "   ", "x-session-token": "secondary"}

    assert extract_session_token(headers, LOCATIONS) == "secondary"


def test_header_names_are_case_insensitive() -> None:
    assert extract_session_token({"X-Admin-Token": "abc"}, LOCATIONS) == "abc"
    assert extract_session_token({"X-SESSION-TOKEN": "def"}, LOCATIONS) == "def"


def test_bearer_scheme_is_case_insensitive() -> None:
    assert extract_bearer_token("bearer abc") == "abc"
    assert extract_bearer_token("BEARER abc") == "abc"
    assert extract_bearer_token("Basic abc") == ""
    assert extract_bearer_token(None) == ""


def test_cookie_is_matched_by_exact_name() -> None:
    cookie_header = "theme=dark; xadmin_session=wrong; admin_session=right; other=1"

    assert extract_cookie_value(cookie_header, "admin_session") == "right"
    assert extract_cookie_value("admin_session=first", "admin_session") == "first"
    assert extract_cookie_value("theme=dark", "admin_session") == ""
    assert extract_cookie_value("", "admin_session") == ""


def test_explicit_cookie_header_overrides_request_cookie() -> None:
    headers = {"Cookie": "admin_session=from-headers"}

    token = extract_session_token(headers, LOCATIONS, cookie_header="admin_session=explicit")

    assert token == "explicit"


def test_no_token_returns_empty_string() -> None:
    assert extract_session_token({}, LOCATIONS) == ""
    assert detect_token_source({}, LOCATIONS) == "none"


def test_realms_read_their_own_header_and_cookie() -> None:
    headers = {"Cookie": "admin_session=admin-cookie; affiliate_session=affiliate-cookie"}

    assert extract_session_token(headers, ADMIN.locations) == "admin-cookie"
    assert extract_session_token(headers, AFFILIATE.locations) == "affiliate-cookie"
    assert extract_session_token({"x-admin-token": "a"}, AFFILIATE.locations) == ""
