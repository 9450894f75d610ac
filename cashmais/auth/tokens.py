"""Session token extraction from request headers and cookies."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import re
from typing import Optional


SECONDARY_TOKEN_HEADER = "x-session-token"


@dataclass(frozen=True)
class TokenLocations:
    """Where a realm accepts its session token, in precedence order."""

    primary_header: str
    cookie_name: str
    secondary_header: str = SECONDARY_TOKEN_HEADER


def _lowered(headers: Mapping[str, str]) -> dict[str, str]:
    return {str(key).lower(): str(value) for key, value in headers.items()}


def _header_value(headers: dict[str, str], name: str) -> str:
    return headers.get(name.lower(), "").strip()


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        return ""
    if authorization[:7].lower() != "bearer ":
        return ""
    return authorization[7:].strip()


def extract_cookie_value(cookie_header: Optional[str], name: str) -> str:
    if not cookie_header:
        return ""
    match = re.search(rf"(?:^|;\s*){re.escape(name)}=([^;]+)", cookie_header)
    return match.group(1).strip() if match else ""


def _candidates(
    headers: Mapping[str, str],
    locations: TokenLocations,
    cookie_header: Optional[str],
) -> list[tuple[str, str]]:
    lowered = _lowered(headers)
    if cookie_header is None:
        cookie_header = lowered.get("cookie", "")
    return [
        (locations.primary_header, _header_value(lowered, locations.primary_header)),
        (locations.secondary_header, _header_value(lowered, locations.secondary_header)),
        ("authorization", extract_bearer_token(lowered.get("authorization"))),
        ("cookie", extract_cookie_value(cookie_header, locations.cookie_name)),
    ]


def extract_session_token(
    headers: Mapping[str, str],
    locations: TokenLocations,
    cookie_header: Optional[str] = None,
) -> str:
    """Return the first non-empty token, or "" when the request carries none.

    Precedence: primary header, secondary header, `Authorization: Bearer`,
    realm cookie. `cookie_header` defaults to the request's `Cookie` header.
    """

    for _source, value in _candidates(headers, locations, cookie_header):
        if value:
            return value
    return ""


def detect_token_source(
    headers: Mapping[str, str],
    locations: TokenLocations,
    cookie_header: Optional[str] = None,
) -> str:
    for source, value in _candidates(headers, locations, cookie_header):
        if value:
            return source
    return "none"
