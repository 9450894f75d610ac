"""Relay of client requests to the managed backend's functions endpoint."""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Dict, Optional

import httpx
from fastapi.responses import JSONResponse, Response

from cashmais.auth.tokens import SECONDARY_TOKEN_HEADER


FUNCTIONS_PREFIX = "/functions/v1/api"
BODYLESS_METHODS = frozenset({"GET", "HEAD"})


class ProxyConfigError(RuntimeError):
    """Raised when no upstream base URL is configured."""


class ProxyUpstreamError(RuntimeError):
    """Raised when the upstream cannot be reached."""


@dataclass(frozen=True)
class ProxyResult:
    status_code: int
    content_type: str
    text: str

    @property
    def is_json(self) -> bool:
        return "application/json" in self.content_type.lower()


def build_upstream_url(base_url: str, path: str = "") -> str:
    suffix = path.strip()
    url = f"{base_url.rstrip('/')}{FUNCTIONS_PREFIX}"
    return f"{url}/{suffix}" if suffix else url


class ProxyForwarder:
    def __init__(
        self,
        *,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = 20.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = base_url.strip()
        self._api_key = api_key.strip()
        self._timeout_seconds = max(1.0, timeout_seconds)
        self._client = client

    def _headers(self, session_token: str) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        if session_token:
            headers[SECONDARY_TOKEN_HEADER] = session_token
        return headers

    def forward(
        self,
        *,
        method: str,
        path: str = "",
        body: bytes = b"",
        session_token: str = "",
    ) -> ProxyResult:
        if not self._base_url:
            raise ProxyConfigError("SUPABASE_EDGE_URL/SUPABASE_URL is not set")

        method = method.upper()
        url = build_upstream_url(self._base_url, path)
        content: Optional[bytes] = None
        if method not in BODYLESS_METHODS:
            content = body or b"{}"

        try:
            if self._client is not None:
                response = self._client.request(method, url, headers=self._headers(session_token), content=content)
            else:
                with httpx.Client(timeout=self._timeout_seconds) as client:
                    response = client.request(method, url, headers=self._headers(session_token), content=content)
        except httpx.HTTPError as exc:
            raise ProxyUpstreamError(str(exc)) from exc

        return ProxyResult(
            status_code=response.status_code,
            content_type=response.headers.get("content-type", ""),
            text=response.text,
        )


def render_proxy_result(result: ProxyResult) -> Response:
    """Turn an upstream result into the response sent back to the caller."""

    if result.is_json:
        try:
            payload = json.loads(result.text)
        except ValueError:
            return Response(content=result.text, status_code=result.status_code, media_type=result.content_type)
        return JSONResponse(content=payload, status_code=result.status_code)

    return Response(
        content=result.text,
        status_code=result.status_code,
        media_type=result.content_type or "text/plain",
    )
