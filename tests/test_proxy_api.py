from __future__ import annotations

import httpx

from cashmais.core.metrics import render_prometheus_metrics, reset_metrics_for_tests
from tests.conftest import create_portal_test_context


def _install_upstream(context, handler) -> None:
    context.app.state.proxy_http_client = httpx.Client(transport=httpx.MockTransport(handler))


def test_proxy_forwards_path_body_and_session_token() -> None:
    context = create_portal_test_context(supabase_edge_url="https://edge.example.co")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["token"] = request.headers.get("x-session-token")
        seen["apikey"] = request.headers.get("apikey")
        seen["body"] = request.content
        return httpx.Response(201, json={"created": True})

    _install_upstream(context, handler)
    response = context.client.post(
        "/api/proxy",
        params={"path": "empresa/compras"},
        content=b'{"valor": 10}',
        headers={"x-session-token": "company-token", "content-type": "application/json"},
    )

    assert response.status_code == 201
    assert response.json() == {"created": True}
    assert seen["method"] == "POST"
    assert seen["url"] == "https://edge.example.co/functions/v1/api/empresa/compras"
    assert seen["token"] == "company-token"
    assert seen["apikey"] == "anon-key-123"
    assert seen["body"] == b'{"valor": 10}'


def test_proxy_get_drops_inbound_body() -> None:
    context = create_portal_test_context()
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(200, text="plain answer", headers={"content-type": "text/plain"})

    _install_upstream(context, handler)
    response = context.client.request("GET", "/api/proxy?path=admin/me", content=b"{}")

    assert response.status_code == 200
    assert response.text == "plain answer"
    assert seen["url"] == "https://projref.supabase.co/functions/v1/api/admin/me"
    assert seen["body"] == b""


def test_proxy_relays_upstream_error_status() -> None:
    context = create_portal_test_context()

    def handler(request: httpx.Request) -> httpx.Response:
        del request
        return httpx.Response(401, json={"error": "Invalid session"})

    _install_upstream(context, handler)
    response = context.client.get("/api/proxy", params={"path": "admin/me"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid session"}


def test_proxy_without_backend_url_returns_500() -> None:
    context = create_portal_test_context(supabase_url="")

    response = context.client.get("/api/proxy", params={"path": "admin/me"})

    assert response.status_code == 500
    assert "SUPABASE_URL" in response.json()["error"]


def test_proxy_network_failure_returns_502() -> None:
    reset_metrics_for_tests()
    context = create_portal_test_context()

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    _install_upstream(context, handler)
    response = context.client.get("/api/proxy", params={"path": "admin/me"})

    assert response.status_code == 502
    assert response.json() == {"error": "Proxy error", "details": "timed out"}
    body = render_prometheus_metrics(app_name="cashmais", app_version="0.1.0", env="test")
    assert 'cashmais_proxy_upstream_total{outcome="network_error"} 1' in body
