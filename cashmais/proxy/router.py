"""Proxy route forwarding `/api/proxy?path=...` to the backend functions endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from cashmais.auth.dependencies import get_app_settings
from cashmais.auth.tokens import SECONDARY_TOKEN_HEADER
from cashmais.core.config import Settings
from cashmais.core.logger import get_logger
from cashmais.core.metrics import record_proxy_upstream
from cashmais.proxy.forwarder import (
    ProxyConfigError,
    ProxyForwarder,
    ProxyUpstreamError,
    render_proxy_result,
)


router = APIRouter(prefix="/api", tags=["proxy"])
logger = get_logger("cashmais.proxy")

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]


def get_proxy_forwarder(request: Request, settings: Settings = Depends(get_app_settings)) -> ProxyForwarder:
    return ProxyForwarder(
        base_url=settings.proxy_base_url,
        api_key=settings.proxy_api_key,
        timeout_seconds=settings.proxy_timeout_seconds,
        client=getattr(request.app.state, "proxy_http_client", None),
    )


@router.api_route("/proxy", methods=PROXY_METHODS)
async def proxy(
    request: Request,
    path: str = "",
    forwarder: ProxyForwarder = Depends(get_proxy_forwarder),
) -> Response:
    body = b"" if request.method in {"GET", "HEAD"} else await request.body()
    session_token = request.headers.get(SECONDARY_TOKEN_HEADER, "")

    try:
        result = await run_in_threadpool(
            forwarder.forward,
            method=request.method,
            path=path,
            body=body,
            session_token=session_token,
        )
    except ProxyConfigError as exc:
        logger.error("proxy_not_configured", error=str(exc))
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": str(exc)})
    except ProxyUpstreamError as exc:
        record_proxy_upstream(outcome="network_error")
        logger.warning("proxy_upstream_error", path=path, method=request.method, error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "Proxy error", "details": str(exc)},
        )

    record_proxy_upstream(outcome=f"{result.status_code // 100}xx")
    return render_proxy_result(result)
