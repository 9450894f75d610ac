"""FastAPI application entrypoint for the CashMais portal API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from time import perf_counter
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from cashmais.admin.router import router as admin_router
from cashmais.affiliates.router import router as affiliate_router
from cashmais.companies.router import cashier_router, company_router
from cashmais.core.config import Settings, get_settings
from cashmais.core.errors import register_error_handlers
from cashmais.core.logger import bind_request_context, clear_request_context, configure_logging, get_logger
from cashmais.core.metrics import record_http_request, render_prometheus_metrics
from cashmais.core.observability import init_sentry, sentry_scope
from cashmais.proxy.router import router as proxy_router
from cashmais.storage.db import Database, load_models


logger = get_logger("cashmais.api")

BACKEND_VARIABLES = (
    ("SUPABASE_URL", "supabase_url"),
    ("SUPABASE_EDGE_URL", "supabase_edge_url"),
    ("NEXT_PUBLIC_SUPABASE_URL", "next_public_supabase_url"),
    ("SUPABASE_ANON_KEY", "supabase_anon_key"),
    ("SUPABASE_SERVICE_ROLE_KEY", "supabase_service_role_key"),
    ("DATABASE_URL", "database_url"),
)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the application around an explicit settings object and database handle."""

    settings = settings or get_settings()
    database = database or Database(settings.database_url)
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        load_models()
        sentry_enabled = init_sentry(settings)
        logger.info(
            "application_startup",
            env=settings.env,
            version=settings.app_version,
            sentry_enabled=sentry_enabled,
            metrics_enabled=settings.metrics_enabled,
            proxy_configured=bool(settings.proxy_base_url),
        )
        try:
            yield
        finally:
            app.state.database.dispose()
            logger.info("application_shutdown")

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.proxy_http_client = None

    register_error_handlers(app)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        started_at = perf_counter()
        request_id = request.headers.get("x-request-id", str(uuid4()))
        bind_request_context(request_id=request_id)

        status_code = 500
        try:
            with sentry_scope(request_id=request_id):
                response = await call_next(request)
            status_code = int(response.status_code)
        finally:
            if settings.metrics_enabled:
                record_http_request(
                    method=request.method,
                    path=request.url.path,
                    status_code=status_code,
                    duration_seconds=perf_counter() - started_at,
                )
            clear_request_context()

        response.headers["x-request-id"] = request_id
        return response

    @app.get("/health")
    def health() -> JSONResponse:
        db_ok, db_error = app.state.database.test_connection()
        payload = {
            "status": "ok" if db_ok else "degraded",
            "env": settings.env,
            "services": {"database": {"ok": db_ok, "error": db_error}},
        }
        return JSONResponse(content=payload, status_code=200 if db_ok else 503)

    @app.get("/version")
    def version() -> dict[str, str]:
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "env": settings.env,
        }

    @app.get("/metrics")
    def metrics() -> PlainTextResponse:
        if not settings.metrics_enabled:
            return PlainTextResponse("metrics disabled\n", status_code=404)

        payload = render_prometheus_metrics(
            app_name=settings.app_name,
            app_version=settings.app_version,
            env=settings.env,
        )
        return PlainTextResponse(payload, media_type="text/plain; version=0.0.4; charset=utf-8")

    @app.get("/api/debug-vars")
    def debug_vars() -> dict[str, str]:
        payload = {
            name: "defined" if str(getattr(settings, attribute)).strip() else "undefined"
            for name, attribute in BACKEND_VARIABLES
        }
        payload["time"] = datetime.now(timezone.utc).isoformat()
        return payload

    app.include_router(admin_router)
    app.include_router(affiliate_router)
    app.include_router(company_router)
    app.include_router(cashier_router)
    app.include_router(proxy_router)
    return app


app = create_app()
