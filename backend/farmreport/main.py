# farmreport/main.py
from __future__ import annotations

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware

# Import router objects explicitly to avoid module name collisions
from farmreport.routers.health import router as health_router
from farmreport.routers.weekly_summary import router as weekly_summary_router
from farmreport.routers.report_days import router as report_days_router
from farmreport.routers.permissions import router as permissions_router
from farmreport.core.security import get_current_principal
from farmreport.observability.logging import configure_logging
from farmreport.observability.middleware import register_request_middleware, unhandled_exception_handler
from farmreport.observability.metrics import router as observability_router
from farmreport.schemas.common import API_VERSION
from farmreport.security.middleware import SecurityHeadersMiddleware
from farmreport.config import get_settings

configure_logging()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Farm Reporting", version=API_VERSION)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        max_age=86400
    )

    if settings.TRUSTED_HOSTS:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.TRUSTED_HOSTS)

    if settings.FORCE_HTTPS:
        app.add_middleware(HTTPSRedirectMiddleware)

    app.add_middleware(
        SecurityHeadersMiddleware,
        csp=settings.CONTENT_SECURITY_POLICY,
        hsts_max_age=settings.HSTS_MAX_AGE,
        enable_hsts=settings.FORCE_HTTPS,
    )

    register_request_middleware(app)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Public routers
    app.include_router(health_router)
    app.include_router(observability_router)

    # Private routers share the same auth dependency
    require_auth = [Depends(get_current_principal)]

    app.include_router(weekly_summary_router, dependencies=require_auth)
    app.include_router(report_days_router, dependencies=require_auth)
    app.include_router(permissions_router, dependencies=require_auth)

    return app


app = create_app()
