from __future__ import annotations

from typing import Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


def build_security_headers(*, csp: str, hsts_max_age: int, enable_hsts: bool) -> Dict[str, str]:
    headers = {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    }
    if enable_hsts:
        headers["Strict-Transport-Security"] = f"max-age={hsts_max_age}; includeSubDomains; preload"
    if csp:
        headers["Content-Security-Policy"] = csp
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Appends security headers; farm report payloads are never cached."""

    def __init__(
        self,
        app,
        *,
        csp: str,
        hsts_max_age: int,
        enable_hsts: bool,
    ) -> None:
        super().__init__(app)
        self.headers = build_security_headers(
            csp=csp, hsts_max_age=hsts_max_age, enable_hsts=enable_hsts
        )

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)

        for name, value in self.headers.items():
            response.headers.setdefault(name, value)

        if request.url.path.startswith("/api/") and not request.url.path.startswith("/api/health"):
            response.headers.setdefault("Cache-Control", "no-store")

        return response
