"""
BountyExpo - HTTP Middleware

- RequestContextMiddleware: request ids, log context, access log
- SecurityHeadersMiddleware: browser hardening; money endpoints are never cached
- RequestSizeLimitMiddleware: rejects oversized bodies before they are read
"""

import re
import time
from typing import Callable, FrozenSet

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse
from starlette.types import ASGIApp

from bountyexpo.core.logging_config import (
    logger,
    clear_context,
    generate_request_id,
    set_bounty_id,
    set_request_id,
)

# Probes and docs stay out of the access log
QUIET_PATHS: FrozenSet[str] = frozenset({
    "/",
    "/health",
    "/api/v1/health",
    "/api/v1/health/live",
    "/api/v1/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
})

# Wallet balances and escrow state must not be served from a cache
NO_STORE_PATH = re.compile(r"^/api/v\d+/(wallet|bounties/[^/]+/escrow)")

_BOUNTY_PATH = re.compile(r"/bounties/([0-9a-fA-F-]{36})(?:/|$)")

SLOW_REQUEST_MS = 1000


def bounty_id_from_path(path: str) -> str:
    match = _BOUNTY_PATH.search(path)
    return match.group(1) if match else ""


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id (the client's X-Request-ID when sent) and
    the bounty in its path, logs the outcome, and echoes the id back.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        set_bounty_id(bounty_id_from_path(request.url.path))

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{request.method} {request.url.path} raised")
            raise
        else:
            elapsed_ms = (time.perf_counter() - started) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{elapsed_ms:.1f}ms"

            if request.url.path not in QUIET_PATHS:
                logger.log_request(request.method, request.url.path, response.status_code, elapsed_ms)
                if elapsed_ms > SLOW_REQUEST_MS:
                    logger.warning(f"Slow request: {request.method} {request.url.path}")
            return response
        finally:
            clear_context()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        if NO_STORE_PATH.match(request.url.path):
            response.headers["Cache-Control"] = "no-store"
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """413 with the API error envelope when Content-Length exceeds max_size"""

    def __init__(self, app: ASGIApp, max_size: int):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size:
            logger.warning(f"Rejected {declared}-byte body on {request.url.path}")
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "error": {
                        "code": "REQUEST_TOO_LARGE",
                        "message": f"Request body exceeds {self.max_size} bytes",
                        "details": {"max_size": self.max_size},
                    },
                },
            )
        return await call_next(request)
