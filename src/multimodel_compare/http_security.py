from __future__ import annotations

import asyncio
import re
import secrets as secrets_module
import uuid

import structlog

from .api_models import make_error_response
from .config import OrchestratorConfig

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{8,128}$")

API_PREFIX = "/v1/"
AUTH_REALM = "multimodel-compare"

# Set on every response unless a route already chose a value.
DEFAULT_RESPONSE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


def coerce_request_id(value: str | None) -> str:
    if value and _REQUEST_ID_RE.fullmatch(value):
        return value
    return uuid.uuid4().hex


def parse_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.strip().lower() != "bearer" or not token:
        return None
    return token


def constant_time_equals(a: str, b: str) -> bool:
    return secrets_module.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def is_api_path(path: str) -> bool:
    return path.startswith(API_PREFIX)


def declared_length_exceeds(content_length: str | None, limit: int) -> bool:
    return bool(content_length and content_length.isdigit() and int(content_length) > limit)


def install_middlewares(app, *, cfg: OrchestratorConfig) -> None:
    """Request ids, caller auth, body and concurrency limits, security headers, CORS."""
    from fastapi.responses import JSONResponse
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.requests import Request

    def _reject(request: Request, status_code: int, message: str, type_: str, headers=None):
        return JSONResponse(
            status_code=status_code,
            headers=headers,
            content=make_error_response(
                message=message,
                type=type_,
                code=getattr(request.state, "request_id", None),
            ),
        )

    class RequestIdMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next):
            request_id = coerce_request_id(request.headers.get("x-request-id"))
            request.state.request_id = request_id
            structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
            try:
                response = await call_next(request)
            finally:
                structlog.contextvars.clear_contextvars()
            response.headers.setdefault("X-Request-Id", request_id)
            return response

    class ResponseHeadersMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next):
            response = await call_next(request)
            for name, value in DEFAULT_RESPONSE_HEADERS.items():
                response.headers.setdefault(name, value)
            # Comparison results echo the caller's prompt.
            if is_api_path(request.url.path):
                response.headers.setdefault("Cache-Control", "no-store")
            return response

    class PromptBodyLimitMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next):
            limit = cfg.max_request_body_bytes
            if limit <= 0 or request.method != "POST" or not is_api_path(request.url.path):
                return await call_next(request)
            if declared_length_exceeds(request.headers.get("content-length"), limit):
                return _reject(request, 413, "Request body too large.", "invalid_request_error")
            if len(await request.body()) > limit:
                return _reject(request, 413, "Request body too large.", "invalid_request_error")
            return await call_next(request)

    class InflightBatchLimitMiddleware(BaseHTTPMiddleware):
        """Each compare request fans out to several providers; cap how many run at once."""

        def __init__(self, app_):
            super().__init__(app_)
            self._slots = asyncio.Semaphore(max(1, cfg.max_inflight_requests))

        async def dispatch(self, request: Request, call_next):
            if not is_api_path(request.url.path):
                return await call_next(request)
            if self._slots.locked():
                return _reject(request, 429, "Server is busy. Try again later.", "rate_limit_error")
            async with self._slots:
                return await call_next(request)

    class CallerAuthMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next):
            expected = cfg.server_auth_token
            if not expected or request.method == "OPTIONS" or not is_api_path(request.url.path):
                return await call_next(request)
            token = parse_bearer_token(request.headers.get("authorization"))
            if token is not None and constant_time_equals(token, expected):
                return await call_next(request)
            return _reject(
                request,
                401,
                "Missing or invalid authentication token.",
                "authentication_error",
                headers={"WWW-Authenticate": f'Bearer realm="{AUTH_REALM}"'},
            )

    app.add_middleware(PromptBodyLimitMiddleware)
    app.add_middleware(InflightBatchLimitMiddleware)
    app.add_middleware(CallerAuthMiddleware)
    app.add_middleware(ResponseHeadersMiddleware)
    # Outermost so short-circuited responses still carry X-Request-Id.
    app.add_middleware(RequestIdMiddleware)

    if cfg.allowed_hosts:
        from starlette.middleware.trustedhost import TrustedHostMiddleware

        app.add_middleware(TrustedHostMiddleware, allowed_hosts=list(cfg.allowed_hosts))

    if cfg.cors_allow_origins:
        from fastapi.middleware.cors import CORSMiddleware

        if cfg.cors_allow_credentials and "*" in cfg.cors_allow_origins:
            raise ValueError("CORS_ALLOW_ORIGINS cannot include '*' when CORS_ALLOW_CREDENTIALS=true.")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cfg.cors_allow_origins),
            allow_credentials=cfg.cors_allow_credentials,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
            max_age=600,
        )
