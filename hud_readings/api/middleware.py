"""Middleware for authentication and request tracing."""

import logging
import uuid
from typing import Awaitable, Callable, Optional

from fastapi import Request, Response
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.status import HTTP_401_UNAUTHORIZED

from hud_readings.auth.basic import BasicCredentials, credentials_match, parse_basic_authorization
from hud_readings.metrics import auth_failures_total
from hud_readings.utils.error_handling import Unauthorized

logger = logging.getLogger(__name__)


class BasicAuthMiddleware:
    """
    ASGI middleware guarding every HTTP route with one username/password pair.

    When no credentials are configured the middleware lets every request
    through.
    """

    def __init__(self, app, credentials: Optional[BasicCredentials] = None):
        self.app = app
        self.credentials = credentials

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or self.credentials is None:
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        supplied = parse_basic_authorization(headers.get("authorization"))
        if not credentials_match(self.credentials, supplied):
            auth_failures_total.inc()
            logger.warning(
                "401 Unauthorized: Invalid or missing basic credentials",
                extra={
                    "path": scope.get("path"),
                    "status_code": HTTP_401_UNAUTHORIZED,
                    "reason": "missing_credentials" if supplied is None else "invalid_credentials",
                },
            )
            error = Unauthorized()
            response = JSONResponse(
                status_code=error.status_code,
                content=error.to_response_body(),
                headers={"WWW-Authenticate": "Basic"},
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to track and propagate a unique request ID for each request.
    Adds X-Request-ID to response headers and attaches to request.state.
    """
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.debug(
            "Request handled",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
            },
        )
        return response
