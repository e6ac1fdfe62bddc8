"""Request admission middleware: no-cache stamping, access logging and CORS."""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .config import ApiConfig

logger = logging.getLogger("api.access")

CORS_ALLOW_HEADERS = "Content-Type,Authorization,X-API-Key,Accept-Version"
CORS_ALLOW_METHODS = "DELETE,GET,POST"
CORS_EXPOSE_HEADERS = "api-version, content-length, content-md5, content-type, date, request-id, response-time"
CORS_MAX_AGE = "86400"

DEFAULT_CORS_EXEMPT_PREFIXES: Tuple[str, ...] = ("/healthCheck", "/webhooks/")


def client_ip(request: Request) -> Optional[str]:
    """Best guess at the caller's address, honouring proxy headers."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


class NoCacheAccessLogMiddleware(BaseHTTPMiddleware):
    """Marks responses as uncacheable and logs every request except preflights."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method.upper() == "OPTIONS":
            return await call_next(request)

        logger.debug("%s %s from %s", request.method, request.url.path, client_ip(request))
        response = await call_next(request)
        response.headers["cache-control"] = "no-store"
        return response


class CorsWranglerMiddleware(BaseHTTPMiddleware):
    """Allow-list based CORS that refuses unknown origins with 403.

    Preflights are answered here without reaching a route. Paths matching
    ``exempt_prefixes`` bypass CORS entirely.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        api_config: ApiConfig,
        exempt_prefixes: Iterable[str] = DEFAULT_CORS_EXEMPT_PREFIXES,
    ) -> None:
        super().__init__(app)
        self.api_config = api_config
        self.exempt_prefixes = tuple(exempt_prefixes)

    def _exempt(self, path: str) -> bool:
        return any(path == prefix.rstrip("/") or path.startswith(prefix) for prefix in self.exempt_prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._exempt(request.url.path):
            return await call_next(request)

        origin = request.headers.get("origin")
        if origin:
            origin = origin.lower()

        if request.method.upper() == "OPTIONS":
            if not origin or not self.api_config.origin_allowed(origin):
                return Response(status_code=403)
            return Response(status_code=200, headers=self._preflight_headers(origin))

        if not origin:
            return await call_next(request)

        if not self.api_config.origin_allowed(origin):
            return Response(status_code=403)

        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Expose-Headers"] = CORS_EXPOSE_HEADERS
        return response

    @staticmethod
    def _preflight_headers(origin: str) -> dict:
        return {
            "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
            "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
            "Access-Control-Allow-Origin": origin,
            "Vary": "Origin",
            "Access-Control-Expose-Headers": CORS_EXPOSE_HEADERS,
            "Access-Control-Max-Age": CORS_MAX_AGE,
        }


__all__ = [
    "CORS_ALLOW_HEADERS",
    "CORS_ALLOW_METHODS",
    "CORS_EXPOSE_HEADERS",
    "CorsWranglerMiddleware",
    "NoCacheAccessLogMiddleware",
    "client_ip",
]
