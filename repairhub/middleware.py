import logging
from typing import Iterable, Optional
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from repairhub.config import settings
from repairhub.services.auth import (
    TOKEN_COOKIE,
    USER_ID_HEADER,
    USER_ROLE_HEADER,
    AuthContext,
    AuthService,
    auth_service,
)

logger = logging.getLogger(__name__)

PUBLIC_ROUTES = ["/", "/login", "/register", "/api/auth/login", "/api/auth/register"]
CUSTOMER_ROUTES = ["/dashboard"]
TECHNICIAN_ROUTES = ["/technician"]
ASSET_PREFIXES = ("/static", "/images", "/favicon.ico")

SECURITY_HEADERS = {
    "X-DNS-Prefetch-Control": "on",
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains; preload",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}

IDENTITY_HEADER_KEYS = {USER_ID_HEADER.lower().encode(), USER_ROLE_HEADER.lower().encode()}

def cors_headers(origin: Optional[str]) -> dict:
    allowed = settings.CORS_ORIGINS
    if origin and ("*" in allowed or origin in allowed):
        allow_origin = origin
    else:
        allow_origin = allowed[0] if allowed else "*"
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Max-Age": "86400",
    }

def matches_route(pathname: str, routes: Iterable[str]) -> bool:
    """Exact match, `prefix*` match, or a sub-path of the route"""
    for route in routes:
        if route == pathname:
            return True
        if route.endswith("*") and pathname.startswith(route[:-1]):
            return True
        if pathname.startswith(route.rstrip("/") + "/") and route != "/":
            return True
    return False

def is_asset_path(pathname: str) -> bool:
    if pathname.startswith(ASSET_PREFIXES):
        return True
    return "." in pathname and not pathname.startswith("/api/")

def is_api_path(pathname: str) -> bool:
    return pathname.startswith("/api/")

def login_redirect(pathname: str) -> RedirectResponse:
    return RedirectResponse(
        url=f"/login?{urlencode({'redirect': pathname})}",
        status_code=303
    )

class RequestGateMiddleware(BaseHTTPMiddleware):
    """
    Front door for every request.

    Verifies the session token once, gates role-specific sections, and hands
    the resulting `AuthContext` to handlers via `request.state.auth` (mirrored
    into the X-User-Id / X-User-Role request headers). Any verification error
    counts as "no token".
    """

    def __init__(self, app, auth: AuthService = auth_service):
        super().__init__(app)
        self.auth = auth

    async def dispatch(self, request: Request, call_next) -> Response:
        pathname = request.url.path
        origin = request.headers.get("origin")

        if request.method == "OPTIONS":
            return Response(status_code=200, headers=cors_headers(origin))

        if is_asset_path(pathname):
            return await call_next(request)

        # Identity headers are only ever set by this gate
        self._strip_identity_headers(request)

        response = await self._gate(request, call_next)
        for key, value in cors_headers(origin).items():
            response.headers[key] = value
        for key, value in SECURITY_HEADERS.items():
            response.headers[key] = value
        return response

    async def _gate(self, request: Request, call_next) -> Response:
        pathname = request.url.path
        api = is_api_path(pathname)
        token = self.auth.extract_token(request)

        if matches_route(pathname, PUBLIC_ROUTES):
            if pathname == "/login" and token:
                context = self.auth.verify(token)
                if context:
                    return RedirectResponse(url=context.role.landing_page, status_code=303)
            return await call_next(request)

        if self.auth.is_dev_bypass(token):
            logger.warning(f"Dev bypass token used for {pathname} - not for production!")
            return await call_next(request)

        if not token:
            if api:
                return JSONResponse({"error": "Unauthorized"}, status_code=401)
            return login_redirect(pathname)

        context = self.auth.verify(token)
        if context is None:
            if api:
                logger.error(f"Token verification failed for: {pathname}")
                return JSONResponse({"error": "Invalid token"}, status_code=401)
            response = login_redirect(pathname)
            response.delete_cookie(TOKEN_COOKIE)
            return response

        if matches_route(pathname, TECHNICIAN_ROUTES) and not context.is_staff:
            if api:
                return JSONResponse(
                    {"error": "Forbidden - Technician access required"},
                    status_code=403
                )
            return RedirectResponse(url="/dashboard", status_code=303)

        if matches_route(pathname, CUSTOMER_ROUTES) and context.is_staff:
            return RedirectResponse(url="/technician", status_code=303)

        self._attach_identity(request, context)
        return await call_next(request)

    @staticmethod
    def _strip_identity_headers(request: Request) -> None:
        request.scope["headers"] = [
            (key, value) for key, value in request.scope["headers"]
            if key.lower() not in IDENTITY_HEADER_KEYS
        ]

    @staticmethod
    def _attach_identity(request: Request, context: AuthContext) -> None:
        request.state.auth = context
        request.scope["headers"] = list(request.scope["headers"]) + [
            (USER_ID_HEADER.lower().encode(), context.user_id.encode()),
            (USER_ROLE_HEADER.lower().encode(), context.role.value.encode()),
        ]
