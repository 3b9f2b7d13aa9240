from site_backend.app.core.errors import register_exception_handlers
from site_backend.app.core.logging import setup_logging

# Configure logging (JSON structured)
logger = setup_logging()

import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.httpsredirect import HTTPSRedirectMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from secure import (
    ContentSecurityPolicy,
    ReferrerPolicy,
    Secure,
    StrictTransportSecurity,
    XContentTypeOptions,
    XFrameOptions,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from site_backend.app.api.deps import get_session_context
from site_backend.app.api.endpoints import auth, callback, tiktok
from site_backend.app.core.config import Settings, settings
from site_backend.app.core.session import SessionContext
from site_backend.app.schemas.tiktok import SessionStatus

app = FastAPI(
    title="TikTok Sign-in Site API",
    description="Sign in with TikTok and read-only passthroughs to the TikTok Display API",
    version="1.0.0",
    docs_url="/docs" if settings.is_dev else None,
    redoc_url="/redoc" if settings.is_dev else None,
    openapi_url="/openapi.json" if settings.is_dev else None,
)

# Register Global Exception Handlers
register_exception_handlers(app)


def _env_list(key: str, default: list[str]) -> list[str]:
    if "PYTEST_CURRENT_TEST" in os.environ:
        return default
    value = os.getenv(key)
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


DEV_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]


def cors_origins(app_settings: Settings) -> list[str]:
    """Configured origins win; without them only the local dev origins are allowed, and only in dev."""
    if app_settings.allowed_origins:
        return list(app_settings.allowed_origins)
    return list(DEV_ORIGINS) if app_settings.is_dev else []


origins = cors_origins(settings)

# Session cookies ride along with browser requests, so credentials are allowed
# only for the explicit origin list.
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=bool(origins),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Enable GZip compression for responses > 1000 bytes
app.add_middleware(GZipMiddleware, minimum_size=1000)

default_trusted_hosts = (
    ["localhost", "127.0.0.1", "0.0.0.0", "[::1]", "testserver"]
    if settings.is_dev
    else (settings.trusted_hosts or ["*"])
)
trusted_hosts = _env_list("SITE_TRUSTED_HOSTS", default_trusted_hosts)
if not settings.is_dev and "*" in trusted_hosts:
    logger.warning("SITE_TRUSTED_HOSTS is not set; accepting any Host header")
app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)

# Harden default security headers; CSP allows TikTok avatars and covers
SECURE_HEADERS = Secure(
    hsts=StrictTransportSecurity().max_age(63072000).include_subdomains(),
    xfo=XFrameOptions().deny(),
    referrer=ReferrerPolicy().strict_origin_when_cross_origin(),
    csp=ContentSecurityPolicy()
    .default_src("'self'")
    .img_src("'self'", "data:", "https://*.tiktokcdn.com", "https://*.tiktokcdn-us.com")
    .connect_src("'self'"),
    xcto=XContentTypeOptions().nosniff(),
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, secure_headers: Secure) -> None:
        super().__init__(app)
        self.secure_headers = secure_headers

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        await self.secure_headers.set_headers_async(response)
        # Avoid sending HSTS on cleartext requests to keep local dev/proxy setups flexible.
        if settings.is_dev and request.url.scheme not in ("https", "wss"):
            if "Strict-Transport-Security" in response.headers:
                del response.headers["Strict-Transport-Security"]

        # Session-bearing responses must never land in a shared cache
        if request.url.path.startswith(("/auth/", "/api/", "/tiktok")):
            response.headers["Cache-Control"] = "no-store"

        return response


app.add_middleware(
    SecurityHeadersMiddleware,
    secure_headers=SECURE_HEADERS,
)

if settings.force_https:
    app.add_middleware(HTTPSRedirectMiddleware)

# Trust proxy headers only from known proxy networks.
# Added last (executed first) so request.client.host & scheme are correct.
proxy_trusted_hosts: list[str] | str = (
    "*"
    if settings.is_dev
    else _env_list("SITE_PROXY_TRUSTED_HOSTS", settings.proxy_trusted_hosts)
)
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=proxy_trusted_hosts)

# Include Routers
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(callback.router, prefix="/api/auth/callback", tags=["auth"])
app.include_router(tiktok.router, prefix="/api/tiktok", tags=["tiktok"])


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "tiktok-signin-site", "app_env": settings.app_env.value}


@app.get("/")
async def root():
    return {"message": "Welcome! Sign in with TikTok to continue.", "sign_in_url": "/auth/tiktok/login"}


@app.get("/tiktok", response_model=SessionStatus)
def landing(session: SessionContext = Depends(get_session_context)):
    """Post-login landing data for the dashboard; reads cookies only."""
    return SessionStatus(signed_in=session.signed_in, profile=session.cached_profile())
