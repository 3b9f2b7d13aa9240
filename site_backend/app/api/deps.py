from fastapi import Depends, Request

from ..core.config import Settings, TikTokSettings, get_tiktok_settings, settings
from ..core.session import CookiePolicy, SessionContext, SessionCookies


def get_app_settings() -> Settings:
    return settings


def get_tiktok_config() -> TikTokSettings:
    """TikTok settings read at request time; cached per request by FastAPI."""
    return get_tiktok_settings()


def get_session_context(request: Request) -> SessionContext:
    return SessionContext.from_request(request)


def get_cookie_policy(
    app_settings: Settings = Depends(get_app_settings),
    cfg: TikTokSettings = Depends(get_tiktok_config),
) -> CookiePolicy:
    return CookiePolicy.for_request(app_settings, cfg)


def get_session_cookies(policy: CookiePolicy = Depends(get_cookie_policy)) -> SessionCookies:
    return SessionCookies(policy)
