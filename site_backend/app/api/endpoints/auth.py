import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, RedirectResponse

from ...core.config import TikTokSettings
from ...core.oauth_state import issue_state
from ...core.session import SessionCookies
from ...services import tiktok
from ...services.login_flow import LoginError
from ..deps import get_session_cookies, get_tiktok_config

logger = logging.getLogger(__name__)

router = APIRouter()

_MAX_DETAILS_CHARS = 2000


@router.get("/tiktok/login")
def start_tiktok_login(
    cfg: TikTokSettings = Depends(get_tiktok_config),
    cookies: SessionCookies = Depends(get_session_cookies),
) -> Any:
    """Bind a fresh state token to the browser and send it to TikTok's consent page."""
    state = issue_state()
    # Raises TikTokConfigError (503) before any cookie is written.
    auth_url = tiktok.build_auth_url(cfg, state=state)
    cookies.set_state(state, cfg.state_ttl_seconds)
    logger.info("Redirecting to TikTok authorization")
    return cookies.apply(RedirectResponse(url=auth_url, status_code=status.HTTP_302_FOUND))


@router.api_route("/logout", methods=["GET", "POST"])
def logout(cookies: SessionCookies = Depends(get_session_cookies)) -> Any:
    """Drop the cached profile and access token. TikTok-side grants are left alone."""
    cookies.clear_session()
    return cookies.apply(RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER))


@router.get("/error")
def auth_error(
    error: str | None = Query(None),
    details: str | None = Query(None),
) -> Any:
    """Machine-readable landing spot for failed logins."""
    known = {e.value for e in LoginError}
    content: dict[str, Any] = {"error": error if error in known else "UnknownError"}
    if details:
        details = details[:_MAX_DETAILS_CHARS]
        try:
            content["details"] = json.loads(details)
        except ValueError:
            content["details"] = details
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)
