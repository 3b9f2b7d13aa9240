from typing import Any

from fastapi import APIRouter, Depends

from ...core.config import TikTokSettings
from ...core.session import SessionContext, SessionCookies
from ...services import login_flow
from ..deps import get_session_context, get_session_cookies, get_tiktok_config

router = APIRouter()


@router.get("/tiktok")
def tiktok_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    cfg: TikTokSettings = Depends(get_tiktok_config),
    session: SessionContext = Depends(get_session_context),
    cookies: SessionCookies = Depends(get_session_cookies),
) -> Any:
    """TikTok redirect target. Always answers with a redirect, never an error body."""
    outcome = login_flow.complete_login(
        cfg,
        session,
        cookies,
        code=code,
        state=state,
        provider_error=error,
        provider_error_description=error_description,
    )
    return login_flow.redirect_response(cfg, cookies, outcome)
