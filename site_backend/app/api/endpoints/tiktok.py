import logging
from typing import Any

import requests
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ...core.config import TikTokSettings
from ...core.errors import ProjectionError
from ...core.session import SessionContext
from ...schemas.tiktok import MediaListResponse
from ...services import tiktok
from ..deps import get_session_context, get_tiktok_config

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/user")
def get_tiktok_user(session: SessionContext = Depends(get_session_context)) -> Any:
    """Return the profile cached at login. Never calls TikTok."""
    profile = session.cached_profile()
    if profile is None:
        raise ProjectionError(status.HTTP_404_NOT_FOUND, "TikTok user data not found")
    return JSONResponse(content=profile)


@router.get("/videos", response_model=MediaListResponse, response_model_by_alias=False)
def list_tiktok_videos(
    cfg: TikTokSettings = Depends(get_tiktok_config),
    session: SessionContext = Depends(get_session_context),
) -> Any:
    """Proxy one page of the signed-in user's videos."""
    if not session.access_token:
        logger.warning("No TikTok access token in cookies; user not logged in or session expired")
        raise ProjectionError(
            status.HTTP_401_UNAUTHORIZED,
            "Unauthorized: No TikTok session found. Please log in again.",
        )

    try:
        page = tiktok.list_videos(cfg, session.access_token)
    except tiktok.TikTokUpstreamError as exc:
        logger.error(
            "Error fetching TikTok videos",
            extra={"data": {"status": exc.status_code, "code": exc.code, "payload": exc.payload}},
        )
        if exc.code == tiktok.INVALID_TOKEN_CODE:
            raise ProjectionError(
                status.HTTP_401_UNAUTHORIZED,
                "TikTok access token invalid or expired. Please re-authenticate.",
            )
        # A 2xx carrying an error body still has to surface as a failure.
        status_code = exc.status_code if exc.status_code >= 400 else status.HTTP_502_BAD_GATEWAY
        raise ProjectionError(status_code, "Failed to retrieve TikTok videos.", details=exc.payload)
    except requests.Timeout:
        logger.error("TikTok video list timed out")
        raise ProjectionError(status.HTTP_504_GATEWAY_TIMEOUT, "TikTok did not respond in time.")
    except requests.RequestException as exc:
        logger.error("Could not reach TikTok: %s", type(exc).__name__)
        raise ProjectionError(status.HTTP_502_BAD_GATEWAY, "Could not reach TikTok.")

    return MediaListResponse(items=page.items, has_more=page.has_more)
