"""TikTok OAuth + Display API helpers."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import requests
from pydantic import ValidationError

from ..core.config import TikTokSettings
from ..schemas.tiktok import (
    ProviderFailure,
    TokenErrorReply,
    TokenGrant,
    UserInfoReply,
    UserProfile,
    VideoListReply,
    VideoPage,
)

logger = logging.getLogger(__name__)

AUTH_URL = "https://www.tiktok.com/v2/auth/authorize/"
TOKEN_URL = "https://open.tiktokapis.com/v2/oauth/token/"
USER_INFO_URL = "https://open.tiktokapis.com/v2/user/info/"
VIDEO_LIST_URL = "https://open.tiktokapis.com/v2/video/list/"

USER_INFO_FIELDS = ("open_id", "union_id", "display_name", "avatar_url")
VIDEO_FIELDS = (
    "id",
    "title",
    "video_description",
    "duration",
    "cover_image_url",
    "embed_link",
    "create_time",
)

INVALID_TOKEN_CODE = "access_token_invalid"
INVALID_RESPONSE_CODE = "invalid_response"


class TikTokError(RuntimeError):
    """Raised when the TikTok integration cannot complete a call."""


class TikTokConfigError(TikTokError):
    """Required client credentials or URLs are not configured."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"TikTok integration not configured (missing: {', '.join(missing)})")
        self.missing = missing


class TikTokUpstreamError(TikTokError):
    """TikTok answered, but not with a usable success reply."""

    def __init__(self, failure: ProviderFailure) -> None:
        super().__init__(f"TikTok error {failure.status_code}: {failure.code}")
        self.failure = failure

    @property
    def status_code(self) -> int:
        return self.failure.status_code

    @property
    def code(self) -> str:
        return self.failure.code

    @property
    def payload(self) -> Any:
        return self.failure.payload


def require_config(missing: list[str]) -> None:
    if missing:
        raise TikTokConfigError(missing)


def build_auth_url(cfg: TikTokSettings, state: str) -> str:
    require_config(cfg.missing_for_authorize())
    params = {
        "client_key": cfg.client_key,
        "scope": ",".join(cfg.scope_list),
        "response_type": "code",
        "redirect_uri": cfg.redirect_uri,
        "state": state,
    }
    return f"{AUTH_URL}?{urlencode(params)}"


def _read_payload(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text[:2000]}


def _error_code(payload: Any, default: str) -> tuple[str, str]:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            return str(error.get("code") or default), str(error.get("message") or "")
        if isinstance(error, str) and error:
            return error, str(payload.get("error_description") or "")
    return default, ""


def _failure(status_code: int, payload: Any, default_code: str, message: str = "") -> ProviderFailure:
    code, provider_message = _error_code(payload, default_code)
    return ProviderFailure(
        status_code=status_code,
        code=code,
        message=provider_message or message,
        payload=payload,
    )


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def parse_token_reply(status_code: int, payload: Any) -> TokenGrant | ProviderFailure:
    """Validate a token endpoint reply; anything that is not a usable grant is a failure."""
    if not _is_success(status_code):
        return _failure(status_code, payload, f"http_{status_code}")
    if not isinstance(payload, dict):
        return _failure(status_code, payload, INVALID_RESPONSE_CODE, "Token reply is not an object")

    error = payload.get("error")
    if isinstance(error, str) and error:
        reply = TokenErrorReply.model_validate(payload)
        return ProviderFailure(
            status_code=status_code,
            code=reply.error,
            message=reply.error_description,
            payload=payload,
        )
    if isinstance(error, dict) and error.get("code") not in (None, "ok"):
        return _failure(status_code, payload, INVALID_RESPONSE_CODE)

    # The legacy open-api host nested the grant under "data".
    body = payload.get("data") if isinstance(payload.get("data"), dict) and "access_token" not in payload else payload
    try:
        return TokenGrant.model_validate(body)
    except ValidationError as exc:
        return _failure(
            status_code,
            payload,
            INVALID_RESPONSE_CODE,
            f"Token reply failed validation ({exc.error_count()} errors)",
        )


def parse_user_info_reply(status_code: int, payload: Any) -> UserProfile | ProviderFailure:
    if not _is_success(status_code):
        return _failure(status_code, payload, f"http_{status_code}")
    try:
        reply = UserInfoReply.model_validate(payload)
    except ValidationError:
        return _failure(status_code, payload, INVALID_RESPONSE_CODE, "User info reply failed validation")
    if not reply.error.ok:
        return _failure(status_code, payload, reply.error.code)
    return reply.data.user


def parse_video_list_reply(status_code: int, payload: Any) -> VideoPage | ProviderFailure:
    if not _is_success(status_code):
        return _failure(status_code, payload, f"http_{status_code}")
    try:
        reply = VideoListReply.model_validate(payload)
    except ValidationError:
        return _failure(status_code, payload, INVALID_RESPONSE_CODE, "Video list reply failed validation")
    if not reply.error.ok:
        return _failure(status_code, payload, reply.error.code)
    return VideoPage(items=reply.data.videos, has_more=reply.data.has_more)


def exchange_code_for_token(cfg: TikTokSettings, code: str) -> TokenGrant:
    require_config(cfg.missing_for_token_exchange())
    resp = requests.post(
        TOKEN_URL,
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Cache-Control": "no-cache",
        },
        data={
            "client_key": cfg.client_key,
            "client_secret": cfg.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": cfg.redirect_uri,
        },
        timeout=cfg.http_timeout,
    )
    result = parse_token_reply(resp.status_code, _read_payload(resp))
    if isinstance(result, ProviderFailure):
        raise TikTokUpstreamError(result)
    return result


def fetch_user_profile(cfg: TikTokSettings, access_token: str) -> UserProfile:
    resp = requests.get(
        USER_INFO_URL,
        params={"fields": ",".join(USER_INFO_FIELDS)},
        headers={
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        },
        timeout=cfg.http_timeout,
    )
    result = parse_user_info_reply(resp.status_code, _read_payload(resp))
    if isinstance(result, ProviderFailure):
        raise TikTokUpstreamError(result)
    return result


def list_videos(cfg: TikTokSettings, access_token: str) -> VideoPage:
    """Fetch a single page of the user's videos; no cursor traversal."""
    resp = requests.post(
        VIDEO_LIST_URL,
        params={"fields": ",".join(VIDEO_FIELDS)},
        headers={
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "Cache-Control": "no-cache",
        },
        json={"max_count": cfg.video_page_size},
        timeout=cfg.http_timeout,
    )
    result = parse_video_list_reply(resp.status_code, _read_payload(resp))
    if isinstance(result, ProviderFailure):
        raise TikTokUpstreamError(result)
    return result
