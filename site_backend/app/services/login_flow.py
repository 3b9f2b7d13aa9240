"""TikTok authorization callback: validate state, exchange the code, cache the profile."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlencode, urljoin

import requests
from starlette.responses import RedirectResponse

from ..core.config import TikTokSettings
from ..core.oauth_state import CsrfError, verify_state
from ..core.session import SessionContext, SessionCookies
from ..schemas.tiktok import TokenGrant, UserProfile
from . import tiktok

logger = logging.getLogger(__name__)

LANDING_PATH = "/tiktok"
ERROR_PATH = "/auth/error"


class LoginStage(StrEnum):
    RECEIVED = "received"
    STATE_VALIDATED = "state_validated"
    CODE_EXCHANGED = "code_exchanged"
    PROFILE_FETCHED = "profile_fetched"
    COOKIES_SET = "cookies_set"
    REDIRECTED = "redirected"
    ERROR = "error"


class LoginError(StrEnum):
    CSRF_TOKEN_MISMATCH = "CsrfTokenMismatch"
    CODE_MISSING = "CodeMissing"
    AUTH_CONFIG_ERROR = "AuthConfigError"
    TOKEN_EXCHANGE_FAILED = "TokenExchangeFailed"
    OAUTH_FAILED = "OAuthFailed"


@dataclass
class LoginOutcome:
    redirect_url: str
    stage: LoginStage
    error: LoginError | None = None
    grant: TokenGrant | None = None
    profile: UserProfile | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def site_url(cfg: TikTokSettings, path: str) -> str:
    """Absolute URL on the public site, or the bare path when no base URL is configured."""
    if not cfg.site_base_url:
        return path
    return urljoin(cfg.site_base_url, path)


def error_url(cfg: TikTokSettings, error: LoginError, details: str | None = None) -> str:
    params = {"error": error.value}
    if details is not None:
        params["details"] = details
    return f"{site_url(cfg, ERROR_PATH)}?{urlencode(params)}"


class CallbackFlow:
    """
    One pass through the callback for one request.

    The state cookie deletion is queued first and survives every failure;
    all other cookie writes are committed only on success.
    """

    def __init__(self, cfg: TikTokSettings, session: SessionContext, cookies: SessionCookies) -> None:
        self.cfg = cfg
        self.session = session
        self.cookies = cookies
        self.stage = LoginStage.RECEIVED

    def _advance(self, stage: LoginStage) -> None:
        logger.debug("TikTok callback stage %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def _fail(self, error: LoginError, details: str | None = None) -> LoginOutcome:
        failed_at = self.stage
        self.cookies.rollback()
        self.stage = LoginStage.ERROR
        logger.warning(
            "TikTok login failed",
            extra={"data": {"error": error.value, "stage": failed_at.value}},
        )
        return LoginOutcome(redirect_url=error_url(self.cfg, error, details), stage=self.stage, error=error)

    def run(
        self,
        *,
        code: str | None,
        state: str | None,
        provider_error: str | None = None,
        provider_error_description: str | None = None,
    ) -> LoginOutcome:
        self.cookies.clear_state()

        try:
            verify_state(state, self.session.oauth_state)
        except CsrfError as exc:
            logger.warning("CSRF state check failed: %s", exc)
            return self._fail(LoginError.CSRF_TOKEN_MISMATCH)
        self._advance(LoginStage.STATE_VALIDATED)

        try:
            return self._complete(code, provider_error, provider_error_description)
        except Exception:
            logger.exception("TikTok OAuth callback error")
            return self._fail(LoginError.OAUTH_FAILED)

    def _complete(
        self,
        code: str | None,
        provider_error: str | None,
        provider_error_description: str | None,
    ) -> LoginOutcome:
        if not code:
            logger.warning(
                "TikTok did not return an authorization code",
                extra={"data": {"error": provider_error, "error_description": provider_error_description}},
            )
            return self._fail(LoginError.CODE_MISSING)

        missing = self.cfg.missing_for_token_exchange()
        if missing:
            logger.error("TikTok credentials or redirect URI are not configured", extra={"data": {"missing": missing}})
            return self._fail(LoginError.AUTH_CONFIG_ERROR)

        try:
            grant = tiktok.exchange_code_for_token(self.cfg, code)
        except tiktok.TikTokUpstreamError as exc:
            logger.error(
                "Error exchanging code for token",
                extra={"data": {"status": exc.status_code, "code": exc.code, "payload": exc.payload}},
            )
            return self._fail(LoginError.TOKEN_EXCHANGE_FAILED, details=json.dumps(exc.payload, default=str))
        self._advance(LoginStage.CODE_EXCHANGED)

        profile = self._fetch_profile(grant)
        self._advance(LoginStage.PROFILE_FETCHED)

        if profile is not None:
            self.cookies.set_profile(profile, self._profile_max_age(grant))
        else:
            # Never leave a previous login's profile next to a new token.
            self.cookies.clear_profile()
        self.cookies.set_access_token(grant.access_token, grant.expires_in)
        self._advance(LoginStage.COOKIES_SET)

        url = site_url(self.cfg, LANDING_PATH)
        self._advance(LoginStage.REDIRECTED)
        logger.info("TikTok login completed", extra={"data": {"has_profile": profile is not None}})
        return LoginOutcome(redirect_url=url, stage=self.stage, grant=grant, profile=profile)

    def _fetch_profile(self, grant: TokenGrant) -> UserProfile | None:
        try:
            return tiktok.fetch_user_profile(self.cfg, grant.access_token)
        except tiktok.TikTokUpstreamError as exc:
            logger.warning(
                "Error fetching user info, continuing without profile",
                extra={"data": {"status": exc.status_code, "code": exc.code, "payload": exc.payload}},
            )
        except requests.RequestException as exc:
            logger.warning("User info request failed, continuing without profile: %s", type(exc).__name__)
        return None

    def _profile_max_age(self, grant: TokenGrant) -> int:
        if self.cfg.bind_profile_to_token:
            return min(self.cfg.profile_max_age_seconds, grant.expires_in)
        return self.cfg.profile_max_age_seconds


def complete_login(
    cfg: TikTokSettings,
    session: SessionContext,
    cookies: SessionCookies,
    *,
    code: str | None,
    state: str | None,
    provider_error: str | None = None,
    provider_error_description: str | None = None,
) -> LoginOutcome:
    return CallbackFlow(cfg, session, cookies).run(
        code=code,
        state=state,
        provider_error=provider_error,
        provider_error_description=provider_error_description,
    )


def redirect_response(cfg: TikTokSettings, cookies: SessionCookies, outcome: LoginOutcome) -> RedirectResponse:
    """
    Commit the session cookies onto the outcome's redirect.

    A cookie the response cannot carry turns the login into ``OAuthFailed``;
    the state cookie is still deleted.
    """
    try:
        return cookies.apply(RedirectResponse(url=outcome.redirect_url, status_code=302))
    except Exception:
        logger.exception("Could not write TikTok session cookies")
        cookies.rollback()
        return cookies.apply(RedirectResponse(url=error_url(cfg, LoginError.OAUTH_FAILED), status_code=302))
