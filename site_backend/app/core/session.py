"""Cookie-backed session state: read once at the request boundary, written once on the way out."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import Request, Response

from ..schemas.tiktok import UserProfile
from .config import Settings, TikTokSettings

logger = logging.getLogger(__name__)

STATE_COOKIE = "tiktok_oauth_state"
PROFILE_COOKIE = "tiktok_user_data"
ACCESS_TOKEN_COOKIE = "tiktok_access_token"


@dataclass(frozen=True, slots=True)
class SessionContext:
    """Snapshot of the browser's session cookies for one request."""

    oauth_state: str | None = None
    profile_json: str | None = None
    access_token: str | None = None

    @classmethod
    def from_request(cls, request: Request) -> "SessionContext":
        cookies = request.cookies
        return cls(
            oauth_state=cookies.get(STATE_COOKIE) or None,
            profile_json=cookies.get(PROFILE_COOKIE) or None,
            access_token=cookies.get(ACCESS_TOKEN_COOKIE) or None,
        )

    @property
    def signed_in(self) -> bool:
        return bool(self.access_token)

    def cached_profile(self) -> dict[str, Any] | None:
        """Decode the profile cookie; a value that is not a JSON object counts as absent."""
        if not self.profile_json:
            return None
        try:
            data = json.loads(self.profile_json)
        except ValueError:
            logger.warning("Discarding unparsable profile cookie")
            return None
        if not isinstance(data, dict):
            logger.warning("Discarding profile cookie that is not an object")
            return None
        return data


@dataclass(frozen=True, slots=True)
class CookiePolicy:
    secure: bool
    samesite: str = "lax"
    path: str = "/"

    @classmethod
    def for_request(cls, app_settings: Settings, cfg: TikTokSettings) -> "CookiePolicy":
        # Local dev over plain HTTP would otherwise never get the cookies back.
        https_redirect = (cfg.redirect_uri or "").lower().startswith("https://")
        return cls(secure=(not app_settings.is_dev) or https_redirect)


@dataclass(frozen=True, slots=True)
class _CookieWrite:
    value: str
    max_age: int


class SessionCookies:
    """
    Buffered writer for the session cookies.

    Nothing touches the response until ``apply``. ``rollback`` drops pending
    writes but keeps deletions, so a failed login still consumes its state
    token without leaving a half-written session behind.
    """

    def __init__(self, policy: CookiePolicy) -> None:
        self.policy = policy
        self._writes: dict[str, _CookieWrite] = {}
        self._deletes: list[str] = []

    def _set(self, key: str, value: str, max_age: int) -> None:
        if key in self._deletes:
            self._deletes.remove(key)
        self._writes[key] = _CookieWrite(value=value, max_age=max_age)

    def _delete(self, key: str) -> None:
        self._writes.pop(key, None)
        if key not in self._deletes:
            self._deletes.append(key)

    def set_state(self, state: str, max_age: int) -> None:
        self._set(STATE_COOKIE, state, max_age)

    def clear_state(self) -> None:
        self._delete(STATE_COOKIE)

    def set_profile(self, profile: UserProfile, max_age: int) -> None:
        self._set(PROFILE_COOKIE, profile.to_cookie(), max_age)

    def clear_profile(self) -> None:
        self._delete(PROFILE_COOKIE)

    def set_access_token(self, access_token: str, max_age: int) -> None:
        self._set(ACCESS_TOKEN_COOKIE, access_token, max_age)

    def clear_access_token(self) -> None:
        self._delete(ACCESS_TOKEN_COOKIE)

    def clear_session(self) -> None:
        self.clear_profile()
        self.clear_access_token()

    def rollback(self) -> None:
        self._writes.clear()

    @property
    def pending_writes(self) -> list[str]:
        return list(self._writes)

    @property
    def pending_deletes(self) -> list[str]:
        return list(self._deletes)

    def apply(self, response: Response) -> Response:
        for key in self._deletes:
            response.delete_cookie(
                key,
                path=self.policy.path,
                secure=self.policy.secure,
                httponly=True,
                samesite=self.policy.samesite,
            )
        for key, write in self._writes.items():
            response.set_cookie(
                key,
                write.value,
                max_age=write.max_age,
                path=self.policy.path,
                secure=self.policy.secure,
                httponly=True,
                samesite=self.policy.samesite,
            )
        return response
