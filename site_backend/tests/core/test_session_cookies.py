"""Buffered session cookie writes and the request-side cookie snapshot."""

from fastapi import Response
from starlette.requests import Request

from site_backend.app.core.config import Settings, TikTokSettings
from site_backend.app.core.session import (
    ACCESS_TOKEN_COOKIE,
    PROFILE_COOKIE,
    STATE_COOKIE,
    CookiePolicy,
    SessionContext,
    SessionCookies,
)
from site_backend.app.schemas.tiktok import UserProfile


def _request_with_cookies(cookie_header: str) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(b"cookie", cookie_header.encode("latin-1"))],
    }
    return Request(scope)


def _set_cookies(response: Response) -> dict[str, str]:
    return {raw.split("=", 1)[0]: raw for raw in response.headers.getlist("set-cookie")}


def test_nothing_is_written_before_apply() -> None:
    cookies = SessionCookies(CookiePolicy(secure=False))
    cookies.set_access_token("T1", 3600)

    assert cookies.pending_writes == [ACCESS_TOKEN_COOKIE]
    assert cookies.pending_deletes == []


def test_apply_sets_httponly_lax_cookies() -> None:
    cookies = SessionCookies(CookiePolicy(secure=True))
    cookies.set_access_token("T1", 3600)
    cookies.set_profile(UserProfile(open_id="U1", display_name="Ann"), 604800)

    written = _set_cookies(cookies.apply(Response()))

    token = written[ACCESS_TOKEN_COOKIE]
    assert token.startswith(f"{ACCESS_TOKEN_COOKIE}=T1;")
    assert "Max-Age=3600" in token
    assert "HttpOnly" in token
    assert "Secure" in token
    assert "SameSite=lax" in token
    assert "Path=/" in token
    assert "Max-Age=604800" in written[PROFILE_COOKIE]


def test_rollback_keeps_deletions() -> None:
    cookies = SessionCookies(CookiePolicy(secure=False))
    cookies.clear_state()
    cookies.set_access_token("T1", 3600)
    cookies.set_profile(UserProfile(open_id="U1"), 60)

    cookies.rollback()

    assert cookies.pending_writes == []
    assert cookies.pending_deletes == [STATE_COOKIE]
    written = _set_cookies(cookies.apply(Response()))
    assert list(written) == [STATE_COOKIE]
    assert "Max-Age=0" in written[STATE_COOKIE]


def test_later_operation_wins() -> None:
    cookies = SessionCookies(CookiePolicy(secure=False))
    cookies.set_profile(UserProfile(open_id="U1"), 60)
    cookies.clear_profile()
    assert cookies.pending_writes == []
    assert cookies.pending_deletes == [PROFILE_COOKIE]

    cookies.set_profile(UserProfile(open_id="U2"), 60)
    assert cookies.pending_writes == [PROFILE_COOKIE]
    assert cookies.pending_deletes == []


def test_clear_session_leaves_state_alone() -> None:
    cookies = SessionCookies(CookiePolicy(secure=False))
    cookies.clear_session()
    assert sorted(cookies.pending_deletes) == sorted([PROFILE_COOKIE, ACCESS_TOKEN_COOKIE])


def test_profile_cookie_uses_provider_field_names() -> None:
    profile = UserProfile.model_validate(
        {"open_id": "U1", "union_id": "UN1", "display_name": "Ann", "avatar_url": "https://a"}
    )
    assert profile.subject_id == "U1"
    assert profile.federated_id == "UN1"
    assert profile.to_cookie() == '{"open_id":"U1","display_name":"Ann","avatar_url":"https://a","union_id":"UN1"}'


def test_session_context_reads_cookies_once() -> None:
    request = _request_with_cookies(f"{STATE_COOKIE}=s1; {ACCESS_TOKEN_COOKIE}=T1")

    session = SessionContext.from_request(request)

    assert session.oauth_state == "s1"
    assert session.access_token == "T1"
    assert session.profile_json is None
    assert session.signed_in


def test_empty_cookie_counts_as_absent() -> None:
    session = SessionContext.from_request(_request_with_cookies(f"{ACCESS_TOKEN_COOKIE}="))
    assert session.access_token is None
    assert not session.signed_in


def test_cached_profile() -> None:
    assert SessionContext(profile_json='{"open_id": "U1"}').cached_profile() == {"open_id": "U1"}
    assert SessionContext(profile_json="[1, 2]").cached_profile() is None
    assert SessionContext(profile_json="{broken").cached_profile() is None
    assert SessionContext().cached_profile() is None


def test_cookie_policy_secure_outside_dev() -> None:
    cfg = TikTokSettings(redirect_uri="http://localhost:8000/api/auth/callback/tiktok")

    assert CookiePolicy.for_request(Settings(APP_ENV="production"), cfg).secure is True
    assert CookiePolicy.for_request(Settings(APP_ENV="dev"), cfg).secure is False

    https_cfg = TikTokSettings(redirect_uri="https://site.test/api/auth/callback/tiktok")
    assert CookiePolicy.for_request(Settings(APP_ENV="dev"), https_cfg).secure is True


def test_profile_cookie_is_ascii_for_any_display_name() -> None:
    profile = UserProfile(open_id="U1", display_name="安 🌸 Zoë")

    value = profile.to_cookie()

    assert value.isascii()
    assert SessionContext(profile_json=value).cached_profile() == {"open_id": "U1", "display_name": "安 🌸 Zoë"}

    cookies = SessionCookies(CookiePolicy(secure=False))
    cookies.set_profile(profile, 60)
    assert PROFILE_COOKIE in _set_cookies(cookies.apply(Response()))
