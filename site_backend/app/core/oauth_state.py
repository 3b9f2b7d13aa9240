"""OAuth state minting and validation (CSRF protection)."""

from __future__ import annotations

import hmac
import secrets


class CsrfError(Exception):
    """The ``state`` returned by the provider does not match the one we issued."""


def issue_state() -> str:
    return secrets.token_urlsafe(32)


def verify_state(returned: str | None, expected: str | None) -> None:
    """
    Exact comparison of the returned state against the cookie value.

    Absence on either side is a failure, never a pass.
    """
    if not expected:
        raise CsrfError("OAuth state cookie missing")
    if not returned:
        raise CsrfError("OAuth state parameter missing")
    if not hmac.compare_digest(returned.encode("utf-8"), expected.encode("utf-8")):
        raise CsrfError("OAuth state mismatch")
