"""Shared test doubles for the TikTok helpers."""

from typing import Any


class FakeResponse:
    """Just enough of ``requests.Response`` for the TikTok helpers."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


def set_cookie_headers(response) -> dict[str, str]:
    """Map cookie name -> raw Set-Cookie header for one response."""
    headers = {}
    for raw in response.headers.get_list("set-cookie"):
        name = raw.split("=", 1)[0]
        headers[name] = raw
    return headers


def is_deletion(set_cookie: str) -> bool:
    return "Max-Age=0" in set_cookie
