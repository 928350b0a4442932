"""Authentication schemes injected on every request."""

from __future__ import annotations

from collections.abc import Generator

import httpx


class BasicAuthentication(httpx.BasicAuth):
    """HTTP Basic authentication with a DHIS2 username and password."""

    def __init__(self, username: str, password: str) -> None:
        super().__init__(username, password)
        self.username = username

    def __repr__(self) -> str:
        return f"BasicAuthentication(username={self.username!r})"


class CookieAuthentication(httpx.Auth):
    """Session cookie authentication (``JSESSIONID``)."""

    def __init__(self, session_id: str, cookie_name: str = "JSESSIONID") -> None:
        self.session_id = session_id
        self.cookie_name = cookie_name

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Cookie"] = f"{self.cookie_name}={self.session_id}"
        yield request

    def __repr__(self) -> str:
        return f"CookieAuthentication(cookie_name={self.cookie_name!r})"
