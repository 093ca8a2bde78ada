"""Fake diaspora* pod for PodSessionClient unit tests.

FakePod is an httpx.MockTransport handler. It serves the sign-in flow out of
the box and records every request, so tests can count network calls.
Extra endpoints are registered per test via ``fake_pod.route(...)``.
"""

from __future__ import annotations

from collections.abc import Callable
from urllib.parse import parse_qs

import httpx
import pytest

from wp2d.api import PodSessionClient

Handler = Callable[[httpx.Request], httpx.Response]


def sign_in_page(token: str | None) -> str:
    meta = f'<meta name="csrf-token" content="{token}" />' if token else ""
    return (
        f"<html><head>{meta}</head><body>"
        '<form id="new_user" action="/users/sign_in" method="post">'
        '<input type="text" name="user[username]" />'
        '<input type="password" name="user[password]" />'
        "</form></body></html>"
    )


def stream_page(token: str) -> str:
    return f'<html><head><meta content="{token}" name="csrf-token" /></head><body>Stream</body></html>'


class FakePod:
    """Minimal pod: sign-in page, form login, stream page, custom routes."""

    def __init__(
        self,
        token: str | None = "token-a",
        username: str = "username",
        password: str = "password",
    ) -> None:
        self.token = token
        self.session_token = "token-session"
        self.username = username
        self.password = password
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Handler] = {}

    def route(self, method: str, path: str, handler: Handler | httpx.Response) -> None:
        if isinstance(handler, httpx.Response):
            template = handler
            # Fresh copy per call; httpx binds a response to its request
            self._routes[(method, path)] = lambda request: httpx.Response(
                template.status_code,
                headers=template.headers,
                content=template.content,
            )
        else:
            self._routes[(method, path)] = handler

    def calls(self, method: str | None = None, path: str | None = None) -> int:
        return sum(
            1
            for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self._routes:
            return self._routes[key](request)
        if key == ("GET", "/users/sign_in"):
            return httpx.Response(
                200,
                html=sign_in_page(self.token),
                headers={"Set-Cookie": "_diaspora_session=anon; path=/; HttpOnly"},
            )
        if key == ("POST", "/users/sign_in"):
            return self._sign_in(request)
        if key == ("GET", "/stream"):
            return httpx.Response(200, html=stream_page(self.session_token))
        return httpx.Response(404, json={"error": "not found"})

    def _sign_in(self, request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode())
        ok = (
            form.get("user[username]") == [self.username]
            and form.get("user[password]") == [self.password]
            and form.get("authenticity_token") in ([self.token], [self.session_token])
        )
        if not ok:
            return httpx.Response(
                200,
                html="<p>Invalid username or password.</p>" + sign_in_page(self.token),
            )
        return httpx.Response(
            302,
            headers={
                "Location": f"{request.url.scheme}://{request.url.host}/stream",
                "Set-Cookie": "_diaspora_session=user; path=/; HttpOnly",
            },
        )


def make_client(handler: Handler, pod: str = "pod", use_https: bool = True) -> PodSessionClient:
    transport = httpx.MockTransport(handler)
    return PodSessionClient(pod, use_https, http_client=httpx.Client(transport=transport))


@pytest.fixture
def fake_pod() -> FakePod:
    return FakePod()


@pytest.fixture
def client(fake_pod: FakePod) -> PodSessionClient:
    """Session that is initialised but not logged in."""
    api = make_client(fake_pod)
    assert api.initialize()
    return api


@pytest.fixture
def logged_in_client(client: PodSessionClient, fake_pod: FakePod) -> PodSessionClient:
    """Session logged in as username/password; request log starts empty."""
    assert client.login("username", "password")
    fake_pod.requests.clear()
    return client
