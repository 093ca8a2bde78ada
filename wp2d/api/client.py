"""diaspora* pod session client — CSRF token, form login, discovery, posting.

One PodSessionClient owns one session against one pod. The injected
httpx.Client keeps the session cookies, so each session needs its own client.

Error contract: public methods never raise. They return False/None on failure
and keep the error in ``last_error`` until the next call overwrites it.
"""

from __future__ import annotations

import re
from typing import Any

import httpx
import structlog

from wp2d.exceptions import (
    DeleteError,
    DiscoveryError,
    ForbiddenError,
    InvalidArgumentError,
    LoginFailedError,
    NotFoundError,
    NotInitializedError,
    NotLoggedInError,
    PodConnectionError,
    PodError,
    PostError,
    UnknownError,
)

from .models import AspectTarget, DiasporaPost, is_public_target, normalize_aspect_ids

log = structlog.get_logger()

_SIGN_IN_PATH = "users/sign_in"
_STATUS_MESSAGES_PATH = "status_messages"

# kind -> (endpoint, error message)
_DISCOVERY = {
    "aspects": ("aspects", "Error loading aspects."),
    "services": ("services", "Error loading services."),
}

_DELETE_PATHS = {
    "post": "posts/{id}",
    "comment": "comments/{id}",
}

_TOKEN_PATTERNS = (
    re.compile(r'<meta[^>]*content="([^"]+)"[^>]*name="csrf-token"'),
    re.compile(r'<meta[^>]*name="csrf-token"[^>]*content="([^"]+)"'),
    re.compile(r'name="authenticity_token"[^>]*value="([^"]+)"'),
    re.compile(r'value="([^"]+)"[^>]*name="authenticity_token"'),
)

# Present in the body when the pod re-renders the sign-in page
_LOGIN_FAILURE_MARKERS = (
    'name="user[password]"',
    "Invalid username or password",
)

_JSON_HEADERS = {"Accept": "application/json"}


def _ucfirst(value: str) -> str:
    return value[:1].upper() + value[1:]


def _extract_token(body: str) -> str | None:
    for pattern in _TOKEN_PATTERNS:
        if match := pattern.search(body):
            return match.group(1)
    return None


class PodSessionClient:
    """Session against a single diaspora* pod."""

    def __init__(
        self,
        pod: str,
        use_https: bool = True,
        *,
        http_client: httpx.Client | None = None,
        owns_client: bool | None = None,
    ) -> None:
        self._pod = pod
        self._use_https = use_https
        # Closed by close() only when created here or handed over
        self._owns_client = http_client is None if owns_client is None else owns_client
        self._client = http_client if http_client is not None else httpx.Client()

        self._token: str | None = None
        self._last_request: tuple[str, str] | None = None
        self._last_error: PodError | None = None

        self._logged_in = False
        self._username: str | None = None
        self._password: str | None = None
        self._aspects: dict[str | int, str] = {}
        self._services: dict[str, str] = {}

    def close(self) -> None:
        """Close the HTTP client if this session created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> PodSessionClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # state accessors
    # ------------------------------------------------------------------

    @property
    def pod(self) -> str:
        return self._pod

    @property
    def use_https(self) -> bool:
        return self._use_https

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def cookies(self) -> list[str]:
        """Session cookies as ``name=value`` strings, in jar order."""
        return [f"{cookie.name}={cookie.value}" for cookie in self._client.cookies.jar]

    @property
    def last_request(self) -> tuple[str, str] | None:
        """``(method, url)`` of the last request sent, or None."""
        return self._last_request

    @property
    def username(self) -> str | None:
        return self._username

    @property
    def last_error(self) -> PodError | None:
        return self._last_error

    @property
    def last_error_message(self) -> str | None:
        return self._last_error.message if self._last_error is not None else None

    def has_last_error(self) -> bool:
        return self._last_error is not None

    def clear_last_error(self) -> None:
        self._last_error = None

    def is_logged_in(self) -> bool:
        return self._logged_in

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def build_url(self, path: str = "") -> str:
        """Absolute pod URL for ``path``; surrounding slashes are ignored."""
        scheme = "https" if self._use_https else "http"
        url = f"{scheme}://{self._pod}"
        path = path.strip("/")
        return f"{url}/{path}" if path else url

    def _fail(self, error: PodError, **context: Any) -> None:
        self._last_error = error
        log.warning("pod_request_failed", pod=self._pod, kind=error.kind, error=error.message, **context)

    def _request(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request carrying the CSRF token; refresh the token from the response.

        Raises httpx.HTTPError on transport failure or a malformed pod URL.
        """
        url = self.build_url(path)
        request_headers = dict(headers or {})
        if self._token:
            request_headers["X-CSRF-Token"] = self._token

        self._last_request = (method, url)
        log.debug("pod_request", method=method, url=url)
        try:
            resp = self._client.request(
                method,
                url,
                data=data,
                json=json,
                headers=request_headers,
                follow_redirects=True,
            )
        except httpx.InvalidURL as exc:
            # Not an HTTPError subclass; callers only handle HTTPError
            raise httpx.RequestError(str(exc)) from exc

        # Any HTML page may carry a rotated token (e.g. after signing in)
        if "json" not in resp.headers.get("content-type", "") and (token := _extract_token(resp.text)):
            self._token = token
        return resp

    def _fetch_token(self, force: bool = False) -> str | None:
        """Return the cached CSRF token, fetching the sign-in page when needed."""
        if self._token is None or force:
            self._request("GET", _SIGN_IN_PATH)
        return self._token

    def _check_init(self) -> bool:
        if self._token is None:
            self._fail(NotInitializedError())
            return False
        return True

    def _check_login(self) -> bool:
        if not self._logged_in:
            self._fail(NotLoggedInError())
            return False
        return True

    def _clear_connection(self) -> None:
        self._token = None
        self._last_request = None
        self._client.cookies.clear()

    # ------------------------------------------------------------------
    # session lifecycle
    # ------------------------------------------------------------------

    def initialize(self, pod: str | None = None, use_https: bool | None = None) -> bool:
        """Point the session at a pod and make sure a CSRF token is available.

        Switching pod or scheme drops the token and cookies and fetches new ones.
        """
        self._last_error = None

        force = False
        new_pod = pod if pod is not None else self._pod
        new_https = use_https if use_https is not None else self._use_https
        if new_pod != self._pod or new_https != self._use_https:
            log.info("pod_switched", old=self.build_url(), pod=new_pod, use_https=new_https)
            self._pod = new_pod
            self._use_https = new_https
            self.logout()
            self._clear_connection()
            force = True

        pod_url = self.build_url()
        failure = f'Failed to initialise connection to pod "{pod_url}".'
        try:
            token = self._fetch_token(force)
        except httpx.HTTPError as exc:
            self._fail(PodConnectionError(f"{failure} {exc}"), url=pod_url)
            return False

        if token is None:
            self._fail(PodConnectionError(failure), url=pod_url)
            return False

        log.info("pod_initialized", pod=self._pod, use_https=self._use_https)
        return True

    def deinit(self) -> None:
        """Drop everything but the pod configuration."""
        self.logout()
        self._clear_connection()
        self._last_error = None

    reset = deinit

    def login(self, username: str, password: str, force: bool = False) -> bool:
        """Sign in with the given credentials.

        Repeating a successful login with the same credentials is a no-op
        unless ``force`` is set.
        """
        self._last_error = None

        if not username or not password:
            self._fail(InvalidArgumentError("Invalid credentials. Please re-save your login info."))
            return False

        if username != self._username or password != self._password:
            self.logout()

        if self._logged_in and not force:
            return True

        if not self._check_init():
            self.logout()
            return False

        try:
            resp = self._request(
                "POST",
                _SIGN_IN_PATH,
                data={
                    "user[username]": username,
                    "user[password]": password,
                    "user[remember_me]": "1",
                    "authenticity_token": self._token or "",
                },
            )
        except httpx.HTTPError as exc:
            self.logout()
            self._fail(LoginFailedError(), username=username, error_detail=str(exc))
            return False

        if not resp.is_success or any(marker in resp.text for marker in _LOGIN_FAILURE_MARKERS):
            self.logout()
            self._fail(LoginFailedError(), username=username, status=resp.status_code)
            return False

        self._logged_in = True
        self._username = username
        self._password = password
        log.info("pod_logged_in", pod=self._pod, username=username)
        return True

    def logout(self) -> None:
        """Forget the login and discovery caches; token and cookies stay."""
        self._logged_in = False
        self._username = None
        self._password = None
        self._aspects = {}
        self._services = {}

    # ------------------------------------------------------------------
    # discovery
    # ------------------------------------------------------------------

    def _get_aspects_services(
        self,
        kind: str,
        current: dict[Any, str],
        force: bool,
    ) -> dict[Any, str] | None:
        """Load aspects or services, reusing ``current`` unless empty or forced."""
        if not self._check_login():
            return None

        if current and not force:
            return current

        if kind not in _DISCOVERY:
            self._fail(UnknownError(), kind_requested=kind)
            return None
        path, error_message = _DISCOVERY[kind]

        try:
            resp = self._request("GET", path, headers=_JSON_HEADERS)
        except httpx.HTTPError as exc:
            self._fail(DiscoveryError(error_message), error_detail=str(exc))
            return None

        if resp.status_code != 200:
            self._fail(DiscoveryError(error_message), status=resp.status_code)
            return None

        try:
            records = resp.json()
            if not isinstance(records, list):
                raise TypeError(f"expected a list, got {type(records).__name__}")
            if kind == "aspects":
                return self._parse_aspects(records)
            return self._parse_services(records)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            self._fail(DiscoveryError(error_message), error_detail=str(exc))
            return None

    @staticmethod
    def _parse_aspects(records: list[Any]) -> dict[str | int, str]:
        # "public" is global, not user specific
        aspects: dict[str | int, str] = {"public": "Public"}
        for record in records:
            aspects[record["id"]] = record["name"]
        return aspects

    @staticmethod
    def _parse_services(records: list[Any]) -> dict[str, str]:
        services: dict[str, str] = {}
        for record in records:
            if isinstance(record, str):
                services[record] = _ucfirst(record)
                continue
            key = record.get("provider") or record["id"]
            services[key] = record.get("name") or _ucfirst(str(key))
        return services

    def get_aspects(self, force: bool = False) -> dict[str | int, str] | None:
        """Aspects of the logged in user as ``{id: name}``, ``public`` first."""
        self._last_error = None
        aspects = self._get_aspects_services("aspects", self._aspects, force)
        if aspects is None:
            return None
        self._aspects = aspects
        return dict(aspects)

    def get_services(self, force: bool = False) -> dict[str, str] | None:
        """Connected services of the logged in user as ``{provider: name}``."""
        self._last_error = None
        services = self._get_aspects_services("services", self._services, force)
        if services is None:
            return None
        self._services = services
        return dict(services)

    # ------------------------------------------------------------------
    # content
    # ------------------------------------------------------------------

    def post(
        self,
        text: str,
        aspects: AspectTarget = "public",
        extra_data: dict[str, Any] | None = None,
    ) -> DiasporaPost | None:
        """Create a status message and return it with its permalink."""
        self._last_error = None
        if not self._check_login():
            return None

        aspect_ids = normalize_aspect_ids(aspects)
        payload: dict[str, Any] = {
            "status_message": {"text": text},
            "public": is_public_target(aspect_ids),
            "aspect_ids": aspect_ids,
            **(extra_data or {}),
        }

        try:
            resp = self._request("POST", _STATUS_MESSAGES_PATH, json=payload, headers=_JSON_HEADERS)
        except httpx.HTTPError as exc:
            self._fail(PostError(str(exc)))
            return None

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.is_success:
            message = body.get("error") if isinstance(body, dict) else None
            if not isinstance(message, str):
                message = None
            self._fail(
                PostError(message or f"Unknown error occurred. (HTTP {resp.status_code})"),
                status=resp.status_code,
            )
            return None

        try:
            post = DiasporaPost.from_response(body, self.build_url(f"posts/{body['guid']}"))
        except (KeyError, TypeError) as exc:
            self._fail(PostError(), error_detail=str(exc))
            return None

        log.info("pod_post_created", pod=self._pod, post_id=post.id, public=post.public)
        return post

    def delete(self, kind: str, item_id: str | int) -> bool:
        """Delete one of the user's posts or comments."""
        self._last_error = None
        if not self._check_login():
            return False

        if kind not in _DELETE_PATHS:
            self._fail(InvalidArgumentError("You can only delete posts and comments."))
            return False

        try:
            resp = self._request("DELETE", _DELETE_PATHS[kind].format(id=item_id), headers=_JSON_HEADERS)
        except httpx.HTTPError as exc:
            self._fail(DeleteError(str(exc)), item_id=item_id)
            return False

        if resp.is_success:
            log.info("pod_item_deleted", pod=self._pod, kind=kind, item_id=item_id)
            return True

        error: PodError
        if resp.status_code == 404:
            error = NotFoundError(f"The {kind} you tried to delete does not exist.")
        elif resp.status_code == 403:
            error = ForbiddenError(f"The {kind} you tried to delete does not belong to you.")
        else:
            error = UnknownError()
        self._fail(error, item_id=item_id, status=resp.status_code)
        return False
