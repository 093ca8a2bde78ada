"""Pod client exception hierarchy.

Private client helpers raise these; the public PodSessionClient methods catch
them and keep the latest one in ``last_error``.
"""

from __future__ import annotations

from typing import ClassVar

_UNKNOWN_MSG = "Unknown error occurred."


class PodError(Exception):
    """Base exception for all pod client errors."""

    kind: ClassVar[str] = "pod_error"
    default_message: ClassVar[str] = _UNKNOWN_MSG

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, message={self.message!r})"


class InvalidArgumentError(PodError):
    """Raised when a caller passes empty or unsupported input."""

    kind = "invalid_argument"
    default_message = "Invalid argument."


class NotInitializedError(PodError):
    """Raised when an operation needs a CSRF token that was never fetched."""

    kind = "not_initialized"
    default_message = "Connection not initialised."


class PodConnectionError(PodError):
    """Raised when the sign-in page can't be reached or carries no token."""

    kind = "connection_error"
    default_message = "Failed to initialise connection to pod."


class NotLoggedInError(PodError):
    """Raised when an operation needs a session that is not logged in."""

    kind = "not_logged_in"
    default_message = "Not logged in."


class LoginFailedError(PodError):
    """Raised when the pod rejects the credentials."""

    kind = "login_failed"
    default_message = "Login failed. Check your login details."


class DiscoveryError(PodError):
    """Raised when loading aspects or services fails."""

    kind = "discovery_error"
    default_message = "Error loading aspects or services."


class PostError(PodError):
    """Raised when creating a status message fails."""

    kind = "post_error"
    default_message = _UNKNOWN_MSG


class DeleteError(PodError):
    """Raised when deleting a post or comment fails."""

    kind = "delete_error"
    default_message = _UNKNOWN_MSG


class NotFoundError(DeleteError):
    """The post or comment to delete does not exist (HTTP 404)."""

    kind = "not_found"


class ForbiddenError(DeleteError):
    """The post or comment to delete belongs to someone else (HTTP 403)."""

    kind = "forbidden"


class UnknownError(PodError):
    """Raised for responses the client has no specific handling for."""

    kind = "unknown_error"
