"""
Error taxonomy for the taskboard frontend.

Every failure the core can report falls into one of five kinds:

* ``ValidationError`` -- raised locally before any request is made.
* ``AuthRequired`` -- no token in the session, or the backend rejected it.
* ``NetworkError`` -- the backend could not be reached (no response).
* ``HttpError`` -- the backend answered with an error status.
* ``UnexpectedError`` -- anything else (e.g. an unparseable success body).

The API gateway client never raises; it folds transport and HTTP errors
into an :class:`ApiFailure` record.  Collection managers turn that record
into one of the exceptions above via :meth:`ApiFailure.to_error` so the
presentation layer can catch a single base class and flash its message.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TaskboardError(Exception):
    """Base class for every error surfaced to the presentation layer."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TaskboardError):
    """Local, pre-request validation failure."""

    default_message = "Please fill the form completely!"


class AuthRequired(TaskboardError):
    """The session carries no usable token."""

    default_message = "You need to be logged in to continue."


class NetworkError(TaskboardError):
    """The backend did not respond."""

    default_message = "Task service unavailable. Please try again later."


class HttpError(TaskboardError):
    """The backend responded with an error status."""

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        super().__init__(message or f"Request failed with status {status_code}.")


class UnexpectedError(TaskboardError):
    """A failure that fits none of the other kinds."""

    default_message = "An unexpected error occurred."


class FailureKind(str, Enum):
    """
    Distinguishes the failure arm of an API gateway result.

    Attributes:
        NETWORK_ERROR: No response was received (connection error, timeout).
        HTTP_ERROR: The backend answered with a non-2xx status.
        UNEXPECTED: The exchange failed for any other reason.
    """

    NETWORK_ERROR = "network_error"
    HTTP_ERROR = "http_error"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class ApiFailure:
    """
    Structured description of a failed backend call.

    Attributes:
        kind: Which of the three failure categories applies.
        status_code: HTTP status when the backend responded, else ``None``.
        message: Server-provided message when one was available.
    """

    kind: FailureKind
    status_code: int | None = None
    message: str | None = None

    @property
    def auth_expired(self) -> bool:
        return self.kind is FailureKind.HTTP_ERROR and self.status_code == 401

    def to_error(self, default: str | None = None) -> TaskboardError:
        """
        Map this failure onto the exception taxonomy.

        Args:
            default: Human-readable fallback used when the backend did not
                provide a message of its own.

        Returns:
            The matching :class:`TaskboardError` subclass instance.
        """
        message = self.message or default
        if self.kind is FailureKind.NETWORK_ERROR:
            return NetworkError(message)
        if self.auth_expired:
            return AuthRequired(self.message or "Session expired. Please log in again.")
        if self.kind is FailureKind.HTTP_ERROR:
            return HttpError(self.status_code or 0, message)
        return UnexpectedError(message)
