"""
HTTP access to the task backend.

Two layers live here:

1. :class:`ApiClient` -- the gateway.  Its single ``call`` method issues
   one HTTP request and folds the outcome into an :class:`ApiResult`.  It
   never raises for connection errors, timeouts or error statuses; those
   become the result's ``failure`` arm (see :class:`ApiFailure`).
2. :class:`BackendApi` -- one thin method per backend endpoint.  The
   paths are a compatibility surface with the backend and must not drift.

Request bodies are JSON unless the caller passes a :class:`MultipartBody`,
in which case ``requests`` builds the ``multipart/form-data`` payload and
its boundary, so no JSON content-type is attached.

Key Concepts Demonstrated:
- Result objects instead of exceptions for expected HTTP failures
- Per-call timeout from configuration
- Bearer-token authorization headers
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

from .errors import ApiFailure, FailureKind

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass(frozen=True)
class MultipartBody:
    """
    A ``multipart/form-data`` request body.

    Attributes:
        fields: Plain text form fields.
        files: File parts keyed by field name, each a
            ``(filename, content, mimetype)`` triple.
    """

    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, tuple[str, bytes, str]] = field(default_factory=dict)


@dataclass(frozen=True)
class ApiResult:
    """
    Outcome of one backend call: either a success payload or a failure.

    Attributes:
        status_code: HTTP status of the response, ``None`` when no
            response was received.
        data: Decoded JSON body on success (``None`` for empty bodies).
        failure: Populated when the call did not succeed.
    """

    status_code: int | None = None
    data: Any = None
    failure: ApiFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def bearer_headers(token: str) -> dict[str, str]:
    """Build the Authorization header for an authenticated request."""
    return {"Authorization": f"Bearer {token}"}


def _response_message(response: requests.Response) -> str | None:
    """
    Extract an error message from a JSON API response if possible.

    Reads ``message`` first and ``error`` second; returns ``None`` when the
    body is not JSON or neither field holds a non-blank string.
    """
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    for key in ("message", "error"):
        message = payload.get(key)
        if isinstance(message, str) and message.strip():
            return message
    return None


class ApiClient:
    """
    Gateway to the task backend.

    Args:
        base_url: Backend root URL (e.g. ``http://localhost:3000``).
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, base_url: str, timeout: float = 5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def call(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | MultipartBody | None = None,
        headers: dict[str, str] | None = None,
    ) -> ApiResult:
        """
        Issue one HTTP request and normalise its outcome.

        Args:
            method: HTTP method (``"GET"``, ``"POST"``, ``"PUT"``, ...).
            path: Path relative to the backend root (e.g. ``"/all-task"``).
            body: JSON-serialisable dict, a :class:`MultipartBody`, or
                ``None`` for no body.
            headers: Extra headers; they override the JSON content-type
                default key by key.

        Returns:
            An :class:`ApiResult`.  A 2xx response yields ``ok=True``; any
            other outcome yields a populated ``failure``.  No retries are
            attempted.
        """
        request_headers = {**JSON_HEADERS, **(headers or {})}
        kwargs: dict[str, Any] = {}
        if isinstance(body, MultipartBody):
            # requests sets multipart/form-data with its own boundary.
            request_headers = {
                name: value
                for name, value in request_headers.items()
                if name.lower() != "content-type"
            }
            kwargs["data"] = body.fields
            kwargs["files"] = body.files or None
        elif body is not None:
            kwargs["json"] = body

        logger.debug("%s %s", method, path)
        try:
            response = requests.request(
                method=method,
                url=self.url_for(path),
                headers=request_headers,
                timeout=self.timeout,
                **kwargs,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            logger.warning("%s %s failed: no response (%s)", method, path, exc)
            return ApiResult(failure=ApiFailure(FailureKind.NETWORK_ERROR))
        except requests.RequestException as exc:
            logger.warning("%s %s failed unexpectedly: %s", method, path, exc)
            return ApiResult(failure=ApiFailure(FailureKind.UNEXPECTED))

        if not 200 <= response.status_code < 300:
            failure = ApiFailure(
                FailureKind.HTTP_ERROR,
                status_code=response.status_code,
                message=_response_message(response),
            )
            logger.warning(
                "%s %s failed: HTTP %s", method, path, response.status_code
            )
            return ApiResult(status_code=response.status_code, failure=failure)

        try:
            data = response.json()
        except ValueError:
            data = None
        return ApiResult(status_code=response.status_code, data=data)


class BackendApi:
    """
    Endpoint catalogue of the task backend.

    Every authenticated method takes the bearer ``token`` explicitly; the
    caller (a collection manager) obtains it from the session store.
    """

    def __init__(self, client: ApiClient):
        self.client = client

    # Accounts ---------------------------------------------------------

    def register(self, username: str, email: str, password: str) -> ApiResult:
        return self.client.call(
            "POST",
            "/register",
            {"username": username, "email": email, "password": password},
        )

    def login(self, email: str, password: str) -> ApiResult:
        return self.client.call("POST", "/login", {"email": email, "password": password})

    def update_profile(self, token: str, body: dict[str, Any] | MultipartBody) -> ApiResult:
        return self.client.call("PUT", "/edit-user", body, bearer_headers(token))

    # Tasks ------------------------------------------------------------

    def list_tasks(self, token: str) -> ApiResult:
        return self.client.call("GET", "/all-task", headers=bearer_headers(token))

    def list_all_tasks(self, token: str) -> ApiResult:
        return self.client.call("GET", "/all-tasks", headers=bearer_headers(token))

    def get_task(self, token: str, task_id: str) -> ApiResult:
        return self.client.call("GET", f"/tasks/{task_id}", headers=bearer_headers(token))

    def add_task(self, token: str, body: dict[str, Any] | MultipartBody) -> ApiResult:
        return self.client.call("POST", "/add-task", body, bearer_headers(token))

    def update_task(
        self, token: str, task_id: str, body: dict[str, Any] | MultipartBody
    ) -> ApiResult:
        return self.client.call(
            "PUT", f"/tasks/{task_id}/edit-task", body, bearer_headers(token)
        )

    def delete_task(self, token: str, task_id: str) -> ApiResult:
        return self.client.call(
            "DELETE", f"/tasks/{task_id}/delete-task", headers=bearer_headers(token)
        )

    # Users (admin) ----------------------------------------------------

    def list_users(self, token: str) -> ApiResult:
        return self.client.call("GET", "/all-users", headers=bearer_headers(token))

    def delete_user(self, token: str, user_id: str) -> ApiResult:
        return self.client.call(
            "DELETE", f"/user/{user_id}/remove", headers=bearer_headers(token)
        )
