"""
Shared pytest fixtures for the taskboard frontend test suite.

The frontend keeps no database, so the fixture set is small: the Flask
app and client, a logged-in session helper, Faker-driven factories for
backend payloads, and a stub for the single outbound HTTP call
(``requests.request`` inside the API gateway client).

Key Concepts Demonstrated:
- Fixture scoping (session vs. function) for performance and isolation
- Environment variable overrides before the app is imported
- Test data factories built on Faker
- Monkeypatching the HTTP layer instead of running a backend
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

import pytest
from faker import Faker

from shared.test_helpers import TEST_PUBLIC_KEY, create_test_token

# Set testing environment before importing app
os.environ["FLASK_ENV"] = "testing"
os.environ["TEST_JWT_PUBLIC_KEY"] = TEST_PUBLIC_KEY

from taskboard_app import create_app  # noqa: E402
from taskboard_app.models import Task, TaskStatus  # noqa: E402

fake = Faker()


class FakeResponse:
    """
    Minimal stand-in for :class:`requests.Response`.

    Provides ``status_code`` and ``json()``, the only two things the
    gateway client reads.  ``payload=None`` makes ``json()`` raise
    ``ValueError`` like an empty body would.
    """

    def __init__(self, status_code: int, payload: Any = None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class RecordingBackend:
    """
    Scripted replacement for ``requests.request``.

    Responses are registered per ``(method, path)``; every call is
    recorded so tests can assert on what was sent.  A registered value
    may be an exception instance, which is raised instead of returning.
    """

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")
        self.calls: list[dict[str, Any]] = []
        self._routes: dict[tuple[str, str], Any] = {}

    def on(self, method: str, path: str, status_code: int = 200, payload: Any = None):
        self._routes[(method.upper(), path)] = FakeResponse(status_code, payload)

    def fail(self, method: str, path: str, error: Exception):
        self._routes[(method.upper(), path)] = error

    def paths(self) -> list[tuple[str, str]]:
        return [(call["method"], call["path"]) for call in self.calls]

    def __call__(self, **kwargs):
        path = kwargs["url"][len(self.base_url):]
        self.calls.append({**kwargs, "path": path})
        outcome = self._routes.get((kwargs["method"], path))
        if outcome is None:
            raise AssertionError(f"Unexpected backend call: {kwargs['method']} {path}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def app():
    """
    Provide the Flask application instance for the entire test session.

    Creates the app once with the 'testing' config and reuses it across
    all tests to avoid repeated startup overhead.
    """
    application = create_app("testing")
    yield application


@pytest.fixture(scope="function")
def client(app):
    """
    Provide a Flask test client scoped to a single test function.

    A new client per test keeps cookies (and so the session) from
    leaking between tests.
    """
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def backend(app, monkeypatch) -> RecordingBackend:
    """Replace the gateway's ``requests.request`` with a scripted backend."""
    recording = RecordingBackend(app.config["BACKEND_URL"])
    monkeypatch.setattr("taskboard_app.api.requests.request", recording)
    return recording


@pytest.fixture
def login_as(client) -> Callable[..., str]:
    """
    Return a helper that writes a logged-in session into the cookie.

    Example:
        def test_something(client, login_as):
            token = login_as(role="admin")
    """

    def _login(username: str = "demo", role: str = "User", email: str | None = None) -> str:
        token = create_test_token(username=username, role=role)
        with client.session_transaction() as sess:
            sess["token"] = token
            sess["user"] = {
                "username": username,
                "email": email or f"{username}@example.com",
                "role": role,
            }
        return token

    return _login


# -----------------------------------------------------------------------------
# Test Data Factory Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def task_payload_factory() -> Callable[..., dict[str, Any]]:
    """
    Factory fixture for backend task JSON objects.

    Returns:
        Function building one ``/all-task`` style record with random
        defaults that any keyword argument overrides.
    """

    def _create(**overrides: Any) -> dict[str, Any]:
        payload = {
            "_id": fake.uuid4(),
            "title": fake.sentence(nb_words=3).rstrip("."),
            "description": fake.sentence(nb_words=8),
            "status": TaskStatus.PENDING.value,
            "progress": fake.random_int(min=0, max=100),
            "username": fake.user_name(),
            "createdAt": fake.iso8601(),
        }
        payload.update(overrides)
        return payload

    return _create


@pytest.fixture
def task_factory(task_payload_factory) -> Callable[..., Task]:
    """Factory fixture for :class:`Task` records."""

    def _create(**overrides: Any) -> Task:
        return Task.from_api(task_payload_factory(**overrides))

    return _create


@pytest.fixture
def user_payload_factory() -> Callable[..., dict[str, Any]]:
    """Factory fixture for backend user JSON objects."""

    def _create(**overrides: Any) -> dict[str, Any]:
        payload = {
            "_id": fake.uuid4(),
            "email": fake.unique.email(),
            "name": fake.name(),
            "username": fake.unique.user_name(),
            "role": "User",
        }
        payload.update(overrides)
        return payload

    return _create
