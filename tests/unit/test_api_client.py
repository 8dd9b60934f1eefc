"""
Unit tests for the API gateway client and the endpoint catalogue.

``requests.request`` is monkeypatched, so these tests check how each
outcome is folded into an ``ApiResult`` without any network traffic.

Key Concepts Demonstrated:
- Monkeypatching the HTTP layer
- Fake response objects as lightweight test doubles
- Asserting on the exact request that was sent
"""

from __future__ import annotations

import pytest
import requests

from taskboard_app.api import ApiClient, BackendApi, MultipartBody
from taskboard_app.errors import FailureKind

pytestmark = pytest.mark.unit

BASE_URL = "http://backend.test"


class _FakeResponse:
    """Minimal stand-in for :class:`requests.Response`."""

    def __init__(self, status_code: int, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


@pytest.fixture
def sent(monkeypatch):
    """Capture the keyword arguments of every outgoing request."""
    calls = []
    responses = []

    def _fake_request(**kwargs):
        calls.append(kwargs)
        outcome = responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr("taskboard_app.api.requests.request", _fake_request)
    return calls, responses


def test_success_returns_decoded_json(sent):
    """Test that a 2xx response yields ok=True with the parsed body."""
    # Arrange
    calls, responses = sent
    responses.append(_FakeResponse(200, [{"_id": "1"}]))
    client = ApiClient(BASE_URL, timeout=3)

    # Act
    result = client.call("GET", "/all-task", headers={"Authorization": "Bearer t"})

    # Assert
    assert result.ok
    assert result.status_code == 200
    assert result.data == [{"_id": "1"}]
    assert calls[0]["url"] == "http://backend.test/all-task"
    assert calls[0]["timeout"] == 3
    assert calls[0]["headers"] == {
        "Content-Type": "application/json",
        "Authorization": "Bearer t",
    }


def test_success_with_empty_body_has_no_data(sent):
    """Test that a 2xx response without JSON still counts as success."""
    # Arrange
    _, responses = sent
    responses.append(_FakeResponse(204))

    # Act
    result = ApiClient(BASE_URL).call("DELETE", "/tasks/1/delete-task")

    # Assert
    assert result.ok
    assert result.data is None


def test_dict_body_is_sent_as_json(sent):
    """Test that a dict body travels as JSON."""
    # Arrange
    calls, responses = sent
    responses.append(_FakeResponse(200, {}))

    # Act
    ApiClient(BASE_URL).call("POST", "/login", {"email": "a@b.co", "password": "x"})

    # Assert
    assert calls[0]["json"] == {"email": "a@b.co", "password": "x"}
    assert "files" not in calls[0]


def test_multipart_body_drops_json_content_type(sent):
    """Test that multipart bodies let requests choose the content type."""
    # Arrange
    calls, responses = sent
    responses.append(_FakeResponse(200, {}))
    body = MultipartBody(
        fields={"title": "T"},
        files={"taskImage": ("a.png", b"\x89PNG", "image/png")},
    )

    # Act
    ApiClient(BASE_URL).call("POST", "/add-task", body, {"Authorization": "Bearer t"})

    # Assert
    assert calls[0]["headers"] == {"Authorization": "Bearer t"}
    assert calls[0]["data"] == {"title": "T"}
    assert calls[0]["files"] == {"taskImage": ("a.png", b"\x89PNG", "image/png")}
    assert "json" not in calls[0]


def test_error_status_becomes_http_failure_with_server_message(sent):
    """Test that a non-2xx status is reported with the backend's message."""
    # Arrange
    _, responses = sent
    responses.append(_FakeResponse(404, {"message": "Task not found"}))

    # Act
    result = ApiClient(BASE_URL).call("GET", "/tasks/missing")

    # Assert
    assert not result.ok
    assert result.status_code == 404
    assert result.failure.kind is FailureKind.HTTP_ERROR
    assert result.failure.status_code == 404
    assert result.failure.message == "Task not found"


def test_error_field_is_used_when_message_is_absent(sent):
    """Test that ``error`` is read when the body has no ``message``."""
    # Arrange
    _, responses = sent
    responses.append(_FakeResponse(400, {"error": "Bad input"}))

    # Act
    result = ApiClient(BASE_URL).call("POST", "/add-task", {})

    # Assert
    assert result.failure.message == "Bad input"


def test_error_status_without_json_has_no_message(sent):
    """Test that an error body that is not JSON yields no message."""
    # Arrange
    _, responses = sent
    responses.append(_FakeResponse(500))

    # Act
    result = ApiClient(BASE_URL).call("GET", "/all-task")

    # Assert
    assert result.failure.kind is FailureKind.HTTP_ERROR
    assert result.failure.message is None


@pytest.mark.parametrize(
    "error",
    [requests.ConnectionError("refused"), requests.Timeout("slow")],
)
def test_no_response_becomes_network_failure(sent, error):
    """Test that connection errors and timeouts are network failures."""
    # Arrange
    _, responses = sent
    responses.append(error)

    # Act
    result = ApiClient(BASE_URL).call("GET", "/all-task")

    # Assert
    assert result.failure.kind is FailureKind.NETWORK_ERROR
    assert result.status_code is None


def test_other_request_errors_become_unexpected_failure(sent):
    """Test that any other requests exception is reported as unexpected."""
    # Arrange
    _, responses = sent
    responses.append(requests.exceptions.InvalidURL("bad url"))

    # Act
    result = ApiClient(BASE_URL).call("GET", "/all-task")

    # Assert
    assert result.failure.kind is FailureKind.UNEXPECTED


@pytest.mark.parametrize(
    "invoke, method, path",
    [
        (lambda api: api.list_tasks("t"), "GET", "/all-task"),
        (lambda api: api.list_all_tasks("t"), "GET", "/all-tasks"),
        (lambda api: api.list_users("t"), "GET", "/all-users"),
        (lambda api: api.get_task("t", "42"), "GET", "/tasks/42"),
        (lambda api: api.add_task("t", {}), "POST", "/add-task"),
        (lambda api: api.update_task("t", "42", {}), "PUT", "/tasks/42/edit-task"),
        (lambda api: api.delete_task("t", "42"), "DELETE", "/tasks/42/delete-task"),
        (lambda api: api.delete_user("t", "7"), "DELETE", "/user/7/remove"),
        (lambda api: api.update_profile("t", {}), "PUT", "/edit-user"),
    ],
)
def test_authenticated_endpoints_use_fixed_paths_and_bearer_token(
    sent, invoke, method, path
):
    """Test that each endpoint hits its backend path with the bearer header."""
    # Arrange
    calls, responses = sent
    responses.append(_FakeResponse(200, {}))
    api = BackendApi(ApiClient(BASE_URL))

    # Act
    invoke(api)

    # Assert
    assert calls[0]["method"] == method
    assert calls[0]["url"] == f"{BASE_URL}{path}"
    assert calls[0]["headers"]["Authorization"] == "Bearer t"


def test_register_and_login_send_no_authorization(sent):
    """Test that the account endpoints are called without a bearer token."""
    # Arrange
    calls, responses = sent
    responses.extend([_FakeResponse(200, {}), _FakeResponse(200, {})])
    api = BackendApi(ApiClient(BASE_URL))

    # Act
    api.register("alice", "alice@example.com", "secret")
    api.login("alice@example.com", "secret")

    # Assert
    assert [call["url"] for call in calls] == [
        f"{BASE_URL}/register",
        f"{BASE_URL}/login",
    ]
    assert all("Authorization" not in call["headers"] for call in calls)
    assert calls[0]["json"] == {
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret",
    }
