"""
Unit tests for taskboard data models and validation helpers.
"""

from __future__ import annotations

import pytest

from taskboard_app.errors import (
    ApiFailure,
    AuthRequired,
    FailureKind,
    HttpError,
    NetworkError,
    UnexpectedError,
    ValidationError,
)
from taskboard_app.models import (
    ExistingImage,
    NewUpload,
    NoImage,
    Task,
    TaskDraft,
    TaskStatus,
    User,
    UserProfile,
    validate_credentials,
    validate_registration,
)

pytestmark = pytest.mark.unit


def test_task_from_api_reads_backend_field_names():
    """Test that ``_id``, ``taskImage``, ``username`` and ``createdAt`` are mapped."""
    # Arrange
    payload = {
        "_id": "abc",
        "title": "Ship it",
        "description": "Release 1.0",
        "status": "inProgress",
        "progress": "40",
        "taskImage": "ship.png",
        "username": "alice",
        "createdAt": "2024-05-01T10:00:00Z",
    }

    # Act
    task = Task.from_api(payload)

    # Assert
    assert task.id == "abc"
    assert task.progress == 40
    assert task.image == ExistingImage("ship.png")
    assert task.owner == "alice"
    assert task.status_label == "In Progress"


def test_task_without_image_has_no_image_variant():
    """Test that a task with no stored image maps to NoImage."""
    # Act
    task = Task.from_api({"id": 7, "title": "t", "taskImage": ""})

    # Assert
    assert task.id == "7"
    assert task.image == NoImage()


def test_legacy_status_is_displayed_as_is():
    """Test that free-form statuses are shown without re-validation."""
    # Act / Assert
    assert Task(id="1", title="t", status="In Progress").status_label == "In Progress"
    assert Task(id="1", title="t", status="").status_label == "Pending"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("inProgress", TaskStatus.IN_PROGRESS),
        ("In Progress", TaskStatus.IN_PROGRESS),
        ("in-progress", TaskStatus.IN_PROGRESS),
        ("Completed", TaskStatus.COMPLETED),
        ("pending", TaskStatus.PENDING),
        ("Blocked", None),
        ("", None),
    ],
)
def test_legacy_status_maps_onto_form_option(raw, expected):
    """Test that stored statuses resolve to the matching form option when one exists."""
    # Act / Assert
    assert Task(id="1", title="t", status=raw).form_status is expected


def test_draft_from_task_keeps_existing_image():
    """Test that editing a task starts from its stored image."""
    # Arrange
    task = Task(id="1", title="t", description="d", status="completed", progress=100, image_ref="a.gif")

    # Act
    draft = TaskDraft.from_task(task)

    # Assert
    assert draft.image == ExistingImage("a.gif")
    assert draft.json_body()["taskImage"] == "a.gif"


@pytest.mark.parametrize("title, description", [("", "d"), ("t", "   ")])
def test_draft_requires_title_and_description(title, description):
    """Test that blank required fields are rejected."""
    # Act / Assert
    with pytest.raises(ValidationError, match="Please fill the task name and description!"):
        TaskDraft(title=title, description=description).validate()


def test_draft_accepts_progress_bounds():
    """Test that 0 and 100 are both valid progress values."""
    # Act / Assert
    TaskDraft(title="t", description="d", progress=0).validate()
    TaskDraft(title="t", description="d", progress=100).validate()


def test_draft_accepts_every_status():
    """Test that each enumerated status validates."""
    # Act / Assert
    for status in TaskStatus:
        TaskDraft(title="t", description="d", status=status.value).validate()


@pytest.mark.parametrize(
    "mimetype, size, message",
    [
        ("image/webp", 10, "Invalid file type"),
        ("image/png", 6 * 1024 * 1024, "File is too large. Maximum size is 5MB."),
    ],
)
def test_upload_rules(mimetype, size, message):
    """Test that the image type and size limits are enforced."""
    # Arrange
    upload = NewUpload(filename="f", content=b"x" * size, mimetype=mimetype)

    # Act / Assert
    with pytest.raises(ValidationError, match=message):
        upload.validate()


def test_user_display_name_fallback_chain():
    """Test that name, then username, then email is displayed."""
    # Act / Assert
    assert User(id="1", email="e@x.io", name="Ann", username="ann").display_name == "Ann"
    assert User(id="1", email="e@x.io", username="ann").display_name == "ann"
    assert User(id="1", email="e@x.io").display_name == "e@x.io"


def test_user_role_falls_back_to_user_type():
    """Test that ``userType`` is read when ``role`` is absent."""
    # Act
    user = User.from_api({"_id": "1", "email": "e@x.io", "userType": "admin"})

    # Assert
    assert user.role == "admin"
    assert user.role_badge == "danger"


def test_profile_round_trips_through_session_shape():
    """Test that the stored session shape rebuilds the same profile."""
    # Arrange
    profile = UserProfile(username="a", email="a@x.io", role="admin", avatar_ref="p.png")

    # Act
    data = profile.to_dict()

    # Assert
    assert data["profileImage"] == "p.png"
    assert UserProfile.from_dict(data) == profile
    assert profile.is_admin


def test_registration_requires_every_field():
    """Test that a blank registration field is rejected."""
    # Act / Assert
    with pytest.raises(ValidationError, match="Please fill the form completely!"):
        validate_registration("", "a@x.io", "pw")


def test_credentials_require_valid_email():
    """Test that a malformed email is rejected before login."""
    # Act / Assert
    with pytest.raises(ValidationError, match="valid email"):
        validate_credentials("not-an-email", "pw")


@pytest.mark.parametrize(
    "failure, expected",
    [
        (ApiFailure(FailureKind.NETWORK_ERROR), NetworkError),
        (ApiFailure(FailureKind.HTTP_ERROR, 401), AuthRequired),
        (ApiFailure(FailureKind.HTTP_ERROR, 500, "boom"), HttpError),
        (ApiFailure(FailureKind.UNEXPECTED), UnexpectedError),
    ],
)
def test_failure_maps_onto_error_taxonomy(failure, expected):
    """Test that each failure kind becomes the matching exception."""
    # Act
    error = failure.to_error("fallback")

    # Assert
    assert isinstance(error, expected)
    assert error.message


def test_failure_without_server_message_uses_default():
    """Test that the caller's default message fills a missing server message."""
    # Act
    error = ApiFailure(FailureKind.HTTP_ERROR, 500).to_error("Error deleting task")

    # Assert
    assert error.message == "Error deleting task"
    assert error.status_code == 500
