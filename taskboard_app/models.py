"""
Taskboard data models.

Defines the records exchanged with the task backend (tasks, users, the
logged-in profile), the enumerations used on forms, and the local
validation applied to task drafts before anything is sent over the wire.

A task's image is modelled as a tagged variant rather than a field that
is sometimes a file, sometimes a URL string and sometimes an empty
string:

* ``NoImage`` -- the task has no image and none is being attached.
* ``ExistingImage`` -- keep the image the backend already stores.
* ``NewUpload`` -- replace (or add) the image with uploaded bytes.
* ``RemovedImage`` -- explicitly drop the stored image.

Key Concepts Demonstrated:
- ``str``/``Enum`` dual inheritance for ergonomic serialisation
- Immutable dataclasses for records received from the backend
- Tolerant parsing of backend payloads (``_id`` vs ``id``)
- Validation helpers that raise before any network call
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DEFAULT_ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif")
DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024


class TaskStatus(str, Enum):
    """
    Task lifecycle statuses accepted on the task forms.

    The admin console also displays legacy free-form values such as
    ``"In Progress"``; those are shown as-is and never re-validated.

    Attributes:
        PENDING: Task has been created but work has not started.
        IN_PROGRESS: Task is actively being worked on.
        COMPLETED: Task has been finished.
    """

    PENDING = "pending"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        return {
            TaskStatus.PENDING: "Pending",
            TaskStatus.IN_PROGRESS: "In Progress",
            TaskStatus.COMPLETED: "Completed",
        }[self]

    @classmethod
    def match(cls, raw: str | None) -> "TaskStatus | None":
        """
        Find the status ``raw`` names, by value or by label.

        Comparison ignores case, spaces, hyphens and underscores, so the
        legacy ``"In Progress"`` maps to ``IN_PROGRESS``.
        """
        key = re.sub(r"[\s_-]", "", raw or "").lower()
        for status in cls:
            if key in (status.value.lower(), status.label.replace(" ", "").lower()):
                return status
        return None


class UserRole(str, Enum):
    """Roles the backend assigns to accounts."""

    ADMIN = "admin"
    USER = "User"


# ---------------------------------------------------------------------
# Task image variant
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class NoImage:
    """No image is attached and none is stored."""


@dataclass(frozen=True)
class ExistingImage:
    """Keep the image already stored by the backend under ``ref``."""

    ref: str


@dataclass(frozen=True)
class NewUpload:
    """
    Freshly uploaded image bytes.

    Attributes:
        filename: Client-side file name, forwarded in the multipart body.
        content: Raw file bytes.
        mimetype: Declared MIME type (``image/png`` etc.).
    """

    filename: str
    content: bytes = field(repr=False)
    mimetype: str

    @property
    def size(self) -> int:
        return len(self.content)

    def validate(
        self,
        max_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
        allowed_types: tuple[str, ...] = DEFAULT_ALLOWED_IMAGE_TYPES,
    ) -> None:
        """Reject uploads that are too large or of an unsupported type."""
        if self.size > max_bytes:
            limit_mb = max_bytes // (1024 * 1024)
            raise ValidationError(f"File is too large. Maximum size is {limit_mb}MB.")
        if self.mimetype not in allowed_types:
            raise ValidationError("Invalid file type. Please upload a JPEG, PNG, or GIF.")

    def as_file_tuple(self) -> tuple[str, bytes, str]:
        """Return the ``(filename, content, mimetype)`` triple ``requests`` expects."""
        return (self.filename, self.content, self.mimetype)


@dataclass(frozen=True)
class RemovedImage:
    """The stored image is to be dropped on the next update."""


TaskImage = Union[NoImage, ExistingImage, NewUpload, RemovedImage]


# ---------------------------------------------------------------------
# Records received from the backend
# ---------------------------------------------------------------------


def _record_id(data: dict[str, Any]) -> str:
    return str(data.get("_id") or data.get("id") or "")


def _as_progress(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class Task:
    """
    A task as returned by the backend.

    Attributes:
        id: Server-assigned identifier; immutable once created.
        title: Short summary of the task.
        description: Longer text describing the work.
        status: Raw status string (see ``TaskStatus``; legacy values kept).
        progress: Completion percentage.
        image_ref: Name of the stored image, if any.
        owner: Username of the creating user, when the backend sends it.
        created_at: ISO-8601 creation timestamp, when the backend sends it.
    """

    id: str
    title: str
    description: str = ""
    status: str = TaskStatus.PENDING.value
    progress: int = 0
    image_ref: str | None = None
    owner: str | None = None
    created_at: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Task":
        """Build a task from a backend JSON object."""
        return cls(
            id=_record_id(data),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            status=str(data.get("status") or ""),
            progress=_as_progress(data.get("progress")),
            image_ref=data.get("taskImage") or data.get("image") or None,
            owner=data.get("username") or data.get("author") or None,
            created_at=data.get("createdAt") or None,
        )

    @property
    def image(self) -> TaskImage:
        return ExistingImage(self.image_ref) if self.image_ref else NoImage()

    @property
    def status_label(self) -> str:
        for status in TaskStatus:
            if status.value == self.status:
                return status.label
        return self.status or "Pending"

    @property
    def form_status(self) -> TaskStatus | None:
        """The form option matching the stored status, legacy spellings included."""
        return TaskStatus.match(self.status)

    def field_value(self, name: str) -> Any:
        """
        Return the value used when sorting by ``name``.

        ``progress`` stays numeric; every other field is compared as a
        string, with missing values sorting as the empty string.
        """
        if name == "progress":
            return self.progress
        value = getattr(self, name, None)
        return "" if value is None else str(value)


@dataclass(frozen=True)
class User:
    """
    A user account as listed in the admin console.

    Attributes:
        id: Server-assigned identifier.
        email: Account e-mail address.
        name: Optional display name.
        username: Optional login name.
        role: Optional role string.
    """

    id: str
    email: str = ""
    name: str | None = None
    username: str | None = None
    role: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "User":
        """Build a user from a backend JSON object."""
        return cls(
            id=_record_id(data),
            email=str(data.get("email") or ""),
            name=data.get("name") or None,
            username=data.get("username") or None,
            role=data.get("role") or data.get("userType") or None,
        )

    @property
    def display_name(self) -> str:
        return self.name or self.username or self.email

    @property
    def role_badge(self) -> str:
        return {
            "admin": "danger",
            "moderator": "warning",
            "editor": "info",
        }.get((self.role or "").lower(), "secondary")


@dataclass(frozen=True)
class UserProfile:
    """
    The logged-in user's profile as kept in the session.

    The JSON shape produced by :meth:`to_dict` is what the session store
    persists under the ``user`` key.
    """

    username: str
    email: str
    role: str = UserRole.USER.value
    avatar_ref: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "username": self.username,
            "email": self.email,
            "role": self.role,
        }
        if self.avatar_ref:
            data["profileImage"] = self.avatar_ref
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserProfile":
        return cls(
            username=str(data.get("username") or ""),
            email=str(data.get("email") or ""),
            role=str(data.get("role") or UserRole.USER.value),
            avatar_ref=data.get("profileImage") or None,
        )


# ---------------------------------------------------------------------
# Drafts and validation
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class TaskDraft:
    """
    The full set of client-editable task fields.

    Used both for creation and for full-record replacement on update;
    ``image`` tells the update how to treat the stored image.
    """

    title: str
    description: str
    status: str = TaskStatus.PENDING.value
    progress: int = 0
    image: TaskImage = field(default_factory=NoImage)

    @classmethod
    def from_task(cls, task: Task) -> "TaskDraft":
        return cls(
            title=task.title,
            description=task.description,
            status=task.status,
            progress=task.progress,
            image=task.image,
        )

    def validate(
        self,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
        allowed_image_types: tuple[str, ...] = DEFAULT_ALLOWED_IMAGE_TYPES,
    ) -> None:
        """
        Apply the required-field and format checks.

        Raises:
            ValidationError: If title or description is blank, the status
                is not a known value, progress falls outside [0, 100], or
                a new upload breaks the image rules.
        """
        if not self.title.strip() or not self.description.strip():
            raise ValidationError("Please fill the task name and description!")
        if self.status not in [status.value for status in TaskStatus]:
            raise ValidationError(
                f"Invalid status. Must be one of: {[s.value for s in TaskStatus]}"
            )
        if isinstance(self.progress, bool) or not isinstance(self.progress, int):
            raise ValidationError("Progress must be a whole number")
        if not 0 <= self.progress <= 100:
            raise ValidationError("Progress must be between 0 and 100")
        if isinstance(self.image, NewUpload):
            self.image.validate(max_image_bytes, allowed_image_types)

    def form_fields(self) -> dict[str, str]:
        """Return the text fields as sent in a multipart body."""
        return {
            "title": self.title.strip(),
            "description": self.description.strip(),
            "status": self.status,
            "progress": str(self.progress),
        }

    def json_body(self) -> dict[str, Any]:
        """Return the JSON body for a request without a new upload."""
        body: dict[str, Any] = {
            "title": self.title.strip(),
            "description": self.description.strip(),
            "status": self.status,
            "progress": self.progress,
        }
        if isinstance(self.image, ExistingImage):
            body["taskImage"] = self.image.ref
        elif isinstance(self.image, RemovedImage):
            body["taskImage"] = ""
        return body


def validate_registration(username: str, email: str, password: str) -> None:
    """Check the registration form before calling the backend."""
    if not username.strip() or not email.strip() or not password:
        raise ValidationError("Please fill the form completely!")
    validate_email(email)


def validate_credentials(email: str, password: str) -> None:
    """Check the login form before calling the backend."""
    if not email.strip() or not password:
        raise ValidationError("Please fill the form completely!")
    validate_email(email)


def validate_email(email: str) -> None:
    if not EMAIL_PATTERN.match(email.strip()):
        raise ValidationError("Please enter a valid email address.")
