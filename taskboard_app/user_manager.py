"""
User collection manager for the admin console.

Mirrors the task manager's contract on a smaller surface: ``load``
replaces the base list wholesale or keeps it and records an error,
``remove`` drops a user only after the backend confirms, and
``apply_filter`` is a pure search over the base list.

Also home to :func:`load_dashboard`, which gathers the admin dashboard
figures from both managers and reports each failure independently.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field

from .api import BackendApi
from .errors import AuthRequired, TaskboardError, UnexpectedError
from .models import Task, User
from .session_store import SessionStore
from .task_manager import TaskCollectionManager

logger = logging.getLogger(__name__)


class UserCollectionManager:
    """
    Base list of all users, visible to admins only.

    Args:
        session: Source of the bearer token.
        api: Backend endpoint catalogue.
    """

    def __init__(self, session: SessionStore, api: BackendApi):
        self.session = session
        self.api = api
        self.error: str | None = None
        self._users: list[User] = []
        self._lock = threading.Lock()
        self._load_sequence = itertools.count(1)
        self._latest_load = 0

    @property
    def users(self) -> list[User]:
        with self._lock:
            return list(self._users)

    def _require_token(self) -> str:
        token = self.session.token
        if token is None:
            self.error = AuthRequired.default_message
            raise AuthRequired()
        return token

    def load(self) -> list[User]:
        """
        Fetch every user and replace the base list.

        Raises:
            AuthRequired, NetworkError, HttpError, UnexpectedError: The
                previous base list is kept and ``error`` is set.
        """
        token = self._require_token()
        with self._lock:
            sequence = next(self._load_sequence)
            self._latest_load = sequence

        result = self.api.list_users(token)

        with self._lock:
            if sequence != self._latest_load:
                logger.info("Discarding stale user load #%s", sequence)
                return list(self._users)
            if not result.ok:
                error = result.failure.to_error("An error occurred while fetching users")
                self.error = error.message
                raise error
            if not isinstance(result.data, list):
                self.error = "Failed to fetch users"
                raise UnexpectedError(self.error)
            self._users = [User.from_api(item) for item in result.data if isinstance(item, dict)]
            self.error = None
            return list(self._users)

    def remove(self, user_id: str) -> None:
        """
        Delete a user, dropping it from the base list after confirmation.

        Raises:
            AuthRequired, NetworkError, HttpError: The list is unchanged.
        """
        token = self._require_token()
        result = self.api.delete_user(token, user_id)
        if not result.ok:
            error = result.failure.to_error("Error deleting user")
            self.error = error.message
            raise error
        with self._lock:
            self._users = [user for user in self._users if user.id != user_id]
        self.error = None
        logger.info("Removed user %s", user_id)

    def apply_filter(self, search_term: str = "") -> list[User]:
        """
        Return users whose email, name or username contains ``search_term``.

        Matching is case-insensitive and checks all three fields.
        """
        needle = (search_term or "").lower()
        users = self.users
        if not needle:
            return users
        return [
            user
            for user in users
            if needle in user.email.lower()
            or (user.name and needle in user.name.lower())
            or (user.username and needle in user.username.lower())
        ]


@dataclass
class DashboardSummary:
    """Figures shown on the admin dashboard."""

    user_count: int = 0
    task_count: int = 0
    recent_tasks: list[Task] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def error(self) -> str | None:
        return "; ".join(self.errors) if self.errors else None


def load_dashboard(
    users: UserCollectionManager,
    tasks: TaskCollectionManager,
    recent_limit: int = 5,
) -> DashboardSummary:
    """
    Load users and tasks for the dashboard; one failing does not stop the other.

    Raises:
        AuthRequired: The session has no usable token.
    """
    summary = DashboardSummary()
    try:
        summary.user_count = len(users.load())
    except AuthRequired:
        raise
    except TaskboardError as error:
        summary.errors.append(f"Failed to load users: {error.message}")

    try:
        tasks.load()
        summary.task_count = len(tasks.tasks)
        summary.recent_tasks = tasks.recent(recent_limit)
    except AuthRequired:
        raise
    except TaskboardError as error:
        summary.errors.append(f"Failed to load tasks: {error.message}")

    return summary
