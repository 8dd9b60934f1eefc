"""
Task collection manager.

Owns the *base list* -- the tasks returned by the last successful
``load()`` -- for one session, and every operation that changes it.  The
presentation layer never mutates the list directly.

Mutations follow a confirm-then-apply rule:

* ``add`` appends the server-returned task only after the backend
  confirms, because the backend assigns the id.
* ``remove`` drops the record only after a 2xx response.
* ``update`` sends the full record and leaves the list alone; callers
  refresh with ``load()`` or ``replace()``.
* A failed ``load()`` keeps the previous list and records an error.

Derived views (filter, search, sort, paginate) are computed by the pure
:func:`apply_view` from the full base list every time, so they can never
drift from it.

Each ``load()`` carries a monotonic sequence number; a response that
settles after a newer load was issued is discarded.  Writes to the base
list are serialized with a lock so a threaded server keeps a single
writer.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .api import ApiResult, BackendApi, MultipartBody
from .errors import AuthRequired, TaskboardError, UnexpectedError
from .models import (
    DEFAULT_ALLOWED_IMAGE_TYPES,
    DEFAULT_MAX_IMAGE_BYTES,
    NewUpload,
    Task,
    TaskDraft,
)
from .session_store import SessionStore

logger = logging.getLogger(__name__)

STATUS_ALL = "all"
SORTABLE_FIELDS = ("title", "description", "status", "progress", "owner", "created_at")
NUMERIC_FIELDS = frozenset({"progress"})


class SortDirection(str, Enum):
    """Two-way sort order."""

    ASC = "asc"
    DESC = "desc"

    @property
    def flipped(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class TaskScope(str, Enum):
    """Which task set a manager loads."""

    OWN = "own"
    ALL = "all"


# =====================================================================
# Derived view
# =====================================================================


@dataclass(frozen=True)
class TaskView:
    """
    One page of the filtered and sorted base list.

    Attributes:
        items: Tasks on the current page, in display order.
        total_pages: ``ceil(total_count / page_size)``.
        current_page: 1-based page number actually shown.
        total_count: Number of tasks that passed the filters.
    """

    items: list[Task]
    total_pages: int
    current_page: int
    total_count: int

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    def page_numbers(self, max_links: int = 5) -> list[int]:
        """Return a window of at most ``max_links`` page numbers around the current page."""
        if self.total_pages < 1:
            return []
        start = max(1, self.current_page - max_links // 2)
        end = start + max_links - 1
        if end > self.total_pages:
            end = self.total_pages
            start = max(1, end - max_links + 1)
        return list(range(start, end + 1))


def _matches_search(task: Task, needle: str) -> bool:
    return needle in task.title.lower() or needle in task.description.lower()


def apply_view(
    tasks: Sequence[Task],
    search_term: str = "",
    status_filter: str = STATUS_ALL,
    sort_field: str = "title",
    sort_direction: SortDirection | str = SortDirection.ASC,
    page: int = 1,
    page_size: int = 5,
) -> TaskView:
    """
    Project a base list into one page of a filtered, sorted view.

    Steps, in order: status equality filter (skipped for ``"all"``),
    case-insensitive substring search over title or description, stable
    sort on ``sort_field`` (numeric for ``progress``, string otherwise;
    ties keep their base-list order in both directions), then a 1-based
    slice of ``page_size`` items.  ``page`` is clamped into the valid
    range.  The input sequence is never modified.

    Raises:
        ValueError: If ``page_size`` is not positive or ``sort_field`` is
            not sortable.
    """
    if page_size < 1:
        raise ValueError("page_size must be a positive integer")
    if sort_field not in SORTABLE_FIELDS:
        raise ValueError(f"Cannot sort by '{sort_field}'")
    direction = SortDirection(sort_direction)

    result = list(tasks)
    if status_filter and status_filter != STATUS_ALL:
        result = [task for task in result if task.status == status_filter]

    needle = (search_term or "").lower()
    if needle:
        result = [task for task in result if _matches_search(task, needle)]

    # sorted() is stable, and stays stable with reverse=True.
    result = sorted(
        result,
        key=lambda task: task.field_value(sort_field),
        reverse=direction is SortDirection.DESC,
    )

    total_count = len(result)
    total_pages = math.ceil(total_count / page_size)
    current_page = min(max(page, 1), max(total_pages, 1))
    start = (current_page - 1) * page_size
    return TaskView(
        items=result[start : start + page_size],
        total_pages=total_pages,
        current_page=current_page,
        total_count=total_count,
    )


@dataclass(frozen=True)
class ViewState:
    """
    The four filter/sort inputs plus the current page.

    Changing any criterion through :meth:`with_criteria` or
    :meth:`toggle_sort` resets the page to 1; only :meth:`go_to` moves
    between pages.
    """

    search_term: str = ""
    status_filter: str = STATUS_ALL
    sort_field: str = "title"
    sort_direction: SortDirection = SortDirection.ASC
    page: int = 1

    @classmethod
    def from_args(cls, args: Any) -> "ViewState":
        """Build a state from query-string style arguments, ignoring junk values."""
        sort_field = args.get("sort", "title")
        if sort_field not in SORTABLE_FIELDS:
            sort_field = "title"
        try:
            direction = SortDirection(args.get("direction", SortDirection.ASC.value))
        except ValueError:
            direction = SortDirection.ASC
        try:
            page = int(args.get("page", 1))
        except (TypeError, ValueError):
            page = 1
        return cls(
            search_term=args.get("search", "") or "",
            status_filter=args.get("status", STATUS_ALL) or STATUS_ALL,
            sort_field=sort_field,
            sort_direction=direction,
            page=max(page, 1),
        )

    def with_criteria(
        self,
        *,
        search_term: str | None = None,
        status_filter: str | None = None,
        sort_field: str | None = None,
        sort_direction: SortDirection | None = None,
    ) -> "ViewState":
        updated = replace(
            self,
            search_term=self.search_term if search_term is None else search_term,
            status_filter=self.status_filter if status_filter is None else status_filter,
            sort_field=self.sort_field if sort_field is None else sort_field,
            sort_direction=self.sort_direction if sort_direction is None else sort_direction,
        )
        if updated == self:
            return self
        return replace(updated, page=1)

    def toggle_sort(self, field: str) -> "ViewState":
        """Flip the direction for the current field, or sort a new field ascending."""
        if field == self.sort_field:
            return self.with_criteria(sort_direction=self.sort_direction.flipped)
        return self.with_criteria(sort_field=field, sort_direction=SortDirection.ASC)

    def go_to(self, page: int, total_pages: int) -> "ViewState":
        """Move to ``page`` clamped into ``[1, total_pages]``."""
        return replace(self, page=min(max(page, 1), max(total_pages, 1)))

    def query_args(self, **overrides: Any) -> dict[str, Any]:
        args = {
            "search": self.search_term,
            "status": self.status_filter,
            "sort": self.sort_field,
            "direction": self.sort_direction.value,
            "page": self.page,
        }
        args.update(overrides)
        return args


# =====================================================================
# Manager
# =====================================================================


class TaskCollectionManager:
    """
    Base list of tasks for one session plus the operations on it.

    Args:
        session: Source of the bearer token.
        api: Backend endpoint catalogue.
        scope: ``TaskScope.OWN`` loads ``/all-task`` (the user's tasks);
            ``TaskScope.ALL`` loads ``/all-tasks`` (admin console).
        max_image_bytes: Size limit applied to new uploads.
        allowed_image_types: MIME types accepted for new uploads.
    """

    def __init__(
        self,
        session: SessionStore,
        api: BackendApi,
        *,
        scope: TaskScope = TaskScope.OWN,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
        allowed_image_types: tuple[str, ...] = DEFAULT_ALLOWED_IMAGE_TYPES,
    ):
        self.session = session
        self.api = api
        self.scope = scope
        self.max_image_bytes = max_image_bytes
        self.allowed_image_types = allowed_image_types
        self.error: str | None = None
        self._tasks: list[Task] = []
        self._lock = threading.Lock()
        self._load_sequence = itertools.count(1)
        self._latest_load = 0
        self._pending_loads = 0

    # State ------------------------------------------------------------

    @property
    def tasks(self) -> list[Task]:
        """A copy of the base list."""
        with self._lock:
            return list(self._tasks)

    @property
    def loading(self) -> bool:
        return self._pending_loads > 0

    def _require_token(self) -> str:
        token = self.session.token
        if token is None:
            self.error = AuthRequired.default_message
            raise AuthRequired()
        return token

    def _fail(self, result: ApiResult, default: str) -> TaskboardError:
        error = result.failure.to_error(default)
        self.error = error.message
        return error

    def _upload_body(self, draft: TaskDraft) -> dict[str, Any] | MultipartBody:
        if isinstance(draft.image, NewUpload):
            return MultipartBody(
                fields=draft.form_fields(),
                files={"taskImage": draft.image.as_file_tuple()},
            )
        return draft.json_body()

    # Operations -------------------------------------------------------

    def load(self) -> list[Task]:
        """
        Fetch the full task set and replace the base list wholesale.

        Returns:
            The new base list (or the current one if this response was
            superseded by a newer load).

        Raises:
            AuthRequired: No usable token (or the backend rejected it).
            NetworkError, HttpError, UnexpectedError: The fetch failed;
                the previous base list is kept and ``error`` is set.
        """
        token = self._require_token()
        with self._lock:
            sequence = next(self._load_sequence)
            self._latest_load = sequence
            self._pending_loads += 1

        try:
            if self.scope is TaskScope.ALL:
                result = self.api.list_all_tasks(token)
            else:
                result = self.api.list_tasks(token)
        finally:
            with self._lock:
                self._pending_loads -= 1

        with self._lock:
            if sequence != self._latest_load:
                logger.info("Discarding stale task load #%s", sequence)
                return list(self._tasks)
            if not result.ok:
                raise self._fail(result, "An error occurred while fetching tasks")
            if not isinstance(result.data, list):
                self.error = "Failed to fetch tasks"
                raise UnexpectedError(self.error)
            self._tasks = [Task.from_api(item) for item in result.data if isinstance(item, dict)]
            self.error = None
            logger.info("Loaded %s task(s) (%s scope)", len(self._tasks), self.scope.value)
            return list(self._tasks)

    def get(self, task_id: str) -> Task:
        """
        Fetch a single task, refreshing its base-list entry if present.

        Raises:
            AuthRequired, NetworkError, HttpError, UnexpectedError
        """
        token = self._require_token()
        result = self.api.get_task(token, task_id)
        if not result.ok:
            raise self._fail(result, "Failed to fetch task details")
        if not isinstance(result.data, dict):
            self.error = "Failed to fetch task details"
            raise UnexpectedError(self.error)
        task = Task.from_api(result.data)
        self.replace(task)
        return task

    def add(self, draft: TaskDraft) -> Task:
        """
        Create a task and append the server-returned record.

        The draft is validated before any request; nothing is inserted
        until the backend confirms and returns the new record.

        Raises:
            ValidationError: The draft failed local checks.
            AuthRequired, NetworkError, HttpError, UnexpectedError
        """
        draft.validate(self.max_image_bytes, self.allowed_image_types)
        token = self._require_token()

        result = self.api.add_task(token, self._upload_body(draft))
        if not result.ok:
            raise self._fail(result, "Error adding task")
        if not isinstance(result.data, dict):
            self.error = "Invalid response received while adding task"
            raise UnexpectedError(self.error)

        task = Task.from_api(result.data)
        with self._lock:
            self._tasks.append(task)
        self.error = None
        logger.info("Added task %s", task.id)
        return task

    def update(self, task_id: str, record: TaskDraft) -> Task | None:
        """
        Replace a task's fields with ``record`` (full-record semantics).

        The base list is not touched; refresh it with :meth:`load` or
        :meth:`replace`.

        Returns:
            The updated task when the backend echoes it, else ``None``.

        Raises:
            ValidationError: The record failed local checks.
            AuthRequired, NetworkError, HttpError
        """
        record.validate(self.max_image_bytes, self.allowed_image_types)
        token = self._require_token()

        result = self.api.update_task(token, task_id, self._upload_body(record))
        if not result.ok:
            raise self._fail(result, "Failed to update the task. Please try again.")
        self.error = None
        logger.info("Updated task %s", task_id)
        if isinstance(result.data, dict) and (result.data.get("_id") or result.data.get("id")):
            return Task.from_api(result.data)
        return None

    def replace(self, task: Task) -> bool:
        """Swap in ``task`` for the base-list record with the same id."""
        with self._lock:
            for index, existing in enumerate(self._tasks):
                if existing.id == task.id:
                    self._tasks[index] = task
                    return True
        return False

    def remove(self, task_id: str) -> None:
        """
        Delete a task, dropping it from the base list after confirmation.

        Raises:
            AuthRequired, NetworkError, HttpError: The list is unchanged.
        """
        token = self._require_token()
        result = self.api.delete_task(token, task_id)
        if not result.ok:
            raise self._fail(result, "Error deleting task")
        with self._lock:
            self._tasks = [task for task in self._tasks if task.id != task_id]
        self.error = None
        logger.info("Removed task %s", task_id)

    # Views ------------------------------------------------------------

    def apply_view(
        self,
        search_term: str = "",
        status_filter: str = STATUS_ALL,
        sort_field: str = "title",
        sort_direction: SortDirection | str = SortDirection.ASC,
        page: int = 1,
        page_size: int = 5,
    ) -> TaskView:
        """Project the current base list; see :func:`apply_view`."""
        return apply_view(
            self.tasks,
            search_term,
            status_filter,
            sort_field,
            sort_direction,
            page,
            page_size,
        )

    def view(self, state: ViewState, page_size: int = 5) -> TaskView:
        return self.apply_view(
            state.search_term,
            state.status_filter,
            state.sort_field,
            state.sort_direction,
            state.page,
            page_size,
        )

    def status_options(self) -> list[str]:
        """Distinct statuses of the base list in first-seen order."""
        return _distinct(task.status or "Pending" for task in self.tasks)

    def recent(self, limit: int = 5) -> list[Task]:
        """Most recently created tasks first; tasks without a timestamp go last."""
        dated = sorted(
            (task for task in self.tasks if task.created_at),
            key=lambda task: task.created_at or "",
            reverse=True,
        )
        undated = [task for task in self.tasks if not task.created_at]
        return (dated + undated)[:limit]


def _distinct(values: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen
