"""
HTML view routes for the taskboard frontend.

Implements the user-facing pages.  Each handler builds the collaborators
it needs (session store, task manager, account service), performs one
user intent, and renders a template or redirects with a flash message.
The module is organised into three sections:

1. **Helper functions** -- form parsing and shared error handling.
2. **Authentication routes** -- login, registration and logout.
3. **Task and profile routes** -- list, create, edit, delete and the
   profile picture.

Access control is not repeated here: the route guard installed by the
application factory has already run for every request.
"""

from __future__ import annotations

import logging

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)

from .. import account_service, current_session, session_store, task_manager
from ..errors import AuthRequired, HttpError, NetworkError, TaskboardError, ValidationError
from ..models import (
    ExistingImage,
    NewUpload,
    NoImage,
    RemovedImage,
    TaskDraft,
    TaskImage,
    TaskStatus,
)
from ..route_guard import ADMIN_ROOT, SITE_ROOT
from ..task_manager import SORTABLE_FIELDS, TaskView, ViewState

logger = logging.getLogger(__name__)

views_bp = Blueprint("views", __name__)


# =====================================================================
# Helper Functions
# =====================================================================


def handle_error(error: TaskboardError, fallback: str):
    """
    Flash ``error`` and redirect.

    ``AuthRequired`` ends the session and sends the user to the login
    page; every other error goes back to ``fallback``.
    """
    flash(error.message, "error")
    if isinstance(error, AuthRequired):
        logger.info("Session rejected on %s; redirecting to login", request.path)
        session_store().logout()
        return redirect(url_for("views.login"))
    return redirect(fallback)


def failure_status(error: TaskboardError) -> int:
    """
    Pick the HTTP status for a page rendered after a failed backend call.

    Backend 4xx rejections (duplicate registration, bad request) pass
    through with their own status. An unreachable backend is 503 and
    any other backend failure is 502.
    """
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, AuthRequired):
        return 401
    if isinstance(error, NetworkError):
        return 503
    if isinstance(error, HttpError) and 400 <= error.status_code < 500:
        return error.status_code
    return 502


def _upload_from_request(field_name: str) -> NewUpload | None:
    """Read an uploaded file from the multipart form, if one was chosen."""
    upload = request.files.get(field_name)
    if upload is None or not upload.filename:
        return None
    return NewUpload(
        filename=upload.filename,
        content=upload.read(),
        mimetype=upload.mimetype or "",
    )


def _parse_progress(raw: str | None) -> int:
    if raw is None or not raw.strip():
        return 0
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError("Progress must be a whole number") from exc


def _draft_from_form(image: TaskImage) -> TaskDraft:
    return TaskDraft(
        title=request.form.get("title", ""),
        description=request.form.get("description", ""),
        status=request.form.get("status", TaskStatus.PENDING.value),
        progress=_parse_progress(request.form.get("progress")),
        image=image,
    )


def _image_from_edit_form() -> TaskImage:
    """
    Translate the edit form's image controls into the image variant.

    ``image_action`` is one of ``keep``, ``replace`` or ``remove``; the
    stored reference travels in the hidden ``current_image`` field.  A
    chosen file always means a replacement, whatever radio was left on
    ``keep``.
    """
    action = request.form.get("image_action", "keep")
    current = request.form.get("current_image", "").strip()
    upload = _upload_from_request("taskImage")
    if action == "remove":
        if upload is not None:
            raise ValidationError("Choose either a new image or removal, not both.")
        return RemovedImage()
    if upload is not None:
        return upload
    if action == "replace":
        raise ValidationError("Choose an image to upload.")
    return ExistingImage(current) if current else NoImage()


def _home_for_session() -> str:
    snapshot = current_session()
    if snapshot.user is not None and snapshot.user.is_admin:
        return ADMIN_ROOT
    return SITE_ROOT


def _render_index(view: TaskView | None, state: ViewState, status_code: int = 200):
    """Render the task list page with standard template context."""
    return (
        render_template(
            "index.html",
            view=view,
            state=state,
            statuses=TaskStatus,
            sortable_fields=SORTABLE_FIELDS,
            max_page_links=current_app.config["MAX_PAGE_LINKS"],
        ),
        status_code,
    )


# =====================================================================
# Authentication Routes
# =====================================================================


@views_bp.route("/health", methods=["GET"])
def health_check():
    """
    Return service health status.

    This endpoint is public (no authentication required) and is intended
    for load-balancer and orchestrator liveness probes.
    """
    return {"status": "healthy", "service": "taskboard-frontend"}, 200


@views_bp.route("/login", methods=["GET"])
def login():
    """Render the login page, or skip it when a session already exists."""
    if current_session().authenticated:
        return redirect(_home_for_session())
    return render_template("login.html")


@views_bp.route("/login", methods=["POST"])
def login_submit():
    """
    Handle login form submission.

    On success the session holds the token and profile, and the user is
    sent to the admin console or the task list depending on the role.
    """
    email = request.form.get("email", "")
    password = request.form.get("password", "")
    try:
        profile = account_service().login(email, password)
    except TaskboardError as error:
        flash(error.message, "error")
        return render_template("login.html", email=email), failure_status(error)

    flash(f"Login successful for {profile.email}", "success")
    return redirect(ADMIN_ROOT if profile.is_admin else SITE_ROOT)


@views_bp.route("/register", methods=["GET"])
def register():
    """Render the registration page."""
    if current_session().authenticated:
        return redirect(_home_for_session())
    return render_template("register.html")


@views_bp.route("/register", methods=["POST"])
def register_submit():
    """Handle registration form submission and send the user to login."""
    username = request.form.get("username", "")
    email = request.form.get("email", "")
    password = request.form.get("password", "")
    try:
        account_service().register(username, email, password)
    except TaskboardError as error:
        flash(error.message, "error")
        return (
            render_template("register.html", username=username, email=email),
            failure_status(error),
        )

    flash(f"Registration successful for {username.strip()}", "success")
    return redirect(url_for("views.login"))


@views_bp.route("/logout", methods=["POST"])
def logout():
    """Clear the session and return to the login page."""
    account_service().logout()
    flash("Logged out. Session cleared.", "success")
    return redirect(url_for("views.login"))


# =====================================================================
# Task Routes
# =====================================================================


@views_bp.route("/")
def index():
    """
    Render the user's tasks with search, status filter, sort and paging.

    A failed load still renders the page with an error banner.
    """
    state = ViewState.from_args(request.args)
    manager = task_manager()
    try:
        manager.load()
    except AuthRequired as error:
        return handle_error(error, url_for("views.index"))
    except TaskboardError as error:
        flash(error.message, "error")
        return _render_index(None, state, status_code=failure_status(error))

    view = manager.view(state, page_size=current_app.config["TASKS_PER_PAGE"])
    return _render_index(view, state)


@views_bp.route("/tasks/new")
def new_task():
    """Render the empty task creation form."""
    return render_template(
        "task_form.html",
        task=None,
        statuses=TaskStatus,
        form_action=url_for("views.create_task"),
        form_title="Add Task",
    )


@views_bp.route("/tasks", methods=["POST"])
def create_task():
    """Create a task from the form, with an optional image."""
    try:
        draft = _draft_from_form(_upload_from_request("taskImage") or NoImage())
        task = task_manager().add(draft)
    except ValidationError as error:
        flash(error.message, "error")
        return redirect(url_for("views.new_task"))
    except TaskboardError as error:
        return handle_error(error, url_for("views.new_task"))

    flash(f"Task '{task.title}' added successfully", "success")
    return redirect(url_for("views.index"))


@views_bp.route("/tasks/<task_id>/edit")
def edit_task(task_id: str):
    """Render the edit form pre-populated with the stored task."""
    try:
        task = task_manager().get(task_id)
    except TaskboardError as error:
        return handle_error(error, url_for("views.index"))

    return render_template(
        "task_form.html",
        task=task,
        statuses=TaskStatus,
        form_action=url_for("views.update_task", task_id=task_id),
        form_title="Edit Task",
    )


@views_bp.route("/tasks/<task_id>/edit", methods=["POST"])
def update_task(task_id: str):
    """Send the full edited record to the backend."""
    try:
        draft = _draft_from_form(_image_from_edit_form())
        task_manager().update(task_id, draft)
    except ValidationError as error:
        flash(error.message, "error")
        return redirect(url_for("views.edit_task", task_id=task_id))
    except TaskboardError as error:
        return handle_error(error, url_for("views.edit_task", task_id=task_id))

    flash("Task updated successfully!", "success")
    return redirect(url_for("views.index"))


@views_bp.route("/tasks/<task_id>/delete", methods=["POST"])
def delete_task(task_id: str):
    """Delete a task and return to the list."""
    try:
        task_manager().remove(task_id)
    except TaskboardError as error:
        return handle_error(error, url_for("views.index"))

    flash("Task deleted successfully", "success")
    return redirect(url_for("views.index"))


# =====================================================================
# Profile Routes
# =====================================================================


@views_bp.route("/profile/avatar", methods=["POST"])
def upload_avatar():
    """Upload a new profile picture."""
    upload = _upload_from_request("profileImage")
    if upload is None:
        flash("Choose an image to upload.", "error")
        return redirect(url_for("views.index"))
    try:
        account_service().upload_avatar(upload)
    except TaskboardError as error:
        return handle_error(error, url_for("views.index"))

    flash("Profile picture updated successfully!", "success")
    return redirect(url_for("views.index"))


@views_bp.route("/profile/avatar/remove", methods=["POST"])
def remove_avatar():
    """Remove the profile picture."""
    try:
        account_service().remove_avatar()
    except TaskboardError as error:
        return handle_error(error, url_for("views.index"))

    flash("Profile picture removed successfully!", "success")
    return redirect(url_for("views.index"))
