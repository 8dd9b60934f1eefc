"""
Admin console routes.

Dashboard figures, the user table with search and delete, and the task
table over every user's tasks with status filter, search, sort and
pagination.  The route guard keeps non-admin sessions out of this
blueprint before any handler runs.
"""

from __future__ import annotations

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from .. import task_manager, user_manager
from ..errors import AuthRequired, TaskboardError
from ..task_manager import SORTABLE_FIELDS, TaskScope, ViewState
from ..user_manager import load_dashboard
from .views import failure_status, handle_error

admin_bp = Blueprint("admin", __name__)


@admin_bp.route("")
def dashboard():
    """Render user/task counts and the most recent tasks."""
    try:
        summary = load_dashboard(user_manager(), task_manager(TaskScope.ALL))
    except AuthRequired as error:
        return handle_error(error, url_for("admin.dashboard"))

    return render_template("admin/dashboard.html", summary=summary)


@admin_bp.route("/users")
def users():
    """Render the user table filtered by the ``search`` query argument."""
    search_term = request.args.get("search", "")
    manager = user_manager()
    try:
        manager.load()
    except AuthRequired as error:
        return handle_error(error, url_for("admin.users"))
    except TaskboardError as error:
        flash(error.message, "error")
        return (
            render_template("admin/users.html", users=None, search_term=search_term),
            failure_status(error),
        )

    return render_template(
        "admin/users.html",
        users=manager.apply_filter(search_term),
        search_term=search_term,
    )


@admin_bp.route("/users/<user_id>/delete", methods=["POST"])
def delete_user(user_id: str):
    """Delete a user account."""
    try:
        user_manager().remove(user_id)
    except TaskboardError as error:
        return handle_error(error, url_for("admin.users"))

    flash("User deleted successfully", "success")
    return redirect(url_for("admin.users"))


@admin_bp.route("/tasks")
def tasks():
    """Render every user's tasks through the filter/sort/paginate view."""
    state = ViewState.from_args(request.args)
    manager = task_manager(TaskScope.ALL)
    try:
        manager.load()
    except AuthRequired as error:
        return handle_error(error, url_for("admin.tasks"))
    except TaskboardError as error:
        flash(error.message, "error")
        return (
            render_template(
                "admin/tasks.html",
                view=None,
                state=state,
                status_options=[],
                sortable_fields=SORTABLE_FIELDS,
                max_page_links=current_app.config["MAX_PAGE_LINKS"],
            ),
            failure_status(error),
        )

    view = manager.view(state, page_size=current_app.config["TASKS_PER_PAGE"])
    return render_template(
        "admin/tasks.html",
        view=view,
        state=state,
        status_options=manager.status_options(),
        sortable_fields=SORTABLE_FIELDS,
        max_page_links=current_app.config["MAX_PAGE_LINKS"],
    )


@admin_bp.route("/tasks/<task_id>/delete", methods=["POST"])
def delete_task(task_id: str):
    """Delete any user's task."""
    try:
        task_manager(TaskScope.ALL).remove(task_id)
    except TaskboardError as error:
        return handle_error(error, url_for("admin.tasks"))

    flash("Task deleted successfully", "success")
    return redirect(url_for("admin.tasks"))
