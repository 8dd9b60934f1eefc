"""
Taskboard frontend Flask application factory.

Provides the ``create_app`` factory function that assembles the frontend.
The service is a stateless Backend-for-Frontend (BFF): it serves
server-rendered HTML pages via Jinja templates and calls the external task
backend over HTTP on behalf of the browser.  It never touches a database;
the only state it keeps between requests is the signed session cookie
holding the bearer token and the user profile.

Per-request collaborators (session store, collection managers, account
service) are built by the small accessors below so every view receives
its dependencies explicitly instead of reading ambient globals.

Key Concepts Demonstrated:
- Application factory pattern (``create_app``)
- Backend-for-Frontend (BFF) architecture
- One centralized route guard evaluated before every request
- Blueprint-based route registration
"""

from __future__ import annotations

import logging

from flask import Flask, current_app, g, redirect, request, session

from config import get_config, load_public_key

from .accounts import AccountService
from .api import ApiClient, BackendApi
from .route_guard import Redirect, decide
from .session_store import SessionSnapshot, SessionStore
from .task_manager import TaskCollectionManager, TaskScope
from .user_manager import UserCollectionManager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

PUBLIC_PATHS = ("/login", "/register")
# Reachable in every session state, so neither admins nor guests are bounced.
UNGUARDED_ENDPOINTS = {"static", "views.health_check", "views.logout"}


def backend_api() -> BackendApi:
    return current_app.extensions["taskboard_api"]


def session_store() -> SessionStore:
    """Return the request's session store, wrapping the Flask session cookie."""
    if "session_store" not in g:
        store = SessionStore(
            session,
            public_key=current_app.config.get("JWT_PUBLIC_KEY"),
            leeway=int(current_app.config.get("JWT_CLOCK_SKEW_SECONDS", 30)),
        )
        store.subscribe(_remember_snapshot)
        g.session_store = store
    return g.session_store


def _remember_snapshot(snapshot: SessionSnapshot) -> None:
    g.session_snapshot = snapshot


def current_session() -> SessionSnapshot:
    if "session_snapshot" not in g:
        g.session_snapshot = session_store().current()
    return g.session_snapshot


def task_manager(scope: TaskScope = TaskScope.OWN) -> TaskCollectionManager:
    return TaskCollectionManager(
        session_store(),
        backend_api(),
        scope=scope,
        max_image_bytes=current_app.config["MAX_IMAGE_BYTES"],
        allowed_image_types=tuple(current_app.config["ALLOWED_IMAGE_TYPES"]),
    )


def user_manager() -> UserCollectionManager:
    return UserCollectionManager(session_store(), backend_api())


def account_service() -> AccountService:
    return AccountService(
        session_store(),
        backend_api(),
        max_image_bytes=current_app.config["MAX_IMAGE_BYTES"],
        allowed_image_types=tuple(current_app.config["ALLOWED_IMAGE_TYPES"]),
    )


def guard_request():
    """Run the route guard for the incoming request."""
    if request.endpoint in UNGUARDED_ENDPOINTS:
        return None

    store = session_store()
    store.drop_if_stale()
    snapshot = current_session()
    decision = decide(
        snapshot.authenticated,
        snapshot.role,
        request.path,
        public_paths=PUBLIC_PATHS,
    )
    if isinstance(decision, Redirect):
        logger.debug("Guard redirect %s -> %s", request.path, decision.to)
        return redirect(decision.to)
    return None


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the frontend application.

    Instantiates the Flask app, loads the configuration object, resolves
    the optional JWT public key, builds the backend client, installs the
    route guard and registers the blueprints.

    Args:
        config_name: Optional configuration environment name
            (``"development"``, ``"testing"``, ``"production"``).  When
            *None*, the value is read from the ``FLASK_ENV`` environment
            variable, defaulting to ``"development"``.

    Returns:
        A fully configured :class:`~flask.Flask` application instance.
    """
    app = Flask(__name__, instance_relative_config=True)
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    app.config["JWT_PUBLIC_KEY"] = load_public_key(testing=bool(app.config.get("TESTING")))

    logger.info("Creating taskboard frontend with config: %s", config_class.__name__)

    app.extensions["taskboard_api"] = BackendApi(
        ApiClient(app.config["BACKEND_URL"], timeout=app.config["BACKEND_TIMEOUT"])
    )
    app.before_request(guard_request)

    @app.context_processor
    def inject_session():
        return {
            "current_user": current_session().user,
            "uploads_url": app.config["UPLOADS_URL"].rstrip("/"),
            "default_avatar_url": app.config["DEFAULT_AVATAR_URL"],
        }

    # Import inside the factory to avoid circular imports -- the blueprint
    # modules reference the accessors defined in this package.
    from .routes.admin import admin_bp
    from .routes.views import views_bp

    app.register_blueprint(views_bp)
    app.register_blueprint(admin_bp, url_prefix="/admin")
    return app
