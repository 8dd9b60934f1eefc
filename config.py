"""
Configuration classes for the taskboard frontend.

The frontend is a stateless BFF (backend-for-frontend). It serves
server-rendered HTML and delegates every persistence concern to the
external task backend via HTTP.  Values are loaded from environment
variables with sensible defaults.
"""

from __future__ import annotations

import os
from pathlib import Path


def _load_optional_key(raw_env_var: str, path_env_var: str) -> str | None:
    """Load a PEM key from direct env content or from a path env variable."""
    raw_key = os.environ.get(raw_env_var, "").strip()
    if raw_key:
        return raw_key

    key_path = os.environ.get(path_env_var, "").strip()
    if key_path:
        try:
            return Path(key_path).read_text(encoding="utf-8")
        except OSError as exc:
            raise RuntimeError(
                f"Unable to read JWT key file at '{key_path}' from {path_env_var}."
            ) from exc

    return None


def load_public_key(*, testing: bool) -> str | None:
    """
    Resolve the optional JWT public key for the selected environment.

    The backend owns token issuance; when no key is configured the
    frontend only inspects token expiry without verifying signatures.
    """
    if testing:
        test_key = _load_optional_key("TEST_JWT_PUBLIC_KEY", "TEST_JWT_PUBLIC_KEY_PATH")
        if test_key:
            return test_key
    return _load_optional_key("JWT_PUBLIC_KEY", "JWT_PUBLIC_KEY_PATH")


class Config:
    """Base configuration for all frontend environments."""

    SECRET_KEY: str = os.environ.get(
        "SECRET_KEY", "taskboard-frontend-dev-secret-change-in-production"
    )

    BACKEND_URL: str = os.environ.get("BACKEND_URL", "http://localhost:3000")
    BACKEND_TIMEOUT: int = int(os.environ.get("BACKEND_TIMEOUT", "5"))
    UPLOADS_URL: str = os.environ.get("UPLOADS_URL", f"{BACKEND_URL.rstrip('/')}/uploads")

    TASKS_PER_PAGE: int = int(os.environ.get("TASKS_PER_PAGE", "5"))
    MAX_PAGE_LINKS: int = int(os.environ.get("MAX_PAGE_LINKS", "5"))

    MAX_IMAGE_BYTES: int = int(os.environ.get("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))
    ALLOWED_IMAGE_TYPES: tuple[str, ...] = ("image/jpeg", "image/png", "image/gif")
    DEFAULT_AVATAR_URL: str = os.environ.get(
        "DEFAULT_AVATAR_URL", "https://www.gravatar.com/avatar/?d=mp"
    )

    JWT_CLOCK_SKEW_SECONDS: int = int(os.environ.get("JWT_CLOCK_SKEW_SECONDS", "30"))

    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE: bool = (
        os.environ.get("SESSION_COOKIE_SECURE", "false").strip().lower() == "true"
    )


class DevelopmentConfig(Config):
    """Configuration for local development."""

    DEBUG: bool = True
    TESTING: bool = False


class TestingConfig(Config):
    """Configuration for automated tests."""

    DEBUG: bool = True
    TESTING: bool = True

    BACKEND_URL: str = os.environ.get("TEST_BACKEND_URL", "http://backend.test")
    BACKEND_TIMEOUT: int = int(os.environ.get("TEST_BACKEND_TIMEOUT", "1"))
    UPLOADS_URL: str = f"{BACKEND_URL.rstrip('/')}/uploads"


class ProductionConfig(Config):
    """Configuration for production deployments."""

    DEBUG: bool = False
    TESTING: bool = False
    SESSION_COOKIE_SECURE: bool = (
        os.environ.get("SESSION_COOKIE_SECURE", "true").strip().lower() == "true"
    )


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Look up and return the configuration class for the given environment.

    Args:
        env: Environment name. When None, falls back to FLASK_ENV.

    Returns:
        The selected configuration class.
    """
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
