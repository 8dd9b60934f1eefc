"""
Account flows: registration, login, logout and the profile picture.

These are the only writers of the session store.  Login stores the token
and profile together; logout clears both; avatar changes rewrite the
stored profile once the backend confirms.
"""

from __future__ import annotations

import logging
from typing import Any

from .api import BackendApi, MultipartBody
from .errors import AuthRequired, UnexpectedError
from .models import (
    DEFAULT_ALLOWED_IMAGE_TYPES,
    DEFAULT_MAX_IMAGE_BYTES,
    NewUpload,
    UserProfile,
    UserRole,
    validate_credentials,
    validate_registration,
)
from .session_store import SessionStore

logger = logging.getLogger(__name__)


def _profile_from_login(payload: dict[str, Any], email: str) -> UserProfile:
    """Build the session profile from a login response body."""
    user = payload.get("user")
    if not isinstance(user, dict):
        user = {}
    return UserProfile(
        username=str(user.get("username") or payload.get("username") or ""),
        email=str(user.get("email") or email),
        role=str(user.get("role") or payload.get("role") or UserRole.USER.value),
        avatar_ref=user.get("profileImage") or None,
    )


class AccountService:
    """
    Orchestrates the account endpoints and the session store.

    Args:
        session: The session store to write on login/logout.
        api: Backend endpoint catalogue.
        max_image_bytes: Size limit for profile pictures.
        allowed_image_types: MIME types accepted for profile pictures.
    """

    def __init__(
        self,
        session: SessionStore,
        api: BackendApi,
        *,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
        allowed_image_types: tuple[str, ...] = DEFAULT_ALLOWED_IMAGE_TYPES,
    ):
        self.session = session
        self.api = api
        self.max_image_bytes = max_image_bytes
        self.allowed_image_types = allowed_image_types

    def register(self, username: str, email: str, password: str) -> None:
        """
        Create an account.

        Raises:
            ValidationError: A field is blank or the email is malformed.
            NetworkError, HttpError, UnexpectedError: The backend refused.
        """
        validate_registration(username, email, password)
        result = self.api.register(username.strip(), email.strip(), password)
        if not result.ok:
            raise result.failure.to_error("Registration failed. Please try again.")
        logger.info("Registered account %s", username.strip())

    def login(self, email: str, password: str) -> UserProfile:
        """
        Log in and start a session.

        Returns:
            The profile now stored in the session.

        Raises:
            ValidationError: A field is blank or the email is malformed.
            AuthRequired: The backend rejected the credentials.
            NetworkError, HttpError, UnexpectedError
        """
        validate_credentials(email, password)
        result = self.api.login(email.strip(), password)
        if not result.ok:
            if result.failure.auth_expired:
                raise AuthRequired(
                    result.failure.message or "Login failed. Please check your credentials."
                )
            raise result.failure.to_error("Login failed. Please check your credentials.")

        payload = result.data if isinstance(result.data, dict) else {}
        token = payload.get("token")
        if not isinstance(token, str) or not token:
            raise UnexpectedError("Invalid login response received.")

        profile = _profile_from_login(payload, email.strip())
        self.session.login(token, profile)
        return profile

    def logout(self) -> None:
        self.session.logout()

    def _require_session(self) -> tuple[str, UserProfile]:
        token = self.session.token
        user = self.session.user
        if token is None or user is None:
            raise AuthRequired("You need to be logged in to update profile picture")
        return token, user

    def upload_avatar(self, upload: NewUpload) -> UserProfile:
        """
        Replace the profile picture with ``upload``.

        Raises:
            ValidationError: The image is too large or of the wrong type.
            AuthRequired, NetworkError, HttpError
        """
        upload.validate(self.max_image_bytes, self.allowed_image_types)
        token, user = self._require_session()

        result = self.api.update_profile(
            token,
            MultipartBody(files={"profileImage": upload.as_file_tuple()}),
        )
        if not result.ok:
            raise result.failure.to_error("Failed to upload profile picture")

        data = result.data if isinstance(result.data, dict) else {}
        updated = UserProfile(
            username=user.username,
            email=user.email,
            role=user.role,
            avatar_ref=data.get("profileImage") or None,
        )
        self.session.update_user(updated)
        return updated

    def remove_avatar(self) -> UserProfile:
        """
        Drop the profile picture.

        Raises:
            AuthRequired, NetworkError, HttpError
        """
        token, user = self._require_session()
        result = self.api.update_profile(token, {})
        if not result.ok:
            raise result.failure.to_error("Failed to remove profile picture")

        updated = UserProfile(username=user.username, email=user.email, role=user.role)
        self.session.update_user(updated)
        return updated
