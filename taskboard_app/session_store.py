"""
Session store: the bearer token and profile of the logged-in user.

The store wraps any mutable mapping.  In the running app that mapping is
the Flask session (a signed cookie scoped to one browser), so the session
survives page loads; tests pass a plain ``dict``.  Two keys make up the
persisted contract:

* ``token`` -- the opaque bearer credential string.
* ``user`` -- ``{"username", "email", "role", "profileImage"?}``.

``user`` is present iff ``token`` is present: both are written by
:meth:`SessionStore.login` and removed by :meth:`SessionStore.logout`.
Every mutation notifies the registered observers synchronously, so all
readers see the new state immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from typing import Any

from .auth import token_is_usable
from .models import UserProfile

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


@dataclass(frozen=True)
class SessionSnapshot:
    """Result of :meth:`SessionStore.current`."""

    authenticated: bool
    user: UserProfile | None = None

    @property
    def role(self) -> str | None:
        return self.user.role if self.user else None


SessionObserver = Callable[[SessionSnapshot], None]


class SessionStore:
    """
    Holds the authentication token and the current user profile.

    Args:
        storage: Backing mapping (the Flask session, or a dict in tests).
        public_key: Optional backend public key used to verify tokens.
        leeway: Clock-skew tolerance for token expiry, in seconds.
    """

    def __init__(
        self,
        storage: MutableMapping[str, Any],
        *,
        public_key: str | None = None,
        leeway: int = 30,
    ):
        self._storage = storage
        self._public_key = public_key
        self._leeway = leeway
        self._observers: list[SessionObserver] = []

    # Observers --------------------------------------------------------

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """
        Register ``observer`` for session-changed notifications.

        Returns:
            A callable that removes the observer again.
        """
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = self.current()
        for observer in list(self._observers):
            observer(snapshot)

    # Mutations --------------------------------------------------------

    def login(self, token: str, user: UserProfile) -> None:
        """Persist the token and profile together and notify observers."""
        self._storage[TOKEN_KEY] = token
        self._storage[USER_KEY] = user.to_dict()
        logger.info("Session started for user %s", user.username)
        self._notify()

    def logout(self) -> None:
        """Remove the token and profile and notify observers."""
        had_session = TOKEN_KEY in self._storage or USER_KEY in self._storage
        self._storage.pop(TOKEN_KEY, None)
        self._storage.pop(USER_KEY, None)
        if had_session:
            logger.info("Session cleared")
        self._notify()

    def update_user(self, user: UserProfile) -> None:
        """
        Replace the stored profile (e.g. after an avatar change).

        Ignored when no session exists, so a profile can never be stored
        without a token.
        """
        if not self._storage.get(TOKEN_KEY):
            return
        self._storage[USER_KEY] = user.to_dict()
        self._notify()

    def drop_if_stale(self) -> bool:
        """
        Clear a session whose token is no longer usable.

        Returns:
            True when a stale session was cleared.
        """
        token = self._storage.get(TOKEN_KEY)
        user = self._storage.get(USER_KEY)
        if token is None and user is None:
            return False
        if self._token_usable(token) and isinstance(user, dict):
            return False
        logger.info("Dropping stale session")
        self.logout()
        return True

    # Reads ------------------------------------------------------------

    def _token_usable(self, token: Any) -> bool:
        return isinstance(token, str) and token_is_usable(
            token, self._public_key, leeway=self._leeway
        )

    @property
    def token(self) -> str | None:
        """The bearer token, or ``None`` when absent or unusable."""
        token = self._storage.get(TOKEN_KEY)
        return token if self._token_usable(token) else None

    @property
    def user(self) -> UserProfile | None:
        return self.current().user

    def current(self) -> SessionSnapshot:
        """Return the authentication state; never raises."""
        user_data = self._storage.get(USER_KEY)
        if self.token is None or not isinstance(user_data, dict):
            return SessionSnapshot(authenticated=False)
        return SessionSnapshot(authenticated=True, user=UserProfile.from_dict(user_data))
