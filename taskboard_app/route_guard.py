"""
Route guard: one pure decision for every navigation.

``decide`` maps ``(authenticated, role, path)`` to either :class:`Allow`
or :class:`Redirect`.  It keeps no state; the app re-evaluates it on
every request (see ``guard_request`` in the application package).

Rules, in order:

1. Not authenticated and not on a public path -> redirect to login.
2. Authenticated admin outside the admin area -> redirect to the admin root.
3. Authenticated non-admin inside the admin area -> redirect to the site root.
4. Otherwise allow.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Union

from .models import UserRole

LOGIN_PATH = "/login"
ADMIN_PREFIX = "/admin"
ADMIN_ROOT = "/admin"
SITE_ROOT = "/"


@dataclass(frozen=True)
class Allow:
    """The navigation may proceed."""


@dataclass(frozen=True)
class Redirect:
    """The navigation must be redirected to ``to``."""

    to: str


GuardDecision = Union[Allow, Redirect]


def in_admin_area(path: str) -> bool:
    return path == ADMIN_PREFIX or path.startswith(f"{ADMIN_PREFIX}/")


def decide(
    authenticated: bool,
    role: str | None,
    path: str,
    *,
    public_paths: Iterable[str] = (LOGIN_PATH,),
) -> GuardDecision:
    """
    Decide whether a navigation to ``path`` is allowed.

    Args:
        authenticated: Whether the session carries a usable token.
        role: The session user's role (``"admin"`` or ``"User"``).
        path: The requested path.
        public_paths: Paths reachable without a session; the login path
            is always among them.

    Returns:
        ``Allow()`` or ``Redirect(to=...)``.
    """
    if not authenticated:
        if path == LOGIN_PATH or path in set(public_paths):
            return Allow()
        return Redirect(LOGIN_PATH)

    if role == UserRole.ADMIN.value:
        if not in_admin_area(path):
            return Redirect(ADMIN_ROOT)
        return Allow()

    if in_admin_area(path):
        return Redirect(SITE_ROOT)
    return Allow()
