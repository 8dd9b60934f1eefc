"""
Bearer-token inspection helpers.

The backend issues the tokens; the frontend only needs to know whether a
stored token is still worth sending.  When the backend's RS256 public key
is configured the signature and required claims are verified with PyJWT.
Without a key the claims are read unverified and only expiry is enforced,
so an expired session is dropped before the backend has to reject it.
Tokens that are not JWTs at all are treated as opaque and accepted.

Key Concepts Demonstrated:
- RS256 asymmetric verification with PyJWT
- Unverified claim reading (``verify_signature: False``) for expiry checks
- Clock-skew tolerance (``leeway``)
"""

from __future__ import annotations

from typing import Any

import jwt

DEFAULT_ALLOWED_ALGORITHMS = ["RS256"]
REQUIRED_TOKEN_CLAIMS = ["iat", "exp"]


def inspect_token(
    token: str,
    public_key: str | None = None,
    *,
    leeway: int = 30,
    algorithms: list[str] | None = None,
) -> dict[str, Any] | None:
    """
    Decode a stored bearer token, returning its claims when usable.

    Args:
        token: The raw token string from the session.
        public_key: RSA public key in PEM format.  When given, the
            signature and the ``iat``/``exp`` claims are required and
            verified.
        leeway: Clock-skew tolerance in seconds.
        algorithms: Allowed signing algorithms; defaults to ``["RS256"]``.

    Returns:
        The claims dictionary (empty for opaque tokens), or ``None`` if the
        token is blank, expired, or fails verification.
    """
    if not token or not token.strip():
        return None

    if public_key:
        try:
            return jwt.decode(
                token,
                public_key,
                algorithms=algorithms or DEFAULT_ALLOWED_ALGORITHMS,
                options={"require": REQUIRED_TOKEN_CLAIMS},
                leeway=leeway,
            )
        except jwt.InvalidTokenError:
            return None

    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True},
            leeway=leeway,
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.DecodeError:
        return {}
    except jwt.InvalidTokenError:
        return None


def token_is_usable(
    token: str | None,
    public_key: str | None = None,
    *,
    leeway: int = 30,
) -> bool:
    """Return True when ``token`` is present and passes :func:`inspect_token`."""
    if token is None:
        return False
    return inspect_token(token, public_key, leeway=leeway) is not None
