"""
Bearer token handling.

ProFinder does not own identities: the ``sub`` claim of a signed JWT is the
user ID and the optional ``role`` claim marks administrators.
"""
from datetime import timedelta
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status

from profinder.config import settings
from profinder.schemas.auth import ActorContext
from profinder.utils.helpers import utc_now


class SecurityException(HTTPException):
    """401 raised for any missing, malformed or expired credential."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Sign a token for the given claims.

    Used by tests and operator tooling; production tokens come from the
    identity provider with the same secret.

    Example:
        ```python
        token = create_access_token(data={"sub": "u1", "role": "admin"})
        ```
    """
    issued_at = utc_now()
    claims = {
        **data,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or timedelta(hours=settings.jwt_expiration_hours)),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry.

    Raises:
        SecurityException: If the token does not verify
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise SecurityException("Token has expired")
    except jwt.InvalidTokenError:
        raise SecurityException("Invalid token")


def extract_token_from_header(authorization: Optional[str]) -> str:
    """Return the credential of a ``Bearer <token>`` header."""
    if not authorization:
        raise SecurityException("Missing authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip() or " " in token.strip():
        raise SecurityException("Invalid authorization header format")
    return token.strip()


def actor_from_token(token: str) -> ActorContext:
    """
    Build the caller context from a token.

    Raises:
        SecurityException: If the token is invalid or has no subject
    """
    claims = decode_token(token)
    subject = claims.get("sub")
    if not subject:
        raise SecurityException("Token has no subject")
    return ActorContext(user_id=str(subject), role=claims.get("role"))
