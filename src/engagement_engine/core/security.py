"""JWT helpers for the identities supplied by the auth collaborator."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum

from jose import jwt

from engagement_engine.core.settings import settings


class Role(str, Enum):
    """Roles issued by the auth collaborator."""

    USER = "user"
    ADMIN = "admin"
    MANAGER = "manager"
    ACCOUNTANT = "accountant"


def create_access_token(
    subject: str,
    role: Role | str = Role.USER,
    extra_claims: dict[str, str] | None = None,
) -> str:
    """Create a JWT access token carrying the user id and role."""
    to_encode: dict[str, object] = {"sub": subject, "role": Role(role).value}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, object]:
    """Decode and verify a JWT access token.

    Raises:
        jose.JWTError: If the token is malformed, expired or badly signed.
    """
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
