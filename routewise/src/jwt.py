"""
JSON Web Tokens of the API service.

Access and refresh tokens are signed with separate secrets so a leaked
access secret cannot mint refresh tokens. A third token type carries
password reset requests. All tokens use `JWT_ALGORITHM` (HS256).
"""

from datetime import datetime, timedelta, timezone
import jwt
from jwt.exceptions import InvalidTokenError

from routewise.src import exceptions
from routewise.src.constants import (
    JWT_ACCESS_VALIDITY,
    JWT_ALGORITHM,
    JWT_REFRESH_SECRET,
    JWT_REFRESH_VALIDITY,
    JWT_RESET_VALIDITY,
    JWT_SECRET,
)
from routewise.src.db import User

ACCESS = "access"
REFRESH = "refresh"
PASSWORD_RESET = "password-reset"


def _encode(user: User, tokenType: str, secret: str, validity: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "email": user.email_id,
        "role": int(user.role),
        "tenant_id": user.tenant_id,
        "type": tokenType,
        "iat": now,
        "exp": now + timedelta(seconds=validity),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def _decode(token: str, tokenType: str, secret: str) -> dict | None:
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        return None
    if payload.get("type") != tokenType:
        return None
    return payload


def makeTokens(user: User) -> dict:
    """
    Issue an access/refresh token pair for a user.

    Returns:
        dict: `access_token`, `refresh_token`, `token_type` and
        `expires_in` (access token lifetime in seconds).
    """
    return {
        "access_token": _encode(user, ACCESS, JWT_SECRET, JWT_ACCESS_VALIDITY),
        "refresh_token": _encode(
            user, REFRESH, JWT_REFRESH_SECRET, JWT_REFRESH_VALIDITY
        ),
        "token_type": "bearer",
        "expires_in": JWT_ACCESS_VALIDITY,
    }


def makeResetToken(user: User) -> str:
    return _encode(user, PASSWORD_RESET, JWT_SECRET, JWT_RESET_VALIDITY)


def accessPayload(token: str) -> dict:
    """Decode an access token, raising `InvalidToken` when it is unusable."""
    payload = _decode(token, ACCESS, JWT_SECRET)
    if payload is None:
        raise exceptions.InvalidToken()
    return payload


def refreshPayload(token: str) -> dict:
    """Decode a refresh token, raising `InvalidToken` when it is unusable."""
    payload = _decode(token, REFRESH, JWT_REFRESH_SECRET)
    if payload is None:
        raise exceptions.InvalidToken(detail="Invalid or expired refresh token")
    return payload


def resetPayload(token: str) -> dict:
    """Decode a password reset token, raising `InvalidResetToken` when unusable."""
    payload = _decode(token, PASSWORD_RESET, JWT_SECRET)
    if payload is None:
        raise exceptions.InvalidResetToken()
    return payload
