"""
Password hashing for RouteWise accounts.

One Argon2 hasher instance is shared by the admin console login and the
API service authentication endpoints.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

passwordHasher = PasswordHasher(encoding="utf-8")


def makePassword(password: str) -> str:
    """Return the Argon2 hash of a plain-text password."""
    return passwordHasher.hash(password)


def checkPassword(password: str, hashedPassword: str) -> bool:
    """
    Verify a plain-text password against a stored Argon2 hash.

    Args:
        password (str): The password submitted by the client.
        hashedPassword (str): The hash stored on the user record.

    Returns:
        bool: True if the password matches, False on mismatch or when the
        stored value is not a valid Argon2 hash.
    """
    try:
        return passwordHasher.verify(hashedPassword, password)
    except (VerifyMismatchError, InvalidHashError):
        return False


def upgradePassword(password: str, hashedPassword: str) -> str | None:
    """
    Re-hash a verified password when the stored hash uses outdated parameters.

    Returns:
        str | None: The new hash, or None when the stored one is current.
    """
    if passwordHasher.check_needs_rehash(hashedPassword):
        return passwordHasher.hash(password)
    return None
