"""
Validation and permission checks for RouteWise API.

This module centralizes guard logic such as:
- Admin console session and API service JWT validation
- Role, tenant and ownership checks
- Required field presence
- State transition enforcement

All functions raise appropriate exceptions from `routewise.src.exceptions`
when validation fails, ensuring consistent error handling.
"""

from datetime import datetime, timezone
from typing import Any, List, Type
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import Column
from sqlalchemy.orm import DeclarativeMeta
from sqlalchemy.orm.session import Session

from routewise.src import exceptions, getters, jwt
from routewise.src.db import AdminSession, Organization, TenantRole, User
from routewise.src.enums import AccountStatus, UserRole
from routewise.src.functions import isValidTransition, missingFields


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------
def adminToken(access_token: str | None, session: Session) -> AdminSession:
    """
    Validate the admin console session cookie.

    Args:
        access_token (str | None): Value of the session cookie, None if absent.
        session (Session): Active SQLAlchemy session for DB lookup.

    Returns:
        AdminSession: The live session record.

    Raises:
        exceptions.Unauthenticated: If the cookie is missing.
        exceptions.InvalidToken: If the session is unknown, expired or
            belongs to an inactive user.
    """
    if not access_token:
        raise exceptions.Unauthenticated()

    current_time = datetime.now(timezone.utc)
    token = (
        session.query(AdminSession)
        .join(User, User.id == AdminSession.user_id)
        .filter(
            AdminSession.access_token == access_token,
            AdminSession.expires_at > current_time,
            User.status == AccountStatus.ACTIVE,
        )
        .first()
    )
    if token is None:
        raise exceptions.InvalidToken()
    return token


def apiUser(credentials: HTTPAuthorizationCredentials | None, session: Session) -> User:
    """
    Validate a bearer JWT of the API service and load its user.

    Raises:
        exceptions.Unauthenticated: If no bearer token is supplied.
        exceptions.InvalidToken: If the token is invalid, expired, or its
            user is missing or not active.
    """
    if credentials is None or not credentials.credentials:
        raise exceptions.Unauthenticated()

    payload = jwt.accessPayload(credentials.credentials)
    user = session.query(User).filter(User.id == int(payload["sub"])).first()
    if user is None or user.status != AccountStatus.ACTIVE:
        raise exceptions.InvalidToken()
    return user


# ---------------------------------------------------------------------------
# Permission checks
# ---------------------------------------------------------------------------
def _validate_permission(role, permission: Column) -> bool:
    """
    Generic permission validator.

    Args:
        role: TenantRole object or None.
        permission (Column): SQLAlchemy Column representing the permission flag.

    Returns:
        bool: True if the role has the permission.

    Raises:
        exceptions.NoPermission: If the role does not have the required permission.
    """
    if role and getattr(role, permission.name, False):
        return True
    raise exceptions.NoPermission()


def userRole(user: User, *roles: UserRole) -> bool:
    """Require the platform role of `user` to be one of `roles`."""
    if user.role in roles:
        return True
    raise exceptions.NoPermission()


def tenantMember(user: User) -> int:
    """Require `user` to belong to a tenant and return the tenant id."""
    if user.tenant_id is None:
        raise exceptions.TenantRequired()
    return user.tenant_id


def tenantPermission(
    user: User, tenant_id: int, permission: Column, session: Session
) -> bool:
    """
    Require `user` to hold `permission` on the tenant `tenant_id`.

    Platform admins pass unconditionally. Other users must belong to the
    tenant and carry a tenant role granting the permission.
    """
    if user.role == UserRole.ADMIN:
        return True
    if user.tenant_id is None or user.tenant_id != tenant_id:
        raise exceptions.NoPermission()
    role: TenantRole | None = getters.tenantRole(user, session)
    return _validate_permission(role, permission)


def ownership(obj, user_id: int, orm_class: Type[DeclarativeMeta]):
    """
    Require a user owned record to exist and to belong to `user_id`.

    Returns:
        The record itself.

    Raises:
        exceptions.UnknownResource: If `obj` is None.
        exceptions.ForeignOwnership: If the record belongs to another user.
    """
    if obj is None:
        raise exceptions.UnknownResource(orm_class)
    if obj.user_id != user_id:
        raise exceptions.ForeignOwnership(orm_class)
    return obj


def organization(
    session: Session,
    user_id: int,
    organization_id: int | None,
    detail: str = exceptions.NoOrganization.detail,
) -> Organization:
    """
    Resolve the organization a fleet record is filed under.

    An explicit `organization_id` must belong to the user, otherwise the
    user's default organization is used.

    Raises:
        exceptions.UnknownResource / exceptions.ForeignOwnership: For an
            unusable explicit organization.
        exceptions.NoOrganization: If the user has no organization at all.
    """
    if organization_id is not None:
        target = (
            session.query(Organization).filter(Organization.id == organization_id).first()
        )
        return ownership(target, user_id, Organization)

    target = getters.defaultOrganization(user_id, session)
    if target is None:
        raise exceptions.NoOrganization(detail=detail)
    return target


# ---------------------------------------------------------------------------
# Other validations
# ---------------------------------------------------------------------------
def requiredFields(source, fields: List[str]) -> bool:
    """
    Require every field in `fields` to be present and non blank on `source`.

    Raises:
        exceptions.MissingRequiredFields: Listing every missing field.
    """
    missing = missingFields(source, fields)
    if missing:
        raise exceptions.MissingRequiredFields(missing)
    return True


def stateTransition(
    transitions: dict[Any, list[Any]], old_state: Any, new_state: Any, state: Column
) -> bool:
    """
    Validate whether a state transition is allowed.

    Args:
        transitions (dict[Any, list[Any]]): Mapping of valid transitions.
        old_state (Any): Current state value.
        new_state (Any): Desired new state value.
        state (Column): SQLAlchemy column representing the state
            (used to format error messages).

    Raises:
        exceptions.InvalidValue: If the transition is not permitted.
    """
    if not isValidTransition(transitions, old_state, new_state):
        raise exceptions.InvalidValue(state)
    return True
