from fastapi import Request
from sqlalchemy.orm.session import Session

from routewise.src import schemas
from routewise.src.db import AdminSession, Organization, TenantRole, User


def requestInfo(request: Request) -> schemas.RequestInfo:
    """
    Extract metadata about the incoming request.

    Args:
        request (Request): FastAPI request object.

    Returns:
        schemas.RequestInfo: Pydantic model containing:
            - method (str): HTTP method (GET, POST, etc.).
            - path (str): Path portion of the request URL.
            - app_id (int): Application ID from app state.
    """
    return schemas.RequestInfo(
        method=request.method,
        path=request.url.path,
        app_id=request.scope["app"].state.id,
    )


def sessionUser(token: AdminSession, session: Session) -> User:
    """Fetch the user signed in through an admin console session."""
    return session.query(User).filter(User.id == token.user_id).first()


def tenantRole(user: User, session: Session) -> TenantRole | None:
    """Fetch the tenant role granted to a user, only if it belongs to the user's tenant."""
    if user.tenant_role_id is None or user.tenant_id is None:
        return None
    return (
        session.query(TenantRole)
        .filter(TenantRole.id == user.tenant_role_id)
        .filter(TenantRole.tenant_id == user.tenant_id)
        .first()
    )


def primaryOrganization(user_id: int, session: Session) -> Organization | None:
    return (
        session.query(Organization)
        .filter(Organization.user_id == user_id)
        .filter(Organization.is_primary.is_(True))
        .first()
    )


def defaultOrganization(user_id: int, session: Session) -> Organization | None:
    """
    Resolve the organization new fleet records are filed under.

    The user's primary organization wins, otherwise the oldest one.
    """
    organization = primaryOrganization(user_id, session)
    if organization is None:
        organization = (
            session.query(Organization)
            .filter(Organization.user_id == user_id)
            .order_by(Organization.id.asc())
            .first()
        )
    return organization
