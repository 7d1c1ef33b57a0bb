from datetime import date, datetime
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from routewise.api.bearer import bearer_api
from routewise.src.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, REGEX_PHONE
from routewise.src.db import TenantRole, User, sessionMaker
from routewise.src import exceptions, validators, getters
from routewise.src.enums import AccountStatus, GenderType, UserRole
from routewise.src.loggers import logEvent
from routewise.src.schemas import Envelope
from routewise.src.functions import (
    enumStr,
    envelope,
    fuseExceptionResponses,
    paginate,
    updateIfChanged,
)
from routewise.src.urls import URL_USER, URL_USER_ID

route_api = APIRouter()

PROFILE_FIELDS = [
    User.full_name.key,
    User.phone_number.key,
    User.gender.key,
    User.date_of_birth.key,
    User.picture_url.key,
    User.address.key,
    User.preferences.key,
]
ADMIN_FIELDS = [
    User.role.key,
    User.status.key,
    User.tenant_id.key,
    User.tenant_role_id.key,
]


## Output Schema
class UserSchema(BaseModel):
    id: int
    email_id: str
    full_name: str
    phone_number: Optional[str]
    gender: Optional[int]
    date_of_birth: Optional[date]
    picture_url: Optional[str]
    address: Dict[str, Any]
    preferences: Dict[str, Any]
    tenant_id: Optional[int]
    tenant_role_id: Optional[int]
    role: int
    status: int
    email_verified: bool
    phone_verified: bool
    last_login_at: Optional[datetime]
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class UpdateForm(BaseModel):
    full_name: str | None = Field(min_length=1, max_length=128, default=None)
    phone_number: str | None = Field(max_length=32, pattern=REGEX_PHONE, default=None)
    gender: GenderType | None = Field(description=enumStr(GenderType), default=None)
    date_of_birth: date | None = Field(default=None)
    picture_url: str | None = Field(max_length=2048, default=None)
    address: Dict[str, Any] | None = Field(default=None)
    preferences: Dict[str, Any] | None = Field(default=None)
    # Platform admins only
    role: UserRole | None = Field(description=enumStr(UserRole), default=None)
    status: AccountStatus | None = Field(
        description=enumStr(AccountStatus), default=None
    )
    tenant_id: int | None = Field(default=None)
    tenant_role_id: int | None = Field(default=None)


## Query Parameters
class QueryParams(BaseModel):
    email_id: str | None = Field(Query(default=None))
    full_name: str | None = Field(Query(default=None))
    role: UserRole | None = Field(Query(default=None, description=enumStr(UserRole)))
    status: AccountStatus | None = Field(
        Query(default=None, description=enumStr(AccountStatus))
    )
    tenant_id: int | None = Field(Query(default=None))
    # Pagination
    page: int = Field(Query(default=1, ge=1))
    limit: int = Field(Query(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT))


## Function
def fetchUser(session: Session, user_id: int) -> User:
    target = session.query(User).filter(User.id == user_id).first()
    if target is None:
        raise exceptions.UnknownResource(User)
    return target


def canManage(user: User, target: User, session: Session) -> bool:
    """
    Require `user` to be allowed to read `target`.

    Users may read themselves, platform admins may read anyone and tenant
    members with the `manage_users` permission may read their own tenant.
    """
    if user.id == target.id or user.role == UserRole.ADMIN:
        return True
    if target.tenant_id is None:
        raise exceptions.NoPermission()
    return validators.tenantPermission(
        user, target.tenant_id, TenantRole.manage_users, session
    )


def searchUser(session: Session, qParam: QueryParams, tenant_id: int | None):
    query = session.query(User)

    # Filters
    if tenant_id is not None:
        query = query.filter(User.tenant_id == tenant_id)
    if qParam.email_id is not None:
        query = query.filter(User.email_id.ilike(f"%{qParam.email_id}%"))
    if qParam.full_name is not None:
        query = query.filter(User.full_name.ilike(f"%{qParam.full_name}%"))
    if qParam.role is not None:
        query = query.filter(User.role == qParam.role)
    if qParam.status is not None:
        query = query.filter(User.status == qParam.status)

    query = query.order_by(User.created_on.desc(), User.id.desc())
    return paginate(query, qParam.page, qParam.limit)


## API endpoints [API]
@route_api.get(
    URL_USER,
    tags=["User"],
    response_model=Envelope[list[UserSchema]],
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.TenantRequired(),
        ]
    ),
    description="""
    List user accounts.
    Platform admins see every user.
    Tenant members with the `manage_users` permission see the users of their tenant.
    """,
)
async def fetch_user(
    qParam: QueryParams = Depends(),
    credential=Depends(bearer_api),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        if user.role == UserRole.ADMIN:
            tenant_id = qParam.tenant_id
        else:
            tenant_id = validators.tenantMember(user)
            validators.tenantPermission(
                user, tenant_id, TenantRole.manage_users, session
            )

        users, pagination = searchUser(session, qParam, tenant_id)
        return envelope(users, pagination=pagination)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.get(
    URL_USER_ID,
    tags=["User"],
    response_model=Envelope[UserSchema],
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UnknownResource(User),
        ]
    ),
    description="""
    Fetch a user account.
    Allowed for the user itself, platform admins and user managers of the same tenant.
    """,
)
async def fetch_user_by_id(
    user_id: int,
    credential=Depends(bearer_api),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        target = fetchUser(session, user_id)
        canManage(user, target, session)
        return envelope(target)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.put(
    URL_USER_ID,
    tags=["User"],
    response_model=Envelope[UserSchema],
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UnknownResource(User),
            exceptions.InvalidAssociation(User.tenant_role_id, User.tenant_id),
        ]
    ),
    description="""
    Update a user account.
    Users may update their own profile fields.
    Platform admins may update any account, including its role, status, tenant and tenant role.
    The tenant role must belong to the tenant of the account.
    """,
)
async def update_user(
    user_id: int,
    fParam: UpdateForm,
    credential=Depends(bearer_api),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        target = fetchUser(session, user_id)
        isAdmin = user.role == UserRole.ADMIN
        if user.id != target.id and not isAdmin:
            raise exceptions.NoPermission()
        privileged = [field for field in ADMIN_FIELDS if getattr(fParam, field) is not None]
        if privileged and not isAdmin:
            raise exceptions.NoPermission()

        updateIfChanged(target, fParam, PROFILE_FIELDS + ADMIN_FIELDS)
        if fParam.tenant_id is not None and fParam.tenant_role_id is None:
            role = getters.tenantRole(target, session)
            if target.tenant_role_id is not None and role is None:
                target.tenant_role_id = None
        if target.tenant_role_id is not None:
            role = (
                session.query(TenantRole)
                .filter(TenantRole.id == target.tenant_role_id)
                .first()
            )
            if role is None or role.tenant_id != target.tenant_id:
                raise exceptions.InvalidAssociation(User.tenant_role_id, User.tenant_id)

        haveUpdates = session.is_modified(target)
        if haveUpdates:
            session.commit()
            session.refresh(target)
            logEvent(
                user,
                request_info,
                jsonable_encoder(target, exclude={"password"}),
            )
        return envelope(target, message="User updated")
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.delete(
    URL_USER_ID,
    tags=["User"],
    response_model=Envelope[UserSchema],
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UnknownResource(User),
        ]
    ),
    description="""
    Deactivate a user account.
    Only platform admins may deactivate accounts, the record itself is kept.
    """,
)
async def delete_user(
    user_id: int,
    credential=Depends(bearer_api),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        validators.userRole(user, UserRole.ADMIN)
        target = fetchUser(session, user_id)

        if target.status != AccountStatus.INACTIVE:
            target.status = AccountStatus.INACTIVE
            session.commit()
            session.refresh(target)
            logEvent(user, request_info, {"id": target.id, "status": target.status})
        return envelope(target, message="User deactivated")
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
