from datetime import datetime
from enum import IntEnum
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, EmailStr, Field, field_validator

from routewise.api.bearer import cookie_admin
from routewise.src.constants import REGEX_PHONE, REGEX_WEBSITE
from routewise.src.db import Organization, User, sessionMaker
from routewise.src import exceptions, validators, getters
from routewise.src.enums import OrderIn
from routewise.src.loggers import logEvent
from routewise.src.redis import acquireLock, releaseLock
from routewise.src.functions import enumStr, fuseExceptionResponses, updateIfChanged
from routewise.src.urls import URL_ORGANIZATION, URL_ORGANIZATION_ID

route_admin = APIRouter()

REQUIRED_FIELDS = [
    Organization.name.key,
    Organization.address.key,
    Organization.phone_number.key,
    Organization.email_id.key,
]


## Output Schema
class OrganizationSchema(BaseModel):
    id: int
    user_id: int
    name: str
    address: str
    registered_office: Optional[str]
    phone_number: str
    phone_number_2: Optional[str]
    email_id: str
    website: Optional[str]
    gst_number: Optional[str]
    pan_number: Optional[str]
    is_primary: bool
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class OrganizationForm(BaseModel):
    name: str | None = Field(max_length=128, default=None)
    address: str | None = Field(max_length=512, default=None)
    registered_office: str | None = Field(max_length=512, default=None)
    phone_number: str | None = Field(max_length=32, pattern=REGEX_PHONE, default=None)
    phone_number_2: str | None = Field(
        max_length=32, pattern=REGEX_PHONE, default=None
    )
    email_id: EmailStr | None = Field(
        max_length=256, default=None, description="Email in RFC 5322 format"
    )
    website: str | None = Field(
        max_length=256, pattern=REGEX_WEBSITE, default=None, description="http(s) URL"
    )
    gst_number: str | None = Field(max_length=32, default=None)
    pan_number: str | None = Field(max_length=32, default=None)
    is_primary: bool | None = Field(default=None)

    @field_validator("*", mode="before")
    @classmethod
    def blankAsNone(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


## Query Parameters
class OrderBy(IntEnum):
    id = 1
    name = 2
    updated_on = 3
    created_on = 4


class QueryParams(BaseModel):
    name: str | None = Field(Query(default=None))
    is_primary: bool | None = Field(Query(default=None))
    # id based
    id: int | None = Field(Query(default=None))
    id_ge: int | None = Field(Query(default=None))
    id_le: int | None = Field(Query(default=None))
    id_list: List[int] | None = Field(Query(default=None))
    # updated_on based
    updated_on_ge: datetime | None = Field(Query(default=None))
    updated_on_le: datetime | None = Field(Query(default=None))
    # created_on based
    created_on_ge: datetime | None = Field(Query(default=None))
    created_on_le: datetime | None = Field(Query(default=None))
    # Ordering
    order_by: OrderBy = Field(Query(default=OrderBy.id, description=enumStr(OrderBy)))
    order_in: OrderIn = Field(Query(default=OrderIn.DESC, description=enumStr(OrderIn)))
    # Pagination
    offset: int = Field(Query(default=0, ge=0))
    limit: int = Field(Query(default=20, gt=0, le=100))


## Function
def makePrimary(session: Session, organization: Organization) -> None:
    """Mark `organization` primary and clear the flag on its siblings."""
    session.query(Organization).filter(
        Organization.user_id == organization.user_id,
        Organization.id != organization.id,
        Organization.is_primary.is_(True),
    ).update({Organization.is_primary: False}, synchronize_session=False)
    organization.is_primary = True


def updateOrganization(organization: Organization, fParam: OrganizationForm):
    updateIfChanged(
        organization,
        fParam,
        [
            Organization.name.key,
            Organization.address.key,
            Organization.registered_office.key,
            Organization.phone_number.key,
            Organization.phone_number_2.key,
            Organization.email_id.key,
            Organization.website.key,
            Organization.gst_number.key,
            Organization.pan_number.key,
        ],
    )


def searchOrganization(
    session: Session, user_id: int, qParam: QueryParams
) -> List[Organization]:
    query = session.query(Organization).filter(Organization.user_id == user_id)

    # Filters
    if qParam.name is not None:
        query = query.filter(Organization.name.ilike(f"%{qParam.name}%"))
    if qParam.is_primary is not None:
        query = query.filter(Organization.is_primary.is_(qParam.is_primary))
    # id based
    if qParam.id is not None:
        query = query.filter(Organization.id == qParam.id)
    if qParam.id_ge is not None:
        query = query.filter(Organization.id >= qParam.id_ge)
    if qParam.id_le is not None:
        query = query.filter(Organization.id <= qParam.id_le)
    if qParam.id_list is not None:
        query = query.filter(Organization.id.in_(qParam.id_list))
    # updated_on based
    if qParam.updated_on_ge is not None:
        query = query.filter(Organization.updated_on >= qParam.updated_on_ge)
    if qParam.updated_on_le is not None:
        query = query.filter(Organization.updated_on <= qParam.updated_on_le)
    # created_on based
    if qParam.created_on_ge is not None:
        query = query.filter(Organization.created_on >= qParam.created_on_ge)
    if qParam.created_on_le is not None:
        query = query.filter(Organization.created_on <= qParam.created_on_le)

    # Ordering
    orderingAttribute = getattr(Organization, OrderBy(qParam.order_by).name)
    if qParam.order_in == OrderIn.ASC:
        query = query.order_by(orderingAttribute.asc())
    else:
        query = query.order_by(orderingAttribute.desc())

    # Pagination
    query = query.offset(qParam.offset).limit(qParam.limit)
    return query.all()


## API endpoints [Admin]
@route_admin.post(
    URL_ORGANIZATION,
    tags=["Organization"],
    response_model=OrganizationSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.MissingRequiredFields(),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Register a new organization for the signed in user.
    Name, address, phone number and email are required.
    The first organization of a user becomes primary, marking another one as primary later moves the flag.
    Completes the organization step of the onboarding.
    """,
)
async def create_organization(
    fParam: OrganizationForm,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    userLock = None
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        user = getters.sessionUser(token, session)
        validators.requiredFields(fParam, REQUIRED_FIELDS)

        userLock = acquireLock(User.__tablename__, user.id)
        organization = Organization(
            user_id=user.id,
            name=fParam.name,
            address=fParam.address,
            registered_office=fParam.registered_office,
            phone_number=fParam.phone_number,
            phone_number_2=fParam.phone_number_2,
            email_id=fParam.email_id,
            website=fParam.website,
            gst_number=fParam.gst_number,
            pan_number=fParam.pan_number,
            is_primary=False,
        )
        session.add(organization)
        session.flush()
        if fParam.is_primary or getters.primaryOrganization(user.id, session) is None:
            makePrimary(session, organization)
        user.organization_created = True
        session.commit()
        session.refresh(organization)
        logEvent(token, request_info, jsonable_encoder(organization))
        return organization
    except Exception as e:
        exceptions.handle(e)
    finally:
        releaseLock(userLock)
        session.close()


@route_admin.get(
    URL_ORGANIZATION,
    tags=["Organization"],
    response_model=List[OrganizationSchema],
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    List the organizations of the signed in user.
    Supports filtering, ordering and pagination.
    """,
)
async def fetch_organization(
    qParam: QueryParams = Depends(),
    cookie=Depends(cookie_admin),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        return searchOrganization(session, token.user_id, qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_ORGANIZATION_ID,
    tags=["Organization"],
    response_model=OrganizationSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.ForeignOwnership(Organization),
            exceptions.UnknownResource(Organization),
        ]
    ),
    description="""
    Fetch one organization of the signed in user.
    """,
)
async def fetch_organization_by_id(
    organization_id: int,
    cookie=Depends(cookie_admin),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        organization = (
            session.query(Organization)
            .filter(Organization.id == organization_id)
            .first()
        )
        return validators.ownership(organization, token.user_id, Organization)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.put(
    URL_ORGANIZATION_ID,
    tags=["Organization"],
    response_model=OrganizationSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.MissingRequiredFields(),
            exceptions.ForeignOwnership(Organization),
            exceptions.UnknownResource(Organization),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Update an organization of the signed in user.
    Name, address, phone number and email are required again, other fields are updated when provided.
    Setting `is_primary` moves the primary flag to this organization.
    """,
)
async def update_organization(
    organization_id: int,
    fParam: OrganizationForm,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    userLock = None
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        organization = (
            session.query(Organization)
            .filter(Organization.id == organization_id)
            .first()
        )
        validators.ownership(organization, token.user_id, Organization)
        validators.requiredFields(fParam, REQUIRED_FIELDS)

        updateOrganization(organization, fParam)
        if fParam.is_primary and not organization.is_primary:
            userLock = acquireLock(User.__tablename__, token.user_id)
            makePrimary(session, organization)

        haveUpdates = session.is_modified(organization)
        if haveUpdates:
            session.commit()
            session.refresh(organization)
            logEvent(token, request_info, jsonable_encoder(organization))
        return organization
    except Exception as e:
        exceptions.handle(e)
    finally:
        releaseLock(userLock)
        session.close()


@route_admin.delete(
    URL_ORGANIZATION_ID,
    tags=["Organization"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.ForeignOwnership(Organization),
            exceptions.UnknownResource(Organization),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Delete an organization of the signed in user, together with its bus types and routes.
    When the primary organization is deleted, the oldest remaining one becomes primary.
    """,
)
async def delete_organization(
    organization_id: int,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    userLock = None
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        organization = (
            session.query(Organization)
            .filter(Organization.id == organization_id)
            .first()
        )
        validators.ownership(organization, token.user_id, Organization)

        userLock = acquireLock(User.__tablename__, token.user_id)
        wasPrimary = organization.is_primary
        session.delete(organization)
        session.flush()
        if wasPrimary:
            successor = getters.defaultOrganization(token.user_id, session)
            if successor is not None:
                makePrimary(session, successor)
        session.commit()
        logEvent(token, request_info, jsonable_encoder(organization))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        releaseLock(userLock)
        session.close()
