from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm.session import Session
from pydantic import BaseModel, Field, field_validator

from routewise.api.bearer import cookie_admin
from routewise.src.constants import REGEX_PHONE
from routewise.src.db import User, sessionMaker
from routewise.src import exceptions, validators, getters
from routewise.src.enums import UserRole
from routewise.src.loggers import logEvent
from routewise.src.functions import fuseExceptionResponses, monthYear
from routewise.src.urls import URL_PROFILE

route_admin = APIRouter()

ROLE_LABELS = {
    UserRole.USER: "User",
    UserRole.ADMIN: "Administrator",
    UserRole.OPERATOR: "Operator",
    UserRole.DRIVER: "Driver",
    UserRole.CONDUCTOR: "Conductor",
}


## Output Schema
class ProfileSchema(BaseModel):
    name: str
    email_id: str
    phone_number: str
    location: str
    join_date: str
    role: str
    department: str
    organization_id: Optional[int]


## Input Forms
class ProfileForm(BaseModel):
    name: str | None = Field(max_length=128, default=None)
    phone_number: str | None = Field(max_length=32, pattern=REGEX_PHONE, default=None)
    location: str | None = Field(max_length=512, default=None)

    @field_validator("*", mode="before")
    @classmethod
    def blankAsNone(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


## Function
def profileData(user: User, session: Session) -> dict:
    organization = getters.primaryOrganization(user.id, session)
    return {
        "name": user.full_name,
        "email_id": user.email_id,
        "phone_number": user.phone_number or "",
        "location": organization.address if organization else "",
        "join_date": monthYear(user.created_on),
        "role": ROLE_LABELS.get(user.role, "User"),
        "department": organization.name if organization else "",
        "organization_id": organization.id if organization else None,
    }


## API endpoints [Admin]
@route_admin.get(
    URL_PROFILE,
    tags=["Profile"],
    response_model=ProfileSchema,
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    Fetch the profile card of the signed in user.
    Location and department come from the primary organization.
    """,
)
async def fetch_profile(cookie=Depends(cookie_admin)):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        user = getters.sessionUser(token, session)
        return profileData(user, session)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.put(
    URL_PROFILE,
    tags=["Profile"],
    response_model=ProfileSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.NoOrganization(),
        ]
    ),
    description="""
    Update the profile of the signed in user.
    The location is stored as the address of the primary organization, so it needs one.
    """,
)
async def update_profile(
    fParam: ProfileForm,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        user = getters.sessionUser(token, session)

        if fParam.name is not None and user.full_name != fParam.name:
            user.full_name = fParam.name
        if fParam.phone_number is not None and user.phone_number != fParam.phone_number:
            user.phone_number = fParam.phone_number
        if fParam.location is not None:
            organization = getters.primaryOrganization(user.id, session)
            if organization is None:
                raise exceptions.NoOrganization()
            if organization.address != fParam.location:
                organization.address = fParam.location

        if session.dirty:
            session.commit()
            session.refresh(user)
            profile = profileData(user, session)
            logEvent(token, request_info, profile)
            return profile
        return profileData(user, session)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
