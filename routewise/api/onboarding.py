from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Type
from fastapi import APIRouter, Depends
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, ValidationError

from routewise.api.bearer import cookie_admin
from routewise.api.bus_type import BusTypeForm
from routewise.api.route import RouteForm
from routewise.api.organization import (
    REQUIRED_FIELDS as ORGANIZATION_FIELDS,
    OrganizationForm,
    makePrimary,
    updateOrganization,
)
from routewise.src.constants import ONBOARDING_STEPS
from routewise.src.db import (
    BusType,
    OnboardingDraft,
    Organization,
    Route,
    User,
    sessionMaker,
)
from routewise.src import exceptions, fleet, validators, getters
from routewise.src.loggers import logEvent
from routewise.src.redis import acquireLock, releaseLock
from routewise.src.functions import fuseExceptionResponses, missingFields
from routewise.src.urls import (
    URL_ONBOARDING_PROGRESS,
    URL_ONBOARDING_SAVE,
    URL_ONBOARDING_STATUS,
)

route_admin = APIRouter()


## Output Schema
class ProgressSchema(BaseModel):
    organization_created: bool
    bus_type_created: bool
    route_created: bool
    is_complete: bool
    completed_steps: int
    total_steps: int


class DraftSchema(BaseModel):
    organization: Dict[str, Any]
    business: Dict[str, Any]
    is_complete: bool
    updated_on: Optional[datetime]
    created_on: datetime


class StatusSchema(BaseModel):
    user_id: int
    email_id: str
    onboarding: DraftSchema
    is_complete: bool


## Input Forms
class BusinessForm(BaseModel):
    bus_types: List[Dict[str, Any]] | None = Field(default=None)
    routes: List[Dict[str, Any]] | None = Field(default=None)
    stops: List[Dict[str, Any]] | None = Field(default=None)
    fleet: List[Dict[str, Any]] | None = Field(default=None)
    drivers: List[Dict[str, Any]] | None = Field(default=None)
    workers: List[Dict[str, Any]] | None = Field(default=None)


class SaveForm(BaseModel):
    organization: OrganizationForm | None = Field(default=None)
    business: BusinessForm | None = Field(default=None)
    is_complete: bool = Field(default=False)


## Function
def getProgress(user: User, session: Session) -> dict:
    """
    Compute the onboarding progress of a user.

    Step flags never stored on the account are derived from the records the
    user already owns. Once every step is done the account is marked as
    onboarded. The caller owns the transaction.
    """
    if user.organization_created is None:
        user.organization_created = (
            session.query(Organization.id)
            .filter(Organization.user_id == user.id)
            .first()
            is not None
        )
    if user.bus_type_created is None:
        user.bus_type_created = (
            session.query(BusType.id).filter(BusType.user_id == user.id).first()
            is not None
        )
    if user.route_created is None:
        user.route_created = (
            session.query(Route.id).filter(Route.user_id == user.id).first()
            is not None
        )

    steps = [user.organization_created, user.bus_type_created, user.route_created]
    if all(steps) and not user.onboarding_complete:
        user.onboarding_complete = True
    return {
        "organization_created": user.organization_created,
        "bus_type_created": user.bus_type_created,
        "route_created": user.route_created,
        "is_complete": user.onboarding_complete,
        "completed_steps": sum(1 for step in steps if step),
        "total_steps": ONBOARDING_STEPS,
    }


def fetchDraft(user: User, session: Session) -> OnboardingDraft:
    draft = (
        session.query(OnboardingDraft)
        .filter(OnboardingDraft.user_id == user.id)
        .first()
    )
    if draft is None:
        draft = OnboardingDraft(
            user_id=user.id,
            organization={},
            business={},
            is_complete=False,
        )
        session.add(draft)
    return draft


def entryErrors(
    entries: List[dict] | None,
    form: Type[BaseModel],
    rules: Callable[[dict], List[str]],
    path: str,
) -> Tuple[List[BaseModel], List[dict]]:
    """
    Validate the entries of one business list of the wizard.

    Each entry is parsed with `form` first, the field errors of pydantic are
    reported at `["business", path, index, <field>]`. Entries that parse are
    then checked against `rules` and reported at `["business", path, index]`.

    Returns:
        Tuple[List[BaseModel], List[dict]]: The parsed entries and the errors.
    """
    forms, errors = [], []
    for index, entry in enumerate(entries or []):
        loc = ["business", path, index]
        try:
            item = form.model_validate(entry)
        except ValidationError as e:
            for error in e.errors():
                errors.append({"loc": loc + list(error["loc"]), "msg": error["msg"]})
            continue
        for message in rules(item.model_dump()):
            errors.append({"loc": loc, "msg": message})
        forms.append(item)
    return forms, errors


def onboardingErrors(fParam: SaveForm) -> Tuple[List[dict], dict]:
    """
    Collect every problem of a wizard submission.

    Each error carries a `loc` path into the submitted body and a `msg`.
    The parsed bus types and routes are returned along with the errors,
    keyed by their list name.
    """
    errors = []
    if fParam.organization is not None:
        for field in missingFields(fParam.organization, ORGANIZATION_FIELDS):
            errors.append({"loc": ["organization", field], "msg": f"{field} is required"})

    parsed = {}
    business = fParam.business
    if business is not None:
        parsed["bus_types"], busTypeErrors = entryErrors(
            business.bus_types, BusTypeForm, fleet.busTypeErrors, "bus_types"
        )
        parsed["routes"], routeErrors = entryErrors(
            business.routes, RouteForm, fleet.routeErrors, "routes"
        )
        errors += busTypeErrors + routeErrors
    return errors, parsed


def saveOrganization(
    session: Session, user: User, fParam: OrganizationForm
) -> Organization:
    """Update the primary organization of the user, creating it on the first save."""
    organization = getters.primaryOrganization(user.id, session)
    if organization is None:
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
        makePrimary(session, organization)
    else:
        updateOrganization(organization, fParam)
    user.organization_created = True
    return organization


def replaceBusTypes(
    session: Session,
    user: User,
    organization: Organization,
    busTypes: List[BusTypeForm],
):
    session.query(BusType).filter(
        BusType.organization_id == organization.id
    ).delete(synchronize_session=False)
    for busType in busTypes:
        session.add(
            BusType(
                user_id=user.id,
                organization_id=organization.id,
                name=busType.name.strip(),
                ac_type=busType.ac_type,
                seating_type=busType.seating_type,
                capacity=busType.capacity,
                lower_seater_price=busType.lower_seater_price or 0,
                upper_seater_price=busType.upper_seater_price or 0,
                lower_sleeper_price=busType.lower_sleeper_price or 0,
                upper_sleeper_price=busType.upper_sleeper_price or 0,
                amenities=fleet.normalizeAmenities(busType.amenities),
            )
        )
    # Rederived from the remaining records when the list is empty
    user.bus_type_created = True if busTypes else None


def replaceRoutes(
    session: Session, user: User, organization: Organization, routes: List[RouteForm]
):
    session.query(Route).filter(Route.organization_id == organization.id).delete(
        synchronize_session=False
    )
    for route in routes:
        session.add(
            Route(
                user_id=user.id,
                organization_id=organization.id,
                name=route.name.strip(),
                origin=route.origin.strip(),
                destination=route.destination.strip(),
                distance=route.distance,
                duration=route.duration,
                description=route.description,
            )
        )
    user.route_created = True if routes else None


## API endpoints [Admin]
@route_admin.get(
    URL_ONBOARDING_PROGRESS,
    tags=["Onboarding"],
    response_model=ProgressSchema,
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    Fetch the onboarding progress of the signed in user.
    Steps are creating an organization, a bus type and a route.
    """,
)
async def fetch_progress(cookie=Depends(cookie_admin)):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        user = getters.sessionUser(token, session)
        progress = getProgress(user, session)
        if session.is_modified(user):
            session.commit()
        return progress
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_ONBOARDING_STATUS,
    tags=["Onboarding"],
    response_model=StatusSchema,
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    Fetch the saved onboarding draft of the signed in user.
    An empty draft is created on the first request.
    """,
)
async def fetch_status(cookie=Depends(cookie_admin)):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        user = getters.sessionUser(token, session)
        draft = fetchDraft(user, session)
        if draft.id is None:
            session.commit()
            session.refresh(draft)
        return {
            "user_id": user.id,
            "email_id": user.email_id,
            "onboarding": draft,
            "is_complete": user.onboarding_complete,
        }
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.post(
    URL_ONBOARDING_SAVE,
    tags=["Onboarding"],
    response_model=ProgressSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.InvalidOnboardingData(),
            exceptions.NoOrganization(),
            exceptions.LockAcquireTimeout(),
        ]
    ),
    description="""
    Save the onboarding wizard.
    The organization, every bus type and every route are validated first and all problems are reported together.
    The organization is stored as the primary organization of the user.
    Submitted bus type and route lists replace the ones of that organization.
    Marking the draft complete finishes the onboarding.
    """,
)
async def save_onboarding(
    fParam: SaveForm,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    userLock = None
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        user = getters.sessionUser(token, session)
        errors, parsed = onboardingErrors(fParam)
        if errors:
            raise exceptions.InvalidOnboardingData(errors)

        userLock = acquireLock(User.__tablename__, user.id)
        if fParam.organization is not None:
            organization = saveOrganization(session, user, fParam.organization)
        else:
            organization = getters.defaultOrganization(user.id, session)

        business = fParam.business
        if business is not None and (
            business.bus_types is not None or business.routes is not None
        ):
            if organization is None:
                raise exceptions.NoOrganization()
            if business.bus_types is not None:
                replaceBusTypes(session, user, organization, parsed["bus_types"])
            if business.routes is not None:
                replaceRoutes(session, user, organization, parsed["routes"])

        draft = fetchDraft(user, session)
        if fParam.organization is not None:
            draft.organization = jsonable_encoder(fParam.organization)
        if business is not None:
            draft.business = jsonable_encoder(business, exclude_none=True)
        draft.is_complete = fParam.is_complete
        if fParam.is_complete:
            user.onboarding_complete = True

        progress = getProgress(user, session)
        session.commit()
        logEvent(
            token,
            request_info,
            {"onboarding": jsonable_encoder(fParam), "progress": progress},
        )
        return progress
    except Exception as e:
        exceptions.handle(e)
    finally:
        releaseLock(userLock)
        session.close()
