from datetime import datetime
from enum import IntEnum
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from routewise.api.bearer import cookie_admin
from routewise.src.db import Organization, Route, sessionMaker
from routewise.src import exceptions, validators, getters
from routewise.src.enums import OrderIn
from routewise.src.loggers import logEvent
from routewise.src.functions import enumStr, fuseExceptionResponses, updateIfChanged
from routewise.src.urls import URL_ROUTE, URL_ROUTE_ID

route_admin = APIRouter()

REQUIRED_FIELDS = [
    Route.name.key,
    Route.origin.key,
    Route.destination.key,
    Route.distance.key,
]
NO_ORGANIZATION = "No organization found. Please complete onboarding first."


## Output Schema
class RouteSchema(BaseModel):
    id: int
    user_id: int
    organization_id: int
    name: str
    origin: str
    destination: str
    distance: float
    duration: Optional[str]
    description: Optional[str]
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class RouteForm(BaseModel):
    organization_id: int | None = Field(default=None)
    name: str | None = Field(max_length=128, default=None)
    origin: str | None = Field(max_length=128, default=None)
    destination: str | None = Field(max_length=128, default=None)
    distance: float | None = Field(gt=0, default=None, description="In kilometers")
    duration: str | None = Field(max_length=32, default=None)
    description: str | None = Field(max_length=2048, default=None)


## Query Parameters
class OrderBy(IntEnum):
    id = 1
    name = 2
    distance = 3
    updated_on = 4
    created_on = 5


class QueryParams(BaseModel):
    organization_id: int | None = Field(Query(default=None))
    name: str | None = Field(Query(default=None))
    origin: str | None = Field(Query(default=None))
    destination: str | None = Field(Query(default=None))
    # distance based
    distance_ge: float | None = Field(Query(default=None))
    distance_le: float | None = Field(Query(default=None))
    # id based
    id: int | None = Field(Query(default=None))
    id_list: List[int] | None = Field(Query(default=None))
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
def searchRoute(session: Session, user_id: int, qParam: QueryParams) -> List[Route]:
    query = session.query(Route).filter(Route.user_id == user_id)

    # Filters
    if qParam.organization_id is not None:
        query = query.filter(Route.organization_id == qParam.organization_id)
    if qParam.name is not None:
        query = query.filter(Route.name.ilike(f"%{qParam.name}%"))
    if qParam.origin is not None:
        query = query.filter(Route.origin.ilike(f"%{qParam.origin}%"))
    if qParam.destination is not None:
        query = query.filter(Route.destination.ilike(f"%{qParam.destination}%"))
    # distance based
    if qParam.distance_ge is not None:
        query = query.filter(Route.distance >= qParam.distance_ge)
    if qParam.distance_le is not None:
        query = query.filter(Route.distance <= qParam.distance_le)
    # id based
    if qParam.id is not None:
        query = query.filter(Route.id == qParam.id)
    if qParam.id_list is not None:
        query = query.filter(Route.id.in_(qParam.id_list))
    # created_on based
    if qParam.created_on_ge is not None:
        query = query.filter(Route.created_on >= qParam.created_on_ge)
    if qParam.created_on_le is not None:
        query = query.filter(Route.created_on <= qParam.created_on_le)

    # Ordering
    orderingAttribute = getattr(Route, OrderBy(qParam.order_by).name)
    if qParam.order_in == OrderIn.ASC:
        query = query.order_by(orderingAttribute.asc())
    else:
        query = query.order_by(orderingAttribute.desc())

    # Pagination
    query = query.offset(qParam.offset).limit(qParam.limit)
    return query.all()


## API endpoints [Admin]
@route_admin.post(
    URL_ROUTE,
    tags=["Route"],
    response_model=RouteSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.MissingRequiredFields(),
            exceptions.NoOrganization(detail=NO_ORGANIZATION),
            exceptions.ForeignOwnership(Organization),
        ]
    ),
    description="""
    Create a route for the signed in user.
    Name, origin, destination and distance are required.
    Filed under the given organization, or the user's primary organization when omitted.
    Completes the route step of the onboarding.
    """,
)
async def create_route(
    fParam: RouteForm,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        user = getters.sessionUser(token, session)
        validators.requiredFields(fParam, REQUIRED_FIELDS)
        organization = validators.organization(
            session, user.id, fParam.organization_id, NO_ORGANIZATION
        )

        route = Route(
            user_id=user.id,
            organization_id=organization.id,
            name=fParam.name,
            origin=fParam.origin,
            destination=fParam.destination,
            distance=fParam.distance,
            duration=fParam.duration,
            description=fParam.description,
        )
        session.add(route)
        user.route_created = True
        session.commit()
        session.refresh(route)
        logEvent(token, request_info, jsonable_encoder(route))
        return route
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_ROUTE,
    tags=["Route"],
    response_model=List[RouteSchema],
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    List the routes of the signed in user.
    Supports filtering by organization, places and distance.
    """,
)
async def fetch_route(
    qParam: QueryParams = Depends(),
    cookie=Depends(cookie_admin),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        return searchRoute(session, token.user_id, qParam)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_ROUTE_ID,
    tags=["Route"],
    response_model=RouteSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.ForeignOwnership(Route),
            exceptions.UnknownResource(Route),
        ]
    ),
    description="""
    Fetch one route of the signed in user.
    """,
)
async def fetch_route_by_id(
    route_id: int,
    cookie=Depends(cookie_admin),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        route = session.query(Route).filter(Route.id == route_id).first()
        return validators.ownership(route, token.user_id, Route)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.put(
    URL_ROUTE_ID,
    tags=["Route"],
    response_model=RouteSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.MissingRequiredFields(),
            exceptions.ForeignOwnership(Route),
            exceptions.UnknownResource(Route),
        ]
    ),
    description="""
    Update a route of the signed in user.
    Name, origin, destination and distance must be provided again.
    """,
)
async def update_route(
    route_id: int,
    fParam: RouteForm,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        route = session.query(Route).filter(Route.id == route_id).first()
        validators.ownership(route, token.user_id, Route)
        validators.requiredFields(fParam, REQUIRED_FIELDS)

        if (
            fParam.organization_id is not None
            and fParam.organization_id != route.organization_id
        ):
            organization = validators.organization(
                session, token.user_id, fParam.organization_id
            )
            route.organization_id = organization.id
        updateIfChanged(
            route,
            fParam,
            [
                Route.name.key,
                Route.origin.key,
                Route.destination.key,
                Route.distance.key,
                Route.duration.key,
                Route.description.key,
            ],
        )

        haveUpdates = session.is_modified(route)
        if haveUpdates:
            session.commit()
            session.refresh(route)
            logEvent(token, request_info, jsonable_encoder(route))
        return route
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_ROUTE_ID,
    tags=["Route"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.ForeignOwnership(Route),
            exceptions.UnknownResource(Route),
        ]
    ),
    description="""
    Delete a route of the signed in user.
    """,
)
async def delete_route(
    route_id: int,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        route = session.query(Route).filter(Route.id == route_id).first()
        validators.ownership(route, token.user_id, Route)

        session.delete(route)
        session.commit()
        logEvent(token, request_info, jsonable_encoder(route))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
