from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from routewise.api.bearer import bearer_api
from routewise.src.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from routewise.src.db import Trip, sessionMaker
from routewise.src import exceptions, validators
from routewise.src.enums import TripStatus
from routewise.src.schemas import Envelope
from routewise.src.functions import enumStr, envelope, fuseExceptionResponses, paginate
from routewise.src.urls import URL_TRIP, URL_TRIP_ID

route_api = APIRouter()


## Output Schema
class TripSchema(BaseModel):
    id: int
    organization_id: int
    route_id: int
    bus_type_id: int
    departure_time: datetime
    arrival_time: datetime
    base_fare: float
    fare_per_km: Optional[float]
    total_fare: float
    currency: str
    available_seats: int
    total_seats: int
    seat_map: List[Dict[str, Any]]
    status: int
    delay: Optional[Dict[str, Any]]
    driver: Optional[Dict[str, Any]]
    conductor: Optional[Dict[str, Any]]
    amenities: List[int]
    boarding_points: List[Dict[str, Any]]
    dropping_points: List[Dict[str, Any]]
    operating_days: List[int]
    is_recurring: bool
    parent_trip_id: Optional[int]
    notes: Optional[str]
    updated_on: Optional[datetime]
    created_on: datetime


## Query Parameters
class QueryParams(BaseModel):
    route_id: int | None = Field(Query(default=None))
    organization_id: int | None = Field(Query(default=None))
    status: TripStatus | None = Field(
        Query(default=None, description=enumStr(TripStatus))
    )
    # departure_time based
    departure_ge: datetime | None = Field(Query(default=None))
    departure_le: datetime | None = Field(Query(default=None))
    # Pagination
    page: int = Field(Query(default=1, ge=1))
    limit: int = Field(Query(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT))


## API endpoints [API]
@route_api.get(
    URL_TRIP,
    tags=["Trip"],
    response_model=Envelope[list[TripSchema]],
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    List trips ordered by departure time.
    Supports filtering by route, organization, status and departure window.
    """,
)
async def fetch_trip(
    qParam: QueryParams = Depends(),
    credential=Depends(bearer_api),
):
    try:
        session = sessionMaker()
        validators.apiUser(credential, session)
        query = session.query(Trip)

        # Filters
        if qParam.route_id is not None:
            query = query.filter(Trip.route_id == qParam.route_id)
        if qParam.organization_id is not None:
            query = query.filter(Trip.organization_id == qParam.organization_id)
        if qParam.status is not None:
            query = query.filter(Trip.status == qParam.status)
        if qParam.departure_ge is not None:
            query = query.filter(Trip.departure_time >= qParam.departure_ge)
        if qParam.departure_le is not None:
            query = query.filter(Trip.departure_time <= qParam.departure_le)

        query = query.order_by(Trip.departure_time.asc(), Trip.id.asc())
        trips, pagination = paginate(query, qParam.page, qParam.limit)
        return envelope(trips, pagination=pagination)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.get(
    URL_TRIP_ID,
    tags=["Trip"],
    response_model=Envelope[TripSchema],
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.UnknownResource(Trip),
        ]
    ),
    description="""
    Fetch a trip.
    """,
)
async def fetch_trip_by_id(
    trip_id: int,
    credential=Depends(bearer_api),
):
    try:
        session = sessionMaker()
        validators.apiUser(credential, session)
        trip = session.query(Trip).filter(Trip.id == trip_id).first()
        if trip is None:
            raise exceptions.UnknownResource(Trip)
        return envelope(trip)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
