from datetime import date as Date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from pydantic import BaseModel, Field

from routewise.api.trip import TripSchema
from routewise.src.db import Route, Tenant, Trip, sessionMaker
from routewise.src import exceptions
from routewise.src.enums import TenantStatus, TripStatus
from routewise.src.functions import fuseExceptionResponses
from routewise.src.urls import URL_TENANT_SLUG, URL_TRIP_SEARCH

route_public = APIRouter()


## Output Schema
class TenantBrandSchema(BaseModel):
    id: int
    name: str
    slug: str
    logo_url: Optional[str]
    primary_color: str
    secondary_color: str
    favicon_url: Optional[str]
    currency: str
    timezone: str
    advance_booking_days: int
    cancellation_policy: Dict[str, Any]


class SearchResultSchema(TripSchema):
    origin: str
    destination: str
    distance: float
    duration: Optional[str]


## Query Parameters
class SearchParams(BaseModel):
    origin: str = Field(Query(min_length=1, max_length=128))
    destination: str = Field(Query(min_length=1, max_length=128))
    date: Optional[Date] = Field(Query(default=None, description="Departure day, UTC"))
    passengers: int = Field(Query(default=1, ge=1, le=50))


## API endpoints [Public]
@route_public.get(
    URL_TRIP_SEARCH,
    tags=["Search"],
    response_model=List[SearchResultSchema],
    responses=fuseExceptionResponses([exceptions.PydanticError()]),
    description="""
    Search upcoming scheduled trips between two places.
    Places are matched case insensitively against the route of the trip.
    Only trips with enough free seats for all passengers are listed.
    No authentication required.
    """,
)
async def search_trip(qParam: SearchParams = Depends()):
    try:
        session = sessionMaker()
        query = (
            session.query(Trip, Route)
            .join(Route, Route.id == Trip.route_id)
            .filter(func.lower(Route.origin) == qParam.origin.strip().lower())
            .filter(func.lower(Route.destination) == qParam.destination.strip().lower())
            .filter(Trip.status == TripStatus.SCHEDULED)
            .filter(Trip.available_seats >= qParam.passengers)
            .filter(Trip.departure_time > datetime.now(timezone.utc))
        )
        if qParam.date is not None:
            dayStart = datetime.combine(qParam.date, time.min, tzinfo=timezone.utc)
            query = query.filter(Trip.departure_time >= dayStart).filter(
                Trip.departure_time < dayStart + timedelta(days=1)
            )

        results = []
        for trip, route in query.order_by(Trip.departure_time.asc()).all():
            result = TripSchema.model_validate(trip, from_attributes=True).model_dump()
            result.update(
                origin=route.origin,
                destination=route.destination,
                distance=route.distance,
                duration=route.duration,
            )
            results.append(result)
        return results
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_public.get(
    URL_TENANT_SLUG,
    tags=["Tenant"],
    response_model=TenantBrandSchema,
    responses=fuseExceptionResponses([exceptions.UnknownResource(Tenant)]),
    description="""
    Fetch the branding of an active tenant storefront by its slug.
    No authentication required.
    """,
)
async def fetch_tenant_by_slug(slug: str):
    try:
        session = sessionMaker()
        tenant = (
            session.query(Tenant)
            .filter(Tenant.slug == slug.lower())
            .filter(Tenant.status == TenantStatus.ACTIVE)
            .first()
        )
        if tenant is None:
            raise exceptions.UnknownResource(Tenant)
        return tenant
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
