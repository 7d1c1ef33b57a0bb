from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from routewise.api.bearer import cookie_admin
from routewise.src.constants import MAX_DASHBOARD_ITEMS
from routewise.src.db import Booking, BusType, Organization, Route, Trip, sessionMaker
from routewise.src import exceptions, validators
from routewise.src.enums import TripStatus
from routewise.src.functions import fuseExceptionResponses
from routewise.src.urls import (
    URL_DASHBOARD_BOOKINGS,
    URL_DASHBOARD_STATS,
    URL_DASHBOARD_TRIPS,
)

route_admin = APIRouter()


## Output Schema
class StatsSchema(BaseModel):
    total_buses: int
    active_routes: int
    total_organizations: int


class RecentBookingSchema(BaseModel):
    id: int
    booking_code: str
    trip_id: int
    passengers: List[Dict[str, Any]]
    total_amount: float
    currency: str
    status: int
    created_on: datetime


class UpcomingTripSchema(BaseModel):
    id: int
    organization_id: int
    route_id: int
    bus_type_id: Optional[int]
    departure_time: datetime
    arrival_time: datetime
    available_seats: int
    total_seats: int
    status: int


## API endpoints [Admin]
@route_admin.get(
    URL_DASHBOARD_STATS,
    tags=["Dashboard"],
    response_model=StatsSchema,
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    Fetch the fleet counters of the signed in user.
    """,
)
async def fetch_stats(cookie=Depends(cookie_admin)):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        return {
            "total_buses": session.query(BusType)
            .filter(BusType.user_id == token.user_id)
            .count(),
            "active_routes": session.query(Route)
            .filter(Route.user_id == token.user_id)
            .count(),
            "total_organizations": session.query(Organization)
            .filter(Organization.user_id == token.user_id)
            .count(),
        }
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_DASHBOARD_BOOKINGS,
    tags=["Dashboard"],
    response_model=List[RecentBookingSchema],
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    List the newest bookings made on trips of the user's organizations.
    """,
)
async def fetch_recent_bookings(cookie=Depends(cookie_admin)):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        organizations = [
            row.id
            for row in session.query(Organization.id).filter(
                Organization.user_id == token.user_id
            )
        ]
        return (
            session.query(Booking)
            .join(Trip, Trip.id == Booking.trip_id)
            .filter(Trip.organization_id.in_(organizations))
            .order_by(Booking.created_on.desc())
            .limit(MAX_DASHBOARD_ITEMS)
            .all()
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_DASHBOARD_TRIPS,
    tags=["Dashboard"],
    response_model=List[UpcomingTripSchema],
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    List the next scheduled departures of the user's organizations.
    """,
)
async def fetch_upcoming_trips(cookie=Depends(cookie_admin)):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        organizations = [
            row.id
            for row in session.query(Organization.id).filter(
                Organization.user_id == token.user_id
            )
        ]
        return (
            session.query(Trip)
            .filter(Trip.organization_id.in_(organizations))
            .filter(Trip.status == TripStatus.SCHEDULED)
            .filter(Trip.departure_time > datetime.now(timezone.utc))
            .order_by(Trip.departure_time.asc())
            .limit(MAX_DASHBOARD_ITEMS)
            .all()
        )
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
