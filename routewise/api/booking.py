from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from routewise.api.bearer import bearer_api
from routewise.src.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from routewise.src.db import Booking, sessionMaker
from routewise.src import exceptions, validators
from routewise.src.enums import BookingStatus, UserRole
from routewise.src.schemas import Envelope
from routewise.src.functions import enumStr, envelope, fuseExceptionResponses, paginate
from routewise.src.urls import URL_BOOKING, URL_BOOKING_ID

route_api = APIRouter()


## Output Schema
class BookingSchema(BaseModel):
    id: int
    booking_code: str
    user_id: int
    tenant_id: Optional[int]
    trip_id: int
    passengers: List[Dict[str, Any]]
    contact: Dict[str, Any]
    base_fare: float
    taxes: float
    discount: float
    total_amount: float
    currency: str
    payment: Dict[str, Any]
    status: int
    cancellation: Optional[Dict[str, Any]]
    boarding_point: Optional[Dict[str, Any]]
    dropping_point: Optional[Dict[str, Any]]
    special_requests: Optional[str]
    booking_source: int
    updated_on: Optional[datetime]
    created_on: datetime


## Query Parameters
class QueryParams(BaseModel):
    status: BookingStatus | None = Field(
        Query(default=None, description=enumStr(BookingStatus))
    )
    trip_id: int | None = Field(Query(default=None))
    # Pagination
    page: int = Field(Query(default=1, ge=1))
    limit: int = Field(Query(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT))


## API endpoints [API]
@route_api.get(
    URL_BOOKING,
    tags=["Booking"],
    response_model=Envelope[list[BookingSchema]],
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    List bookings, newest first.
    Platform admins see every booking, other users only their own.
    """,
)
async def fetch_booking(
    qParam: QueryParams = Depends(),
    credential=Depends(bearer_api),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        query = session.query(Booking)

        # Filters
        if user.role != UserRole.ADMIN:
            query = query.filter(Booking.user_id == user.id)
        if qParam.status is not None:
            query = query.filter(Booking.status == qParam.status)
        if qParam.trip_id is not None:
            query = query.filter(Booking.trip_id == qParam.trip_id)

        query = query.order_by(Booking.created_on.desc(), Booking.id.desc())
        bookings, pagination = paginate(query, qParam.page, qParam.limit)
        return envelope(bookings, pagination=pagination)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.get(
    URL_BOOKING_ID,
    tags=["Booking"],
    response_model=Envelope[BookingSchema],
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.ForeignOwnership(Booking),
            exceptions.UnknownResource(Booking),
        ]
    ),
    description="""
    Fetch a booking.
    Users other than platform admins may only fetch their own bookings.
    """,
)
async def fetch_booking_by_id(
    booking_id: int,
    credential=Depends(bearer_api),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        booking = session.query(Booking).filter(Booking.id == booking_id).first()
        if user.role == UserRole.ADMIN and booking is not None:
            return envelope(booking)
        return envelope(validators.ownership(booking, user.id, Booking))
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
