from datetime import datetime
from enum import IntEnum
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from routewise.api.bearer import cookie_admin
from routewise.src.db import BusType, Organization, sessionMaker
from routewise.src import exceptions, fleet, validators, getters
from routewise.src.enums import ACType, Amenity, OrderIn, SeatingType
from routewise.src.loggers import logEvent
from routewise.src.functions import enumStr, fuseExceptionResponses, updateIfChanged
from routewise.src.urls import URL_BUS_TYPE, URL_BUS_TYPE_ID, URL_BUS_TYPE_PRESETS

route_admin = APIRouter()

REQUIRED_FIELDS = [
    BusType.name.key,
    BusType.ac_type.key,
    BusType.seating_type.key,
    BusType.capacity.key,
    BusType.lower_seater_price.key,
]


## Output Schema
class BusTypePresetSchema(BaseModel):
    name: str
    ac_type: int
    seating_type: int
    capacity: int
    lower_seater_price: float
    upper_seater_price: float
    lower_sleeper_price: float
    upper_sleeper_price: float
    amenities: List[int]
    display_name: str
    pricing_text: str


class BusTypeSchema(BusTypePresetSchema):
    id: int
    user_id: int
    organization_id: int
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class BusTypeForm(BaseModel):
    organization_id: int | None = Field(default=None)
    name: str | None = Field(max_length=64, default=None)
    ac_type: ACType | None = Field(description=enumStr(ACType), default=None)
    seating_type: SeatingType | None = Field(
        description=enumStr(SeatingType), default=None
    )
    capacity: int | None = Field(gt=0, default=None)
    lower_seater_price: float | None = Field(ge=0, default=None)
    upper_seater_price: float | None = Field(ge=0, default=None)
    lower_sleeper_price: float | None = Field(ge=0, default=None)
    upper_sleeper_price: float | None = Field(ge=0, default=None)
    amenities: List[Amenity] | None = Field(
        description=enumStr(Amenity), default=None
    )


## Query Parameters
class OrderBy(IntEnum):
    id = 1
    name = 2
    capacity = 3
    updated_on = 4
    created_on = 5


class QueryParams(BaseModel):
    organization_id: int | None = Field(Query(default=None))
    name: str | None = Field(Query(default=None))
    ac_type: ACType | None = Field(Query(default=None, description=enumStr(ACType)))
    seating_type: SeatingType | None = Field(
        Query(default=None, description=enumStr(SeatingType))
    )
    # capacity based
    capacity_ge: int | None = Field(Query(default=None))
    capacity_le: int | None = Field(Query(default=None))
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
def busTypeData(busType: BusType) -> dict:
    """Serialize a bus type together with its display name and pricing summary."""
    data = jsonable_encoder(busType)
    data["display_name"] = fleet.displayName(busType.ac_type, busType.seating_type)
    data["pricing_text"] = fleet.pricingText(
        busType.seating_type,
        busType.lower_seater_price,
        busType.upper_seater_price,
        busType.lower_sleeper_price,
        busType.upper_sleeper_price,
    )
    return data


def updateBusType(busType: BusType, fParam: BusTypeForm):
    updateIfChanged(
        busType,
        fParam,
        [
            BusType.name.key,
            BusType.ac_type.key,
            BusType.seating_type.key,
            BusType.capacity.key,
            BusType.lower_seater_price.key,
            BusType.upper_seater_price.key,
            BusType.lower_sleeper_price.key,
            BusType.upper_sleeper_price.key,
        ],
    )
    if fParam.amenities is not None:
        amenities = fleet.normalizeAmenities(fParam.amenities)
        if busType.amenities != amenities:
            busType.amenities = amenities


def searchBusType(session: Session, user_id: int, qParam: QueryParams) -> List[BusType]:
    query = session.query(BusType).filter(BusType.user_id == user_id)

    # Filters
    if qParam.organization_id is not None:
        query = query.filter(BusType.organization_id == qParam.organization_id)
    if qParam.name is not None:
        query = query.filter(BusType.name.ilike(f"%{qParam.name}%"))
    if qParam.ac_type is not None:
        query = query.filter(BusType.ac_type == qParam.ac_type)
    if qParam.seating_type is not None:
        query = query.filter(BusType.seating_type == qParam.seating_type)
    # capacity based
    if qParam.capacity_ge is not None:
        query = query.filter(BusType.capacity >= qParam.capacity_ge)
    if qParam.capacity_le is not None:
        query = query.filter(BusType.capacity <= qParam.capacity_le)
    # id based
    if qParam.id is not None:
        query = query.filter(BusType.id == qParam.id)
    if qParam.id_list is not None:
        query = query.filter(BusType.id.in_(qParam.id_list))
    # created_on based
    if qParam.created_on_ge is not None:
        query = query.filter(BusType.created_on >= qParam.created_on_ge)
    if qParam.created_on_le is not None:
        query = query.filter(BusType.created_on <= qParam.created_on_le)

    # Ordering
    orderingAttribute = getattr(BusType, OrderBy(qParam.order_by).name)
    if qParam.order_in == OrderIn.ASC:
        query = query.order_by(orderingAttribute.asc())
    else:
        query = query.order_by(orderingAttribute.desc())

    # Pagination
    query = query.offset(qParam.offset).limit(qParam.limit)
    return query.all()


## API endpoints [Admin]
@route_admin.post(
    URL_BUS_TYPE,
    tags=["Bus Type"],
    response_model=BusTypeSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.MissingRequiredFields(),
            exceptions.NoOrganization(),
            exceptions.ForeignOwnership(Organization),
        ]
    ),
    description="""
    Create a bus type for the signed in user.
    Name, AC type, seating type, capacity and lower seater price are required.
    Filed under the given organization, or the user's primary organization when omitted.
    Completes the bus type step of the onboarding.
    """,
)
async def create_bus_type(
    fParam: BusTypeForm,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        user = getters.sessionUser(token, session)
        validators.requiredFields(fParam, REQUIRED_FIELDS)
        organization = validators.organization(
            session, user.id, fParam.organization_id
        )

        busType = BusType(
            user_id=user.id,
            organization_id=organization.id,
            name=fParam.name,
            ac_type=fParam.ac_type,
            seating_type=fParam.seating_type,
            capacity=fParam.capacity,
            lower_seater_price=fParam.lower_seater_price,
            upper_seater_price=fParam.upper_seater_price or 0,
            lower_sleeper_price=fParam.lower_sleeper_price or 0,
            upper_sleeper_price=fParam.upper_sleeper_price or 0,
            amenities=fleet.normalizeAmenities(fParam.amenities),
        )
        session.add(busType)
        user.bus_type_created = True
        session.commit()
        session.refresh(busType)
        busTypeInfo = busTypeData(busType)
        logEvent(token, request_info, busTypeInfo)
        return busTypeInfo
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_BUS_TYPE_PRESETS,
    tags=["Bus Type"],
    response_model=List[BusTypePresetSchema],
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    List the common bus configurations offered as starting points in the console.
    """,
)
async def fetch_bus_type_presets(cookie=Depends(cookie_admin)):
    try:
        session = sessionMaker()
        validators.adminToken(cookie, session)
        presets = []
        for preset in fleet.COMMON_BUS_TYPES:
            presetInfo = jsonable_encoder(preset)
            presetInfo["display_name"] = fleet.displayName(
                preset["ac_type"], preset["seating_type"]
            )
            presetInfo["pricing_text"] = fleet.pricingText(
                preset["seating_type"],
                preset["lower_seater_price"],
                preset["upper_seater_price"],
                preset["lower_sleeper_price"],
                preset["upper_sleeper_price"],
            )
            presets.append(presetInfo)
        return presets
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_BUS_TYPE,
    tags=["Bus Type"],
    response_model=List[BusTypeSchema],
    responses=fuseExceptionResponses(
        [exceptions.Unauthenticated(), exceptions.InvalidToken()]
    ),
    description="""
    List the bus types of the signed in user.
    Supports filtering by organization, AC type, seating type and capacity.
    """,
)
async def fetch_bus_type(
    qParam: QueryParams = Depends(),
    cookie=Depends(cookie_admin),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        busTypes = searchBusType(session, token.user_id, qParam)
        return [busTypeData(busType) for busType in busTypes]
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_BUS_TYPE_ID,
    tags=["Bus Type"],
    response_model=BusTypeSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.ForeignOwnership(BusType),
            exceptions.UnknownResource(BusType),
        ]
    ),
    description="""
    Fetch one bus type of the signed in user.
    """,
)
async def fetch_bus_type_by_id(
    bus_type_id: int,
    cookie=Depends(cookie_admin),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        busType = session.query(BusType).filter(BusType.id == bus_type_id).first()
        validators.ownership(busType, token.user_id, BusType)
        return busTypeData(busType)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.put(
    URL_BUS_TYPE_ID,
    tags=["Bus Type"],
    response_model=BusTypeSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.MissingRequiredFields(),
            exceptions.ForeignOwnership(BusType),
            exceptions.UnknownResource(BusType),
        ]
    ),
    description="""
    Update a bus type of the signed in user.
    The required fields of creation must be provided again.
    Providing `organization_id` moves the bus type to another organization of the user.
    """,
)
async def update_bus_type(
    bus_type_id: int,
    fParam: BusTypeForm,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        busType = session.query(BusType).filter(BusType.id == bus_type_id).first()
        validators.ownership(busType, token.user_id, BusType)
        validators.requiredFields(fParam, REQUIRED_FIELDS)

        if (
            fParam.organization_id is not None
            and fParam.organization_id != busType.organization_id
        ):
            organization = validators.organization(
                session, token.user_id, fParam.organization_id
            )
            busType.organization_id = organization.id
        updateBusType(busType, fParam)

        haveUpdates = session.is_modified(busType)
        if haveUpdates:
            session.commit()
            session.refresh(busType)
        busTypeInfo = busTypeData(busType)
        if haveUpdates:
            logEvent(token, request_info, busTypeInfo)
        return busTypeInfo
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_BUS_TYPE_ID,
    tags=["Bus Type"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.ForeignOwnership(BusType),
            exceptions.UnknownResource(BusType),
        ]
    ),
    description="""
    Delete a bus type of the signed in user.
    """,
)
async def delete_bus_type(
    bus_type_id: int,
    cookie=Depends(cookie_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(cookie, session)
        busType = session.query(BusType).filter(BusType.id == bus_type_id).first()
        validators.ownership(busType, token.user_id, BusType)

        session.delete(busType)
        session.commit()
        logEvent(token, request_info, jsonable_encoder(busType))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
