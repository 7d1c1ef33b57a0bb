from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm.session import Session
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, field_validator

from routewise.api.bearer import bearer_api
from routewise.src.constants import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    REGEX_HEX_COLOR,
    REGEX_SLUG,
)
from routewise.src.db import Tenant, TenantRole, User, sessionMaker
from routewise.src import exceptions, validators, getters
from routewise.src.enums import SubscriptionPlan, TenantStatus, UserRole
from routewise.src.loggers import logEvent
from routewise.src.schemas import Envelope
from routewise.src.functions import (
    enumStr,
    envelope,
    fuseExceptionResponses,
    paginate,
    updateIfChanged,
)
from routewise.src.urls import URL_TENANT, URL_TENANT_ID

route_api = APIRouter()

REQUIRED_FIELDS = [Tenant.name.key, Tenant.slug.key]
SETTING_FIELDS = [
    Tenant.name.key,
    Tenant.logo_url.key,
    Tenant.primary_color.key,
    Tenant.secondary_color.key,
    Tenant.favicon_url.key,
    Tenant.payment_gateway.key,
    Tenant.notification_settings.key,
    Tenant.currency.key,
    Tenant.timezone.key,
    Tenant.advance_booking_days.key,
    Tenant.cancellation_policy.key,
]
SUBSCRIPTION_FIELDS = [
    Tenant.subscription_plan.key,
    Tenant.subscription_start.key,
    Tenant.subscription_end.key,
    Tenant.subscription_active.key,
]
PERMISSION_FIELDS = [
    TenantRole.manage_bookings.key,
    TenantRole.manage_routes.key,
    TenantRole.manage_buses.key,
    TenantRole.manage_depots.key,
    TenantRole.view_analytics.key,
    TenantRole.manage_users.key,
    TenantRole.manage_settings.key,
]
TENANT_STATUS_TRANSITIONS = {
    TenantStatus.ACTIVE: [TenantStatus.SUSPENDED, TenantStatus.INACTIVE],
    TenantStatus.SUSPENDED: [TenantStatus.ACTIVE, TenantStatus.INACTIVE],
    TenantStatus.INACTIVE: [TenantStatus.ACTIVE],
}
CREDENTIAL_FIELDS = [Tenant.payment_gateway.key, Tenant.notification_settings.key]
SECRET_KEYS = {
    "secret_key",
    "webhook_secret",
    "key_secret",
    "password",
    "credentials",
    "firebase_config",
}
SECRET_MASK = "********"


## Output Schema
class TenantRoleSchema(BaseModel):
    id: int
    tenant_id: int
    name: str
    manage_bookings: bool
    manage_routes: bool
    manage_buses: bool
    manage_depots: bool
    view_analytics: bool
    manage_users: bool
    manage_settings: bool
    updated_on: Optional[datetime]
    created_on: datetime


class TenantSchema(BaseModel):
    id: int
    name: str
    slug: str
    logo_url: Optional[str]
    primary_color: str
    secondary_color: str
    favicon_url: Optional[str]
    # Null for members not allowed to manage the settings
    payment_gateway: Optional[Dict[str, Any]]
    notification_settings: Optional[Dict[str, Any]]
    currency: str
    timezone: str
    advance_booking_days: int
    cancellation_policy: Dict[str, Any]
    status: int
    subscription_plan: int
    subscription_start: Optional[datetime]
    subscription_end: Optional[datetime]
    subscription_active: bool
    updated_on: Optional[datetime]
    created_on: datetime


class TenantDetailSchema(TenantSchema):
    roles: List[TenantRoleSchema]


## Input Forms
class RoleForm(BaseModel):
    name: str = Field(min_length=1, max_length=32)
    manage_bookings: bool = Field(default=False)
    manage_routes: bool = Field(default=False)
    manage_buses: bool = Field(default=False)
    manage_depots: bool = Field(default=False)
    view_analytics: bool = Field(default=False)
    manage_users: bool = Field(default=False)
    manage_settings: bool = Field(default=False)


class UpdateForm(BaseModel):
    name: str | None = Field(min_length=1, max_length=128, default=None)
    logo_url: str | None = Field(max_length=2048, default=None)
    primary_color: str | None = Field(pattern=REGEX_HEX_COLOR, default=None)
    secondary_color: str | None = Field(pattern=REGEX_HEX_COLOR, default=None)
    favicon_url: str | None = Field(max_length=2048, default=None)
    payment_gateway: Dict[str, Any] | None = Field(default=None)
    notification_settings: Dict[str, Any] | None = Field(default=None)
    currency: str | None = Field(min_length=3, max_length=3, default=None)
    timezone: str | None = Field(max_length=64, default=None)
    advance_booking_days: int | None = Field(ge=0, default=None)
    cancellation_policy: Dict[str, Any] | None = Field(default=None)
    roles: List[RoleForm] | None = Field(default=None)
    # Platform admins only
    status: TenantStatus | None = Field(description=enumStr(TenantStatus), default=None)
    subscription_plan: SubscriptionPlan | None = Field(
        description=enumStr(SubscriptionPlan), default=None
    )
    subscription_start: datetime | None = Field(default=None)
    subscription_end: datetime | None = Field(default=None)
    subscription_active: bool | None = Field(default=None)

    @field_validator("roles")
    @classmethod
    def uniqueRoleNames(cls, roles):
        if roles is not None:
            names = [role.name for role in roles]
            if len(names) != len(set(names)):
                raise ValueError("Role names must be unique")
        return roles


class CreateForm(UpdateForm):
    slug: str | None = Field(
        max_length=64, pattern=REGEX_SLUG, default=None, description="a-z, 0-9 and -"
    )


## Query Parameters
class QueryParams(BaseModel):
    name: str | None = Field(Query(default=None))
    slug: str | None = Field(Query(default=None))
    status: TenantStatus | None = Field(
        Query(default=None, description=enumStr(TenantStatus))
    )
    subscription_plan: SubscriptionPlan | None = Field(
        Query(default=None, description=enumStr(SubscriptionPlan))
    )
    # Pagination
    page: int = Field(Query(default=1, ge=1))
    limit: int = Field(Query(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT))


## Function
def fetchTenant(session: Session, tenant_id: int) -> Tenant:
    tenant = session.query(Tenant).filter(Tenant.id == tenant_id).first()
    if tenant is None:
        raise exceptions.UnknownResource(Tenant)
    return tenant


def maskSecrets(value):
    """Replace every non empty credential nested in a settings blob with a fixed mask."""
    if isinstance(value, dict):
        return {
            key: SECRET_MASK if key in SECRET_KEYS and item else maskSecrets(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [maskSecrets(item) for item in value]
    return value


def auditData(data: dict) -> dict:
    """Tenant event payload with the stored credentials masked."""
    data = dict(data)
    for field in CREDENTIAL_FIELDS:
        if data.get(field) is not None:
            data[field] = maskSecrets(data[field])
    return data


def canManageSettings(user: User, tenant: Tenant, session: Session) -> bool:
    if user.role == UserRole.ADMIN:
        return True
    if user.tenant_id != tenant.id:
        return False
    role = getters.tenantRole(user, session)
    return role is not None and role.manage_settings


def tenantData(tenant: Tenant, session: Session, credentials: bool = True) -> dict:
    """
    Serialize a tenant together with its roles.

    The payment gateway and notification settings are left out unless
    `credentials` is set.
    """
    data = jsonable_encoder(tenant)
    if not credentials:
        for field in CREDENTIAL_FIELDS:
            data[field] = None
    data["roles"] = (
        session.query(TenantRole)
        .filter(TenantRole.tenant_id == tenant.id)
        .order_by(TenantRole.id.asc())
        .all()
    )
    return data


def replaceRoles(session: Session, tenant: Tenant, roles: List[RoleForm]):
    """
    Bring the roles of a tenant in line with `roles`, matching them by name.

    Roles keeping their name are updated in place so the members holding
    them keep their role. Roles missing from the list are deleted.
    """
    existing = {
        role.name: role
        for role in session.query(TenantRole).filter(TenantRole.tenant_id == tenant.id)
    }
    names = {item.name for item in roles}
    for name, role in existing.items():
        if name not in names:
            session.delete(role)
    for item in roles:
        role = existing.get(item.name)
        if role is None:
            session.add(TenantRole(tenant_id=tenant.id, **item.model_dump()))
        else:
            updateIfChanged(role, item, PERMISSION_FIELDS)


def searchTenant(session: Session, qParam: QueryParams):
    query = session.query(Tenant)

    # Filters
    tenantStatus = qParam.status if qParam.status is not None else TenantStatus.ACTIVE
    query = query.filter(Tenant.status == tenantStatus)
    if qParam.name is not None:
        query = query.filter(Tenant.name.ilike(f"%{qParam.name}%"))
    if qParam.slug is not None:
        query = query.filter(Tenant.slug.ilike(f"%{qParam.slug}%"))
    if qParam.subscription_plan is not None:
        query = query.filter(Tenant.subscription_plan == qParam.subscription_plan)

    query = query.order_by(Tenant.created_on.desc(), Tenant.id.desc())
    return paginate(query, qParam.page, qParam.limit)


## API endpoints [API]
@route_api.get(
    URL_TENANT,
    tags=["Tenant"],
    response_model=Envelope[list[TenantSchema]],
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
        ]
    ),
    description="""
    List tenants, only active ones unless a status is given.
    Only platform admins may list tenants.
    """,
)
async def fetch_tenant(
    qParam: QueryParams = Depends(),
    credential=Depends(bearer_api),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        validators.userRole(user, UserRole.ADMIN)

        tenants, pagination = searchTenant(session, qParam)
        return envelope(tenants, pagination=pagination)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.post(
    URL_TENANT,
    tags=["Tenant"],
    response_model=Envelope[TenantDetailSchema],
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.MissingRequiredFields(),
            exceptions.UniqueViolation("Tenant slug already exists"),
        ]
    ),
    description="""
    Create a tenant, an operator brand with its own storefront.
    Only platform admins may create tenants.
    Name and slug are required, the slug may only contain lowercase letters, digits and hyphens.
    Roles given with the tenant are created along with it, their names must be unique.
    """,
)
async def create_tenant(
    fParam: CreateForm,
    credential=Depends(bearer_api),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        validators.userRole(user, UserRole.ADMIN)
        validators.requiredFields(fParam, REQUIRED_FIELDS)
        if session.query(Tenant.id).filter(Tenant.slug == fParam.slug).first():
            raise exceptions.UniqueViolation("Tenant slug already exists")

        tenant = Tenant(slug=fParam.slug)
        updateIfChanged(tenant, fParam, SETTING_FIELDS + SUBSCRIPTION_FIELDS)
        if fParam.status is not None:
            tenant.status = fParam.status
        session.add(tenant)
        session.flush()
        if fParam.roles:
            replaceRoles(session, tenant, fParam.roles)
        session.commit()
        session.refresh(tenant)

        data = tenantData(tenant, session)
        logEvent(user, request_info, auditData(jsonable_encoder(data)))
        return envelope(data, message="Tenant created")
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.get(
    URL_TENANT_ID,
    tags=["Tenant"],
    response_model=Envelope[TenantDetailSchema],
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UnknownResource(Tenant),
        ]
    ),
    description="""
    Fetch a tenant with its roles.
    Users other than platform admins may only fetch their own tenant.
    The payment gateway and notification settings are only returned to platform admins and
    members holding the `manage_settings` permission.
    """,
)
async def fetch_tenant_by_id(
    tenant_id: int,
    credential=Depends(bearer_api),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        tenant = fetchTenant(session, tenant_id)
        if user.role != UserRole.ADMIN and user.tenant_id != tenant.id:
            raise exceptions.NoPermission()
        credentials = canManageSettings(user, tenant, session)
        return envelope(tenantData(tenant, session, credentials))
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.put(
    URL_TENANT_ID,
    tags=["Tenant"],
    response_model=Envelope[TenantDetailSchema],
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UnknownResource(Tenant),
            exceptions.InvalidValue(Tenant.status),
        ]
    ),
    description="""
    Update the settings of a tenant.
    Allowed for platform admins and members of the tenant holding the `manage_settings` permission.
    Status and subscription are managed by platform admins only.
    When `roles` is given the roles of the tenant are matched to it by name,
    roles left out are deleted and members keep the roles that remain.
    """,
)
async def update_tenant(
    tenant_id: int,
    fParam: UpdateForm,
    credential=Depends(bearer_api),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        tenant = fetchTenant(session, tenant_id)
        validators.tenantPermission(user, tenant.id, TenantRole.manage_settings, session)
        restricted = [
            field
            for field in SUBSCRIPTION_FIELDS + [Tenant.status.key]
            if getattr(fParam, field) is not None
        ]
        if restricted and user.role != UserRole.ADMIN:
            raise exceptions.NoPermission()

        updateIfChanged(tenant, fParam, SETTING_FIELDS + SUBSCRIPTION_FIELDS)
        if fParam.status is not None and fParam.status != tenant.status:
            validators.stateTransition(
                TENANT_STATUS_TRANSITIONS, tenant.status, fParam.status, Tenant.status
            )
            tenant.status = fParam.status
        haveUpdates = session.is_modified(tenant)
        if fParam.roles is not None:
            replaceRoles(session, tenant, fParam.roles)
            haveUpdates = True

        if haveUpdates:
            session.commit()
            session.refresh(tenant)
        data = tenantData(tenant, session)
        if haveUpdates:
            logEvent(user, request_info, auditData(jsonable_encoder(data)))
        return envelope(data, message="Tenant updated")
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_api.delete(
    URL_TENANT_ID,
    tags=["Tenant"],
    response_model=Envelope[TenantSchema],
    responses=fuseExceptionResponses(
        [
            exceptions.Unauthenticated(),
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UnknownResource(Tenant),
        ]
    ),
    description="""
    Deactivate a tenant.
    Only platform admins may deactivate tenants, the record and its data are kept.
    """,
)
async def delete_tenant(
    tenant_id: int,
    credential=Depends(bearer_api),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        user = validators.apiUser(credential, session)
        validators.userRole(user, UserRole.ADMIN)
        tenant = fetchTenant(session, tenant_id)

        if tenant.status != TenantStatus.INACTIVE:
            tenant.status = TenantStatus.INACTIVE
            session.commit()
            session.refresh(tenant)
            logEvent(user, request_info, {"id": tenant.id, "status": tenant.status})
        return envelope(tenant, message="Tenant deactivated")
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
