from fastapi import FastAPI
from routewise.api import (
    admin_session,
    organization,
    bus_type,
    route,
    onboarding,
    profile,
    dashboard,
    account,
    tenant,
    user,
    booking,
    trip,
    public,
)
from routewise.src import exceptions
from routewise.src.enums import AppID


# ------------------------------------------------------
# Create separate FastAPI apps for each surface
# ------------------------------------------------------
app_admin = FastAPI(title="Admin Console APP")
app_api = FastAPI(title="Service APP")
app_public = FastAPI(title="Public APP")

# Tag each app with its AppID
app_admin.state.id = AppID.ADMIN
app_api.state.id = AppID.API
app_public.state.id = AppID.PUBLIC

# Render every error in the response envelope
for subApp in (app_admin, app_api, app_public):
    exceptions.registerHandlers(subApp)


# ------------------------------------------------------
# Admin console routers
# ------------------------------------------------------
app_admin.include_router(admin_session.route_admin)
app_admin.include_router(organization.route_admin)
app_admin.include_router(bus_type.route_admin)
app_admin.include_router(route.route_admin)
app_admin.include_router(onboarding.route_admin)
app_admin.include_router(profile.route_admin)
app_admin.include_router(dashboard.route_admin)


# ------------------------------------------------------
# API service routers
# ------------------------------------------------------
app_api.include_router(account.route_api)
app_api.include_router(tenant.route_api)
app_api.include_router(user.route_api)
app_api.include_router(booking.route_api)
app_api.include_router(trip.route_api)


# ------------------------------------------------------
# Public routers
# ------------------------------------------------------
app_public.include_router(public.route_public)
