"""
API Endpoint URL Constants

This module defines the URL paths used throughout the application.
Each path is relative to the mount point of its application
(`/admin`, `/api` or `/public`).
"""

# -------------------------------
# Admin console
# -------------------------------
URL_ADMIN_LOGIN = "/auth/login"
URL_ADMIN_LOGOUT = "/auth/logout"
URL_ADMIN_ME = "/auth/me"

URL_ORGANIZATION = "/organizations"
URL_ORGANIZATION_ID = "/organizations/{organization_id}"

URL_BUS_TYPE = "/bus-types"
URL_BUS_TYPE_PRESETS = "/bus-types/presets"
URL_BUS_TYPE_ID = "/bus-types/{bus_type_id}"

URL_ROUTE = "/routes"
URL_ROUTE_ID = "/routes/{route_id}"

URL_ONBOARDING_PROGRESS = "/onboarding/progress"
URL_ONBOARDING_STATUS = "/onboarding/status"
URL_ONBOARDING_SAVE = "/onboarding/save"

URL_PROFILE = "/profile"

URL_DASHBOARD_STATS = "/dashboard/stats"
URL_DASHBOARD_BOOKINGS = "/dashboard/recent-bookings"
URL_DASHBOARD_TRIPS = "/dashboard/upcoming-trips"

# -------------------------------
# API service
# -------------------------------
URL_AUTH_REGISTER = "/auth/register"
URL_AUTH_LOGIN = "/auth/login"
URL_AUTH_REFRESH = "/auth/refresh"
URL_AUTH_LOGOUT = "/auth/logout"
URL_AUTH_FORGOT_PASSWORD = "/auth/forgot-password"
URL_AUTH_RESET_PASSWORD = "/auth/reset-password"
URL_AUTH_PROFILE = "/auth/profile"

URL_TENANT = "/tenants"
URL_TENANT_ID = "/tenants/{tenant_id}"

URL_USER = "/users"
URL_USER_ID = "/users/{user_id}"

URL_BOOKING = "/bookings"
URL_BOOKING_ID = "/bookings/{booking_id}"

URL_TRIP = "/trips"
URL_TRIP_ID = "/trips/{trip_id}"

# -------------------------------
# Public storefront
# -------------------------------
URL_TRIP_SEARCH = "/trips/search"
URL_TENANT_SLUG = "/tenants/{slug}"
