"""
Application configuration and constants for RouteWise API Server.

This module centralizes environment-based configuration, resource limits,
regular expressions, token lifetimes and tenant defaults.

Configuration values can be overridden via environment variables.
"""

from os import environ


# ---------------------------------------------------------------------------
# Application metadata
# ---------------------------------------------------------------------------
API_TITLE = "RouteWise API Server"
API_VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# PostgreSQL configuration
# ---------------------------------------------------------------------------
PSQL_DB_DRIVER = environ.get("PSQL_DB_DRIVER", "postgresql")
PSQL_DB_USERNAME = environ.get("PSQL_DB_USERNAME", "postgres")
PSQL_DB_PORT = environ.get("PSQL_DB_PORT", "5432")
PSQL_DB_PASSWORD = environ.get("PSQL_DB_PASSWORD", "password")
PSQL_DB_HOST = environ.get("PSQL_DB_HOST", "localhost")
PSQL_DB_NAME = environ.get("PSQL_DB_NAME", "postgres")
# Full SQLAlchemy URL, overrides the PSQL_* settings when present
DB_URL = environ.get("DB_URL")


# ---------------------------------------------------------------------------
# OpenObserve configuration
# ---------------------------------------------------------------------------
OPENOBSERVE_ENABLED = environ.get("OPENOBSERVE_ENABLED", "true").lower() == "true"
OPENOBSERVE_PROTOCOL = environ.get("OPENOBSERVE_PROTOCOL", "http")
OPENOBSERVE_HOST = environ.get("OPENOBSERVE_HOST", "localhost")
OPENOBSERVE_PORT = environ.get("OPENOBSERVE_PORT", "5080")
OPENOBSERVE_USERNAME = environ.get("OPENOBSERVE_USERNAME", "admin@routewise.in")
OPENOBSERVE_PASSWORD = environ.get("OPENOBSERVE_PASSWORD", "password")
OPENOBSERVE_ORG = environ.get("OPENOBSERVE_ORG", "routewise")
OPENOBSERVE_STREAM = environ.get("OPENOBSERVE_STREAM", "routewise-core-server")
OPENOBSERVE_TIMEOUT = 5  # HTTP timeout (in seconds)
OPENOBSERVE_WORKERS = 2  # Threads shipping events


# ---------------------------------------------------------------------------
# Redis configuration
# ---------------------------------------------------------------------------
REDIS_HOST = environ.get("REDIS_HOST", "localhost")
REDIS_PORT = environ.get("REDIS_PORT", "6379")
REDIS_PASSWORD = environ.get("REDIS_PASSWORD", "password")


# ---------------------------------------------------------------------------
# JWT configuration (API service)
# ---------------------------------------------------------------------------
JWT_SECRET = environ.get("JWT_SECRET", "routewise-access-secret")
JWT_REFRESH_SECRET = environ.get("JWT_REFRESH_SECRET", "routewise-refresh-secret")
JWT_ALGORITHM = environ.get("JWT_ALGORITHM", "HS256")
JWT_ACCESS_VALIDITY = 15 * 60  # Access token validity (in seconds, 15 minutes)
JWT_REFRESH_VALIDITY = 7 * 24 * 60 * 60  # Refresh token validity (in seconds, 7 days)
JWT_RESET_VALIDITY = 60 * 60  # Password reset token validity (in seconds, 1 hour)


# ---------------------------------------------------------------------------
# Admin console session configuration
# ---------------------------------------------------------------------------
ADMIN_SESSION_COOKIE = environ.get("ADMIN_SESSION_COOKIE", "routewise_session")
ADMIN_SESSION_VALIDITY = 24 * 60 * 60  # Session validity (in seconds, 24 hours)
ADMIN_COOKIE_SECURE = environ.get("ADMIN_COOKIE_SECURE", "false").lower() == "true"


# ---------------------------------------------------------------------------
# Resource upper limits
# ---------------------------------------------------------------------------
MAX_ADMIN_SESSIONS = 5  # Maximum sessions per admin console user
MAX_DASHBOARD_ITEMS = 10  # Items in dashboard widgets
ONBOARDING_STEPS = 3  # Organization, bus type, route


# ---------------------------------------------------------------------------
# Regex constants (input validation)
# ---------------------------------------------------------------------------
REGEX_SLUG = r"^[a-z0-9-]+$"
REGEX_PHONE = r"^[\d\s\-+()]+$"
REGEX_WEBSITE = r"^https?://.+"
REGEX_HEX_COLOR = r"^#[0-9a-fA-F]{6}$"
MIN_PASSWORD_LENGTH = 8


# ---------------------------------------------------------------------------
# Pagination (API service)
# ---------------------------------------------------------------------------
DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


# ---------------------------------------------------------------------------
# Tenant defaults
# ---------------------------------------------------------------------------
DEFAULT_PRIMARY_COLOR = "#3B82F6"
DEFAULT_SECONDARY_COLOR = "#1E40AF"
DEFAULT_CURRENCY = "INR"
DEFAULT_TIMEZONE = "Asia/Kolkata"
DEFAULT_ADVANCE_BOOKING_DAYS = 30


# ---------------------------------------------------------------------------
# Redis mutex lock constants
# ---------------------------------------------------------------------------
MUTEX_LOCK_TIMEOUT = 10  # Lock timeout (in seconds)
MUTEX_LOCK_MAX_WAIT_TIME = 60  # Max blocking wait time (in seconds)
