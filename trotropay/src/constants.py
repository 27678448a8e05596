"""
Application configuration and constants for TrotroPay API Server.

This module centralizes environment-based configuration, resource limits,
regular expressions, fare and wallet constraints, and other constants.

Configuration values can be overridden via environment variables.
"""

from decimal import Decimal
from os import environ


# ---------------------------------------------------------------------------
# Application metadata
# ---------------------------------------------------------------------------
API_TITLE = "TrotroPay API Server"
API_VERSION = "1.0.0"
API_PREFIX = "/api"


# ---------------------------------------------------------------------------
# PostgreSQL configuration
# ---------------------------------------------------------------------------
PSQL_DB_DRIVER = environ.get("PSQL_DB_DRIVER", "postgresql")
PSQL_DB_USERNAME = environ.get("PSQL_DB_USERNAME", "postgres")
PSQL_DB_PORT = environ.get("PSQL_DB_PORT", "5432")
PSQL_DB_PASSWORD = environ.get("PSQL_DB_PASSWORD", "password")
PSQL_DB_HOST = environ.get("PSQL_DB_HOST", "localhost")
PSQL_DB_NAME = environ.get("PSQL_DB_NAME", "postgres")

# Full SQLAlchemy URL, takes precedence over the PSQL_DB_* values
DB_URL = environ.get(
    "DB_URL",
    f"{PSQL_DB_DRIVER}://{PSQL_DB_USERNAME}:{PSQL_DB_PASSWORD}@{PSQL_DB_HOST}:{PSQL_DB_PORT}/{PSQL_DB_NAME}",
)


# ---------------------------------------------------------------------------
# OpenObserve configuration
# ---------------------------------------------------------------------------
OPENOBSERVE_PROTOCOL = environ.get("OPENOBSERVE_PROTOCOL", "http")
OPENOBSERVE_HOST = environ.get("OPENOBSERVE_HOST", "localhost")
OPENOBSERVE_PORT = environ.get("OPENOBSERVE_PORT", "5080")
OPENOBSERVE_USERNAME = environ.get("OPENOBSERVE_USERNAME", "admin@trotropay.com")
OPENOBSERVE_PASSWORD = environ.get("OPENOBSERVE_PASSWORD", "password")
OPENOBSERVE_ORG = environ.get("OPENOBSERVE_ORG", "trotropay")
OPENOBSERVE_STREAM = environ.get("OPENOBSERVE_STREAM", "trotropay-server")
OPENOBSERVE_TIMEOUT = 5  # seconds


# ---------------------------------------------------------------------------
# Redis configuration
# ---------------------------------------------------------------------------
REDIS_HOST = environ.get("REDIS_HOST", "localhost")
REDIS_PORT = environ.get("REDIS_PORT", "6379")
REDIS_PASSWORD = environ.get("REDIS_PASSWORD", "password")


# ---------------------------------------------------------------------------
# Resource upper limits
# ---------------------------------------------------------------------------
MAX_ACCOUNT_TOKENS = 5  # Maximum tokens per account
MAX_TOKEN_VALIDITY = 7 * 24 * 60 * 60  # Token validity (in seconds, 7 days)
MAX_PASSENGERS_PER_PAYMENT = 20  # Upper bound for a group payment
MAX_EARNINGS_DAYS = 31  # Longest window of the daily earnings breakdown
DEFAULT_EARNINGS_DAYS = 7


# ---------------------------------------------------------------------------
# Regex constants (input validation)
# ---------------------------------------------------------------------------
REGEX_PHONE_NUMBER = r"^0[235][0-9]{8}$"  # Ghana local format, e.g. 0245678901
REGEX_PIN = r"^[0-9]{4,6}$"
REGEX_VEHICLE_ID = r"^[A-Z]{1,3}-[0-9]{1,4}-[0-9]{2}$"  # e.g. GT-1234-20


# ---------------------------------------------------------------------------
# Route/fare constraints
# ---------------------------------------------------------------------------
MIN_STOPS_IN_ROUTE = 2  # Minimum number of stops per route
FARE_SEPARATOR = ":"  # Separator in the "stop:amount" wire format
CURRENCY_SYMBOL = "GH₵"
CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Wallet and commission defaults
# ---------------------------------------------------------------------------
PASSENGER_STARTING_BALANCE = Decimal(environ.get("PASSENGER_STARTING_BALANCE", "25.40"))
DEFAULT_DRIVER_COMMISSION = Decimal("15.00")  # percentage of gross
DEFAULT_MATE_COMMISSION = Decimal("10.00")  # percentage of gross
DEFAULT_PLATFORM_FEE = Decimal("5.00")  # percentage of gross
DEFAULT_PAYMENT_METHOD = "momo"


# ---------------------------------------------------------------------------
# Redis mutex lock constants
# ---------------------------------------------------------------------------
MUTEX_LOCK_TIMEOUT = 10  # Lock timeout (in seconds)
MUTEX_LOCK_MAX_WAIT_TIME = 60  # Max blocking wait time (in seconds)
