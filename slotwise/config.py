import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _optional_float_env(name: str):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./slotwise.db")

# Pool settings are ignored for SQLite
DB_POOL_SIZE = _int_env("DB_POOL_SIZE", 10)
DB_MAX_OVERFLOW = _int_env("DB_MAX_OVERFLOW", 20)
DB_POOL_TIMEOUT = _int_env("DB_POOL_TIMEOUT", 30)
DB_POOL_RECYCLE = _int_env("DB_POOL_RECYCLE", 300)
SQLITE_BUSY_TIMEOUT = _int_env("SQLITE_BUSY_TIMEOUT", 30)

# Bearer tokens are issued by the identity provider; we only verify them
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
ALGORITHM = os.getenv("ALGORITHM", "HS256")
TOKEN_AUDIENCE = os.getenv("TOKEN_AUDIENCE")

# Default working window, used for providers that configured no hours of their own
WORKDAY_START_HOUR = _int_env("WORKDAY_START_HOUR", 9)
WORKDAY_END_HOUR = _int_env("WORKDAY_END_HOUR", 17)
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "UTC")
MAX_AVAILABILITY_RANGE_DAYS = _int_env("MAX_AVAILABILITY_RANGE_DAYS", 31)

# None disables customer cancellation of confirmed bookings
CUSTOMER_CANCEL_CUTOFF_HOURS = _optional_float_env("CUSTOMER_CANCEL_CUTOFF_HOURS")

# 0 means unlimited
DEFAULT_SERVICE_LIMIT = _int_env("DEFAULT_SERVICE_LIMIT", 0)

LOG_FILE = os.getenv("LOG_FILE", "slotwise.log")
