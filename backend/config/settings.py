"""Runtime settings for the hotel alert pipeline.

Values come from the environment (a local .env file is loaded first).
Fixed business rules live here as plain constants so tests can import them.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


# Business rules
MATCH_CANDIDATE_LIMIT = 10  # Candidates kept per preference per run
DEFAULT_HORIZON_DAYS = 30  # Window when a preference has no explicit dates
LAST_MINUTE_WINDOW_DAYS = 7
LAST_MINUTE_TYPE_DAYS = 3  # daysUntilCheckin at or below this is "last_minute"
GOOD_DEAL_PRICE_FACTOR = 1.2
SENT_RETENTION_DAYS = 30
MAX_ACTIVE_PREFERENCES = 10

# Operational knobs
ALERTS_TIMEZONE = os.getenv("ALERTS_TIMEZONE", "Asia/Tokyo")
DB_TIMEOUT_SECONDS = _float_env("DB_TIMEOUT_SECONDS", 20.0)
EMAIL_TIMEOUT_SECONDS = _float_env("EMAIL_TIMEOUT_SECONDS", 15.0)
MATCHING_WORKERS = _int_env("MATCHING_WORKERS", 4)
DISPATCH_BATCH_SIZE = _int_env("DISPATCH_BATCH_SIZE", 50)
MAX_DELIVERY_RETRIES = _int_env("MAX_DELIVERY_RETRIES", 3)
SEND_RATE_LIMIT_SECONDS = 0.1  # Resend allows ~10 emails/second

# Email
FRONTEND_BASE_URL = os.getenv("FRONTEND_BASE_URL", "https://lastminutestay.jp")
NOTIFICATION_FROM_EMAIL = os.getenv("NOTIFICATION_FROM_EMAIL", "alerts@lastminutestay.jp")
DIGEST_FROM_EMAIL = os.getenv("DIGEST_FROM_EMAIL", "digest@lastminutestay.jp")
SENDER_NAME = "LastMinuteStay"
