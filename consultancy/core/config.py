import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}

APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./consultancy.db")

BUSINESS_OPEN_HOUR = int(os.getenv("BUSINESS_OPEN_HOUR", "8"))
BUSINESS_CLOSE_HOUR = int(os.getenv("BUSINESS_CLOSE_HOUR", "17"))
SLOT_DURATION_MINUTES = int(os.getenv("SLOT_DURATION_MINUTES", "60"))

KEEP_OCCUPIED = "keep_occupied"
RELEASE_SLOT = "release_slot"
DELETED_BLOCK_POLICY = os.getenv("DELETED_BLOCK_POLICY", KEEP_OCCUPIED).strip().lower()

CONSULTANCY_AMOUNT = float(os.getenv("CONSULTANCY_AMOUNT", "0"))
ADMIN_NOTIFICATION_EMAIL = os.getenv("ADMIN_NOTIFICATION_EMAIL", "")

NOTIFICATION_MAX_ATTEMPTS = int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", "5"))
NOTIFICATION_BACKOFF_SECONDS = int(os.getenv("NOTIFICATION_BACKOFF_SECONDS", "30"))
NOTIFICATION_BATCH_SIZE = int(os.getenv("NOTIFICATION_BATCH_SIZE", "50"))

SUBSCRIPTION_POLL_SECONDS = float(os.getenv("SUBSCRIPTION_POLL_SECONDS", "2.0"))

def validate_runtime_config() -> None:
    if DELETED_BLOCK_POLICY not in {KEEP_OCCUPIED, RELEASE_SLOT}:
        raise RuntimeError(f"DELETED_BLOCK_POLICY must be '{KEEP_OCCUPIED}' or '{RELEASE_SLOT}'.")
    if not 0 <= BUSINESS_OPEN_HOUR < BUSINESS_CLOSE_HOUR <= 24:
        raise RuntimeError("BUSINESS_OPEN_HOUR must be before BUSINESS_CLOSE_HOUR.")
    if SLOT_DURATION_MINUTES <= 0 or (60 * 24) % SLOT_DURATION_MINUTES != 0:
        raise RuntimeError("SLOT_DURATION_MINUTES must evenly divide a day.")
    if NOTIFICATION_MAX_ATTEMPTS < 1:
        raise RuntimeError("NOTIFICATION_MAX_ATTEMPTS must be at least 1.")
