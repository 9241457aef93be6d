import os

from dotenv import load_dotenv

load_dotenv(encoding="utf-8")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite:///./restaurant_loyalty.db"

# earned points stay spendable this many days
POINTS_EXPIRY_DAYS = _int_env("POINTS_EXPIRY_DAYS", 365)

# reward coupons must be used within this many days
COUPON_VALIDITY_DAYS = _int_env("COUPON_VALIDITY_DAYS", 30)

CODE_GENERATION_ATTEMPTS = _int_env("CODE_GENERATION_ATTEMPTS", 5)
REDEMPTION_MAX_ATTEMPTS = _int_env("REDEMPTION_MAX_ATTEMPTS", 3)

CORS_ORIGINS = [
    o.strip()
    for o in (
        os.getenv("CORS_ORIGINS")
        or "http://localhost:3000,https://localhost:3000,http://127.0.0.1:3000,https://127.0.0.1:3000"
    ).split(",")
    if o.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
