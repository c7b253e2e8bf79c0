import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    SESSION_COOKIE_NAME = "fairsplit_session"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    PING_MESSAGE = os.environ.get("PING_MESSAGE", "ping")

    # Demo login: the OTP is never sent anywhere
    DEMO_MODE = _flag("DEMO_MODE", "true")
    DEMO_OTP = os.environ.get("DEMO_OTP", "1234")

    # Settlement payment links
    PAYMENT_SCHEME = os.environ.get("PAYMENT_SCHEME", "upi")
    PAYMENT_CURRENCY = os.environ.get("PAYMENT_CURRENCY", "INR")
    PAYMENT_MEMO = os.environ.get("PAYMENT_MEMO", "FairSplit Settlement")

    # Give the equal-split rounding remainder to the last member
    SPLIT_ASSIGN_REMAINDER = _flag("SPLIT_ASSIGN_REMAINDER", "false")

    def as_dict(self):
        return {key: getattr(self, key) for key in dir(self) if key.isupper()}


config = Config()
