# cardledger/config.py
"""
Process configuration, read from the environment (a local .env is honoured).

Values staff edit at runtime (currency, date format, risk threshold, tax rate)
live in the system_settings table; the DEFAULT_* values here only seed it.
"""

import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()


class Config:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///db.sqlite")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    REPORT_TIMEZONE = os.getenv("REPORT_TIMEZONE", "Africa/Tripoli")

    # Receipt storage
    STORAGE_DIR = os.getenv("STORAGE_DIR", "storage")
    SIGNING_SECRET = os.getenv("SIGNING_SECRET", "change-me")
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
    SIGNED_URL_TTL = int(os.getenv("SIGNED_URL_TTL", "3600"))

    # Email (Resend)
    RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
    RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
    EMAIL_FROM = os.getenv("EMAIL_FROM", "Orders <onboarding@resend.dev>")
    EMAIL_TIMEOUT = float(os.getenv("EMAIL_TIMEOUT", "10"))

    # Seed values for the system_settings row
    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "LYD")
    DEFAULT_DATE_FORMAT = os.getenv("DEFAULT_DATE_FORMAT", "ddmmyyyy")
    DEFAULT_RISK_THRESHOLD = Decimal(os.getenv("DEFAULT_RISK_THRESHOLD", "10000"))
    DEFAULT_TAX_RATE = Decimal(os.getenv("DEFAULT_TAX_RATE", "0"))

    @classmethod
    def validate(cls):
        if not cls.RESEND_API_KEY:
            raise ValueError("RESEND_API_KEY is required")
        return True


config = Config()
