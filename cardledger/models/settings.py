# cardledger/models/settings.py

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class DateFormat(str, Enum):
    DDMMYYYY = "ddmmyyyy"
    MMDDYYYY = "mmddyyyy"
    ISO = "iso"


class SettingsOut(BaseModel):
    currency_code: str
    date_format: DateFormat
    high_risk_threshold: Decimal
    default_tax_rate: Decimal
    updated_at: datetime

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    currency_code: Optional[str] = Field(default=None, pattern=r"^[A-Z]{3}$")
    date_format: Optional[DateFormat] = None
    high_risk_threshold: Optional[Decimal] = Field(default=None, ge=0)
    default_tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)


class ActivityOut(BaseModel):
    id: int
    action: str
    details: Optional[str] = None
    user_email: Optional[str] = None
    status: str
    created_at: datetime


class ActivityListResponse(BaseModel):
    items: List[ActivityOut]
    total: int
    limit: int
    offset: int
