# cardledger/models/transactions.py

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from cardledger.db.schema import as_naive_utc


class TransactionType(str, Enum):
    RECEIVED = "Received"  # money in from the company
    PAID = "Paid"  # money out to the company


class TransactionIn(BaseModel):
    company_id: Optional[int] = None
    amount: Decimal = Field(..., gt=0)
    type: TransactionType
    sender_name: Optional[str] = None
    receiver_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def _naive_utc(cls, value):
        return as_naive_utc(value)


class TransactionUpdate(BaseModel):
    company_id: Optional[int] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    type: Optional[TransactionType] = None
    sender_name: Optional[str] = None
    receiver_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def _naive_utc(cls, value):
        return as_naive_utc(value)


class TransactionOut(BaseModel):
    id: int
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    amount: Decimal
    type: TransactionType
    sender_name: Optional[str] = None
    receiver_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    receipt_path: Optional[str] = None

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    items: List[TransactionOut]
    total: int
    limit: int
    offset: int
