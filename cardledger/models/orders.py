# cardledger/models/orders.py

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from cardledger.db.schema import as_naive_utc


class OrderStatus(str, Enum):
    PENDING = "Pending"
    SENT = "Sent"
    RECEIVED = "Received"
    PAID = "Paid"


class OrderIn(BaseModel):
    company_id: int
    amount: Decimal = Field(..., gt=0)
    cards_count: int = Field(..., gt=0)
    # order date is editable by staff; defaults to now
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def _naive_utc(cls, value):
        return as_naive_utc(value)


class OrderOut(BaseModel):
    id: int
    company_id: int
    company_name: Optional[str] = None
    amount: Decimal
    cards_count: int
    status: OrderStatus
    created_at: datetime
    receipt_path: Optional[str] = None
    date_sent: Optional[datetime] = None
    date_received: Optional[datetime] = None
    date_paid: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    items: List[OrderOut]
    total: int
    limit: int
    offset: int


class StatusChangeIn(BaseModel):
    status: OrderStatus
    # status the caller last saw; the write is rejected if it moved on
    expected_status: Optional[OrderStatus] = None


class OrderEmailOut(BaseModel):
    order_id: int
    sent_to: str
    message_id: Optional[str] = None
    with_attachment: bool
