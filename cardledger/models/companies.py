# cardledger/models/companies.py

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class CompanyIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    percent_cut: Optional[Decimal] = Field(default=None, ge=0, le=100)
    address: Optional[str] = None
    maps_url: Optional[str] = None
    notes: Optional[str] = None


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    percent_cut: Optional[Decimal] = Field(default=None, ge=0, le=100)
    address: Optional[str] = None
    maps_url: Optional[str] = None
    notes: Optional[str] = None


class CompanyOut(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    percent_cut: Optional[Decimal] = None
    address: Optional[str] = None
    maps_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BalanceOut(BaseModel):
    total_issued: Decimal
    total_collected: Decimal
    outstanding: Decimal


class CompanyWithBalance(CompanyOut):
    balance: BalanceOut
    is_high_risk: bool
    whatsapp_url: Optional[str] = None


class CompanyListResponse(BaseModel):
    items: List[CompanyWithBalance]
    total: int
    limit: int
    offset: int
