# cardledger/models/reports.py

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from cardledger.models.transactions import TransactionOut


class CashFlowPoint(BaseModel):
    day: date
    received: Decimal
    paid: Decimal
    net: Decimal


class CashFlowResponse(BaseModel):
    currency: str
    start: Optional[date] = None
    end: date
    points: List[CashFlowPoint]


class TopCompany(BaseModel):
    company_id: Optional[int] = None
    name: str
    value: Decimal


class RankedCompanyOut(BaseModel):
    company_id: int
    name: Optional[str] = None
    outstanding: Decimal
    is_high_risk: bool


class RiskReportOut(BaseModel):
    threshold: Decimal
    high_risk_count: int
    ranked: List[RankedCompanyOut]


class SummaryOut(BaseModel):
    currency: str
    company_count: int
    total_issued: Decimal
    total_received: Decimal
    total_paid: Decimal
    net_cash: Decimal
    outstanding: Decimal
    high_risk_threshold: Decimal
    high_risk_count: int
    leaderboard: List[RankedCompanyOut]
    top_companies: List[TopCompany]
    recent_transactions: List[TransactionOut]
