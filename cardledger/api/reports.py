# cardledger/api/reports.py

from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from zoneinfo import ZoneInfo

from cardledger.api.deps import get_store
from cardledger.config import config
from cardledger.db.schema import as_naive_utc
from cardledger.db.store import LedgerStore
from cardledger.models.reports import (
    CashFlowResponse,
    RiskReportOut,
    SummaryOut,
    TopCompany,
)
from cardledger.models.transactions import TransactionOut
from cardledger.services.reports import (
    build_summary,
    cash_flow_series,
    recent_transactions,
    risk_report,
    top_companies,
)

router = APIRouter(prefix="/reports", tags=["reports"])


def _report_tz() -> ZoneInfo:
    return ZoneInfo(config.REPORT_TIMEZONE)


def _window_start(days: Optional[int], end: date):
    """Naive-UTC lower bound for a `days`-long window ending on `end`."""
    if days is None:
        return None
    start = end - timedelta(days=days - 1)
    local_midnight = datetime.combine(start, datetime.min.time(), tzinfo=_report_tz())
    return as_naive_utc(local_midnight)


@router.get("/summary", response_model=SummaryOut)
def summary(
    top: int = Query(5, ge=1, le=50),
    store: LedgerStore = Depends(get_store),
) -> SummaryOut:
    """
    Dashboard headline figures: totals, outstanding balance, high-risk count
    and the outstanding-balance leaderboard.
    """
    settings = store.get_settings()
    orders, _ = store.list_orders()
    transactions, _ = store.list_transactions()

    return build_summary(
        company_count=store.count_companies(),
        orders=orders,
        transactions=transactions,
        names=store.company_names(),
        settings=settings,
        top=top,
    )


@router.get("/cash-flow", response_model=CashFlowResponse)
def cash_flow(
    days: Optional[int] = Query(
        default=None, ge=1, le=366, description="Window length; omit for all history"
    ),
    as_of: Optional[date] = Query(
        default=None,
        description="ISO date (YYYY-MM-DD); defaults to today in the report timezone",
    ),
    store: LedgerStore = Depends(get_store),
) -> CashFlowResponse:
    settings = store.get_settings()
    tz = _report_tz()
    if as_of is None:
        as_of = datetime.now(tz).date()

    transactions, _ = store.list_transactions(since=_window_start(days, as_of))
    points = cash_flow_series(transactions, end=as_of, days=days, tz=tz)

    return CashFlowResponse(
        currency=settings.currency_code,
        start=points[0].day if points else None,
        end=as_of,
        points=points,
    )


@router.get("/top-companies", response_model=List[TopCompany])
def top_companies_by_volume(
    limit: int = Query(5, ge=1, le=50),
    days: Optional[int] = Query(default=None, ge=1, le=366),
    store: LedgerStore = Depends(get_store),
) -> List[TopCompany]:
    today = datetime.now(_report_tz()).date()
    transactions, _ = store.list_transactions(since=_window_start(days, today))
    return top_companies(transactions, limit=limit)


@router.get("/recent-transactions", response_model=List[TransactionOut])
def latest_transactions(
    limit: int = Query(6, ge=1, le=50),
    store: LedgerStore = Depends(get_store),
) -> List[TransactionOut]:
    transactions, _ = store.list_transactions(limit=limit)
    return recent_transactions(transactions, limit=limit)


@router.get("/risk", response_model=RiskReportOut)
def risk(store: LedgerStore = Depends(get_store)) -> RiskReportOut:
    """
    Companies that owe money, largest balance first, flagged against the
    configured high-risk threshold.
    """
    settings = store.get_settings()
    orders, _ = store.list_orders()
    transactions, _ = store.list_transactions()
    return risk_report(orders, transactions, store.company_names(), settings.high_risk_threshold)
