# cardledger/services/reports.py
"""
Dashboard reports built from already-fetched rows.

Everything here is a pure function: the API layer loads rows from the store
and the settings row, then hands them over.
"""

from collections import defaultdict
from datetime import date, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from cardledger.models.reports import (
    CashFlowPoint,
    RankedCompanyOut,
    RiskReportOut,
    SummaryOut,
    TopCompany,
)
from cardledger.models.transactions import TransactionType
from cardledger.services.balance import ZERO, to_decimal, compute_balance, group_balances
from cardledger.services.risk import classify

INDEPENDENT = "Independent"


def local_date(value, tz=None) -> date:
    """Calendar day of a stored (naive UTC) timestamp in the report timezone."""
    if tz is None:
        return value.date()
    return value.replace(tzinfo=timezone.utc).astimezone(tz).date()


def cash_flow_series(transactions, end: date, days: Optional[int] = None, tz=None) -> List[CashFlowPoint]:
    """
    Day-bucketed received/paid totals, one point per calendar day.

    With `days` the window is the last `days` days up to `end`; otherwise it
    starts at the first transaction. Days without activity are zero.
    """
    if days is not None:
        start = end - timedelta(days=days - 1)
    else:
        seen = [local_date(tx.created_at, tz) for tx in transactions]
        if not seen:
            return []
        start = min(seen)

    buckets: Dict[date, List[Decimal]] = {
        start + timedelta(days=i): [ZERO, ZERO]
        for i in range((end - start).days + 1)
    }

    for tx in transactions:
        bucket = buckets.get(local_date(tx.created_at, tz))
        if bucket is None:
            continue
        if tx.type == TransactionType.RECEIVED:
            bucket[0] += to_decimal(tx.amount)
        else:
            bucket[1] += to_decimal(tx.amount)

    return [
        CashFlowPoint(day=day, received=received, paid=paid, net=received - paid)
        for day, (received, paid) in sorted(buckets.items())
    ]


def top_companies(transactions, limit: int = 5) -> List[TopCompany]:
    """Transaction volume (both directions) per company; independent rows share one bucket."""
    volume: Dict[Optional[int], Decimal] = defaultdict(lambda: ZERO)
    labels: Dict[Optional[int], str] = {}
    for tx in transactions:
        volume[tx.company_id] += to_decimal(tx.amount)
        labels.setdefault(tx.company_id, tx.company_name or INDEPENDENT)

    ranked = sorted(
        volume.items(), key=lambda item: (-item[1], labels[item[0]], item[0] or 0)
    )
    return [
        TopCompany(company_id=company_id, name=labels[company_id], value=value)
        for company_id, value in ranked[:limit]
    ]


def recent_transactions(transactions, limit: int = 6) -> list:
    return sorted(transactions, key=lambda tx: (tx.created_at, tx.id), reverse=True)[:limit]


def risk_report(orders, transactions, names: Dict[int, str], threshold) -> RiskReportOut:
    report = classify(group_balances(orders, transactions), threshold)
    return RiskReportOut(
        threshold=Decimal(str(threshold)),
        high_risk_count=report.high_risk_count,
        ranked=[
            RankedCompanyOut(
                company_id=entry.company_id,
                name=names.get(entry.company_id),
                outstanding=entry.outstanding,
                is_high_risk=entry.is_high_risk,
            )
            for entry in report.ranked
        ],
    )


def build_summary(
    company_count: int,
    orders,
    transactions,
    names: Dict[int, str],
    settings,
    top: int = 5,
) -> SummaryOut:
    orders = list(orders)
    transactions = list(transactions)

    received = sum(
        (to_decimal(tx.amount) for tx in transactions if tx.type == TransactionType.RECEIVED),
        ZERO,
    )
    paid = sum(
        (to_decimal(tx.amount) for tx in transactions if tx.type == TransactionType.PAID),
        ZERO,
    )

    # portfolio figures only count rows that belong to a company
    attributed = [tx for tx in transactions if tx.company_id is not None]
    portfolio = compute_balance(orders, attributed)
    risk = risk_report(orders, attributed, names, settings.high_risk_threshold)

    return SummaryOut(
        currency=settings.currency_code,
        company_count=company_count,
        total_issued=portfolio.total_issued,
        total_received=received,
        total_paid=paid,
        net_cash=received - paid,
        outstanding=portfolio.outstanding,
        high_risk_threshold=settings.high_risk_threshold,
        high_risk_count=risk.high_risk_count,
        leaderboard=risk.ranked[:top],
        top_companies=top_companies(transactions),
        recent_transactions=recent_transactions(transactions),
    )
