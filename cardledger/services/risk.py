# cardledger/services/risk.py

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Mapping

from cardledger.services.balance import BalanceSnapshot, ZERO


@dataclass(frozen=True)
class RankedCompany:
    company_id: int
    outstanding: Decimal
    is_high_risk: bool


@dataclass(frozen=True)
class RiskReport:
    high_risk_count: int = 0
    ranked: List[RankedCompany] = field(default_factory=list)


def is_high_risk(outstanding, threshold) -> bool:
    """Only companies that owe money can be high-risk."""
    return outstanding > ZERO and outstanding >= Decimal(str(threshold))


def classify(balances: Mapping[int, BalanceSnapshot], threshold) -> RiskReport:
    """
    Rank companies that owe money, largest outstanding first.

    Equal balances are ordered by company id ascending. A company is
    high-risk when it owes money and
    outstanding >= threshold.
    """
    threshold = Decimal(str(threshold))

    owing = [
        (company_id, snapshot.outstanding)
        for company_id, snapshot in balances.items()
        if snapshot.outstanding > ZERO
    ]
    owing.sort(key=lambda item: (-item[1], item[0]))

    ranked = [
        RankedCompany(
            company_id=company_id,
            outstanding=outstanding,
            is_high_risk=is_high_risk(outstanding, threshold),
        )
        for company_id, outstanding in owing
    ]
    return RiskReport(
        high_risk_count=sum(1 for entry in ranked if entry.is_high_risk),
        ranked=ranked,
    )
