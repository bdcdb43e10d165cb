# cardledger/services/balance.py
"""
Balance Calculator.

The one definition of a company's balance used by every endpoint:

    total_issued    = sum of order amounts (every status)
    total_collected = sum(Received) - sum(Paid) over its transactions
    outstanding     = total_issued - total_collected

Positive outstanding means the company owes money; negative means it is in
credit. Amounts are accumulated as Decimal and never rounded here.
"""

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable

from cardledger.models.companies import BalanceOut
from cardledger.models.transactions import TransactionType

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats don't carry binary noise into the sum
    return Decimal(str(value))


@dataclass(frozen=True)
class BalanceSnapshot:
    total_issued: Decimal = ZERO
    total_collected: Decimal = ZERO
    outstanding: Decimal = ZERO

    def __add__(self, other: "BalanceSnapshot") -> "BalanceSnapshot":
        return BalanceSnapshot(
            total_issued=self.total_issued + other.total_issued,
            total_collected=self.total_collected + other.total_collected,
            outstanding=self.outstanding + other.outstanding,
        )

    def to_out(self) -> BalanceOut:
        return BalanceOut(
            total_issued=self.total_issued,
            total_collected=self.total_collected,
            outstanding=self.outstanding,
        )


def compute_balance(orders: Iterable, transactions: Iterable) -> BalanceSnapshot:
    """Reduce one company's orders and transactions into a BalanceSnapshot."""
    issued = sum((to_decimal(order.amount) for order in orders), ZERO)

    collected = ZERO
    for tx in transactions:
        if tx.type == TransactionType.RECEIVED:
            collected += to_decimal(tx.amount)
        elif tx.type == TransactionType.PAID:
            collected -= to_decimal(tx.amount)

    return BalanceSnapshot(
        total_issued=issued,
        total_collected=collected,
        outstanding=issued - collected,
    )


def group_balances(orders: Iterable, transactions: Iterable) -> Dict[int, BalanceSnapshot]:
    """
    Snapshot per company_id. Independent transactions (no company) are not
    attributed to anyone.
    """
    orders_by_company = defaultdict(list)
    for order in orders:
        orders_by_company[order.company_id].append(order)

    tx_by_company = defaultdict(list)
    for tx in transactions:
        if tx.company_id is not None:
            tx_by_company[tx.company_id].append(tx)

    company_ids = set(orders_by_company) | set(tx_by_company)
    return {
        company_id: compute_balance(
            orders_by_company.get(company_id, []),
            tx_by_company.get(company_id, []),
        )
        for company_id in company_ids
    }
