# scripts/seed.py
"""
Load a small demo book of companies, orders and transactions.

Run scripts/init_db.py first; running this twice duplicates the rows.
"""

import logging
from datetime import datetime
from decimal import Decimal

from cardledger.db.engine import get_engine
from cardledger.db.store import LedgerStore
from cardledger.services.balance import compute_balance
from cardledger.services.contact import extract_coordinates

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

DEMO_COMPANIES = [
    {
        "name": "Anis Cards",
        "email": "cards@anis.ly",
        "phone": "091-0000000",
        "percent_cut": Decimal("10"),
        "address": "Tripoli - Dahra",
        "maps_url": "https://maps.google.com/?q=@32.8925,13.1802",
        "notes": "Pays usually every week.",
        "orders": [
            {"created_at": "2025-11-01", "amount": "5000", "cards_count": 200},
            {"created_at": "2025-11-10", "amount": "3000", "cards_count": 120},
        ],
        "transactions": [
            {"created_at": "2025-11-02", "type": "Received", "amount": "5000",
             "notes": "Order #1 collected"},
        ],
    },
    {
        "name": "Libya Pay",
        "email": "cards@libyapay.ly",
        "phone": "092-8888888",
        "percent_cut": Decimal("8"),
        "address": "Benghazi",
        "notes": "Reliable.",
        "orders": [
            {"created_at": "2025-10-15", "amount": "4000", "cards_count": 150},
        ],
        "transactions": [
            {"created_at": "2025-10-15", "type": "Paid", "amount": "4000",
             "notes": "Payout for order #1"},
        ],
    },
]


def parse_date(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%d")


def seed(store: LedgerStore) -> dict:
    stats = {"n_companies": 0, "n_orders": 0, "n_transactions": 0}

    for entry in DEMO_COMPANIES:
        entry = dict(entry)
        demo_orders = entry.pop("orders")
        demo_transactions = entry.pop("transactions")
        entry["latitude"], entry["longitude"] = extract_coordinates(entry.get("maps_url"))

        company = store.insert_company(entry)
        stats["n_companies"] += 1

        orders = []
        for o in demo_orders:
            orders.append(
                store.insert_order(
                    {
                        "company_id": company.id,
                        "amount": Decimal(o["amount"]),
                        "cards_count": o["cards_count"],
                        "created_at": parse_date(o["created_at"]),
                    }
                )
            )
            stats["n_orders"] += 1

        transactions = []
        for t in demo_transactions:
            transactions.append(
                store.insert_transaction(
                    {
                        "company_id": company.id,
                        "type": t["type"],
                        "amount": Decimal(t["amount"]),
                        "notes": t["notes"],
                        "created_at": parse_date(t["created_at"]),
                    }
                )
            )
            stats["n_transactions"] += 1

        balance = compute_balance(orders, transactions)
        logger.info("%s: outstanding %s", company.name, balance.outstanding)

    store.log_activity("seed", "Loaded demo data", status="success")
    return stats


def main():
    stats = seed(LedgerStore(get_engine()))

    logger.info(f"Companies created:     {stats['n_companies']}")
    logger.info(f"Orders created:        {stats['n_orders']}")
    logger.info(f"Transactions created:  {stats['n_transactions']}")


if __name__ == "__main__":
    main()
