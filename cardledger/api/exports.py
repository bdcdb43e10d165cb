# cardledger/api/exports.py

from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from zoneinfo import ZoneInfo

from cardledger.api.deps import get_store
from cardledger.config import config
from cardledger.db.store import LedgerStore
from cardledger.services.balance import BalanceSnapshot, group_balances
from cardledger.services.export import export_filename, to_csv

router = APIRouter(prefix="/exports", tags=["exports"])

COMPANY_COLUMNS = [
    "id", "name", "email", "phone", "percent_cut", "address", "notes", "created_at",
    "total_issued", "total_collected", "outstanding",
]
ORDER_COLUMNS = [
    "id", "company_id", "company_name", "amount", "cards_count", "status",
    "created_at", "date_sent", "date_received", "date_paid", "receipt_path",
]
TRANSACTION_COLUMNS = [
    "id", "company_id", "company_name", "type", "amount", "sender_name",
    "receiver_name", "notes", "created_at", "receipt_path",
]


def _csv_response(name: str, body: str) -> Response:
    today = datetime.now(ZoneInfo(config.REPORT_TIMEZONE)).date()
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(name, today)}"'
        },
    )


@router.get("/companies.csv")
def export_companies(store: LedgerStore = Depends(get_store)) -> Response:
    companies, _ = store.list_companies()
    orders, _ = store.list_orders()
    transactions, _ = store.list_transactions()
    balances = group_balances(orders, transactions)

    rows = []
    for company in companies:
        snapshot = balances.get(company.id, BalanceSnapshot())
        row = company.model_dump()
        row.update(
            total_issued=snapshot.total_issued,
            total_collected=snapshot.total_collected,
            outstanding=snapshot.outstanding,
        )
        rows.append(row)
    return _csv_response("companies", to_csv(rows, COMPANY_COLUMNS))


@router.get("/orders.csv")
def export_orders(store: LedgerStore = Depends(get_store)) -> Response:
    orders, _ = store.list_orders()
    rows = [dict(o.model_dump(), status=o.status.value) for o in orders]
    return _csv_response("orders", to_csv(rows, ORDER_COLUMNS))


@router.get("/transactions.csv")
def export_transactions(store: LedgerStore = Depends(get_store)) -> Response:
    transactions, _ = store.list_transactions()
    rows = [dict(t.model_dump(), type=t.type.value) for t in transactions]
    return _csv_response("transactions", to_csv(rows, TRANSACTION_COLUMNS))
