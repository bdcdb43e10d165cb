# cardledger/api/transactions.py

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from cardledger.api.deps import get_file_store, get_store, get_user_email
from cardledger.clients.files import company_file_path, discard_files
from cardledger.db.store import LedgerStore
from cardledger.models.transactions import (
    TransactionIn,
    TransactionListResponse,
    TransactionOut,
    TransactionType,
    TransactionUpdate,
)

router = APIRouter(prefix="/transactions", tags=["transactions"])


def _describe(tx: TransactionOut) -> str:
    party = tx.company_name or "independent"
    return f"{tx.type.value} {tx.amount} ({party})"


@router.get("/", response_model=TransactionListResponse)
def list_transactions(
    company_id: Optional[int] = Query(default=None),
    type: Optional[TransactionType] = Query(default=None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store: LedgerStore = Depends(get_store),
) -> TransactionListResponse:
    items, total = store.list_transactions(
        company_id=company_id, type=type, limit=limit, offset=offset
    )
    return TransactionListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post("/", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: TransactionIn,
    store: LedgerStore = Depends(get_store),
    user_email: Optional[str] = Depends(get_user_email),
) -> TransactionOut:
    if payload.company_id is not None:
        store.get_company(payload.company_id)

    values = payload.model_dump()
    values["type"] = payload.type.value

    tx = store.insert_transaction(values)
    store.log_activity("transaction.create", _describe(tx), user_email)
    return tx


@router.get("/{transaction_id}", response_model=TransactionOut)
def get_transaction(transaction_id: int, store: LedgerStore = Depends(get_store)) -> TransactionOut:
    return store.get_transaction(transaction_id)


@router.patch("/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    store: LedgerStore = Depends(get_store),
    user_email: Optional[str] = Depends(get_user_email),
) -> TransactionOut:
    values = payload.model_dump(exclude_unset=True)
    if values.get("company_id") is not None:
        store.get_company(values["company_id"])
    # amount/type may be omitted but never cleared
    for required in ("amount", "type", "created_at"):
        if required in values and values[required] is None:
            del values[required]
    if "type" in values:
        values["type"] = TransactionType(values["type"]).value

    tx = store.update_transaction(transaction_id, values)
    store.log_activity("transaction.update", f"#{tx.id}: {_describe(tx)}", user_email)
    return tx


@router.post("/{transaction_id}/receipt", response_model=TransactionOut)
def upload_transaction_receipt(
    transaction_id: int,
    file: UploadFile = File(...),
    store: LedgerStore = Depends(get_store),
    files=Depends(get_file_store),
    user_email: Optional[str] = Depends(get_user_email),
) -> TransactionOut:
    tx = store.get_transaction(transaction_id)
    owner = tx.company_id if tx.company_id is not None else "independent"
    path = files.upload(company_file_path(owner, file.filename), file.file.read())

    previous = store.set_transaction_receipt(transaction_id, path)
    if previous and previous != path:
        discard_files(files, [previous])

    store.log_activity(
        "transaction.receipt", f"Receipt attached to transaction #{transaction_id}", user_email
    )
    return store.get_transaction(transaction_id)


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    store: LedgerStore = Depends(get_store),
    files=Depends(get_file_store),
    user_email: Optional[str] = Depends(get_user_email),
):
    tx = store.delete_transaction(transaction_id)
    discard_files(files, [tx.receipt_path])
    store.log_activity("transaction.delete", f"#{tx.id}: {_describe(tx)}", user_email)
    return {"status": "deleted", "id": transaction_id}
