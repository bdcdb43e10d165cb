# cardledger/api/companies.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from cardledger.api.deps import get_file_store, get_store, get_user_email
from cardledger.clients.files import discard_files
from cardledger.db.store import LedgerStore
from cardledger.models.companies import (
    BalanceOut,
    CompanyIn,
    CompanyListResponse,
    CompanyOut,
    CompanyUpdate,
    CompanyWithBalance,
)
from cardledger.models.orders import OrderListResponse
from cardledger.models.transactions import TransactionListResponse
from cardledger.services.balance import BalanceSnapshot, compute_balance, group_balances
from cardledger.services.contact import extract_coordinates, whatsapp_link
from cardledger.services.risk import is_high_risk

router = APIRouter(prefix="/companies", tags=["companies"])


def _with_balance(company: CompanyOut, snapshot: BalanceSnapshot, threshold) -> CompanyWithBalance:
    return CompanyWithBalance(
        **company.model_dump(),
        balance=snapshot.to_out(),
        is_high_risk=is_high_risk(snapshot.outstanding, threshold),
        whatsapp_url=whatsapp_link(
            company.phone,
            f"Hello {company.name}, your outstanding balance is {snapshot.outstanding}.",
        ),
    )


def _company_balance(store: LedgerStore, company_id: int) -> BalanceSnapshot:
    orders, _ = store.list_orders(company_id=company_id)
    transactions, _ = store.list_transactions(company_id=company_id)
    return compute_balance(orders, transactions)


@router.get("/", response_model=CompanyListResponse)
def list_companies(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(default=None, description="Case-insensitive name filter"),
    store: LedgerStore = Depends(get_store),
) -> CompanyListResponse:
    """
    Return a page of companies, newest first, each with its balance.
    """
    companies, total = store.list_companies(limit=limit, offset=offset, search=search)
    ids = [c.id for c in companies]

    orders, _ = store.list_orders(company_ids=ids)
    transactions, _ = store.list_transactions(company_ids=ids)
    balances = group_balances(orders, transactions)
    threshold = store.get_settings().high_risk_threshold

    items: List[CompanyWithBalance] = [
        _with_balance(c, balances.get(c.id, BalanceSnapshot()), threshold)
        for c in companies
    ]
    return CompanyListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post("/", response_model=CompanyOut, status_code=201)
def create_company(
    payload: CompanyIn,
    store: LedgerStore = Depends(get_store),
    user_email: Optional[str] = Depends(get_user_email),
) -> CompanyOut:
    values = payload.model_dump()
    values["latitude"], values["longitude"] = extract_coordinates(payload.maps_url)

    company = store.insert_company(values)
    store.log_activity("company.create", f"Added company {company.name}", user_email)
    return company


@router.get("/{company_id}", response_model=CompanyWithBalance)
def get_company(company_id: int, store: LedgerStore = Depends(get_store)) -> CompanyWithBalance:
    """
    Return a single company by ID, with its balance.
    """
    company = store.get_company(company_id)
    threshold = store.get_settings().high_risk_threshold
    return _with_balance(company, _company_balance(store, company_id), threshold)


@router.patch("/{company_id}", response_model=CompanyOut)
def update_company(
    company_id: int,
    payload: CompanyUpdate,
    store: LedgerStore = Depends(get_store),
    user_email: Optional[str] = Depends(get_user_email),
) -> CompanyOut:
    values = payload.model_dump(exclude_unset=True)
    if "maps_url" in values:
        values["latitude"], values["longitude"] = extract_coordinates(values["maps_url"])

    company = store.update_company(company_id, values)
    store.log_activity(
        "company.update",
        f"Updated {company.name}: {', '.join(sorted(values)) or 'no changes'}",
        user_email,
    )
    return company


@router.delete("/{company_id}")
def delete_company(
    company_id: int,
    store: LedgerStore = Depends(get_store),
    files=Depends(get_file_store),
    user_email: Optional[str] = Depends(get_user_email),
):
    company = store.get_company(company_id)
    paths = store.delete_company(company_id)
    discard_files(files, paths)
    store.log_activity(
        "company.delete", f"Deleted {company.name} with its orders and transactions", user_email
    )
    return {"status": "deleted", "id": company_id}


@router.get("/{company_id}/balance", response_model=BalanceOut)
def get_company_balance(company_id: int, store: LedgerStore = Depends(get_store)) -> BalanceOut:
    store.get_company(company_id)
    return _company_balance(store, company_id).to_out()


@router.get("/{company_id}/orders", response_model=OrderListResponse)
def list_company_orders(
    company_id: int,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store: LedgerStore = Depends(get_store),
) -> OrderListResponse:
    store.get_company(company_id)
    items, total = store.list_orders(company_id=company_id, limit=limit, offset=offset)
    return OrderListResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/{company_id}/transactions", response_model=TransactionListResponse)
def list_company_transactions(
    company_id: int,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store: LedgerStore = Depends(get_store),
) -> TransactionListResponse:
    store.get_company(company_id)
    items, total = store.list_transactions(company_id=company_id, limit=limit, offset=offset)
    return TransactionListResponse(items=items, total=total, limit=limit, offset=offset)
