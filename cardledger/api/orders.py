# cardledger/api/orders.py

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from cardledger.api.deps import get_file_store, get_status_machine, get_store, get_user_email
from cardledger.clients.files import company_file_path, discard_files
from cardledger.db.store import LedgerStore
from cardledger.models.orders import (
    OrderEmailOut,
    OrderIn,
    OrderListResponse,
    OrderOut,
    OrderStatus,
    StatusChangeIn,
)
from cardledger.services.status import OrderStatusMachine

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/", response_model=OrderListResponse)
def list_orders(
    company_id: Optional[int] = Query(default=None),
    status: Optional[OrderStatus] = Query(default=None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store: LedgerStore = Depends(get_store),
) -> OrderListResponse:
    items, total = store.list_orders(
        company_id=company_id, status=status, limit=limit, offset=offset
    )
    return OrderListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderIn,
    store: LedgerStore = Depends(get_store),
    user_email: Optional[str] = Depends(get_user_email),
) -> OrderOut:
    """
    Create an order for a company. New orders always start as Pending.
    """
    company = store.get_company(payload.company_id)
    order = store.insert_order(payload.model_dump())
    store.log_activity(
        "order.create",
        f"Order #{order.id} for {company.name}: {order.amount} ({order.cards_count} cards)",
        user_email,
    )
    return order


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, store: LedgerStore = Depends(get_store)) -> OrderOut:
    return store.get_order(order_id)


@router.patch("/{order_id}/status", response_model=OrderOut)
def change_order_status(
    order_id: int,
    payload: StatusChangeIn,
    machine: OrderStatusMachine = Depends(get_status_machine),
    user_email: Optional[str] = Depends(get_user_email),
) -> OrderOut:
    """
    Move an order forward. Marking as Sent emails the receipt to the company
    first; if that fails the status stays where it was.
    """
    return machine.transition(
        order_id,
        payload.status,
        expected_status=payload.expected_status,
        user_email=user_email,
    )


@router.post("/{order_id}/receipt", response_model=OrderOut)
def upload_order_receipt(
    order_id: int,
    file: UploadFile = File(...),
    store: LedgerStore = Depends(get_store),
    files=Depends(get_file_store),
    user_email: Optional[str] = Depends(get_user_email),
) -> OrderOut:
    order = store.get_order(order_id)
    path = files.upload(company_file_path(order.company_id, file.filename), file.file.read())

    previous = store.set_order_receipt(order_id, path)
    if previous and previous != path:
        discard_files(files, [previous])

    store.log_activity("order.receipt", f"Receipt attached to order #{order_id}", user_email)
    return store.get_order(order_id)


@router.post("/{order_id}/email", response_model=OrderEmailOut)
def send_order_email(
    order_id: int,
    machine: OrderStatusMachine = Depends(get_status_machine),
    user_email: Optional[str] = Depends(get_user_email),
) -> OrderEmailOut:
    return machine.send_order_email(order_id, user_email=user_email)


@router.delete("/{order_id}")
def delete_order(
    order_id: int,
    store: LedgerStore = Depends(get_store),
    files=Depends(get_file_store),
    user_email: Optional[str] = Depends(get_user_email),
):
    order = store.delete_order(order_id)
    discard_files(files, [order.receipt_path])
    store.log_activity(
        "order.delete", f"Deleted order #{order.id} ({order.status.value})", user_email
    )
    return {"status": "deleted", "id": order_id}
