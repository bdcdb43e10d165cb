from decimal import Decimal

import pytest

from cardledger.errors import ConflictError, DependencyError, ValidationError
from cardledger.models.orders import OrderStatus
from cardledger.services.status import OrderStatusMachine


@pytest.fixture
def machine(store, files, mailer):
    return OrderStatusMachine(store, files, mailer)


@pytest.fixture
def company(store):
    return store.insert_company({"name": "Anis Cards", "email": "cards@anis.ly"})


def _order(store, company, receipt_path=None):
    return store.insert_order(
        {
            "company_id": company.id,
            "amount": Decimal("1000"),
            "cards_count": 40,
            "receipt_path": receipt_path,
        }
    )


def _with_receipt(store, files, company):
    path = files.upload(f"company_{company.id}/abc_receipt.pdf", b"%PDF-1.4 receipt")
    return _order(store, company, receipt_path=path)


def test_new_orders_start_pending(store, company):
    assert _order(store, company).status == OrderStatus.PENDING


def test_paid_without_receipt_is_rejected(machine, store, company):
    order = _order(store, company)

    with pytest.raises(ValidationError, match="receipt"):
        machine.transition(order.id, OrderStatus.PAID)

    assert store.get_order(order.id).status == OrderStatus.PENDING


def test_paid_with_receipt_stamps_date(machine, store, files, company):
    order = _with_receipt(store, files, company)

    updated = machine.transition(order.id, OrderStatus.PAID)

    assert updated.status == OrderStatus.PAID
    assert updated.date_paid is not None
    assert updated.date_sent is None


def test_sent_without_company_email_never_emails(machine, store, files, mailer):
    company = store.insert_company({"name": "No Mail Ltd"})
    order = _with_receipt(store, files, company)

    with pytest.raises(ValidationError, match="email"):
        machine.transition(order.id, OrderStatus.SENT)

    assert mailer.sent == []
    assert store.get_order(order.id).status == OrderStatus.PENDING


def test_sent_without_receipt_is_rejected(machine, store, company, mailer):
    order = _order(store, company)

    with pytest.raises(ValidationError):
        machine.transition(order.id, OrderStatus.SENT)

    assert mailer.sent == []


def test_failed_email_keeps_prior_status(machine, store, files, company, mailer):
    order = _with_receipt(store, files, company)
    mailer.fail = True

    with pytest.raises(DependencyError):
        machine.transition(order.id, OrderStatus.SENT)

    reloaded = store.get_order(order.id)
    assert reloaded.status == OrderStatus.PENDING
    assert reloaded.date_sent is None

    logs, _ = store.list_activity(search="order.status.sent")
    assert logs[0].status == "error"


def test_missing_receipt_file_is_logged_and_keeps_status(machine, store, files, company, mailer):
    order = _with_receipt(store, files, company)
    (files.root / order.receipt_path).unlink()

    with pytest.raises(ValidationError, match="missing"):
        machine.transition(order.id, OrderStatus.SENT)

    assert store.get_order(order.id).status == OrderStatus.PENDING
    assert mailer.sent == []
    logs, _ = store.list_activity(search="order.status.sent")
    assert logs[0].status == "error"


def test_sent_emails_receipt_then_updates(machine, store, files, company, mailer):
    order = _with_receipt(store, files, company)

    updated = machine.transition(order.id, OrderStatus.SENT, user_email="staff@turbo.ly")

    assert updated.status == OrderStatus.SENT
    assert updated.date_sent is not None
    assert len(mailer.sent) == 1
    message = mailer.sent[0]
    assert message["to"] == "cards@anis.ly"
    assert message["attachments"][0].filename == "receipt.pdf"
    assert message["attachments"][0].content == b"%PDF-1.4 receipt"


def test_forward_jump_is_allowed(machine, store, company):
    order = _order(store, company)
    updated = machine.transition(order.id, OrderStatus.RECEIVED)
    assert updated.status == OrderStatus.RECEIVED
    assert updated.date_received is not None


def test_backward_move_is_rejected(machine, store, company):
    order = _order(store, company)
    machine.transition(order.id, OrderStatus.RECEIVED)

    with pytest.raises(ValidationError, match="back"):
        machine.transition(order.id, OrderStatus.PENDING)

    assert store.get_order(order.id).status == OrderStatus.RECEIVED


def test_same_status_is_a_noop(machine, store, company, mailer):
    order = _order(store, company)
    again = machine.transition(order.id, OrderStatus.PENDING)
    assert again == order
    assert mailer.sent == []


def test_stale_expected_status_conflicts(machine, store, company):
    order = _order(store, company)
    machine.transition(order.id, OrderStatus.RECEIVED)

    with pytest.raises(ConflictError):
        machine.transition(
            order.id, OrderStatus.PAID, expected_status=OrderStatus.PENDING
        )


def test_store_compare_and_swap(store, company):
    order = _order(store, company)
    store.update_order_status(order.id, OrderStatus.RECEIVED, expected_status=OrderStatus.PENDING)

    with pytest.raises(ConflictError):
        store.update_order_status(order.id, OrderStatus.SENT, expected_status=OrderStatus.PENDING)

    assert store.get_order(order.id).status == OrderStatus.RECEIVED


def test_manual_order_email_does_not_change_status(machine, store, files, company, mailer):
    order = _with_receipt(store, files, company)

    result = machine.send_order_email(order.id)

    assert result.sent_to == "cards@anis.ly"
    assert result.with_attachment
    assert mailer.sent[0]["subject"].startswith("New Order:")
    assert store.get_order(order.id).status == OrderStatus.PENDING
