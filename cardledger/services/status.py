# cardledger/services/status.py
"""
Order Status Machine.

Orders move Pending -> Sent -> Received -> Paid. Any forward jump is allowed
(Pending straight to Received, for instance); re-selecting the current
status is a no-op; moving backwards is rejected.

Guards:
  * Paid needs an attached receipt.
  * Sent needs a company email and an attached receipt. The receipt is
    emailed to the company first; the status is only written once the email
    went out.

The write itself is a compare-and-swap on the status the caller expected, so
two people clicking at once cannot both win.
"""

import html
import logging
from pathlib import PurePosixPath
from typing import Optional

from cardledger.clients.email import Attachment
from cardledger.db.schema import utcnow
from cardledger.errors import ConflictError, DependencyError, NotFoundError, ValidationError
from cardledger.models.orders import OrderEmailOut, OrderOut, OrderStatus

logger = logging.getLogger(__name__)

STATUS_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.SENT,
    OrderStatus.RECEIVED,
    OrderStatus.PAID,
)

STATUS_STAMPS = {
    OrderStatus.SENT: "date_sent",
    OrderStatus.RECEIVED: "date_received",
    OrderStatus.PAID: "date_paid",
}


def check_transition(order, company, new_status) -> bool:
    """
    Validate moving `order` to `new_status`.

    Returns False for a no-op (same status), True when the move should be
    applied. Raises ValidationError when a guard fails.
    """
    current = OrderStatus(order.status)
    new_status = OrderStatus(new_status)

    if new_status == current:
        return False

    if STATUS_SEQUENCE.index(new_status) < STATUS_SEQUENCE.index(current):
        raise ValidationError(
            f"Order {order.id} cannot move back from {current.value} to {new_status.value}"
        )

    if new_status == OrderStatus.PAID and not order.receipt_path:
        raise ValidationError("Attach a receipt before marking as Paid")

    if new_status == OrderStatus.SENT:
        if not company.email:
            raise ValidationError(
                f"{company.name} has no email address; add one before marking as Sent"
            )
        if not order.receipt_path:
            raise ValidationError("Attach a receipt before marking as Sent")

    return True


def order_email_html(order, currency: str, sent: bool) -> str:
    heading = "Your Order Has Been Sent" if sent else "New Order Received"
    lines = [
        f"<h2>{heading}</h2>",
        f"<p><strong>Amount:</strong> {order.amount} {html.escape(currency)}</p>",
        f"<p><strong>Cards:</strong> {order.cards_count}</p>",
    ]
    if order.receipt_path:
        lines.append("<p>Please find the receipt attached.</p>")
    return "\n".join(lines)


class OrderStatusMachine:
    def __init__(self, store, files, mailer, clock=utcnow):
        self.store = store
        self.files = files
        self.mailer = mailer
        self.clock = clock

    def _attachment(self, order) -> Attachment:
        try:
            content = self.files.read(order.receipt_path)
        except NotFoundError as exc:
            raise ValidationError(
                f"Receipt file for order #{order.id} is missing; attach it again"
            ) from exc
        filename = PurePosixPath(order.receipt_path).name.split("_", 1)[-1]
        return Attachment(filename=filename, content=content)

    def _deliver(self, order, company, sent: bool) -> Optional[str]:
        currency = self.store.get_settings().currency_code
        attachments = [self._attachment(order)] if order.receipt_path else []
        if sent:
            subject = "Your prepaid card order has been sent"
        else:
            subject = f"New Order: {order.amount} {currency}"
        return self.mailer.send(
            to=company.email,
            subject=subject,
            html=order_email_html(order, currency, sent=sent),
            attachments=attachments,
        )

    def transition(
        self,
        order_id: int,
        new_status: OrderStatus,
        expected_status: Optional[OrderStatus] = None,
        user_email: Optional[str] = None,
    ) -> OrderOut:
        new_status = OrderStatus(new_status)
        order = self.store.get_order(order_id)

        if expected_status is not None and order.status != OrderStatus(expected_status):
            raise ConflictError(
                f"Order {order_id} is {order.status.value}, expected "
                f"{OrderStatus(expected_status).value}; reload and try again"
            )

        company = self.store.get_company(order.company_id)
        action = f"order.status.{new_status.value.lower()}"

        try:
            if not check_transition(order, company, new_status):
                return order
            if new_status == OrderStatus.SENT:
                self._deliver(order, company, sent=True)
        except (ValidationError, DependencyError) as exc:
            self.store.log_activity(
                action, f"Order #{order.id}: {exc.message}", user_email, status="error"
            )
            raise

        stamps = {STATUS_STAMPS[new_status]: self.clock()}
        updated = self.store.update_order_status(
            order.id, new_status, expected_status=order.status, stamps=stamps
        )

        logger.info(
            "Order %s moved %s -> %s", order.id, order.status.value, new_status.value
        )
        self.store.log_activity(
            action,
            f"Order #{order.id} for {company.name}: {order.status.value} -> {new_status.value}",
            user_email,
        )
        return updated

    def send_order_email(self, order_id: int, user_email: Optional[str] = None) -> OrderEmailOut:
        """Email the order summary (and receipt, when attached) without touching status."""
        order = self.store.get_order(order_id)
        company = self.store.get_company(order.company_id)
        if not company.email:
            raise ValidationError(f"{company.name} has no email address")

        try:
            message_id = self._deliver(order, company, sent=False)
        except (ValidationError, DependencyError) as exc:
            self.store.log_activity(
                "order.email", f"Order #{order.id}: {exc.message}", user_email, status="error"
            )
            raise

        self.store.log_activity(
            "order.email", f"Order #{order.id} emailed to {company.email}", user_email
        )
        return OrderEmailOut(
            order_id=order.id,
            sent_to=company.email,
            message_id=message_id,
            with_attachment=bool(order.receipt_path),
        )
