# cardledger/db/store.py
"""
Ledger Store: every read and write of companies, orders, transactions,
settings and the activity log goes through LedgerStore.

A store wraps one Engine and is handed to the API layer and the services
explicitly (see cardledger.api.deps); nothing here holds global state.
List methods return (items, total) where total is the exact row count before
limit/offset, ordered by created_at descending.
"""

import logging
from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError

from cardledger.config import config
from cardledger.db.schema import (
    activity_logs,
    companies,
    orders,
    system_settings,
    transactions,
    utcnow,
)
from cardledger.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from cardledger.models.companies import CompanyOut
from cardledger.models.orders import OrderOut, OrderStatus
from cardledger.models.settings import ActivityOut, SettingsOut
from cardledger.models.transactions import TransactionOut, TransactionType

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


def _row_to_order(row) -> OrderOut:
    return OrderOut(
        id=row["id"],
        company_id=row["company_id"],
        company_name=row["company_name"],
        amount=row["amount"],
        cards_count=row["cards_count"],
        status=row["status"],
        created_at=row["created_at"],
        receipt_path=row["receipt_path"],
        date_sent=row["date_sent"],
        date_received=row["date_received"],
        date_paid=row["date_paid"],
    )


def _row_to_transaction(row) -> TransactionOut:
    return TransactionOut(
        id=row["id"],
        company_id=row["company_id"],
        company_name=row["company_name"],
        amount=row["amount"],
        type=row["type"],
        sender_name=row["sender_name"],
        receiver_name=row["receiver_name"],
        notes=row["notes"],
        created_at=row["created_at"],
        receipt_path=row["receipt_path"],
    )


def _order_select():
    return select(orders, companies.c.name.label("company_name")).select_from(
        orders.outerjoin(companies, orders.c.company_id == companies.c.id)
    )


def _transaction_select():
    return select(transactions, companies.c.name.label("company_name")).select_from(
        transactions.outerjoin(companies, transactions.c.company_id == companies.c.id)
    )


def _company_filter(column, company_id, company_ids):
    conditions = []
    if company_id is not None:
        conditions.append(column == company_id)
    if company_ids is not None:
        conditions.append(column.in_(list(company_ids)))
    return conditions


class LedgerStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def _connect(self, write: bool = False):
        try:
            ctx = self.engine.begin() if write else self.engine.connect()
            with ctx as conn:
                yield conn
        except IntegrityError as exc:
            raise ValidationError(f"rejected by the ledger store: {exc.orig}") from exc
        except OperationalError as exc:
            logger.exception("Ledger store unavailable")
            raise DependencyError("ledger store is unavailable") from exc

    @staticmethod
    def _page(conn, stmt, count_stmt, limit, offset):
        total = conn.execute(count_stmt).scalar_one()
        if limit is not None:
            stmt = stmt.limit(limit).offset(offset)
        elif offset:
            stmt = stmt.offset(offset)
        return conn.execute(stmt).mappings().all(), total

    # ---- Companies ----

    def list_companies(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        search: Optional[str] = None,
    ) -> Tuple[List[CompanyOut], int]:
        conditions = []
        if search:
            conditions.append(companies.c.name.ilike(f"%{search}%"))

        with self._connect() as conn:
            stmt = (
                select(companies)
                .where(*conditions)
                .order_by(companies.c.created_at.desc(), companies.c.id.desc())
            )
            count_stmt = select(func.count()).select_from(companies).where(*conditions)
            rows, total = self._page(conn, stmt, count_stmt, limit, offset)

        return [CompanyOut(**row) for row in rows], total

    def count_companies(self) -> int:
        with self._connect() as conn:
            return conn.execute(select(func.count()).select_from(companies)).scalar_one()

    def company_names(self) -> Dict[int, str]:
        with self._connect() as conn:
            rows = conn.execute(select(companies.c.id, companies.c.name)).all()
        return {row.id: row.name for row in rows}

    def get_company(self, company_id: int) -> CompanyOut:
        with self._connect() as conn:
            row = conn.execute(
                select(companies).where(companies.c.id == company_id)
            ).mappings().first()

        if row is None:
            raise NotFoundError(f"Company {company_id} not found")
        return CompanyOut(**row)

    def insert_company(self, values: dict) -> CompanyOut:
        values = dict(values)
        values.setdefault("created_at", utcnow())
        with self._connect(write=True) as conn:
            result = conn.execute(companies.insert().values(**values))
            company_id = result.inserted_primary_key[0]
        return self.get_company(company_id)

    def update_company(self, company_id: int, values: dict) -> CompanyOut:
        if values:
            with self._connect(write=True) as conn:
                result = conn.execute(
                    companies.update()
                    .where(companies.c.id == company_id)
                    .values(**values)
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"Company {company_id} not found")
        return self.get_company(company_id)

    def delete_company(self, company_id: int) -> List[str]:
        """
        Delete a company with its orders and transactions.

        Returns the receipt paths the deleted rows referenced so the caller
        can clean up the file store.
        """
        with self._connect(write=True) as conn:
            exists = conn.execute(
                select(companies.c.id).where(companies.c.id == company_id)
            ).first()
            if exists is None:
                raise NotFoundError(f"Company {company_id} not found")

            order_paths = conn.execute(
                select(orders.c.receipt_path).where(
                    orders.c.company_id == company_id,
                    orders.c.receipt_path.is_not(None),
                )
            ).scalars().all()
            tx_paths = conn.execute(
                select(transactions.c.receipt_path).where(
                    transactions.c.company_id == company_id,
                    transactions.c.receipt_path.is_not(None),
                )
            ).scalars().all()

            conn.execute(transactions.delete().where(transactions.c.company_id == company_id))
            conn.execute(orders.delete().where(orders.c.company_id == company_id))
            conn.execute(companies.delete().where(companies.c.id == company_id))

        return list(order_paths) + list(tx_paths)

    # ---- Orders ----

    def list_orders(
        self,
        company_id: Optional[int] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        company_ids: Optional[Sequence[int]] = None,
        status: Optional[OrderStatus] = None,
    ) -> Tuple[List[OrderOut], int]:
        conditions = _company_filter(orders.c.company_id, company_id, company_ids)
        if status is not None:
            conditions.append(orders.c.status == OrderStatus(status).value)

        with self._connect() as conn:
            stmt = _order_select().where(*conditions).order_by(
                orders.c.created_at.desc(), orders.c.id.desc()
            )
            count_stmt = select(func.count()).select_from(orders).where(*conditions)
            rows, total = self._page(conn, stmt, count_stmt, limit, offset)

        return [_row_to_order(row) for row in rows], total

    def get_order(self, order_id: int) -> OrderOut:
        with self._connect() as conn:
            row = conn.execute(
                _order_select().where(orders.c.id == order_id)
            ).mappings().first()

        if row is None:
            raise NotFoundError(f"Order {order_id} not found")
        return _row_to_order(row)

    def insert_order(self, values: dict) -> OrderOut:
        values = dict(values)
        if values.get("created_at") is None:
            values["created_at"] = utcnow()
        # new orders always start Pending
        values["status"] = OrderStatus.PENDING.value

        with self._connect(write=True) as conn:
            result = conn.execute(orders.insert().values(**values))
            order_id = result.inserted_primary_key[0]
        return self.get_order(order_id)

    def update_order_status(
        self,
        order_id: int,
        new_status: OrderStatus,
        expected_status: OrderStatus,
        stamps: Optional[dict] = None,
    ) -> OrderOut:
        """
        Compare-and-swap the status: the row is only written while it still
        holds expected_status. Raises ConflictError otherwise.
        """
        new_status = OrderStatus(new_status)
        expected_status = OrderStatus(expected_status)

        with self._connect(write=True) as conn:
            result = conn.execute(
                orders.update()
                .where(
                    orders.c.id == order_id,
                    orders.c.status == expected_status.value,
                )
                .values(status=new_status.value, **(stamps or {}))
            )
            if result.rowcount == 0:
                current = conn.execute(
                    select(orders.c.status).where(orders.c.id == order_id)
                ).scalar_one_or_none()
                if current is None:
                    raise NotFoundError(f"Order {order_id} not found")
                raise ConflictError(
                    f"Order {order_id} is {current}, expected {expected_status.value}; "
                    "reload and try again"
                )
        return self.get_order(order_id)

    def set_order_receipt(self, order_id: int, path: Optional[str]) -> Optional[str]:
        """Attach a receipt path; returns the path it replaced."""
        with self._connect(write=True) as conn:
            previous = conn.execute(
                select(orders.c.receipt_path).where(orders.c.id == order_id)
            ).first()
            if previous is None:
                raise NotFoundError(f"Order {order_id} not found")
            conn.execute(
                orders.update().where(orders.c.id == order_id).values(receipt_path=path)
            )
        return previous.receipt_path

    def delete_order(self, order_id: int) -> OrderOut:
        order = self.get_order(order_id)
        with self._connect(write=True) as conn:
            result = conn.execute(orders.delete().where(orders.c.id == order_id))
            if result.rowcount == 0:
                raise NotFoundError(f"Order {order_id} not found")
        return order

    # ---- Transactions ----

    def list_transactions(
        self,
        company_id: Optional[int] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        company_ids: Optional[Sequence[int]] = None,
        type: Optional[TransactionType] = None,
        since=None,
    ) -> Tuple[List[TransactionOut], int]:
        conditions = _company_filter(transactions.c.company_id, company_id, company_ids)
        if type is not None:
            conditions.append(transactions.c.type == TransactionType(type).value)
        if since is not None:
            conditions.append(transactions.c.created_at >= since)

        with self._connect() as conn:
            stmt = _transaction_select().where(*conditions).order_by(
                transactions.c.created_at.desc(), transactions.c.id.desc()
            )
            count_stmt = select(func.count()).select_from(transactions).where(*conditions)
            rows, total = self._page(conn, stmt, count_stmt, limit, offset)

        return [_row_to_transaction(row) for row in rows], total

    def get_transaction(self, transaction_id: int) -> TransactionOut:
        with self._connect() as conn:
            row = conn.execute(
                _transaction_select().where(transactions.c.id == transaction_id)
            ).mappings().first()

        if row is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return _row_to_transaction(row)

    def insert_transaction(self, values: dict) -> TransactionOut:
        values = dict(values)
        if values.get("created_at") is None:
            values["created_at"] = utcnow()
        with self._connect(write=True) as conn:
            result = conn.execute(transactions.insert().values(**values))
            transaction_id = result.inserted_primary_key[0]
        return self.get_transaction(transaction_id)

    def update_transaction(self, transaction_id: int, values: dict) -> TransactionOut:
        if values:
            with self._connect(write=True) as conn:
                result = conn.execute(
                    transactions.update()
                    .where(transactions.c.id == transaction_id)
                    .values(**values)
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"Transaction {transaction_id} not found")
        return self.get_transaction(transaction_id)

    def set_transaction_receipt(self, transaction_id: int, path: Optional[str]) -> Optional[str]:
        with self._connect(write=True) as conn:
            previous = conn.execute(
                select(transactions.c.receipt_path).where(transactions.c.id == transaction_id)
            ).first()
            if previous is None:
                raise NotFoundError(f"Transaction {transaction_id} not found")
            conn.execute(
                transactions.update()
                .where(transactions.c.id == transaction_id)
                .values(receipt_path=path)
            )
        return previous.receipt_path

    def delete_transaction(self, transaction_id: int) -> TransactionOut:
        transaction = self.get_transaction(transaction_id)
        with self._connect(write=True) as conn:
            result = conn.execute(
                transactions.delete().where(transactions.c.id == transaction_id)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    # ---- System settings ----

    def get_settings(self) -> SettingsOut:
        with self._connect(write=True) as conn:
            row = conn.execute(
                select(system_settings).where(system_settings.c.id == SETTINGS_ROW_ID)
            ).mappings().first()
            if row is None:
                defaults = {
                    "id": SETTINGS_ROW_ID,
                    "currency_code": config.DEFAULT_CURRENCY,
                    "date_format": config.DEFAULT_DATE_FORMAT,
                    "high_risk_threshold": config.DEFAULT_RISK_THRESHOLD,
                    "default_tax_rate": config.DEFAULT_TAX_RATE,
                    "updated_at": utcnow(),
                }
                conn.execute(system_settings.insert().values(**defaults))
                return SettingsOut(**defaults)

        return SettingsOut(**row)

    def update_settings(self, values: dict) -> SettingsOut:
        self.get_settings()
        if values:
            with self._connect(write=True) as conn:
                conn.execute(
                    system_settings.update()
                    .where(system_settings.c.id == SETTINGS_ROW_ID)
                    .values(updated_at=utcnow(), **values)
                )
        return self.get_settings()

    # ---- Activity log ----

    def log_activity(
        self,
        action: str,
        details: Optional[str] = None,
        user_email: Optional[str] = None,
        status: str = "success",
    ) -> None:
        with self._connect(write=True) as conn:
            conn.execute(
                activity_logs.insert().values(
                    action=action,
                    details=details,
                    user_email=user_email,
                    status=status,
                    created_at=utcnow(),
                )
            )

    def list_activity(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[ActivityOut], int]:
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    activity_logs.c.action.ilike(pattern),
                    activity_logs.c.details.ilike(pattern),
                    activity_logs.c.user_email.ilike(pattern),
                )
            )

        with self._connect() as conn:
            stmt = (
                select(activity_logs)
                .where(*conditions)
                .order_by(activity_logs.c.created_at.desc(), activity_logs.c.id.desc())
            )
            count_stmt = select(func.count()).select_from(activity_logs).where(*conditions)
            rows, total = self._page(conn, stmt, count_stmt, limit, offset)

        return [ActivityOut(**row) for row in rows], total
