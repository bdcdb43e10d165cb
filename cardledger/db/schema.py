# cardledger/db/schema.py

from datetime import datetime, timezone

from sqlalchemy import (
    MetaData, Table, Column, Integer, String, Float,
    Numeric, DateTime, ForeignKey, CheckConstraint, Text, Index
)

metadata = MetaData()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (how timestamps are stored)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value):
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


companies = Table(
    "companies",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("percent_cut", Numeric(5, 2), nullable=True),
    Column("address", Text),
    Column("maps_url", Text),
    Column("latitude", Float),
    Column("longitude", Float),
    Column("notes", Text),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint(
        "percent_cut IS NULL OR (percent_cut >= 0 AND percent_cut <= 100)",
        name="ck_companies_percent_cut_range",
    ),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "company_id",
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("amount", Numeric(18, 2), nullable=False),
    Column("cards_count", Integer, nullable=False),
    Column("status", String, nullable=False, default="Pending"),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("receipt_path", Text),
    Column("date_sent", DateTime),
    Column("date_received", DateTime),
    Column("date_paid", DateTime),
    CheckConstraint("amount > 0", name="ck_orders_amount_positive"),
    CheckConstraint("cards_count > 0", name="ck_orders_cards_count_positive"),
    CheckConstraint(
        "status IN ('Pending', 'Sent', 'Received', 'Paid')",
        name="ck_orders_status",
    ),
    CheckConstraint(
        "status != 'Paid' OR receipt_path IS NOT NULL",
        name="ck_orders_paid_has_receipt",
    ),
    Index("ix_orders_company_created", "company_id", "created_at"),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # NULL company_id = independent transaction
    Column(
        "company_id",
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=True,
    ),
    Column("amount", Numeric(18, 2), nullable=False),
    Column("type", String, nullable=False),
    Column("sender_name", String),
    Column("receiver_name", String),
    Column("notes", Text),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Column("receipt_path", Text),
    CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    CheckConstraint("type IN ('Received', 'Paid')", name="ck_transactions_type"),
    Index("ix_transactions_company_created", "company_id", "created_at"),
)

system_settings = Table(
    "system_settings",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("currency_code", String(3), nullable=False),
    Column("date_format", String, nullable=False),
    Column("high_risk_threshold", Numeric(18, 2), nullable=False),
    Column("default_tax_rate", Numeric(5, 2), nullable=False),
    Column("updated_at", DateTime, nullable=False, default=utcnow),
    CheckConstraint("high_risk_threshold >= 0", name="ck_settings_threshold_nonneg"),
)

activity_logs = Table(
    "activity_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("action", String, nullable=False),
    Column("details", Text),
    Column("user_email", String),
    Column("status", String, nullable=False, default="success"),
    Column("created_at", DateTime, nullable=False, default=utcnow),
    Index("ix_activity_logs_created", "created_at"),
)
