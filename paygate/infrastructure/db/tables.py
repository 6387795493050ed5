from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

bookings = Table(
    "bookings",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("booking_number", String(50), nullable=False, unique=True),
    Column("total_amount", Numeric(14, 2), nullable=False),
    Column("status", String(32), nullable=False),
    Column("payment_status", String(32), nullable=False),
    Column("customer_name", String(255)),
    Column("customer_email", String(255)),
    Column("service_name", String(255)),
    Column("updated_at", DateTime(timezone=True)),
)

payments = Table(
    "payments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("booking_id", String(36), nullable=False, index=True),
    Column("amount", Numeric(14, 2), nullable=False),
    Column("payment_method", String(32), nullable=False),
    Column("status", String(32), nullable=False),
    Column("gateway_order_id", String(100), nullable=False),
    Column("gateway_transaction_id", String(100)),
    Column("gateway_response", JSON),
    Column("failure_reason", Text),
    Column("refund_amount", Numeric(14, 2)),
    Column("refund_reason", Text),
    Column("refunded_at", DateTime(timezone=True)),
    Column("paid_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True)),
    UniqueConstraint("gateway_order_id", name="uq_payments_gateway_order_id"),
)

webhook_events = Table(
    "webhook_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("event_id", String(255), nullable=False),
    Column("provider", String(32), nullable=False),
    Column("order_id", String(100), nullable=False, index=True),
    Column("status", String(32), nullable=False),
    Column("amount", Numeric(14, 2), nullable=False),
    Column("transaction_id", String(100)),
    Column("source", String(16), nullable=False),
    Column("payload", JSON),
    Column("created_at", DateTime(timezone=True)),
    UniqueConstraint("event_id", name="uq_webhook_events_event_id"),
)
