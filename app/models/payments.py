"""Payments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Numeric,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from app.models.metadata import metadata

payments = Table(
    "payments",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column(
        "appointment_id",
        UUID(as_uuid=True),
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("amount", Numeric(10, 2), nullable=False),
    Column("currency", String(3), nullable=False, server_default=text("'usd'")),
    Column("status", Text, nullable=False, server_default="PENDING"),
    Column("stripe_payment_intent_id", Text, nullable=True, unique=True),
    Column("processed_at", TIMESTAMP(timezone=True), nullable=True),
    # Refund metadata
    Column("refund_id", Text, nullable=True),
    Column("refunded_at", TIMESTAMP(timezone=True), nullable=True),
    Column("refund_reason", Text, nullable=True),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "status IN ('PENDING', 'COMPLETED', 'FAILED', 'REFUNDED')",
        name="payments_status_check",
    ),
)
