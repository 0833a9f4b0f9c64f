"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from app.models.metadata import metadata

appointments = Table(
    "appointments",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    # Ownership / references
    Column(
        "patient_id",
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "doctor_id",
        UUID(as_uuid=True),
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Appointment details
    Column("scheduled_at", TIMESTAMP(timezone=True), nullable=False),
    Column("type", Text, nullable=False),
    # Status management
    Column(
        "status",
        Text,
        nullable=False,
        server_default="AWAITING_ACCEPTANCE",
    ),
    Column("payment_status", Text, nullable=False, server_default="PENDING"),
    Column("notes", Text, nullable=True),
    # Linked resources
    Column(
        "meeting_id",
        UUID(as_uuid=True),
        ForeignKey("meetings.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
    ),
    Column(
        "payment_id",
        UUID(as_uuid=True),
        ForeignKey("payments.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
    ),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Constraints
    CheckConstraint(
        "status IN ('AWAITING_ACCEPTANCE', 'REJECTED', 'PAYMENT_PENDING', "
        "'CONFIRMED', 'COMPLETED', 'CANCELLED')",
        name="appointments_status_check",
    ),
    CheckConstraint("type IN ('ONLINE', 'PHYSICAL')", name="appointments_type_check"),
    CheckConstraint(
        "payment_status IN ('PENDING', 'COMPLETED', 'FAILED', 'REFUNDED')",
        name="appointments_payment_status_check",
    ),
    Index("idx_appointments_patient_id", "patient_id"),
    Index("idx_appointments_doctor_scheduled", "doctor_id", "scheduled_at"),
    Index("idx_appointments_status", "status"),
)
