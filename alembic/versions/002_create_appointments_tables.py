"""Create appointments, payments and meetings tables.

Revision ID: 002
Revises: 001
Create Date: 2026-10-16

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create the appointment lifecycle tables."""
    op.create_table(
        "appointments",
        _id(),
        sa.Column("patient_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("scheduled_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default="AWAITING_ACCEPTANCE", nullable=False),
        sa.Column("payment_status", sa.Text(), server_default="PENDING", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("meeting_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("payment_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status IN ('AWAITING_ACCEPTANCE', 'REJECTED', 'PAYMENT_PENDING', "
            "'CONFIRMED', 'COMPLETED', 'CANCELLED')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint("type IN ('ONLINE', 'PHYSICAL')", name="appointments_type_check"),
        sa.CheckConstraint(
            "payment_status IN ('PENDING', 'COMPLETED', 'FAILED', 'REFUNDED')",
            name="appointments_payment_status_check",
        ),
    )
    op.create_index("idx_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index(
        "idx_appointments_doctor_scheduled", "appointments", ["doctor_id", "scheduled_at"]
    )
    op.create_index("idx_appointments_status", "appointments", ["status"])

    op.create_table(
        "payments",
        _id(),
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), server_default=sa.text("'usd'"), nullable=False),
        sa.Column("status", sa.Text(), server_default="PENDING", nullable=False),
        sa.Column("stripe_payment_intent_id", sa.Text(), nullable=True),
        sa.Column("processed_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("refund_id", sa.Text(), nullable=True),
        sa.Column("refunded_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("refund_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("appointment_id"),
        sa.UniqueConstraint("stripe_payment_intent_id"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'COMPLETED', 'FAILED', 'REFUNDED')",
            name="payments_status_check",
        ),
    )

    op.create_table(
        "meetings",
        _id(),
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("external_meeting_id", sa.Text(), nullable=False),
        sa.Column("topic", sa.Text(), nullable=False),
        sa.Column("start_time", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), server_default=sa.text("30"), nullable=False),
        sa.Column("join_url", sa.Text(), nullable=False),
        sa.Column("host_url", sa.Text(), nullable=True),
        sa.Column("password", sa.String(length=20), nullable=True),
        sa.Column("host_email", sa.Text(), nullable=True),
        sa.Column(
            "status", sa.String(length=20), server_default=sa.text("'SCHEDULED'"), nullable=False
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("appointment_id"),
        sa.UniqueConstraint("external_meeting_id"),
    )

    # Back-references from appointments; created after both targets exist
    op.create_foreign_key(
        "appointments_meeting_id_fkey",
        "appointments",
        "meetings",
        ["meeting_id"],
        ["id"],
        ondelete="SET NULL",
    )
    op.create_foreign_key(
        "appointments_payment_id_fkey",
        "appointments",
        "payments",
        ["payment_id"],
        ["id"],
        ondelete="SET NULL",
    )


def downgrade() -> None:
    """Drop the appointment lifecycle tables."""
    op.drop_constraint("appointments_payment_id_fkey", "appointments", type_="foreignkey")
    op.drop_constraint("appointments_meeting_id_fkey", "appointments", type_="foreignkey")
    op.drop_table("meetings")
    op.drop_table("payments")
    op.drop_table("appointments")
