"""Scheduled jobs table for deferred work such as appointment reminders."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Index,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

from app.models.metadata import metadata

scheduled_jobs = Table(
    "scheduled_jobs",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("job_type", String(50), nullable=False),
    Column("entity_id", UUID(as_uuid=True), nullable=False),
    Column("scheduled_at", TIMESTAMP(timezone=True), nullable=False),
    Column("data", JSONB, nullable=True),
    Column("status", String(20), nullable=False, server_default=text("'pending'")),
    Column("attempts", Integer, nullable=False, server_default=text("0")),
    Column("last_error", Text, nullable=True),
    Column("processed_at", TIMESTAMP(timezone=True), nullable=True),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "status IN ('pending', 'completed', 'failed', 'cancelled')",
        name="scheduled_jobs_status_check",
    ),
    Index("idx_scheduled_jobs_entity", "job_type", "entity_id"),
    Index(
        "idx_scheduled_jobs_due",
        "scheduled_at",
        postgresql_where=text("status = 'pending'"),
    ),
)
