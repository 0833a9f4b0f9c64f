"""Video meetings table model using SQLAlchemy Core."""

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from app.models.metadata import metadata

meetings = Table(
    "meetings",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column(
        "appointment_id",
        UUID(as_uuid=True),
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("external_meeting_id", Text, nullable=False, unique=True),
    Column("topic", Text, nullable=False),
    Column("start_time", TIMESTAMP(timezone=True), nullable=False),
    Column("duration", Integer, nullable=False, server_default=text("30")),
    Column("join_url", Text, nullable=False),
    Column("host_url", Text, nullable=True),
    Column("password", String(20), nullable=True),
    Column("host_email", Text, nullable=True),
    Column("status", String(20), nullable=False, server_default=text("'SCHEDULED'")),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
)
