"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from app.models.metadata import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column(
        "user_id",
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    ),
    Column("name", Text, nullable=False),
    Column("license_number", String(100), unique=True, index=True),
    Column("specializations", JSON),
    # Practice information
    Column("consultation_fee", Numeric(10, 2)),
    Column("clinic_name", Text),
    Column("clinic_address", Text),
    # Booking eligibility
    Column("is_accepting_patients", Boolean, nullable=False, server_default=text("true")),
    Column("license_verified", Boolean, nullable=False, server_default=text("false"), index=True),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
)
