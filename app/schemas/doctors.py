"""Doctor and profile schemas used by the scheduling engine."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer


class DoctorView(BaseModel):
    """Read-only doctor projection used for booking eligibility."""

    id: UUID
    user_id: UUID
    name: str
    is_accepting_patients: bool
    license_verified: bool
    consultation_fee: Decimal | None = Field(None, ge=0, decimal_places=2)
    specializations: list[str] = Field(default_factory=list)
    clinic_name: str | None = None
    clinic_address: str | None = None

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON."""
        return float(value) if value is not None else None


class ProfileRef(BaseModel):
    """Patient or doctor profile resolved from an authenticated user."""

    id: UUID
    user_id: UUID
    name: str
    email: str | None = None
