"""Appointment schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    AWAITING_ACCEPTANCE = "AWAITING_ACCEPTANCE"
    REJECTED = "REJECTED"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {
        AppointmentStatus.AWAITING_ACCEPTANCE,
        AppointmentStatus.PAYMENT_PENDING,
        AppointmentStatus.CONFIRMED,
    }
)

TERMINAL_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {
        AppointmentStatus.REJECTED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }
)


class AppointmentType(str, Enum):
    """Consultation mode enumeration."""

    ONLINE = "ONLINE"
    PHYSICAL = "PHYSICAL"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class UserRole(str, Enum):
    """Roles that may act on appointments."""

    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


SortField = Literal["scheduled_at", "created_at", "status"]
SortOrder = Literal["asc", "desc"]


# ============================================================================
# Requests
# ============================================================================


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    doctor_id: UUID
    scheduled_at: datetime
    type: AppointmentType
    notes: str | None = Field(None, max_length=1000)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    notes: str | None = Field(None, max_length=1000)


class AppointmentCancellation(BaseModel):
    """Schema for cancelling an appointment."""

    reason: str = Field(..., min_length=1, max_length=500)
    refund_requested: bool = False


class AppointmentReschedule(BaseModel):
    """Schema for moving an appointment to a new time."""

    new_scheduled_at: datetime
    reason: str | None = Field(None, max_length=500)


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering, sorting and pagination."""

    status: AppointmentStatus | None = None
    type: AppointmentType | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    doctor_id: UUID | None = None
    patient_id: UUID | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: SortField = "scheduled_at"
    sort_order: SortOrder = "desc"


# ============================================================================
# Projections
# ============================================================================


class PatientSummary(BaseModel):
    """Patient fields embedded in an appointment."""

    id: UUID
    user_id: UUID | None = Field(default=None, exclude=True)
    email: str | None = Field(default=None, exclude=True)
    name: str
    phone: str | None = None
    age: int | None = None
    gender: str | None = None


class DoctorSummary(BaseModel):
    """Doctor fields embedded in an appointment."""

    id: UUID
    user_id: UUID | None = Field(default=None, exclude=True)
    email: str | None = Field(default=None, exclude=True)
    name: str
    specializations: list[str] = Field(default_factory=list)
    consultation_fee: Decimal | None = None
    clinic_name: str | None = None
    clinic_address: str | None = None

    @field_serializer("consultation_fee", when_used="json")
    def serialize_fee(self, value: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON."""
        return float(value) if value is not None else None


class PaymentSummary(BaseModel):
    """Payment fields embedded in an appointment."""

    id: UUID
    amount: Decimal
    status: PaymentStatus
    processed_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_reason: str | None = None

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class MeetingSummary(BaseModel):
    """Video meeting fields embedded in an online appointment."""

    id: UUID
    external_meeting_id: str
    topic: str
    start_time: datetime
    duration: int
    join_url: str
    host_url: str | None = None
    password: str | None = None
    status: str


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    scheduled_at: datetime
    type: AppointmentType
    status: AppointmentStatus
    payment_status: PaymentStatus
    notes: str | None = None
    meeting_id: UUID | None = None
    payment_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    patient: PatientSummary | None = None
    doctor: DoctorSummary | None = None
    payment: PaymentSummary | None = None
    meeting: MeetingSummary | None = None

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    """Pagination block of a list response."""

    page: int
    limit: int
    total: int
    total_pages: int


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    items: list[AppointmentResponse]
    pagination: Pagination


class AppointmentStats(BaseModel):
    """Dashboard counters for the actor's appointments."""

    total: int
    by_status: dict[AppointmentStatus, int]
    by_type: dict[AppointmentType, int]
    upcoming_count: int
    completed_count: int


# ============================================================================
# Engine results
# ============================================================================


class ValidationResult(BaseModel):
    """Outcome of the booking rule checks."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)


class ConflictingAppointment(BaseModel):
    """An active appointment that overlaps the requested slot."""

    id: UUID
    scheduled_at: datetime
    status: AppointmentStatus


class ConflictCheck(BaseModel):
    """Outcome of the double-booking check."""

    has_conflict: bool
    conflicting: list[ConflictingAppointment] = Field(default_factory=list)
