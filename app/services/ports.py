"""Collaborator interfaces consumed by the appointment lifecycle engine.

Each port is a narrow ``Protocol`` so the engine can be wired with the SQL
and HTTP adapters at the composition root, or with in-memory fakes in tests.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Protocol, runtime_checkable
from uuid import UUID

from app.schemas.appointments import (
    AppointmentResponse,
    AppointmentStatus,
    AppointmentType,
    SortField,
    SortOrder,
)
from app.schemas.doctors import DoctorView, ProfileRef
from app.schemas.meetings import MeetingInfo, MeetingRequest
from app.schemas.notifications import NotificationChannel, NotificationType
from app.schemas.payments import RefundResult

GroupField = Literal["status", "type"]


@dataclass
class AppointmentQuery:
    """Store-level filter. Unset fields do not restrict the result."""

    patient_id: UUID | None = None
    doctor_id: UUID | None = None
    statuses: frozenset[AppointmentStatus] | None = None
    type: AppointmentType | None = None
    scheduled_from: datetime | None = None
    scheduled_to: datetime | None = None
    exclude_ids: frozenset[UUID] = field(default_factory=frozenset)


@runtime_checkable
class AppointmentStore(Protocol):
    """Persistence of appointments and their read projections."""

    async def create(self, values: dict[str, Any]) -> AppointmentResponse: ...

    async def update(self, appointment_id: UUID, values: dict[str, Any]) -> AppointmentResponse: ...

    async def find_by_id(self, appointment_id: UUID) -> AppointmentResponse | None: ...

    async def find_many(
        self,
        query: AppointmentQuery,
        sort_by: SortField = "scheduled_at",
        sort_order: SortOrder = "desc",
        offset: int = 0,
        limit: int | None = None,
    ) -> list[AppointmentResponse]: ...

    async def count(self, query: AppointmentQuery) -> int: ...

    async def group_by(self, field_name: GroupField, query: AppointmentQuery) -> dict[str, int]: ...


@runtime_checkable
class DoctorDirectory(Protocol):
    """Read-only doctor eligibility lookup."""

    async def get_doctor(self, doctor_id: UUID) -> DoctorView | None: ...


@runtime_checkable
class ProfileLookup(Protocol):
    """Resolve patient/doctor profiles from an authenticated user id."""

    async def get_patient_profile(self, user_id: UUID) -> ProfileRef | None: ...

    async def get_doctor_profile(self, user_id: UUID) -> ProfileRef | None: ...


@runtime_checkable
class PaymentGateway(Protocol):
    """Refunds against a captured payment."""

    async def refund(self, payment_id: UUID, reason: str) -> RefundResult: ...


@runtime_checkable
class MeetingProvider(Protocol):
    """Video meeting provisioning for online consultations."""

    async def create_meeting(self, request: MeetingRequest) -> MeetingInfo: ...


@runtime_checkable
class Notifier(Protocol):
    """User-facing notifications."""

    async def send(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        channels: list[NotificationChannel] | None = None,
    ) -> None: ...


@runtime_checkable
class ReminderScheduler(Protocol):
    """Deferred appointment reminders."""

    async def schedule_reminders(self, appointment_id: UUID) -> None: ...

    async def cancel_reminders(self, appointment_id: UUID) -> None: ...
