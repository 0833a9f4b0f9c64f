"""Doctor double-booking detection."""

from datetime import datetime, timedelta
from uuid import UUID

import structlog

from app.config import SchedulingPolicy
from app.core.clock import as_aware, clinic_zone
from app.schemas.appointments import ACTIVE_STATUSES, ConflictCheck, ConflictingAppointment
from app.services.ports import AppointmentQuery, AppointmentStore

logger = structlog.get_logger(__name__)


class ConflictDetector:
    """Find active appointments of a doctor inside the conflict window."""

    def __init__(self, store: AppointmentStore, policy: SchedulingPolicy):
        """Initialize detector with the appointment store and booking policy."""
        self.store = store
        self.window = timedelta(minutes=policy.conflict_window_minutes)
        self.zone = clinic_zone(policy.clinic_timezone)

    async def detect_conflicts(
        self,
        doctor_id: UUID,
        scheduled_at: datetime,
        exclude_appointment_id: UUID | None = None,
    ) -> ConflictCheck:
        """
        Check whether the doctor already has an active appointment near ``scheduled_at``.

        The window is inclusive on both ends.

        Args:
            doctor_id: Doctor to check
            scheduled_at: Requested instant
            exclude_appointment_id: Appointment to ignore (used when rescheduling)

        Returns:
            Conflict check with every overlapping active appointment
        """
        scheduled_at = as_aware(scheduled_at, self.zone)
        query = AppointmentQuery(
            doctor_id=doctor_id,
            statuses=ACTIVE_STATUSES,
            scheduled_from=scheduled_at - self.window,
            scheduled_to=scheduled_at + self.window,
            exclude_ids=(
                frozenset({exclude_appointment_id}) if exclude_appointment_id else frozenset()
            ),
        )

        matches = await self.store.find_many(query, sort_by="scheduled_at", sort_order="asc")
        conflicting = [
            ConflictingAppointment(id=m.id, scheduled_at=m.scheduled_at, status=m.status)
            for m in matches
        ]

        if conflicting:
            logger.info(
                "appointment_conflict_detected",
                doctor_id=str(doctor_id),
                scheduled_at=scheduled_at.isoformat(),
                conflicting_ids=[str(c.id) for c in conflicting],
            )

        return ConflictCheck(has_conflict=bool(conflicting), conflicting=conflicting)
