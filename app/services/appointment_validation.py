"""Booking rule validation for new and rescheduled appointments."""

from uuid import UUID

import structlog

from app.config import SchedulingPolicy
from app.core.clock import Clock, as_aware, clinic_zone, hours_between, utc_now
from app.schemas.appointments import AppointmentCreate, ValidationResult
from app.services.ports import DoctorDirectory

logger = structlog.get_logger(__name__)

SATURDAY = 5
SUNDAY = 6


class AppointmentValidator:
    """
    Evaluate every booking rule and collect all violations.

    Rules are not short-circuited so a caller sees every problem with a
    requested slot in one round trip.
    """

    def __init__(
        self,
        doctors: DoctorDirectory,
        policy: SchedulingPolicy,
        clock: Clock = utc_now,
    ):
        """Initialize validator with the doctor directory and booking policy."""
        self.doctors = doctors
        self.policy = policy
        self.clock = clock
        self.zone = clinic_zone(policy.clinic_timezone)

    async def validate(self, patient_id: UUID, data: AppointmentCreate) -> ValidationResult:
        """
        Validate a proposed appointment.

        Args:
            patient_id: Patient the appointment is booked for
            data: Doctor, scheduled instant and consultation type

        Returns:
            Validation result with every violated rule
        """
        errors: list[str] = []

        try:
            errors.extend(await self._check_doctor(data.doctor_id))
        except Exception as e:
            logger.error(
                "doctor_eligibility_check_failed",
                doctor_id=str(data.doctor_id),
                patient_id=str(patient_id),
                error=str(e),
            )
            errors.append("Validation error occurred")

        errors.extend(self._check_timing(data))

        return ValidationResult(is_valid=not errors, errors=errors)

    async def _check_doctor(self, doctor_id: UUID) -> list[str]:
        doctor = await self.doctors.get_doctor(doctor_id)
        if doctor is None:
            return ["Doctor not found"]

        errors = []
        if not doctor.is_accepting_patients:
            errors.append("Doctor is not currently accepting new patients")
        if not doctor.license_verified:
            errors.append("Doctor license is not verified")
        return errors

    def _check_timing(self, data: AppointmentCreate) -> list[str]:
        errors = []
        now = as_aware(self.clock(), self.zone)
        scheduled_at = as_aware(data.scheduled_at, self.zone)
        hours_until = hours_between(now, scheduled_at)

        if hours_until < self.policy.booking_min_hours:
            errors.append(
                f"Appointments must be booked at least {self.policy.booking_min_hours} "
                "hours in advance"
            )
        if hours_until > self.policy.booking_max_hours:
            errors.append(
                f"Appointments cannot be booked more than {self.policy.booking_max_hours} "
                "hours in advance"
            )

        if scheduled_at <= now:
            errors.append("Appointment time cannot be in the past")

        local = scheduled_at.astimezone(self.zone)
        if not self.policy.business_hours_start <= local.hour < self.policy.business_hours_end:
            errors.append(
                "Appointments can only be scheduled between "
                f"{_format_hour(self.policy.business_hours_start)} and "
                f"{_format_hour(self.policy.business_hours_end)}"
            )

        if local.weekday() in (SATURDAY, SUNDAY):
            errors.append("Appointments can only be scheduled on weekdays (Monday-Friday)")

        return errors


def _format_hour(hour: int) -> str:
    """Render 9 as '9 AM' and 18 as '6 PM'."""
    suffix = "AM" if hour < 12 or hour == 24 else "PM"
    display = hour % 12 or 12
    return f"{display} {suffix}"
