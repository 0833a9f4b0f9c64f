"""Tests for booking rule validation."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from app.config import SchedulingPolicy
from app.schemas.appointments import AppointmentCreate, AppointmentType
from app.services.appointment_validation import AppointmentValidator
from tests.conftest import DOCTOR_ID, NOW, PATIENT_ID, fixed_clock


def booking(hours_ahead: float, doctor_id=DOCTOR_ID) -> AppointmentCreate:
    return AppointmentCreate(
        doctor_id=doctor_id,
        scheduled_at=NOW + timedelta(hours=hours_ahead),
        type=AppointmentType.PHYSICAL,
    )


@pytest.fixture
def validator(doctor_directory, policy) -> AppointmentValidator:
    return AppointmentValidator(doctor_directory, policy, fixed_clock)


@pytest.mark.asyncio
async def test_valid_booking_on_tuesday_morning(validator):
    """25 hours ahead of Monday 09:00 is Tuesday 10:00."""
    result = await validator.validate(PATIENT_ID, booking(25))
    assert result.is_valid is True
    assert result.errors == []


@pytest.mark.asyncio
@pytest.mark.parametrize("hours_ahead", [24, 24.5, 33 - 1 / 60, 48])
async def test_window_and_business_hour_boundaries_are_accepted(validator, hours_ahead):
    result = await validator.validate(PATIENT_ID, booking(hours_ahead))
    assert result.is_valid is True


@pytest.mark.asyncio
async def test_booking_too_soon(validator):
    result = await validator.validate(PATIENT_ID, booking(20))
    assert result.is_valid is False
    assert "Appointments must be booked at least 24 hours in advance" in result.errors


@pytest.mark.asyncio
async def test_booking_too_far_ahead(validator):
    """72 hours ahead is Thursday 09:00: only the upper bound fails."""
    result = await validator.validate(PATIENT_ID, booking(72))
    assert result.errors == ["Appointments cannot be booked more than 48 hours in advance"]


@pytest.mark.asyncio
async def test_past_instant_reports_window_and_past_together(validator):
    result = await validator.validate(PATIENT_ID, booking(-1))
    assert "Appointments must be booked at least 24 hours in advance" in result.errors
    assert "Appointment time cannot be in the past" in result.errors


@pytest.mark.asyncio
@pytest.mark.parametrize("hours_ahead", [33, 35, 47])
async def test_outside_business_hours(validator, hours_ahead):
    """Tuesday 18:00, 20:00 and Wednesday 08:00 are inside the window but closed."""
    result = await validator.validate(PATIENT_ID, booking(hours_ahead))
    assert result.errors == ["Appointments can only be scheduled between 9 AM and 6 PM"]


@pytest.mark.asyncio
async def test_weekend_rejected_even_inside_window(doctor_directory, policy):
    friday_noon = datetime(2025, 1, 10, 12, 0, tzinfo=UTC)
    validator = AppointmentValidator(doctor_directory, policy, lambda: friday_noon)

    result = await validator.validate(
        PATIENT_ID,
        AppointmentCreate(
            doctor_id=DOCTOR_ID,
            scheduled_at=friday_noon + timedelta(hours=26),
            type=AppointmentType.ONLINE,
        ),
    )

    assert result.errors == ["Appointments can only be scheduled on weekdays (Monday-Friday)"]


@pytest.mark.asyncio
async def test_unknown_doctor_skips_eligibility_rules(validator):
    result = await validator.validate(PATIENT_ID, booking(25, doctor_id=uuid4()))
    assert result.errors == ["Doctor not found"]


@pytest.mark.asyncio
async def test_ineligible_doctor_reports_every_problem(validator, doctor_directory):
    doctor_directory.doctors[DOCTOR_ID] = doctor_directory.doctors[DOCTOR_ID].model_copy(
        update={"is_accepting_patients": False, "license_verified": False}
    )

    # Monday 10:00: open hours, but too soon
    result = await validator.validate(PATIENT_ID, booking(1))

    assert result.errors == [
        "Doctor is not currently accepting new patients",
        "Doctor license is not verified",
        "Appointments must be booked at least 24 hours in advance",
    ]


@pytest.mark.asyncio
async def test_directory_failure_is_reported_not_raised(validator, doctor_directory):
    doctor_directory.error = RuntimeError("connection reset")

    result = await validator.validate(PATIENT_ID, booking(25))

    assert result.is_valid is False
    assert result.errors == ["Validation error occurred"]


@pytest.mark.asyncio
async def test_local_clock_uses_clinic_timezone(doctor_directory):
    """10:00 UTC on Tuesday is 05:00 in New York, before opening."""
    policy = SchedulingPolicy(clinic_timezone="America/New_York")
    validator = AppointmentValidator(doctor_directory, policy, fixed_clock)

    result = await validator.validate(PATIENT_ID, booking(25))

    assert result.errors == ["Appointments can only be scheduled between 9 AM and 6 PM"]


@pytest.mark.asyncio
async def test_naive_instant_is_read_in_clinic_timezone(validator):
    naive = (NOW + timedelta(hours=25)).replace(tzinfo=None)
    data = AppointmentCreate(doctor_id=DOCTOR_ID, scheduled_at=naive, type=AppointmentType.ONLINE)

    result = await validator.validate(PATIENT_ID, data)

    assert result.is_valid is True
