"""Appointment endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.core.exceptions import ForbiddenException
from app.dependencies import AppointmentServiceDep, CurrentActor
from app.schemas.appointments import (
    AppointmentCancellation,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStats,
    AppointmentStatusUpdate,
    UserRole,
)

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Book an appointment for the authenticated patient.

    Args:
        data: Appointment creation data
        actor: Authenticated user
        service: Appointment service

    Returns:
        Created appointment
    """
    if actor.role != UserRole.PATIENT:
        raise ForbiddenException("Only patients can book appointments")
    return await service.create_appointment(actor.id, data)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    actor: CurrentActor,
    service: AppointmentServiceDep,
    filters: Annotated[AppointmentFilters, Query()],
) -> AppointmentListResponse:
    """List the caller's appointments with filtering, sorting and pagination."""
    return await service.list_appointments(actor.id, actor.role, filters)


@router.get(
    "/stats",
    response_model=AppointmentStats,
    status_code=status.HTTP_200_OK,
    summary="Appointment statistics",
)
async def get_appointment_stats(
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentStats:
    """Dashboard counters over the caller's appointments."""
    return await service.get_appointment_stats(actor.id, actor.role)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Get one appointment the caller is a party to."""
    return await service.get_appointment(appointment_id, actor.id, actor.role)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Change appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Move an appointment along its lifecycle.

    Doctors accept, reject and complete; patients may only cancel;
    admins may apply any transition the lifecycle allows.

    Args:
        appointment_id: Appointment ID
        data: Target status and optional notes
        actor: Authenticated user
        service: Appointment service

    Returns:
        Updated appointment
    """
    return await service.update_appointment_status(appointment_id, actor.id, actor.role, data)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    data: AppointmentCancellation,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Cancel an appointment, refunding a completed payment when requested."""
    return await service.cancel_appointment(appointment_id, actor.id, actor.role, data)


@router.post(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Move an appointment to a new time, keeping its status."""
    return await service.reschedule_appointment(appointment_id, actor.id, actor.role, data)
