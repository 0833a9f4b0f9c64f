"""Appointment lifecycle service: booking, status changes, cancellation and rescheduling."""

import math
from typing import Any
from uuid import UUID

import structlog

from app.config import SchedulingPolicy
from app.core.clock import Clock, as_aware, clinic_zone, hours_between, utc_now
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    RefundException,
    TerminalStateException,
    TimingPolicyException,
    ValidationException,
)
from app.schemas.appointments import (
    ACTIVE_STATUSES,
    AppointmentCancellation,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStats,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentType,
    Pagination,
    PaymentStatus,
    UserRole,
)
from app.schemas.meetings import MeetingRequest
from app.schemas.notifications import NotificationChannel, NotificationType
from app.services.appointment_conflicts import ConflictDetector
from app.services.appointment_state_machine import ensure_transition, is_terminal
from app.services.appointment_validation import AppointmentValidator
from app.services.ports import (
    AppointmentQuery,
    AppointmentStore,
    DoctorDirectory,
    MeetingProvider,
    Notifier,
    PaymentGateway,
    ProfileLookup,
    ReminderScheduler,
)
from app.services.side_effects import SideEffect, SideEffectCoordinator

logger = structlog.get_logger(__name__)

ALL_CHANNELS = [NotificationChannel.EMAIL, NotificationChannel.IN_APP, NotificationChannel.PUSH]
MAIL_AND_APP = [NotificationChannel.EMAIL, NotificationChannel.IN_APP]


class AppointmentService:
    """Service for managing the appointment lifecycle."""

    def __init__(
        self,
        store: AppointmentStore,
        doctors: DoctorDirectory,
        profiles: ProfileLookup,
        payments: PaymentGateway,
        meetings: MeetingProvider,
        notifier: Notifier,
        reminders: ReminderScheduler,
        coordinator: SideEffectCoordinator,
        policy: SchedulingPolicy,
        clock: Clock = utc_now,
    ):
        """Initialize service with its collaborators."""
        self.store = store
        self.profiles = profiles
        self.payments = payments
        self.meetings = meetings
        self.notifier = notifier
        self.reminders = reminders
        self.coordinator = coordinator
        self.policy = policy
        self.clock = clock
        self.zone = clinic_zone(policy.clinic_timezone)
        self.validator = AppointmentValidator(doctors, policy, clock)
        self.conflicts = ConflictDetector(store, policy)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_appointment(
        self,
        patient_user_id: UUID,
        data: AppointmentCreate,
    ) -> AppointmentResponse:
        """
        Book a new appointment for the authenticated patient.

        Args:
            patient_user_id: User ID of the booking patient
            data: Appointment creation data

        Returns:
            Created appointment in AWAITING_ACCEPTANCE with payment PENDING

        Raises:
            NotFoundException: If the user has no patient profile
            ValidationException: If any booking rule is violated
            ConflictException: If the doctor is already booked near the requested time
        """
        patient = await self.profiles.get_patient_profile(patient_user_id)
        if patient is None:
            raise NotFoundException("Patient profile not found")

        validation = await self.validator.validate(patient.id, data)
        if not validation.is_valid:
            raise ValidationException(validation.errors)

        scheduled_at = as_aware(data.scheduled_at, self.zone)
        conflict_check = await self.conflicts.detect_conflicts(data.doctor_id, scheduled_at)
        if conflict_check.has_conflict:
            raise ConflictException("Doctor is not available at the requested time")

        appointment = await self.store.create(
            {
                "patient_id": patient.id,
                "doctor_id": data.doctor_id,
                "scheduled_at": scheduled_at,
                "type": data.type.value,
                "notes": data.notes,
                "status": AppointmentStatus.AWAITING_ACCEPTANCE.value,
                "payment_status": PaymentStatus.PENDING.value,
            }
        )

        logger.info(
            "appointment_created",
            appointment_id=str(appointment.id),
            patient_id=str(patient.id),
            doctor_id=str(data.doctor_id),
        )

        await self.coordinator.run(
            self._booking_notifications(appointment),
            appointment_id=str(appointment.id),
        )

        return appointment

    async def update_appointment_status(
        self,
        appointment_id: UUID,
        user_id: UUID,
        role: UserRole,
        data: AppointmentStatusUpdate,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new status.

        Args:
            appointment_id: Appointment ID
            user_id: Acting user
            role: Acting user's role
            data: Target status and optional notes

        Returns:
            Updated appointment

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the actor does not own the appointment
            StateTransitionException: If the transition is not allowed for the role
            TimingPolicyException: If a patient cancels inside the notice period
        """
        existing = await self._load(appointment_id)
        self._authorize(existing, user_id, role, "manage")
        ensure_transition(existing.status, data.status, role)
        if data.status == AppointmentStatus.CANCELLED:
            self._ensure_cancellation_notice(existing, role)

        values: dict[str, Any] = {
            "status": data.status.value,
            "notes": data.notes or existing.notes,
        }

        if (
            data.status == AppointmentStatus.CONFIRMED
            and existing.type == AppointmentType.ONLINE
            and existing.meeting_id is None
        ):
            meeting = await self.coordinator.attempt(
                "meeting.create",
                lambda: self.meetings.create_meeting(self._meeting_request(existing)),
                appointment_id=str(appointment_id),
            )
            if meeting is not None:
                values["meeting_id"] = meeting.id

        updated = await self.store.update(appointment_id, values)

        logger.info(
            "appointment_status_updated",
            appointment_id=str(appointment_id),
            old_status=existing.status.value,
            new_status=data.status.value,
            role=role.value,
        )

        effects = self._status_notifications(updated, data.status)
        if data.status == AppointmentStatus.CONFIRMED:
            effects.append(
                SideEffect(
                    "reminders.schedule",
                    lambda: self.reminders.schedule_reminders(appointment_id),
                )
            )
        elif data.status == AppointmentStatus.CANCELLED:
            effects.append(
                SideEffect(
                    "reminders.cancel",
                    lambda: self.reminders.cancel_reminders(appointment_id),
                )
            )
        await self.coordinator.run(effects, appointment_id=str(appointment_id))

        return updated

    async def cancel_appointment(
        self,
        appointment_id: UUID,
        user_id: UUID,
        role: UserRole,
        data: AppointmentCancellation,
    ) -> AppointmentResponse:
        """
        Cancel an appointment and refund it when requested.

        The cancellation is committed before the refund is attempted. A
        failed refund is raised to the caller even though the appointment
        stays cancelled.

        Args:
            appointment_id: Appointment ID
            user_id: Acting user
            role: Acting user's role
            data: Reason and refund flag

        Returns:
            Cancelled appointment

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the actor does not own the appointment
            TerminalStateException: If already completed or cancelled
            StateTransitionException: If the current status cannot be cancelled
            TimingPolicyException: If a patient cancels inside the notice period
            RefundException: If the refund failed after the cancellation committed
        """
        existing = await self._load(appointment_id)
        self._authorize(existing, user_id, role, "cancel")

        if existing.status == AppointmentStatus.COMPLETED:
            raise TerminalStateException("Cannot cancel a completed appointment")
        if existing.status == AppointmentStatus.CANCELLED:
            raise TerminalStateException("Appointment is already cancelled")
        ensure_transition(existing.status, AppointmentStatus.CANCELLED, role)

        self._ensure_cancellation_notice(existing, role)

        cancelled = await self.store.update(
            appointment_id,
            {
                "status": AppointmentStatus.CANCELLED.value,
                "notes": f"Cancelled: {data.reason}",
            },
        )

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            role=role.value,
            refund_requested=data.refund_requested,
        )

        effects = self._status_notifications(cancelled, AppointmentStatus.CANCELLED)
        effects.append(
            SideEffect("reminders.cancel", lambda: self.reminders.cancel_reminders(appointment_id))
        )
        await self.coordinator.run(effects, appointment_id=str(appointment_id))

        payment = existing.payment
        if payment and payment.status == PaymentStatus.COMPLETED and data.refund_requested:
            cancelled = await self._process_refund(appointment_id, payment.id, data.reason)

        return cancelled

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        user_id: UUID,
        role: UserRole,
        data: AppointmentReschedule,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new time without changing its status.

        Args:
            appointment_id: Appointment ID
            user_id: Acting user
            role: Acting user's role
            data: New instant and optional reason

        Returns:
            Rescheduled appointment

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the actor does not own the appointment
            TerminalStateException: If the appointment is in a terminal status
            ValidationException: If the new time breaks a booking rule
            ConflictException: If the doctor is already booked near the new time
        """
        existing = await self._load(appointment_id)
        self._authorize(existing, user_id, role, "reschedule")

        if existing.status == AppointmentStatus.COMPLETED:
            raise TerminalStateException("Cannot reschedule a completed appointment")
        if existing.status == AppointmentStatus.CANCELLED:
            raise TerminalStateException("Cannot reschedule a cancelled appointment")
        if is_terminal(existing.status):
            raise TerminalStateException(
                f"Cannot reschedule a {existing.status.value.lower()} appointment"
            )

        new_scheduled_at = as_aware(data.new_scheduled_at, self.zone)
        validation = await self.validator.validate(
            existing.patient_id,
            AppointmentCreate(
                doctor_id=existing.doctor_id,
                scheduled_at=new_scheduled_at,
                type=existing.type,
            ),
        )
        if not validation.is_valid:
            raise ValidationException(validation.errors, prefix="Rescheduling validation failed")

        conflict_check = await self.conflicts.detect_conflicts(
            existing.doctor_id,
            new_scheduled_at,
            exclude_appointment_id=appointment_id,
        )
        if conflict_check.has_conflict:
            raise ConflictException("Doctor is not available at the requested new time")

        values: dict[str, Any] = {"scheduled_at": new_scheduled_at}
        if data.reason:
            values["notes"] = f"Rescheduled: {data.reason}"

        rescheduled = await self.store.update(appointment_id, values)

        logger.info(
            "appointment_rescheduled",
            appointment_id=str(appointment_id),
            old_scheduled_at=existing.scheduled_at.isoformat(),
            new_scheduled_at=new_scheduled_at.isoformat(),
            role=role.value,
        )

        effects = self._reschedule_notifications(rescheduled, role)
        if rescheduled.status == AppointmentStatus.CONFIRMED:
            effects.append(
                SideEffect("reminders.refresh", lambda: self._refresh_reminders(appointment_id))
            )
        await self.coordinator.run(effects, appointment_id=str(appointment_id))

        return rescheduled

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_appointment(
        self,
        appointment_id: UUID,
        user_id: UUID,
        role: UserRole,
    ) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If user doesn't have access
        """
        appointment = await self._load(appointment_id)
        self._authorize(appointment, user_id, role, "view")
        return appointment

    async def list_appointments(
        self,
        user_id: UUID,
        role: UserRole,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List the actor's appointments with filtering, sorting and pagination.

        Patients and doctors only ever see their own appointments; an ID
        filter that points elsewhere yields an empty page.
        """
        query = await self._scoped_query(user_id, role)
        matchable = self._apply_filters(query, filters)

        total = await self.store.count(query) if matchable else 0
        items = []
        if total:
            items = await self.store.find_many(
                query,
                sort_by=filters.sort_by,
                sort_order=filters.sort_order,
                offset=(filters.page - 1) * filters.limit,
                limit=filters.limit,
            )

        return AppointmentListResponse(
            items=items,
            pagination=Pagination(
                page=filters.page,
                limit=filters.limit,
                total=total,
                total_pages=math.ceil(total / filters.limit),
            ),
        )

    async def get_appointment_stats(self, user_id: UUID, role: UserRole) -> AppointmentStats:
        """Dashboard counters scoped to the actor's appointments."""
        query = await self._scoped_query(user_id, role)

        total = await self.store.count(query)
        by_status = await self.store.group_by("status", query)
        by_type = await self.store.group_by("type", query)
        upcoming_count = await self.store.count(
            AppointmentQuery(
                patient_id=query.patient_id,
                doctor_id=query.doctor_id,
                statuses=ACTIVE_STATUSES,
                scheduled_from=self._now(),
            )
        )
        completed_count = await self.store.count(
            AppointmentQuery(
                patient_id=query.patient_id,
                doctor_id=query.doctor_id,
                statuses=frozenset({AppointmentStatus.COMPLETED}),
            )
        )

        return AppointmentStats(
            total=total,
            by_status={AppointmentStatus(k): v for k, v in by_status.items()},
            by_type={AppointmentType(k): v for k, v in by_type.items()},
            upcoming_count=upcoming_count,
            completed_count=completed_count,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now(self):
        return as_aware(self.clock(), self.zone)

    def _ensure_cancellation_notice(self, appointment: AppointmentResponse, role: UserRole) -> None:
        notice_hours = self.policy.patient_cancellation_notice_hours
        hours_until = hours_between(self._now(), appointment.scheduled_at)
        if role == UserRole.PATIENT and hours_until < notice_hours:
            raise TimingPolicyException(
                f"Appointments can only be cancelled at least {notice_hours} hours in advance"
            )

    async def _load(self, appointment_id: UUID) -> AppointmentResponse:
        appointment = await self.store.find_by_id(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        return appointment

    @staticmethod
    def _authorize(
        appointment: AppointmentResponse,
        user_id: UUID,
        role: UserRole,
        action: str,
    ) -> None:
        if role == UserRole.DOCTOR:
            owner = appointment.doctor.user_id if appointment.doctor else None
        elif role == UserRole.PATIENT:
            owner = appointment.patient.user_id if appointment.patient else None
        else:
            return

        if owner != user_id:
            logger.warning(
                "appointment_access_denied",
                appointment_id=str(appointment.id),
                user_id=str(user_id),
                role=role.value,
                action=action,
            )
            raise ForbiddenException(f"Unauthorized: You can only {action} your own appointments")

    async def _scoped_query(self, user_id: UUID, role: UserRole) -> AppointmentQuery:
        if role == UserRole.PATIENT:
            patient = await self.profiles.get_patient_profile(user_id)
            if patient is None:
                raise NotFoundException("Patient profile not found")
            return AppointmentQuery(patient_id=patient.id)

        if role == UserRole.DOCTOR:
            doctor = await self.profiles.get_doctor_profile(user_id)
            if doctor is None:
                raise NotFoundException("Doctor profile not found")
            return AppointmentQuery(doctor_id=doctor.id)

        return AppointmentQuery()

    def _apply_filters(self, query: AppointmentQuery, filters: AppointmentFilters) -> bool:
        """Narrow ``query`` in place; False when the filters can never match the scope."""
        if filters.status:
            query.statuses = frozenset({filters.status})
        if filters.type:
            query.type = filters.type
        if filters.date_from:
            query.scheduled_from = as_aware(filters.date_from, self.zone)
        if filters.date_to:
            query.scheduled_to = as_aware(filters.date_to, self.zone)

        if filters.doctor_id:
            if query.doctor_id and query.doctor_id != filters.doctor_id:
                return False
            query.doctor_id = filters.doctor_id
        if filters.patient_id:
            if query.patient_id and query.patient_id != filters.patient_id:
                return False
            query.patient_id = filters.patient_id
        return True

    async def _process_refund(
        self,
        appointment_id: UUID,
        payment_id: UUID,
        reason: str,
    ) -> AppointmentResponse:
        try:
            await self.coordinator.bounded(lambda: self.payments.refund(payment_id, reason))
        except Exception as e:
            logger.error(
                "refund_failed",
                appointment_id=str(appointment_id),
                payment_id=str(payment_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RefundException(
                f"Appointment was cancelled but the refund failed: {e or type(e).__name__}"
            ) from e

        logger.info(
            "refund_processed",
            appointment_id=str(appointment_id),
            payment_id=str(payment_id),
        )
        return await self.store.update(
            appointment_id, {"payment_status": PaymentStatus.REFUNDED.value}
        )

    async def _refresh_reminders(self, appointment_id: UUID) -> None:
        await self.reminders.cancel_reminders(appointment_id)
        await self.reminders.schedule_reminders(appointment_id)

    def _meeting_request(self, appointment: AppointmentResponse) -> MeetingRequest:
        doctor_name = appointment.doctor.name if appointment.doctor else "Doctor"
        patient = appointment.patient
        patient_name = patient.name if patient else "Patient"
        return MeetingRequest(
            appointment_id=appointment.id,
            topic=f"Medical Consultation - Dr. {doctor_name} & {patient_name}",
            start_time=appointment.scheduled_at,
            duration=self.policy.meeting_duration_minutes,
            host_email=appointment.doctor.email if appointment.doctor else None,
            participant_email=patient.email if patient else None,
            participant_name=patient_name,
        )

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    @staticmethod
    def _notification_data(appointment: AppointmentResponse) -> dict[str, Any]:
        return {
            "appointment_id": str(appointment.id),
            "patient_name": appointment.patient.name if appointment.patient else None,
            "doctor_name": appointment.doctor.name if appointment.doctor else None,
            "appointment_date_time": appointment.scheduled_at.isoformat(),
            "appointment_type": appointment.type.value,
            "clinic_name": appointment.doctor.clinic_name if appointment.doctor else None,
            "clinic_address": appointment.doctor.clinic_address if appointment.doctor else None,
        }

    def _notify(
        self,
        recipient: str,
        user_id: UUID | None,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any],
        channels: list[NotificationChannel],
    ) -> list[SideEffect]:
        if user_id is None:
            logger.warning(
                "notification_recipient_missing",
                recipient=recipient,
                notification_type=notification_type.value,
                appointment_id=data.get("appointment_id"),
            )
            return []

        return [
            SideEffect(
                f"notify.{recipient}.{notification_type.value.lower()}",
                lambda: self.notifier.send(
                    user_id, notification_type, title, message, data, channels
                ),
            )
        ]

    def _parties(
        self, appointment: AppointmentResponse
    ) -> tuple[UUID | None, UUID | None, str, str]:
        patient_user_id = appointment.patient.user_id if appointment.patient else None
        doctor_user_id = appointment.doctor.user_id if appointment.doctor else None
        patient_name = appointment.patient.name if appointment.patient else "the patient"
        doctor_name = appointment.doctor.name if appointment.doctor else "your doctor"
        return patient_user_id, doctor_user_id, patient_name, doctor_name

    def _booking_notifications(self, appointment: AppointmentResponse) -> list[SideEffect]:
        patient_user_id, doctor_user_id, patient_name, doctor_name = self._parties(appointment)
        data = self._notification_data(appointment)
        return [
            *self._notify(
                "patient",
                patient_user_id,
                NotificationType.APPOINTMENT_BOOKED,
                "Appointment Request Submitted",
                f"Your appointment request with Dr. {doctor_name} has been submitted "
                "and is awaiting acceptance.",
                data,
                MAIL_AND_APP,
            ),
            *self._notify(
                "doctor",
                doctor_user_id,
                NotificationType.APPOINTMENT_BOOKED,
                "New Appointment Request",
                f"{patient_name} has requested an appointment with you.",
                data,
                ALL_CHANNELS,
            ),
        ]

    def _status_notifications(
        self,
        appointment: AppointmentResponse,
        new_status: AppointmentStatus,
    ) -> list[SideEffect]:
        patient_user_id, doctor_user_id, patient_name, doctor_name = self._parties(appointment)
        data = self._notification_data(appointment)

        if new_status == AppointmentStatus.REJECTED:
            return self._notify(
                "patient",
                patient_user_id,
                NotificationType.APPOINTMENT_REJECTED,
                "Appointment Request Declined",
                f"Dr. {doctor_name} has declined your appointment request.",
                data,
                ALL_CHANNELS,
            )

        if new_status == AppointmentStatus.PAYMENT_PENDING:
            return self._notify(
                "patient",
                patient_user_id,
                NotificationType.APPOINTMENT_ACCEPTED,
                "Appointment Accepted - Payment Required",
                f"Dr. {doctor_name} has accepted your appointment. "
                "Please complete payment to confirm.",
                data,
                ALL_CHANNELS,
            )

        if new_status == AppointmentStatus.CONFIRMED:
            return [
                *self._notify(
                    "patient",
                    patient_user_id,
                    NotificationType.PAYMENT_CONFIRMED,
                    "Appointment Confirmed",
                    f"Your appointment with Dr. {doctor_name} is confirmed.",
                    data,
                    MAIL_AND_APP,
                ),
                *self._notify(
                    "doctor",
                    doctor_user_id,
                    NotificationType.PAYMENT_CONFIRMED,
                    "Appointment Payment Confirmed",
                    f"Payment confirmed for appointment with {patient_name}.",
                    data,
                    MAIL_AND_APP,
                ),
            ]

        if new_status == AppointmentStatus.CANCELLED:
            return [
                *self._notify(
                    "patient",
                    patient_user_id,
                    NotificationType.APPOINTMENT_CANCELLED,
                    "Appointment Cancelled",
                    f"Your appointment with Dr. {doctor_name} has been cancelled.",
                    data,
                    MAIL_AND_APP,
                ),
                *self._notify(
                    "doctor",
                    doctor_user_id,
                    NotificationType.APPOINTMENT_CANCELLED,
                    "Appointment Cancelled",
                    f"Appointment with {patient_name} has been cancelled.",
                    data,
                    MAIL_AND_APP,
                ),
            ]

        return []

    def _reschedule_notifications(
        self,
        appointment: AppointmentResponse,
        role: UserRole,
    ) -> list[SideEffect]:
        patient_user_id, doctor_user_id, patient_name, doctor_name = self._parties(appointment)
        data = self._notification_data(appointment)
        when = appointment.scheduled_at.astimezone(self.zone).strftime("%b %d at %I:%M %p")

        effects = []
        if role != UserRole.PATIENT:
            effects += self._notify(
                "patient",
                patient_user_id,
                NotificationType.APPOINTMENT_RESCHEDULED,
                "Appointment Rescheduled",
                f"Your appointment with Dr. {doctor_name} has been moved to {when}.",
                data,
                ALL_CHANNELS,
            )
        if role != UserRole.DOCTOR:
            effects += self._notify(
                "doctor",
                doctor_user_id,
                NotificationType.APPOINTMENT_RESCHEDULED,
                "Appointment Rescheduled",
                f"Appointment with {patient_name} has been moved to {when}.",
                data,
                ALL_CHANNELS,
            )
        return effects
