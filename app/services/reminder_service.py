"""Appointment reminders stored as scheduled jobs."""

from datetime import timedelta
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock, utc_now
from app.models.scheduled_jobs import scheduled_jobs
from app.schemas.appointments import AppointmentStatus, AppointmentType
from app.schemas.notifications import NotificationChannel, NotificationType
from app.services.appointment_store import SqlAppointmentStore
from app.services.ports import Notifier

logger = structlog.get_logger(__name__)

JOB_TYPE = "appointment_reminder"

REMINDER_OFFSETS = {
    "one_hour": timedelta(hours=1),
    "ten_minutes": timedelta(minutes=10),
}

REMINDER_LEAD_TEXT = {
    "one_hour": "in 1 hour",
    "ten_minutes": "in 10 minutes",
}


class ReminderService:
    """Schedules, cancels and delivers appointment reminders."""

    BATCH_SIZE = 100

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier,
        clock: Clock = utc_now,
    ):
        """Initialize service with its own session factory and a notifier."""
        self.session_factory = session_factory
        self.notifier = notifier
        self.clock = clock

    async def schedule_reminders(self, appointment_id: UUID) -> None:
        """
        Create reminder jobs one hour and ten minutes before the appointment.

        Reminder instants already in the past are skipped.

        Args:
            appointment_id: Appointment ID
        """
        async with self.session_factory() as db:
            appointment = await SqlAppointmentStore(db).find_by_id(appointment_id)
            if appointment is None:
                logger.warning("reminder_appointment_missing", appointment_id=str(appointment_id))
                return

            if appointment.patient is None or appointment.patient.user_id is None:
                logger.warning("reminder_recipient_missing", appointment_id=str(appointment_id))
                return

            now = self.clock()
            notification_data = {
                "appointment_id": str(appointment.id),
                "patient_name": appointment.patient.name,
                "doctor_name": appointment.doctor.name if appointment.doctor else None,
                "appointment_date_time": appointment.scheduled_at.isoformat(),
                "appointment_type": appointment.type.value,
                "clinic_name": appointment.doctor.clinic_name if appointment.doctor else None,
                "clinic_address": appointment.doctor.clinic_address if appointment.doctor else None,
                "meeting_link": appointment.meeting.join_url if appointment.meeting else None,
            }

            jobs = [
                {
                    "job_type": JOB_TYPE,
                    "entity_id": appointment.id,
                    "scheduled_at": appointment.scheduled_at - offset,
                    "data": {
                        "appointment_id": str(appointment.id),
                        "user_id": str(appointment.patient.user_id),
                        "reminder_type": reminder_type,
                        "notification_data": notification_data,
                    },
                }
                for reminder_type, offset in REMINDER_OFFSETS.items()
                if appointment.scheduled_at - offset > now
            ]

            if jobs:
                await db.execute(insert(scheduled_jobs), jobs)
                await db.commit()

        logger.info(
            "appointment_reminders_scheduled",
            appointment_id=str(appointment_id),
            count=len(jobs),
        )

    async def cancel_reminders(self, appointment_id: UUID) -> None:
        """Cancel every pending reminder job of an appointment."""
        async with self.session_factory() as db:
            result = await db.execute(
                update(scheduled_jobs)
                .where(
                    scheduled_jobs.c.job_type == JOB_TYPE,
                    scheduled_jobs.c.entity_id == appointment_id,
                    scheduled_jobs.c.status == "pending",
                )
                .values(status="cancelled", updated_at=func.now())
            )
            await db.commit()

        logger.info(
            "appointment_reminders_cancelled",
            appointment_id=str(appointment_id),
            count=result.rowcount,
        )

    async def process_due_reminders(self) -> int:
        """
        Deliver every pending reminder whose time has come.

        Due jobs are locked with ``SKIP LOCKED`` so several workers can run
        concurrently. A failing job is marked failed and does not stop the batch.

        Returns:
            Number of reminders processed successfully
        """
        processed = 0

        async with self.session_factory() as db:
            result = await db.execute(
                select(scheduled_jobs)
                .where(
                    scheduled_jobs.c.job_type == JOB_TYPE,
                    scheduled_jobs.c.status == "pending",
                    scheduled_jobs.c.scheduled_at <= self.clock(),
                )
                .order_by(scheduled_jobs.c.scheduled_at)
                .limit(self.BATCH_SIZE)
                .with_for_update(skip_locked=True)
            )
            jobs = result.mappings().all()

            for job in jobs:
                try:
                    await self._execute(db, job)
                except Exception as e:
                    logger.error("reminder_job_failed", job_id=str(job["id"]), error=str(e))
                    values: dict[str, Any] = {"status": "failed", "last_error": str(e)}
                else:
                    processed += 1
                    values = {"status": "completed"}

                await db.execute(
                    update(scheduled_jobs)
                    .where(scheduled_jobs.c.id == job["id"])
                    .values(
                        **values,
                        attempts=scheduled_jobs.c.attempts + 1,
                        processed_at=func.now(),
                        updated_at=func.now(),
                    )
                )

            await db.commit()

        logger.info("reminder_jobs_processed", due=len(jobs), processed=processed)
        return processed

    async def _execute(self, db: AsyncSession, job: Any) -> None:
        data = job["data"] or {}
        appointment = await SqlAppointmentStore(db).find_by_id(job["entity_id"])

        if appointment is None or appointment.status != AppointmentStatus.CONFIRMED:
            logger.info("reminder_skipped", appointment_id=str(job["entity_id"]))
            return

        reminder_type = data.get("reminder_type", "one_hour")
        doctor_name = appointment.doctor.name if appointment.doctor else "your doctor"
        message = (
            f"Your appointment with Dr. {doctor_name} starts "
            f"{REMINDER_LEAD_TEXT.get(reminder_type, 'soon')}."
        )
        if appointment.type == AppointmentType.ONLINE and appointment.meeting:
            message += f" Join here: {appointment.meeting.join_url}"

        await self.notifier.send(
            UUID(data["user_id"]),
            NotificationType.APPOINTMENT_REMINDER,
            "Appointment Reminder",
            message,
            data.get("notification_data"),
            [NotificationChannel.EMAIL, NotificationChannel.IN_APP, NotificationChannel.PUSH],
        )
