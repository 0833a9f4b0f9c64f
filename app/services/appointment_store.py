"""SQL persistence for appointments and their read projections."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import Select, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.models.appointments import appointments
from app.models.doctors import doctors
from app.models.meetings import meetings
from app.models.patients import patients
from app.models.payments import payments
from app.models.users import users
from app.schemas.appointments import AppointmentResponse, SortField, SortOrder
from app.services.ports import AppointmentQuery, GroupField

logger = structlog.get_logger(__name__)

DOUBLE_BOOKING_CONSTRAINT = "appointments_no_double_booking"

patient_users = users.alias("patient_users")
doctor_users = users.alias("doctor_users")

PROJECTIONS: dict[str, tuple[Any, tuple[str, ...], Any]] = {
    "patient": (patients, ("id", "user_id", "name", "phone", "age", "gender"), patient_users),
    "doctor": (
        doctors,
        (
            "id",
            "user_id",
            "name",
            "specializations",
            "consultation_fee",
            "clinic_name",
            "clinic_address",
        ),
        doctor_users,
    ),
    "payment": (
        payments,
        ("id", "amount", "status", "processed_at", "refunded_at", "refund_reason"),
        None,
    ),
    "meeting": (
        meetings,
        (
            "id",
            "external_meeting_id",
            "topic",
            "start_time",
            "duration",
            "join_url",
            "host_url",
            "password",
            "status",
        ),
        None,
    ),
}

SORT_COLUMNS = {
    "scheduled_at": appointments.c.scheduled_at,
    "created_at": appointments.c.created_at,
    "status": appointments.c.status,
}


def _projection_columns() -> list[Any]:
    columns: list[Any] = list(appointments.c)
    for prefix, (table, fields, user_table) in PROJECTIONS.items():
        columns += [table.c[name].label(f"{prefix}__{name}") for name in fields]
        if user_table is not None:
            columns.append(user_table.c.email.label(f"{prefix}__email"))
    return columns


def _projection_select() -> Select:
    joined = (
        appointments.outerjoin(patients, appointments.c.patient_id == patients.c.id)
        .outerjoin(patient_users, patients.c.user_id == patient_users.c.id)
        .outerjoin(doctors, appointments.c.doctor_id == doctors.c.id)
        .outerjoin(doctor_users, doctors.c.user_id == doctor_users.c.id)
        .outerjoin(payments, payments.c.appointment_id == appointments.c.id)
        .outerjoin(meetings, meetings.c.appointment_id == appointments.c.id)
    )
    return select(*_projection_columns()).select_from(joined)


def _to_response(row: Any) -> AppointmentResponse:
    mapping = row._mapping
    data = {name: mapping[name] for name in appointments.c.keys()}

    for prefix in PROJECTIONS:
        nested = {
            key.split("__", 1)[1]: value
            for key, value in mapping.items()
            if isinstance(key, str) and key.startswith(f"{prefix}__")
        }
        data[prefix] = nested if nested.get("id") is not None else None

    return AppointmentResponse.model_validate(data)


def _conditions(query: AppointmentQuery) -> list[Any]:
    conditions: list[Any] = []

    if query.patient_id:
        conditions.append(appointments.c.patient_id == query.patient_id)
    if query.doctor_id:
        conditions.append(appointments.c.doctor_id == query.doctor_id)
    if query.statuses is not None:
        conditions.append(appointments.c.status.in_([s.value for s in query.statuses]))
    if query.type:
        conditions.append(appointments.c.type == query.type.value)
    if query.scheduled_from:
        conditions.append(appointments.c.scheduled_at >= query.scheduled_from)
    if query.scheduled_to:
        conditions.append(appointments.c.scheduled_at <= query.scheduled_to)
    if query.exclude_ids:
        conditions.append(appointments.c.id.not_in(list(query.exclude_ids)))

    return conditions


class SqlAppointmentStore:
    """Appointment store backed by the ``appointments`` table."""

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def create(self, values: dict[str, Any]) -> AppointmentResponse:
        """
        Insert an appointment and return its projection.

        Raises:
            ConflictException: If the insert overlaps an active appointment of the doctor
        """
        stmt = insert(appointments).values(**values).returning(appointments.c.id)
        appointment_id = await self._write(stmt)
        return await self._reload(appointment_id)

    async def update(self, appointment_id: UUID, values: dict[str, Any]) -> AppointmentResponse:
        """
        Apply a partial update and return the new projection.

        Raises:
            NotFoundException: If appointment not found
            ConflictException: If a new time overlaps an active appointment of the doctor
        """
        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**values, updated_at=func.now())
            .returning(appointments.c.id)
        )
        updated_id = await self._write(stmt)
        if updated_id is None:
            raise NotFoundException("Appointment not found")
        return await self._reload(updated_id)

    async def find_by_id(self, appointment_id: UUID) -> AppointmentResponse | None:
        """Get appointment projection by ID."""
        stmt = _projection_select().where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.fetchone()
        return _to_response(row) if row else None

    async def find_many(
        self,
        query: AppointmentQuery,
        sort_by: SortField = "scheduled_at",
        sort_order: SortOrder = "desc",
        offset: int = 0,
        limit: int | None = None,
    ) -> list[AppointmentResponse]:
        """List appointment projections matching ``query``."""
        column = SORT_COLUMNS[sort_by]
        ordering = column.asc() if sort_order == "asc" else column.desc()

        stmt = (
            _projection_select()
            .where(*_conditions(query))
            .order_by(ordering, appointments.c.id)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return [_to_response(row) for row in result.fetchall()]

    async def count(self, query: AppointmentQuery) -> int:
        """Count appointments matching ``query``."""
        stmt = select(func.count()).select_from(appointments).where(*_conditions(query))
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def group_by(self, field_name: GroupField, query: AppointmentQuery) -> dict[str, int]:
        """Count appointments matching ``query`` per value of ``field_name``."""
        column = appointments.c[field_name]
        stmt = (
            select(column, func.count())
            .select_from(appointments)
            .where(*_conditions(query))
            .group_by(column)
        )
        result = await self.db.execute(stmt)
        return {value: count for value, count in result.fetchall()}

    async def _write(self, stmt: Any) -> UUID | None:
        try:
            result = await self.db.execute(stmt)
            written_id = result.scalar_one_or_none()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if DOUBLE_BOOKING_CONSTRAINT in str(e.orig):
                logger.warning("appointment_double_booking_rejected", error=str(e.orig))
                raise ConflictException("Doctor is not available at the requested time") from e
            raise
        return written_id

    async def _reload(self, appointment_id: UUID | None) -> AppointmentResponse:
        appointment = await self.find_by_id(appointment_id) if appointment_id else None
        if appointment is None:
            raise NotFoundException("Appointment not found")
        return appointment
