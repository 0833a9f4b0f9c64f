"""Doctor directory and profile lookup."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis_client import CacheManager
from app.models.doctors import doctors
from app.models.patients import patients
from app.models.users import users
from app.schemas.doctors import DoctorView, ProfileRef


class DoctorService:
    """Service for doctor eligibility and profile resolution."""

    # Cache TTL in seconds; eligibility flags are read through it, so keep it short
    DOCTOR_CACHE_TTL = 60  # 1 minute

    def __init__(self, db: AsyncSession, cache_manager: CacheManager | None = None):
        """Initialize service with database session and optional cache manager."""
        self.db = db
        self.cache = cache_manager

    @staticmethod
    def _get_doctor_cache_key(doctor_id: UUID) -> str:
        """Generate cache key for doctor."""
        return f"doctor:{doctor_id}"

    async def get_doctor(self, doctor_id: UUID) -> DoctorView | None:
        """Get the bookable view of a doctor, read through the cache."""
        if self.cache:
            cached = self.cache.get_json(self._get_doctor_cache_key(doctor_id))
            if cached:
                return DoctorView.model_validate(cached)

        query = select(
            doctors.c.id,
            doctors.c.user_id,
            doctors.c.name,
            doctors.c.is_accepting_patients,
            doctors.c.license_verified,
            doctors.c.consultation_fee,
            doctors.c.specializations,
            doctors.c.clinic_name,
            doctors.c.clinic_address,
        ).where(doctors.c.id == doctor_id)
        result = await self.db.execute(query)
        doctor = result.mappings().first()

        if not doctor:
            return None

        view = DoctorView.model_validate(
            {**doctor, "specializations": doctor["specializations"] or []}
        )

        if self.cache:
            self.cache.set_json(
                self._get_doctor_cache_key(doctor_id),
                view.model_dump(mode="json"),
                ttl=self.DOCTOR_CACHE_TTL,
            )

        return view

    async def get_patient_profile(self, user_id: UUID) -> ProfileRef | None:
        """Get the patient profile owned by a user."""
        query = (
            select(patients.c.id, patients.c.user_id, patients.c.name, users.c.email)
            .join(users, patients.c.user_id == users.c.id)
            .where(patients.c.user_id == user_id)
        )
        result = await self.db.execute(query)
        row = result.mappings().first()
        return ProfileRef.model_validate(dict(row)) if row else None

    async def get_doctor_profile(self, user_id: UUID) -> ProfileRef | None:
        """Get the doctor profile owned by a user."""
        query = (
            select(doctors.c.id, doctors.c.user_id, doctors.c.name, users.c.email)
            .join(users, doctors.c.user_id == users.c.id)
            .where(doctors.c.user_id == user_id)
        )
        result = await self.db.execute(query)
        row = result.mappings().first()
        return ProfileRef.model_validate(dict(row)) if row else None
