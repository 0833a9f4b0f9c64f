"""Database models."""

from app.models.appointments import appointments
from app.models.doctors import doctors
from app.models.meetings import meetings
from app.models.metadata import metadata
from app.models.notifications import notifications, push_tokens
from app.models.patients import patients
from app.models.payments import payments
from app.models.scheduled_jobs import scheduled_jobs
from app.models.users import users

__all__ = [
    "appointments",
    "doctors",
    "meetings",
    "metadata",
    "notifications",
    "patients",
    "payments",
    "push_tokens",
    "scheduled_jobs",
    "users",
]
