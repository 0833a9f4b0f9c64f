"""User schemas."""

from uuid import UUID

from pydantic import BaseModel

from app.schemas.appointments import UserRole


class Actor(BaseModel):
    """Authenticated user acting on appointments."""

    id: UUID
    email: str
    full_name: str | None = None
    role: UserRole
