"""Video meeting schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class MeetingRequest(BaseModel):
    """Parameters for provisioning a consultation meeting."""

    appointment_id: UUID
    topic: str = Field(..., max_length=200)
    start_time: datetime
    duration: int = Field(default=30, ge=5, le=240)
    host_email: str | None = None
    participant_email: str | None = None
    participant_name: str | None = None


class MeetingInfo(BaseModel):
    """Provisioned meeting."""

    id: UUID
    external_meeting_id: str
    topic: str
    start_time: datetime
    duration: int
    join_url: str
    host_url: str | None = None
    password: str | None = None
    status: str = "SCHEDULED"
