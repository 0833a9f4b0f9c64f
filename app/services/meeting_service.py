"""Zoom meetings for online consultations."""

import secrets
import string
from datetime import UTC
from typing import Any

import httpx
import structlog
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ExternalServiceException
from app.core.redis_client import CacheManager
from app.models.meetings import meetings
from app.schemas.meetings import MeetingInfo, MeetingRequest

logger = structlog.get_logger(__name__)

PASSWORD_ALPHABET = string.ascii_letters + string.digits


class ZoomClient:
    """Zoom REST client using server-to-server OAuth."""

    TOKEN_CACHE_KEY = "zoom:access_token"
    # Refresh the token this many seconds before Zoom expires it
    TOKEN_EXPIRY_MARGIN = 60

    def __init__(
        self,
        account_id: str,
        client_id: str,
        client_secret: str,
        api_base: str,
        oauth_url: str,
        timeout: float = 10.0,
        cache_manager: CacheManager | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.account_id = account_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_base = api_base.rstrip("/")
        self.oauth_url = oauth_url
        self.timeout = timeout
        self.cache = cache_manager
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def get_access_token(self) -> str:
        """Get an account-level access token, reusing the cached one while valid."""
        if self.cache:
            cached = self.cache.get(self.TOKEN_CACHE_KEY)
            if cached:
                return cached

        async with self._client() as client:
            response = await client.post(
                self.oauth_url,
                params={"grant_type": "account_credentials", "account_id": self.account_id},
                auth=(self.client_id, self.client_secret),
            )

        if response.status_code != 200:
            raise ExternalServiceException(f"Zoom authentication failed: {response.text}")

        payload = response.json()
        token = payload["access_token"]

        if self.cache:
            ttl = max(int(payload.get("expires_in", 3600)) - self.TOKEN_EXPIRY_MARGIN, 1)
            self.cache.set(self.TOKEN_CACHE_KEY, token, ttl=ttl)

        return token

    async def create_meeting(self, body: dict[str, Any]) -> dict[str, Any]:
        """
        Create a scheduled meeting on the account owner.

        Args:
            body: Zoom meeting creation payload

        Returns:
            Zoom meeting object

        Raises:
            ExternalServiceException: If Zoom rejects the request
        """
        token = await self.get_access_token()

        async with self._client() as client:
            response = await client.post(
                f"{self.api_base}/users/me/meetings",
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )

        if response.status_code != 201:
            raise ExternalServiceException(f"Zoom meeting creation failed: {response.text}")

        return response.json()


class MeetingService:
    """Provisions and records consultation meetings."""

    PASSWORD_LENGTH = 8

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        zoom_client: ZoomClient,
    ):
        """Initialize service with its own session factory and Zoom client."""
        self.session_factory = session_factory
        self.zoom = zoom_client

    @classmethod
    def generate_password(cls) -> str:
        """Random alphanumeric meeting password."""
        return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(cls.PASSWORD_LENGTH))

    async def create_meeting(self, request: MeetingRequest) -> MeetingInfo:
        """
        Create a Zoom meeting for an appointment and store it.

        Args:
            request: Meeting parameters

        Returns:
            Stored meeting
        """
        zoom_meeting = await self.zoom.create_meeting(
            {
                "topic": request.topic,
                "type": 2,  # scheduled
                "start_time": request.start_time.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
                "duration": request.duration,
                "timezone": "UTC",
                "password": self.generate_password(),
                "agenda": request.topic,
                "settings": {
                    "host_video": True,
                    "participant_video": True,
                    "join_before_host": False,
                    "mute_upon_entry": True,
                    "approval_type": 0,
                    "audio": "both",
                    "auto_recording": "none",
                    "waiting_room": True,
                },
            }
        )

        async with self.session_factory() as db:
            result = await db.execute(
                insert(meetings)
                .values(
                    appointment_id=request.appointment_id,
                    external_meeting_id=str(zoom_meeting["id"]),
                    topic=zoom_meeting.get("topic", request.topic),
                    start_time=request.start_time,
                    duration=zoom_meeting.get("duration", request.duration),
                    join_url=zoom_meeting["join_url"],
                    host_url=zoom_meeting.get("start_url"),
                    password=zoom_meeting.get("password"),
                    host_email=request.host_email,
                )
                .returning(meetings)
            )
            row = result.mappings().first()
            await db.commit()

        logger.info(
            "meeting_created",
            appointment_id=str(request.appointment_id),
            external_meeting_id=str(zoom_meeting["id"]),
        )

        return MeetingInfo.model_validate(dict(row))
