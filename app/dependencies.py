"""FastAPI dependencies and the per-request composition root."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import decode_access_token
from app.database import AsyncSessionLocal, get_db
from app.schemas.users import Actor
from app.services.appointment_service import AppointmentService
from app.services.appointment_store import SqlAppointmentStore
from app.services.doctor_service import DoctorService
from app.services.email_service import build_email_service
from app.services.meeting_service import MeetingService, ZoomClient
from app.services.notification_service import NotificationService
from app.services.payment_service import PaymentService, StripeClient
from app.services.reminder_service import ReminderService
from app.services.side_effects import SideEffectCoordinator
from app.services.user_service import UserService

# Security
security = HTTPBearer()

CREDENTIALS_ERROR = "Could not validate credentials"


def _unauthorized(detail: str = CREDENTIALS_ERROR) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        HTTPException: If token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized()

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise _unauthorized()

    try:
        return UUID(user_id_str)
    except ValueError:
        raise _unauthorized("Invalid user ID format") from None


def get_cache_manager() -> CacheManager:
    """Cache manager over the shared Redis client."""
    return CacheManager(get_redis_client())


async def get_current_actor(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
    cache: Annotated[CacheManager, Depends(get_cache_manager)],
) -> Actor:
    """
    Resolve the authenticated user and its role.

    Raises:
        HTTPException: If user not found or inactive
    """
    user = await UserService(cache).get_user_by_id(db, user_id)

    if not user:
        raise _unauthorized("User not found")

    if not user["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return Actor.model_validate(user)


def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    cache: Annotated[CacheManager, Depends(get_cache_manager)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AppointmentService:
    """Build the appointment lifecycle service for one request."""
    timeout = settings.collaborator_timeout_seconds
    doctors = DoctorService(db, cache)
    notifier = NotificationService(AsyncSessionLocal, build_email_service(settings))

    return AppointmentService(
        store=SqlAppointmentStore(db),
        doctors=doctors,
        profiles=doctors,
        payments=PaymentService(
            AsyncSessionLocal,
            StripeClient(settings.stripe_api_base, settings.stripe_secret_key, timeout),
        ),
        meetings=MeetingService(
            AsyncSessionLocal,
            ZoomClient(
                account_id=settings.zoom_account_id,
                client_id=settings.zoom_client_id,
                client_secret=settings.zoom_client_secret,
                api_base=settings.zoom_api_base,
                oauth_url=settings.zoom_oauth_url,
                timeout=timeout,
                cache_manager=cache,
            ),
        ),
        notifier=notifier,
        reminders=ReminderService(AsyncSessionLocal, notifier),
        coordinator=SideEffectCoordinator(timeout),
        policy=settings.scheduling_policy,
    )


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
