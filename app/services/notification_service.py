"""Notification service: stored in-app notifications, FCM push and email delivery."""

import asyncio
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from firebase_admin import messaging
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.notifications import notifications, push_tokens
from app.models.users import users
from app.schemas.notifications import NotificationChannel, NotificationType
from app.services.email_service import EmailService, render_notification_email

logger = structlog.get_logger(__name__)


class NotificationService:
    """Service for recording and delivering user notifications."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        email: EmailService | None = None,
    ):
        """Initialize service with its own session factory and optional email sender."""
        self.session_factory = session_factory
        self.email = email

    @staticmethod
    async def send_push_notification(
        tokens: list[str],
        title: str,
        body: str,
        data: dict[str, str] | None = None,
    ) -> tuple[int, list[str]]:
        """
        Send push notification to multiple devices.

        Args:
            tokens: List of FCM tokens
            title: Notification title
            body: Notification body
            data: Optional data payload

        Returns:
            Tuple of (success_count, tokens FCM reported as unregistered)
        """
        if not tokens:
            return 0, []

        message = messaging.MulticastMessage(
            notification=messaging.Notification(
                title=title,
                body=body,
            ),
            data=data or {},
            tokens=tokens,
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(
                        sound="default",
                        badge=1,
                    ),
                ),
            ),
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(
                    sound="default",
                    priority="high",
                ),
            ),
        )

        response = await asyncio.to_thread(messaging.send_each_for_multicast, message)

        stale = [
            token
            for token, result in zip(tokens, response.responses, strict=False)
            if not result.success and isinstance(result.exception, messaging.UnregisteredError)
        ]

        logger.info(
            "push_notification_sent",
            title=title,
            success_count=response.success_count,
            failure_count=response.failure_count,
            stale_tokens=len(stale),
        )

        return response.success_count, stale

    async def send(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        channels: list[NotificationChannel] | None = None,
    ) -> None:
        """
        Record a notification for a user and deliver it on each channel.

        IN_APP is delivered by the stored row itself. The row ends up
        ``sent`` only when every other requested channel was delivered,
        otherwise ``failed`` with the reasons. A channel that raised is
        re-raised once the row has been updated.

        Args:
            user_id: Recipient user ID
            notification_type: Kind of notification
            title: Notification title
            message: Notification body
            data: Optional payload stored with the notification
            channels: Requested delivery channels, IN_APP when omitted
        """
        channels = channels or [NotificationChannel.IN_APP]

        async with self.session_factory() as db:
            result = await db.execute(
                insert(notifications)
                .values(
                    user_id=user_id,
                    notification_type=notification_type.value,
                    title=title,
                    body=message,
                    data=data,
                    channels=[channel.value for channel in channels],
                    status="pending",
                )
                .returning(notifications.c.id)
            )
            notification_id = result.scalar_one()
            await db.commit()

            failures: list[str] = []
            error: Exception | None = None
            for channel in channels:
                if channel == NotificationChannel.IN_APP:
                    continue
                try:
                    if channel == NotificationChannel.PUSH:
                        reason = await self._push(db, user_id, title, message, data)
                    else:
                        reason = await self._email(db, user_id, title, message)
                except Exception as e:
                    logger.error(
                        "notification_channel_failed",
                        notification_id=str(notification_id),
                        channel=channel.value,
                        error=str(e),
                    )
                    await db.rollback()
                    reason = str(e)
                    error = error or e
                if reason:
                    failures.append(f"{channel.value}: {reason}")

            status = "failed" if failures else "sent"
            await db.execute(
                update(notifications)
                .where(notifications.c.id == notification_id)
                .values(
                    status=status,
                    failure_reason="; ".join(failures) or None,
                    sent_at=datetime.now(UTC) if status == "sent" else None,
                )
            )
            await db.commit()

        logger.info(
            "notification_sent",
            notification_id=str(notification_id),
            user_id=str(user_id),
            notification_type=notification_type.value,
            channels=[channel.value for channel in channels],
            status=status,
        )

        if error is not None:
            raise error

    async def _push(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        body: str,
        data: dict[str, Any] | None,
    ) -> str | None:
        result = await db.execute(
            select(push_tokens.c.fcm_token).where(
                push_tokens.c.user_id == user_id,
                push_tokens.c.is_active == True,  # noqa: E712
            )
        )
        tokens = list(result.scalars().all())

        # A user without registered devices is not a delivery failure
        if not tokens:
            logger.warning("no_active_tokens_for_user", user_id=str(user_id))
            return None

        # FCM data payloads only accept string values
        payload = {key: str(value) for key, value in (data or {}).items() if value is not None}
        success_count, stale = await self.send_push_notification(tokens, title, body, payload)

        if stale:
            await db.execute(
                update(push_tokens)
                .where(push_tokens.c.user_id == user_id, push_tokens.c.fcm_token.in_(stale))
                .values(is_active=False)
            )

        if success_count == 0:
            return "Push delivery failed for every device"
        return None

    async def _email(self, db: AsyncSession, user_id: UUID, title: str, body: str) -> str | None:
        if self.email is None:
            return "Email delivery is not configured"

        result = await db.execute(select(users.c.email).where(users.c.id == user_id))
        address = result.scalar_one_or_none()
        if not address:
            return "No email address for user"

        await self.email.send_email(address, title, render_notification_email(title, body))
        return None
