"""Payment refunds through Stripe."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import httpx
import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ExternalServiceException, NotFoundException, PaymentException
from app.models.payments import payments
from app.schemas.appointments import PaymentStatus
from app.schemas.payments import RefundResult

logger = structlog.get_logger(__name__)


class StripeClient:
    """Minimal Stripe REST client for refunds."""

    def __init__(
        self,
        api_base: str,
        secret_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.secret_key = secret_key
        self.timeout = timeout
        self.transport = transport

    async def create_refund(
        self,
        payment_intent_id: str,
        metadata: dict[str, str],
    ) -> dict[str, Any]:
        """
        Refund a captured payment intent in full.

        Args:
            payment_intent_id: Stripe payment intent to refund
            metadata: Key/value pairs stored on the Stripe refund

        Returns:
            Stripe refund object

        Raises:
            ExternalServiceException: If Stripe rejects the refund
        """
        form = {
            "payment_intent": payment_intent_id,
            "reason": "requested_by_customer",
            **{f"metadata[{key}]": value for key, value in metadata.items()},
        }

        async with httpx.AsyncClient(
            base_url=self.api_base,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            response = await client.post(
                "/refunds",
                data=form,
                headers={"Authorization": f"Bearer {self.secret_key}"},
            )

        if response.status_code >= 400:
            try:
                detail = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                detail = response.text
            raise ExternalServiceException(f"Stripe refund failed: {detail}")

        return response.json()


class PaymentService:
    """Refunds captured appointment payments."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        stripe_client: StripeClient,
    ):
        """Initialize service with its own session factory and Stripe client."""
        self.session_factory = session_factory
        self.stripe = stripe_client

    async def refund(self, payment_id: UUID, reason: str) -> RefundResult:
        """
        Refund a completed payment and record the refund on it.

        Args:
            payment_id: Payment ID
            reason: Refund reason stored with the payment

        Returns:
            Refund outcome

        Raises:
            NotFoundException: If payment not found
            PaymentException: If the payment is not refundable
            ExternalServiceException: If Stripe rejects the refund
        """
        async with self.session_factory() as db:
            result = await db.execute(select(payments).where(payments.c.id == payment_id))
            payment = result.mappings().first()

            if not payment:
                raise NotFoundException("Payment not found")
            if payment["status"] != PaymentStatus.COMPLETED.value:
                raise PaymentException("Payment is not in completed status")
            if not payment["stripe_payment_intent_id"]:
                raise PaymentException("Stripe payment intent ID not found")

            refund = await self.stripe.create_refund(
                payment["stripe_payment_intent_id"],
                metadata={
                    "appointment_id": str(payment["appointment_id"]),
                    "refund_reason": reason,
                },
            )

            refunded_at = datetime.now(UTC)
            await db.execute(
                update(payments)
                .where(payments.c.id == payment_id)
                .values(
                    status=PaymentStatus.REFUNDED.value,
                    refund_id=refund["id"],
                    refunded_at=refunded_at,
                    refund_reason=reason,
                    updated_at=func.now(),
                )
            )
            await db.commit()

        logger.info(
            "payment_refunded",
            payment_id=str(payment_id),
            refund_id=refund["id"],
            stripe_status=refund.get("status"),
        )

        return RefundResult(
            payment_id=payment_id,
            refund_id=refund["id"],
            amount=Decimal(refund.get("amount", 0)) / 100,
            status=PaymentStatus.REFUNDED,
            refunded_at=refunded_at,
            reason=reason,
        )
