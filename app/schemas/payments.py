"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from app.schemas.appointments import PaymentStatus


class RefundResult(BaseModel):
    """Result returned by the payment gateway after a refund."""

    payment_id: UUID
    refund_id: str
    amount: Decimal
    status: PaymentStatus
    refunded_at: datetime
    reason: str
