"""Notification schemas."""

from enum import Enum


class NotificationType(str, Enum):
    """Kinds of appointment notifications."""

    APPOINTMENT_BOOKED = "APPOINTMENT_BOOKED"
    APPOINTMENT_ACCEPTED = "APPOINTMENT_ACCEPTED"
    APPOINTMENT_REJECTED = "APPOINTMENT_REJECTED"
    APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"
    APPOINTMENT_RESCHEDULED = "APPOINTMENT_RESCHEDULED"
    APPOINTMENT_REMINDER = "APPOINTMENT_REMINDER"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"


class NotificationChannel(str, Enum):
    """Delivery channels for a notification."""

    EMAIL = "EMAIL"
    IN_APP = "IN_APP"
    PUSH = "PUSH"

