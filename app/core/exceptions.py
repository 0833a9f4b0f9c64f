"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ForbiddenException(AppException):
    """Actor does not own the resource it is trying to read or mutate."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ConflictException(AppException):
    """Doctor is already booked inside the conflict window."""

    def __init__(self, message: str = "Doctor is not available at the requested time"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """One or more booking rules were violated.

    Every violated rule is kept in ``errors``; the message joins them so a
    single response shows all of them.
    """

    def __init__(
        self,
        errors: list[str],
        prefix: str = "Appointment validation failed",
    ):
        """Initialize with 422 status code."""
        self.errors = list(errors)
        super().__init__(f"{prefix}: {', '.join(self.errors)}", status_code=422)


class StateTransitionException(AppException):
    """Requested status is not reachable for the actor's role."""

    def __init__(self, current_status: str, new_status: str):
        """Initialize with 409 status code."""
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            f"Invalid status transition from {current_status} to {new_status}",
            status_code=409,
        )


class TerminalStateException(AppException):
    """Mutation attempted on a completed or cancelled appointment."""

    def __init__(self, message: str):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class TimingPolicyException(AppException):
    """Patient tried to cancel inside the notice period."""

    def __init__(
        self,
        message: str = "Appointments can only be cancelled at least 24 hours in advance",
    ):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class RefundException(AppException):
    """Refund failed after the cancellation was committed."""

    def __init__(self, message: str = "Refund could not be processed"):
        """Initialize with 502 status code."""
        super().__init__(message, status_code=502)


class PaymentException(AppException):
    """Payment record is missing data or in the wrong state for the request."""

    def __init__(self, message: str = "Payment error"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ExternalServiceException(AppException):
    """Third-party API returned an error or an unexpected payload."""

    def __init__(self, message: str = "External service error"):
        """Initialize with 502 status code."""
        super().__init__(message, status_code=502)
