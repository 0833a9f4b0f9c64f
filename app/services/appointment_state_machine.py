"""Appointment status transition rules.

Legality is the intersection of two lookup tables: the structural graph of
reachable statuses and the set of statuses each role may move an
appointment into.
"""

from app.core.exceptions import StateTransitionException
from app.schemas.appointments import AppointmentStatus, UserRole

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.AWAITING_ACCEPTANCE: frozenset(
        {
            AppointmentStatus.REJECTED,
            AppointmentStatus.PAYMENT_PENDING,
            AppointmentStatus.CANCELLED,
        }
    ),
    AppointmentStatus.PAYMENT_PENDING: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.CANCELLED,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
        }
    ),
    AppointmentStatus.REJECTED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

ROLE_POLICY: dict[UserRole, frozenset[AppointmentStatus]] = {
    UserRole.PATIENT: frozenset({AppointmentStatus.CANCELLED}),
    UserRole.DOCTOR: frozenset(
        {
            AppointmentStatus.REJECTED,
            AppointmentStatus.PAYMENT_PENDING,
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
        }
    ),
    UserRole.ADMIN: frozenset(AppointmentStatus),
}


def allowed_targets(current: AppointmentStatus, role: UserRole) -> frozenset[AppointmentStatus]:
    """Statuses the given role may move an appointment into from ``current``."""
    return TRANSITIONS.get(current, frozenset()) & ROLE_POLICY.get(role, frozenset())


def can_transition(
    current: AppointmentStatus,
    new_status: AppointmentStatus,
    role: UserRole,
) -> bool:
    """Check whether ``role`` may move an appointment from ``current`` to ``new_status``."""
    return new_status in allowed_targets(current, role)


def ensure_transition(
    current: AppointmentStatus,
    new_status: AppointmentStatus,
    role: UserRole,
) -> None:
    """
    Raise if the transition is not allowed.

    Raises:
        StateTransitionException: If the edge is missing from the graph or the role policy
    """
    if not can_transition(current, new_status, role):
        raise StateTransitionException(current.value, new_status.value)


def is_terminal(status: AppointmentStatus) -> bool:
    """Terminal statuses have no outgoing transitions."""
    return not TRANSITIONS.get(status)
