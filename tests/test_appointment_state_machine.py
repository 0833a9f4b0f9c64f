"""Tests for appointment status transition rules."""

from itertools import product

import pytest

from app.core.exceptions import StateTransitionException
from app.schemas.appointments import TERMINAL_STATUSES, AppointmentStatus, UserRole
from app.services.appointment_state_machine import (
    allowed_targets,
    can_transition,
    ensure_transition,
    is_terminal,
)

S = AppointmentStatus

GRAPH = {
    S.AWAITING_ACCEPTANCE: {S.REJECTED, S.PAYMENT_PENDING, S.CANCELLED},
    S.PAYMENT_PENDING: {S.CONFIRMED, S.CANCELLED},
    S.CONFIRMED: {S.COMPLETED, S.CANCELLED},
    S.REJECTED: set(),
    S.COMPLETED: set(),
    S.CANCELLED: set(),
}

ROLES = {
    UserRole.PATIENT: {S.CANCELLED},
    UserRole.DOCTOR: {S.REJECTED, S.PAYMENT_PENDING, S.COMPLETED, S.CANCELLED},
    UserRole.ADMIN: set(S),
}


@pytest.mark.parametrize(
    ("current", "new_status", "role"),
    list(product(AppointmentStatus, AppointmentStatus, UserRole)),
)
def test_transition_matrix(current, new_status, role):
    expected = new_status in GRAPH[current] and new_status in ROLES[role]
    assert can_transition(current, new_status, role) is expected


@pytest.mark.parametrize(("status", "role"), list(product(TERMINAL_STATUSES, UserRole)))
def test_terminal_states_have_no_exits(status, role):
    assert is_terminal(status)
    assert allowed_targets(status, role) == frozenset()


def test_active_states_are_not_terminal():
    assert not is_terminal(S.AWAITING_ACCEPTANCE)
    assert not is_terminal(S.PAYMENT_PENDING)
    assert not is_terminal(S.CONFIRMED)


def test_patient_can_only_cancel():
    assert allowed_targets(S.AWAITING_ACCEPTANCE, UserRole.PATIENT) == {S.CANCELLED}
    assert allowed_targets(S.PAYMENT_PENDING, UserRole.PATIENT) == {S.CANCELLED}
    assert allowed_targets(S.CONFIRMED, UserRole.PATIENT) == {S.CANCELLED}


def test_doctor_cannot_confirm_payment():
    assert not can_transition(S.PAYMENT_PENDING, S.CONFIRMED, UserRole.DOCTOR)
    assert can_transition(S.PAYMENT_PENDING, S.CONFIRMED, UserRole.ADMIN)


def test_admin_cannot_skip_the_graph():
    assert not can_transition(S.AWAITING_ACCEPTANCE, S.CONFIRMED, UserRole.ADMIN)
    assert not can_transition(S.AWAITING_ACCEPTANCE, S.COMPLETED, UserRole.ADMIN)


def test_ensure_transition_message():
    with pytest.raises(StateTransitionException) as exc_info:
        ensure_transition(S.REJECTED, S.CONFIRMED, UserRole.ADMIN)

    assert exc_info.value.message == "Invalid status transition from REJECTED to CONFIRMED"
    assert exc_info.value.status_code == 409


def test_ensure_transition_allows_legal_edge():
    ensure_transition(S.AWAITING_ACCEPTANCE, S.PAYMENT_PENDING, UserRole.DOCTOR)
