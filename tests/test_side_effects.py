"""Tests for the best-effort side effect coordinator."""

import asyncio

import pytest

from app.services.side_effects import SideEffect, SideEffectCoordinator


async def succeed():
    return "ok"


async def fail():
    raise RuntimeError("smtp down")


async def hang():
    await asyncio.sleep(5)


@pytest.mark.asyncio
async def test_run_collects_every_outcome_in_order():
    coordinator = SideEffectCoordinator(timeout=0.05)

    results = await coordinator.run(
        [
            SideEffect("notify.patient", succeed),
            SideEffect("notify.doctor", fail),
            SideEffect("reminders.schedule", hang),
        ],
        appointment_id="abc",
    )

    assert [r.name for r in results] == ["notify.patient", "notify.doctor", "reminders.schedule"]
    assert results[0].succeeded is True
    assert results[1].succeeded is False
    assert results[1].error == "smtp down"
    assert results[2].succeeded is False
    assert results[2].timed_out is True


@pytest.mark.asyncio
async def test_run_without_effects():
    assert await SideEffectCoordinator(timeout=1).run([]) == []


@pytest.mark.asyncio
async def test_attempt_returns_value_or_none():
    coordinator = SideEffectCoordinator(timeout=0.05)

    assert await coordinator.attempt("meeting.create", succeed) == "ok"
    assert await coordinator.attempt("meeting.create", fail) is None
    assert await coordinator.attempt("meeting.create", hang) is None


@pytest.mark.asyncio
async def test_bounded_propagates_errors():
    coordinator = SideEffectCoordinator(timeout=0.05)

    with pytest.raises(RuntimeError):
        await coordinator.bounded(fail)

    with pytest.raises(asyncio.TimeoutError):
        await coordinator.bounded(hang)
