"""Best-effort side effects that follow a committed appointment transition."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SideEffect:
    """A named operation to run after the primary write."""

    name: str
    operation: Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class SideEffectResult:
    """Captured outcome of one side effect."""

    name: str
    succeeded: bool
    error: str | None = None
    timed_out: bool = False


class SideEffectCoordinator:
    """
    Run collaborator calls with a time bound and isolate their failures.

    Every side effect is spawned as a named task and awaited, so each outcome
    is captured and logged. Failures and timeouts never propagate to the
    caller.
    """

    def __init__(self, timeout: float):
        """Initialize coordinator with the per-call timeout in seconds."""
        self.timeout = timeout

    async def bounded(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation`` with the configured timeout; errors propagate."""
        return await asyncio.wait_for(operation(), timeout=self.timeout)

    async def attempt(
        self,
        name: str,
        operation: Callable[[], Awaitable[T]],
        **context: Any,
    ) -> T | None:
        """
        Run one best-effort call and return its value, or None on failure.

        Args:
            name: Side effect name used in logs
            operation: Zero-argument coroutine factory
            **context: Extra fields bound to the log events

        Returns:
            The operation's result, or None if it failed or timed out
        """
        value, result = await self._guarded(SideEffect(name, operation), context)
        return value if result.succeeded else None

    async def run(self, effects: list[SideEffect], **context: Any) -> list[SideEffectResult]:
        """
        Run side effects concurrently and collect every outcome.

        Args:
            effects: Side effects to run
            **context: Extra fields bound to the log events

        Returns:
            One result per side effect, in the order given
        """
        if not effects:
            return []

        tasks = [
            asyncio.create_task(self._guarded(effect, context), name=f"side_effect:{effect.name}")
            for effect in effects
        ]
        outcomes = await asyncio.gather(*tasks)
        return [result for _, result in outcomes]

    async def _guarded(
        self,
        effect: SideEffect,
        context: dict[str, Any],
    ) -> tuple[Any, SideEffectResult]:
        try:
            value = await self.bounded(effect.operation)
        except TimeoutError:
            logger.error(
                "side_effect_timed_out",
                side_effect=effect.name,
                timeout=self.timeout,
                **context,
            )
            return None, SideEffectResult(
                name=effect.name,
                succeeded=False,
                error=f"timed out after {self.timeout}s",
                timed_out=True,
            )
        except Exception as e:
            logger.error(
                "side_effect_failed",
                side_effect=effect.name,
                error=str(e),
                error_type=type(e).__name__,
                **context,
            )
            return None, SideEffectResult(name=effect.name, succeeded=False, error=str(e))

        logger.debug("side_effect_completed", side_effect=effect.name, **context)
        return value, SideEffectResult(name=effect.name, succeeded=True)
