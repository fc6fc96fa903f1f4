"""Inter-batch pause calculation.

The pause starts at ``delay_between_batches_ms`` and, after each batch,
grows by ``progressive_delay_step_ms``:

    next = min(current + step, cap or current)

A cap of zero means no cap is configured, which degrades to "no growth":
the pause stays at its starting value for the whole run.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from request_limiter.config import LimiterConfig

logger = logging.getLogger(__name__)


class ProgressiveDelay:
    """Tracks the current inter-batch pause for one run.

    Usage:
        delay = ProgressiveDelay.from_config(config)

        for batch in batches:
            await run(batch)
            await asyncio.sleep(delay.current_seconds)
            delay.advance()
    """

    def __init__(self, initial_ms: int = 0, step_ms: int = 0, max_ms: int = 0) -> None:
        """Initialize the delay.

        Args:
            initial_ms: Pause after the first batch
            step_ms: Growth added after each pause
            max_ms: Ceiling for the pause (0 = never grow)
        """
        if initial_ms < 0 or step_ms < 0 or max_ms < 0:
            raise ValueError("Delays must be non-negative")
        self._initial_ms = initial_ms
        self._step_ms = step_ms
        self._max_ms = max_ms
        self._current_ms = initial_ms

    @classmethod
    def from_config(cls, config: LimiterConfig) -> ProgressiveDelay:
        """Build a delay from a limiter configuration."""
        return cls(
            initial_ms=config.delay_between_batches_ms,
            step_ms=config.progressive_delay_step_ms,
            max_ms=config.max_progressive_delay_ms,
        )

    @property
    def current_ms(self) -> int:
        """Pause to apply after the batch that just finished."""
        return self._current_ms

    @property
    def current_seconds(self) -> float:
        """Current pause in seconds, for asyncio.sleep."""
        return self._current_ms / 1000

    def advance(self) -> int:
        """Grow the pause by one step and return the new value."""
        ceiling = self._max_ms or self._current_ms
        self._current_ms = min(self._current_ms + self._step_ms, ceiling)
        return self._current_ms

    def schedule(self, batches: int) -> list[int]:
        """Pauses (ms) between ``batches`` consecutive batches.

        Does not change the current state.
        """
        preview = ProgressiveDelay(self._initial_ms, self._step_ms, self._max_ms)
        gaps: list[int] = []
        for _ in range(max(batches - 1, 0)):
            gaps.append(preview.current_ms)
            preview.advance()
        return gaps


async def pause(seconds: float, interrupt: asyncio.Event | None = None) -> None:
    """Sleep for ``seconds`` unless ``interrupt`` is set first.

    Args:
        seconds: Time to wait; zero or less returns immediately
        interrupt: Optional event that ends the wait early
    """
    if seconds <= 0 or (interrupt is not None and interrupt.is_set()):
        return
    if interrupt is None:
        await asyncio.sleep(seconds)
        return

    logger.debug("Pausing %.3f seconds before next batch", seconds)
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(interrupt.wait(), timeout=seconds)
