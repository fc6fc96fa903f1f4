"""Batching limiter for independently submitted async operations.

RequestLimiter runs at most ``max_concurrent`` operations at a time. It
carves the operation list into consecutive batches, waits for every member of
a batch to settle, pauses between batches (optionally with a growing pause),
and collects outcomes into successes and failures.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from request_limiter.config import LimiterConfig, build_config, get_settings
from request_limiter.exceptions import LimiterBusyError
from request_limiter.logging import bind_run

from .cancellation import CancellationRegistry, set_event
from .delay import ProgressiveDelay, pause
from .executor import Operation, execute_operation
from .progress import ProgressSnapshot, ProgressTracker
from .results import Failure, RunResult

if TYPE_CHECKING:
    from loguru import Logger

T = TypeVar("T")
E = TypeVar("E")


@dataclass
class RunState(Generic[T, E]):
    """Mutable bookkeeping for a single run.

    Created fresh at the top of every ``run()`` so nothing leaks between runs.
    """

    run_id: str
    delay: ProgressiveDelay
    progress: ProgressTracker
    cursor: int = 0
    batches: int = 0
    cancelled: bool = False
    wakeup: asyncio.Event = field(default_factory=asyncio.Event)
    succeeded: list[T] = field(default_factory=list)
    failed: list[E] = field(default_factory=list)


class RequestLimiter(Generic[T, E]):
    """Runs async operations in concurrency-bounded batches.

    Each operation is a callable taking a CancellationToken and returning an
    awaitable. Failures are collected, never raised.

    Usage:
        async def fetch(token: CancellationToken) -> dict:
            token.raise_if_cancelled()
            return await client.get(url)

        limiter = (
            RequestLimiter([fetch] * 20)
            .max(5)
            .delay(100)
            .progressive_delay(100, 500)
            .progress(lambda s: print(s.completed, s.remaining))
        )
        result = await limiter.run()
        print(f"{result.success_count} ok, {result.failure_count} failed")

    A limiter serializes its own runs: calling ``run()`` while another run on
    the same instance is outstanding raises LimiterBusyError.
    """

    def __init__(
        self,
        operations: Sequence[Operation[T]],
        config: LimiterConfig | Mapping[str, Any] | None = None,
        **options: Any,
    ) -> None:
        """Initialize the limiter.

        Args:
            operations: Ordered operations to run
            config: LimiterConfig or mapping of its fields (uses settings if not provided)
            **options: Individual LimiterConfig fields, applied on top of ``config``

        Raises:
            ConfigurationError: If the options are invalid
        """
        if config is None:
            base = get_settings().limiter
        elif isinstance(config, LimiterConfig):
            base = config
        else:
            base = build_config(config)

        self._operations: tuple[Operation[T], ...] = tuple(operations)
        self._config = base.with_options(**options) if options else base
        self._registry = CancellationRegistry()
        self._state: RunState[T, E] | None = None
        self._running = False
        self._cancel_pending = False
        self._loop: asyncio.AbstractEventLoop | None = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def config(self) -> LimiterConfig:
        """The configuration used by the next run."""
        return self._config

    @property
    def total(self) -> int:
        """Number of operations."""
        return len(self._operations)

    @property
    def is_running(self) -> bool:
        """Whether a run is outstanding."""
        return self._running

    @property
    def is_cancelled(self) -> bool:
        """Whether cancellation was requested for the current or next run."""
        if self._running and self._state is not None:
            return self._state.cancelled
        return self._cancel_pending

    @property
    def active_operations(self) -> int:
        """Number of operations that have started but not settled."""
        return len(self._registry)

    @property
    def last_progress(self) -> ProgressSnapshot | None:
        """Snapshot of the current or most recent run."""
        if self._state is None:
            return None
        return self._state.progress.snapshot()

    # -------------------------------------------------------------------------
    # Fluent Configuration
    # -------------------------------------------------------------------------
    def configure(self, **options: Any) -> RequestLimiter[T, E]:
        """Replace configuration fields.

        Raises:
            ConfigurationError: If the options are invalid
            LimiterBusyError: If a run is outstanding
        """
        if self._running:
            raise LimiterBusyError("Cannot reconfigure a limiter while it is running")
        self._config = self._config.with_options(**options)
        return self

    def max(self, max_concurrent: int) -> RequestLimiter[T, E]:
        """Set the maximum number of operations in flight."""
        return self.configure(max_concurrent=max_concurrent)

    def delay(self, delay_ms: int) -> RequestLimiter[T, E]:
        """Set the pause between batches in milliseconds."""
        return self.configure(delay_between_batches_ms=delay_ms)

    def progressive_delay(
        self, step_ms: int, max_delay_ms: int | None = None
    ) -> RequestLimiter[T, E]:
        """Grow the pause by ``step_ms`` after each batch, up to ``max_delay_ms``."""
        options: dict[str, int] = {"progressive_delay_step_ms": step_ms}
        if max_delay_ms is not None:
            options["max_progressive_delay_ms"] = max_delay_ms
        return self.configure(**options)

    def success(self, callback: Callable[[T], None]) -> RequestLimiter[T, E]:
        """Register the callback for each successful value."""
        return self.configure(on_success=callback)

    def error(self, callback: Callable[[E], None]) -> RequestLimiter[T, E]:
        """Register the callback for each failure."""
        return self.configure(on_error=callback)

    def progress(self, callback: Callable[[ProgressSnapshot], None]) -> RequestLimiter[T, E]:
        """Register the callback for each settled operation."""
        return self.configure(on_progress=callback)

    def complete(self, callback: Callable[[RunResult[T, E]], None]) -> RequestLimiter[T, E]:
        """Register the callback for a run that finished without cancellation."""
        return self.configure(on_complete=callback)

    # -------------------------------------------------------------------------
    # Run / Cancel
    # -------------------------------------------------------------------------
    async def run(self) -> RunResult[T, E]:
        """Run every operation in batches and collect the outcomes.

        Returns:
            RunResult with successes and failures; ``cancelled`` is set if
            ``cancel()`` was observed

        Raises:
            LimiterBusyError: If a run is already outstanding on this instance
        """
        if self._running:
            raise LimiterBusyError("Limiter is already running")

        self._running = True
        self._loop = asyncio.get_running_loop()
        state = self._reset()
        logger = bind_run(state.run_id, name=__name__)

        try:
            with logger.contextualize(run=state.run_id):
                return await self._run(state, logger)
        except Exception as e:
            logger.exception("Run failed")
            state.progress.fail(str(e))
            raise
        finally:
            self._running = False
            self._registry.clear()

    async def _run(self, state: RunState[T, E], logger: Logger) -> RunResult[T, E]:
        config = self._config
        operations = self._operations
        total = len(operations)

        logger.info(
            "Starting run: {} operations, max_concurrent={}, delay={}ms",
            total,
            config.max_concurrent,
            config.delay_between_batches_ms,
        )
        state.progress.start()

        while state.cursor < total and not state.cancelled:
            batch = operations[state.cursor : state.cursor + config.max_concurrent]
            # Advance before dispatch so a cancelled batch is never re-picked
            state.cursor += len(batch)
            state.batches += 1
            logger.debug("Dispatching batch {} ({} operations)", state.batches, len(batch))

            await asyncio.gather(*(self._settle(op, state) for op in batch))

            if state.cursor < total and not state.cancelled:
                logger.debug(
                    "Batch {} settled, pausing {}ms", state.batches, state.delay.current_ms
                )
                await pause(state.delay.current_seconds, state.wakeup)
                state.delay.advance()

        result: RunResult[T, E] = RunResult(
            success=tuple(state.succeeded),
            failed=tuple(state.failed),
            cancelled=state.cancelled,
            batches=state.batches,
        )

        if state.cancelled:
            state.progress.cancel()
        else:
            state.progress.complete()
            self._notify(config.on_complete, result, "completion")

        return result

    async def _settle(self, operation: Operation[T], state: RunState[T, E]) -> None:
        """Execute one operation and record its outcome."""
        config = self._config
        outcome = await execute_operation(operation, self._registry)

        if isinstance(outcome, Failure):
            state.failed.append(outcome.error)
            self._notify(config.on_error, outcome.error, "error")
            state.progress.record_failure(outcome.error)
        else:
            state.succeeded.append(outcome.value)
            self._notify(config.on_success, outcome.value, "success")
            state.progress.record_success()

    def _notify(self, callback: Callable[[Any], None] | None, payload: Any, kind: str) -> None:
        if callback is None:
            return
        try:
            callback(payload)
        except Exception as e:
            bind_run(self._state.run_id if self._state else "-", name=__name__).warning(
                "{} callback error: {}", kind.capitalize(), e
            )

    def _reset(self) -> RunState[T, E]:
        config = self._config
        progress = ProgressTracker(total=len(self._operations), name="limiter run")
        if config.on_progress is not None:
            progress.on_progress(config.on_progress)

        state: RunState[T, E] = RunState(
            run_id=uuid.uuid4().hex[:8],
            delay=ProgressiveDelay.from_config(config),
            progress=progress,
            cancelled=self._cancel_pending,
        )
        self._cancel_pending = False
        self._registry.clear()
        self._state = state
        return state

    def cancel(self, reason: str | None = None) -> None:
        """Stop scheduling batches and signal in-flight operations.

        Takes effect at the next batch boundary and ends any inter-batch pause
        early. Operations already running receive an abort request through
        their token but are not forcibly stopped; their outcomes are still
        recorded. Repeated calls during a run have no further effect.

        When no run is active (before the first ``run()`` or after a run has
        finished) the request is held for the next ``run()``, which then
        executes nothing and returns an empty cancelled result. The held
        request is consumed by that run, so the run after it proceeds
        normally.

        Args:
            reason: Optional reason forwarded to operation tokens
        """
        state = self._state
        if not self._running or state is None:
            self._cancel_pending = True
            return
        if state.cancelled:
            return

        state.cancelled = True
        set_event(state.wakeup, self._loop)
        signalled = self._registry.cancel_all(reason)
        bind_run(state.run_id, name=__name__).info(
            "Cancellation requested ({} in-flight operations signalled)", signalled
        )


async def run_limited(
    operations: Sequence[Operation[T]],
    config: LimiterConfig | Mapping[str, Any] | None = None,
    **options: Any,
) -> RunResult[T, Any]:
    """Convenience function for one-off limited execution.

    Args:
        operations: Ordered operations to run
        config: LimiterConfig or mapping of its fields
        **options: Individual LimiterConfig fields

    Returns:
        RunResult containing successes and failures
    """
    limiter: RequestLimiter[T, Any] = RequestLimiter(operations, config, **options)
    return await limiter.run()
