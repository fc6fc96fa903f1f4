"""Progress tracking for limiter runs.

A ProgressTracker owns the success/failure counters of one run and emits a
ProgressSnapshot to its callbacks each time an operation settles.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)


class ProgressState(StrEnum):
    """State of a tracked run."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProgressSnapshot:
    """Cumulative counts since the run started."""

    completed: int
    remaining: int
    failed: int

    @property
    def processed(self) -> int:
        """Number of settled operations."""
        return self.completed + self.failed

    @property
    def total(self) -> int:
        """Operations in the run."""
        return self.processed + self.remaining

    @property
    def progress_percent(self) -> float:
        """Completion percentage (0-100)."""
        if self.total == 0:
            return 100.0
        return (self.processed / self.total) * 100

    @property
    def success_rate(self) -> float:
        """Success rate percentage (0-100)."""
        if self.processed == 0:
            return 100.0
        return (self.completed / self.processed) * 100


ProgressCallback = Callable[[ProgressSnapshot], None]


class ProgressTracker:
    """Counts settled operations and notifies callbacks.

    Callbacks fire once per ``record_success``/``record_failure`` call;
    state transitions are only logged.

    Usage:
        tracker = ProgressTracker(total=8)
        tracker.on_progress(lambda s: print(f"{s.progress_percent:.0f}%"))

        tracker.start()
        tracker.record_success()
        tracker.record_failure()
        tracker.complete()
    """

    def __init__(self, total: int = 0, name: str = "run") -> None:
        """Initialize the progress tracker.

        Args:
            total: Number of operations in the run
            name: Name of the run for logging
        """
        self._total = total
        self._name = name
        self._completed = 0
        self._failed = 0
        self._state = ProgressState.PENDING
        self._start_time: float | None = None
        self._callbacks: list[ProgressCallback] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def total(self) -> int:
        """Number of operations in the run."""
        return self._total

    @property
    def completed(self) -> int:
        """Number of successful operations."""
        return self._completed

    @property
    def failed(self) -> int:
        """Number of failed operations."""
        return self._failed

    @property
    def state(self) -> ProgressState:
        """Current state of the run."""
        return self._state

    @property
    def is_done(self) -> bool:
        """Whether the run has finished (completed, failed, or cancelled)."""
        return self._state in (
            ProgressState.COMPLETED,
            ProgressState.FAILED,
            ProgressState.CANCELLED,
        )

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time since start in seconds."""
        if self._start_time is None:
            return 0.0
        return time.monotonic() - self._start_time

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------
    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a callback receiving a snapshot per settled operation."""
        self._callbacks.append(callback)

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for callback in self._callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logger.warning("Progress callback error: %s", e)

    # -------------------------------------------------------------------------
    # State Management
    # -------------------------------------------------------------------------
    def start(self) -> None:
        """Mark the run as started."""
        self._state = ProgressState.IN_PROGRESS
        self._start_time = time.monotonic()
        logger.debug("Started %s (total=%d)", self._name, self._total)

    def complete(self) -> None:
        """Mark the run as finished normally."""
        self._state = ProgressState.COMPLETED
        logger.info(
            "Completed %s: %d succeeded, %d failed in %.1fs",
            self._name,
            self._completed,
            self._failed,
            self.elapsed_seconds,
        )

    def fail(self, error: str) -> None:
        """Mark the run as aborted by an unexpected error."""
        self._state = ProgressState.FAILED
        logger.error("Failed %s: %s", self._name, error)

    def cancel(self) -> None:
        """Mark the run as cancelled."""
        self._state = ProgressState.CANCELLED
        logger.info(
            "Cancelled %s at %d/%d", self._name, self._completed + self._failed, self._total
        )

    # -------------------------------------------------------------------------
    # Progress Updates
    # -------------------------------------------------------------------------
    def record_success(self) -> None:
        """Count one successful operation and notify callbacks."""
        self._completed += 1
        self._notify()

    def record_failure(self, error: object | None = None) -> None:
        """Count one failed operation and notify callbacks.

        Args:
            error: Optional error, logged at debug level
        """
        self._failed += 1
        if error is not None:
            logger.debug("%s operation failed: %s", self._name, error)
        self._notify()

    def snapshot(self) -> ProgressSnapshot:
        """Current counts as an immutable snapshot."""
        return ProgressSnapshot(
            completed=self._completed,
            remaining=max(0, self._total - self._completed - self._failed),
            failed=self._failed,
        )
