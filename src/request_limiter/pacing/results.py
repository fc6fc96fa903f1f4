"""Result objects for limiter runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Outcome of an operation that returned a value."""

    value: T


@dataclass(frozen=True)
class Failure(Generic[E]):
    """Outcome of an operation that raised or returned an exception."""

    error: E


Outcome = Success[T] | Failure[E]


@dataclass(frozen=True)
class RunResult(Generic[T, E]):
    """Final partition of one run's operations into successes and failures.

    Order within a batch follows settlement order; batches contribute in
    input order.
    """

    success: tuple[T, ...] = ()
    """Values of operations that succeeded."""

    failed: tuple[E, ...] = ()
    """Errors of operations that failed."""

    cancelled: bool = False
    """True if the run observed a cancellation request."""

    batches: int = 0
    """Number of batches dispatched."""

    @property
    def total_count(self) -> int:
        """Total number of settled operations."""
        return len(self.success) + len(self.failed)

    @property
    def success_count(self) -> int:
        """Number of successful operations."""
        return len(self.success)

    @property
    def failure_count(self) -> int:
        """Number of failed operations."""
        return len(self.failed)

    @property
    def all_succeeded(self) -> bool:
        """Whether no operation failed."""
        return len(self.failed) == 0

    def to_dict(self) -> dict[str, object]:
        """Convert to a plain dictionary.

        Returns:
            Dict with success and failed lists plus run metadata
        """
        return {
            "success": list(self.success),
            "failed": list(self.failed),
            "cancelled": self.cancelled,
            "batches": self.batches,
        }
