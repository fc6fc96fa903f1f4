"""Batch scheduling for async operations.

Components:
- RequestLimiter: Runs operations in concurrency-bounded batches
- execute_operation: Per-operation wrapper capturing success or failure
- CancellationToken / CancellationRegistry: Cooperative abort signalling
- ProgressiveDelay: Growing pause between batches
- ProgressTracker: Per-operation progress reporting
"""

from .cancellation import CancellationRegistry, CancellationToken
from .delay import ProgressiveDelay, pause
from .executor import Operation, classify, execute_operation
from .limiter import RequestLimiter, RunState, run_limited
from .progress import ProgressCallback, ProgressSnapshot, ProgressState, ProgressTracker
from .results import Failure, Outcome, RunResult, Success

__all__ = [
    # Limiter
    "RequestLimiter",
    "RunState",
    "run_limited",
    # Execution
    "Operation",
    "classify",
    "execute_operation",
    "Failure",
    "Outcome",
    "RunResult",
    "Success",
    # Cancellation
    "CancellationRegistry",
    "CancellationToken",
    # Pacing
    "ProgressiveDelay",
    "pause",
    # Progress tracking
    "ProgressCallback",
    "ProgressSnapshot",
    "ProgressState",
    "ProgressTracker",
]
