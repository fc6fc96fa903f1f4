"""Client-side concurrency limiter for batches of async operations.

The package is silent by default. Call ``request_limiter.logging.setup_logging()``
or ``enable_logging()`` to see what the limiter is doing.
"""

from logging import NullHandler, getLogger

from loguru import logger

from request_limiter.config import LimiterConfig
from request_limiter.exceptions import (
    ConfigurationError,
    LimiterBusyError,
    LimiterError,
    OperationCancelledError,
)
from request_limiter.pacing import (
    CancellationRegistry,
    CancellationToken,
    ProgressSnapshot,
    RequestLimiter,
    RunResult,
    run_limited,
)

__version__ = "0.1.0"

__all__ = [
    "CancellationRegistry",
    "CancellationToken",
    "ConfigurationError",
    "LimiterBusyError",
    "LimiterConfig",
    "LimiterError",
    "OperationCancelledError",
    "ProgressSnapshot",
    "RequestLimiter",
    "RunResult",
    "__version__",
    "run_limited",
]

logger.disable(__name__)
getLogger(__name__).addHandler(NullHandler())
