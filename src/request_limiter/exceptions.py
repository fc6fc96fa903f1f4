"""Request limiter exceptions."""


class LimiterError(Exception):
    """Base exception for request limiter errors."""

    pass


class ConfigurationError(LimiterError, ValueError):
    """Raised when limiter options fail validation."""

    pass


class LimiterBusyError(LimiterError, RuntimeError):
    """Raised when a limiter is run or reconfigured while a run is outstanding.

    A single limiter instance serializes its runs. Use separate instances
    to drive independent runs concurrently.
    """

    pass


class OperationCancelledError(LimiterError):
    """Raised by an operation that observed its cancellation token."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or "Operation cancelled")
        self.reason = reason
