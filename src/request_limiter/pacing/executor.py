"""Per-operation execution wrapper.

Runs a single operation with its own cancellation token and converts the
outcome into a Success or Failure. Nothing raised by the operation escapes
this wrapper, so one failing operation never disturbs its batch siblings.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from request_limiter.logging import get_logger

from .cancellation import CancellationRegistry, CancellationToken
from .results import Failure, Outcome, Success

logger = get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[CancellationToken], Awaitable[T] | T]


def classify(value: Any) -> Outcome[Any, Any]:
    """Classify a returned value.

    Exception instances are failures; every other value, including falsy
    ones like ``0``, ``""`` and ``None``, is a success.
    """
    if isinstance(value, BaseException):
        return Failure(value)
    return Success(value)


async def execute_operation(
    operation: Operation[T],
    registry: CancellationRegistry,
    token: CancellationToken | None = None,
) -> Outcome[T, BaseException]:
    """Run one operation and capture its outcome.

    The token is registered before the operation starts and discarded once it
    settles, on both the success and failure paths.

    Args:
        operation: Callable taking a CancellationToken and returning an awaitable
        registry: Registry tracking tokens of outstanding operations
        token: Token to hand to the operation (a fresh one by default)

    Returns:
        Success with the returned value, or Failure with the error

    Raises:
        asyncio.CancelledError: Only when the task running this wrapper is
            itself being cancelled
    """
    token = token or CancellationToken()
    registry.register(token)
    try:
        result = operation(token)
        value = await result if inspect.isawaitable(result) else result
    except asyncio.CancelledError as e:
        task = asyncio.current_task()
        if task is not None and task.cancelling():
            raise
        # The operation aborted itself
        logger.debug("Operation raised CancelledError (token cancelled={})", token.cancelled)
        return Failure(e)
    except Exception as e:
        logger.debug("Operation failed: {!r}", e)
        return Failure(e)
    finally:
        registry.discard(token)

    return classify(value)
