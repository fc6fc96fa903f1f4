"""Cooperative cancellation for in-flight operations.

Each operation receives its own CancellationToken. The limiter keeps the
tokens of outstanding operations in a CancellationRegistry so that a single
``cancel()`` call can signal all of them at once.

Cancellation is advisory: the token only reports that abort was requested.
An operation that never checks its token runs to completion, and its
outcome is still recorded.
"""

from __future__ import annotations

import asyncio
import threading

from request_limiter.exceptions import OperationCancelledError


class CancellationToken:
    """Per-operation handle for observing an abort request.

    Usage:
        async def fetch(token: CancellationToken) -> bytes:
            for chunk in chunks:
                token.raise_if_cancelled()
                await download(chunk)

        # Or race the work against the token
        async def poll(token: CancellationToken) -> None:
            await token.wait()
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        try:
            self._loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

    @property
    def cancelled(self) -> bool:
        """Whether abort has been requested."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason passed to ``cancel``, if any."""
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Request abort. Later calls are no-ops.

        Safe to call from a thread other than the one running the event loop.

        Args:
            reason: Optional human-readable reason
        """
        if self._event.is_set():
            return
        self._reason = reason
        set_event(self._event, self._loop)

    async def wait(self) -> None:
        """Block until abort is requested."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if abort has been requested."""
        if self._event.is_set():
            raise OperationCancelledError(self._reason)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


def set_event(event: asyncio.Event, loop: asyncio.AbstractEventLoop | None) -> None:
    """Set ``event`` from any thread.

    asyncio.Event is not thread-safe, so calls from outside ``loop`` are
    handed to the loop with call_soon_threadsafe.
    """
    if loop is None or loop.is_closed():
        event.set()
        return
    try:
        on_loop = asyncio.get_running_loop() is loop
    except RuntimeError:
        on_loop = False
    if on_loop:
        event.set()
    else:
        loop.call_soon_threadsafe(event.set)


class CancellationRegistry:
    """Set of tokens belonging to operations that have not settled yet.

    The executor registers and discards tokens; ``cancel_all`` may be called
    from any thread, so membership changes are guarded by a lock.
    """

    def __init__(self) -> None:
        self._tokens: set[CancellationToken] = set()
        self._lock = threading.Lock()

    def register(self, token: CancellationToken) -> None:
        """Track a token for an operation that is about to start."""
        with self._lock:
            self._tokens.add(token)

    def discard(self, token: CancellationToken) -> None:
        """Stop tracking a token once its operation has settled."""
        with self._lock:
            self._tokens.discard(token)

    def cancel_all(self, reason: str | None = None) -> int:
        """Signal every tracked token.

        Args:
            reason: Optional reason forwarded to each token

        Returns:
            Number of tokens signalled
        """
        with self._lock:
            tokens = list(self._tokens)
        for token in tokens:
            token.cancel(reason)
        return len(tokens)

    def clear(self) -> None:
        """Forget all tracked tokens without signalling them."""
        with self._lock:
            self._tokens.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._tokens
