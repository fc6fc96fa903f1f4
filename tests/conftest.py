"""Pytest configuration and shared fixtures.

Usage Guide:
- Operation factories (resolving, rejecting, slow) live here as fixtures
- Tests pass an explicit LimiterConfig so environment defaults never leak in
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from request_limiter.config import LimiterConfig, get_settings
from request_limiter.pacing import CancellationToken

Operation = Callable[[CancellationToken], Any]


# -----------------------------------------------------------------------------
# Settings Isolation
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    """Drop the cached Settings so env changes in one test never leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def default_config() -> LimiterConfig:
    """Built-in limiter defaults, independent of the environment."""
    return LimiterConfig()


# -----------------------------------------------------------------------------
# Operation Factories
# -----------------------------------------------------------------------------
@pytest.fixture
def resolves() -> Callable[..., Operation]:
    """Factory for operations that return ``value`` after ``delay`` seconds."""

    def factory(value: Any, delay: float = 0.0) -> Operation:
        async def operation(token: CancellationToken) -> Any:
            if delay:
                await asyncio.sleep(delay)
            return value

        return operation

    return factory


@pytest.fixture
def rejects() -> Callable[..., Operation]:
    """Factory for operations that raise ``error`` after ``delay`` seconds."""

    def factory(error: BaseException, delay: float = 0.0) -> Operation:
        async def operation(token: CancellationToken) -> Any:
            if delay:
                await asyncio.sleep(delay)
            raise error

        return operation

    return factory


@pytest.fixture
def honours_token() -> Callable[..., Operation]:
    """Factory for operations that wait on their token, then abort.

    If the token is never cancelled the operation returns ``value`` after
    ``timeout`` seconds.
    """

    def factory(value: Any = "done", timeout: float = 5.0) -> Operation:
        async def operation(token: CancellationToken) -> Any:
            try:
                await asyncio.wait_for(token.wait(), timeout=timeout)
            except TimeoutError:
                return value
            token.raise_if_cancelled()
            return value

        return operation

    return factory
