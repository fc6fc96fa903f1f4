"""Common CLI option types and helpers.

Typer requires function calls as default arguments, which triggers B008.
Using Annotated with centralized type aliases keeps that in one place.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Annotated, TypeVar

import typer
from rich.console import Console

from request_limiter.exceptions import ConfigurationError

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from a synchronous CLI command with unified error handling.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except ConfigurationError as e:
        console.print(f"[red]Invalid options:[/red] {e.__cause__ or e}")
        raise typer.Exit(2) from None
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


ItemsOption = Annotated[
    int,
    typer.Option("--items", "-n", min=0, help="Number of operations"),
]

MaxConcurrentOption = Annotated[
    int,
    typer.Option("--max", "-m", help="Maximum operations in flight per batch"),
]

DelayOption = Annotated[
    int,
    typer.Option("--delay", "-d", help="Pause after the first batch (ms)"),
]

StepOption = Annotated[
    int,
    typer.Option("--step", "-s", help="Growth of the pause after each batch (ms)"),
]

CapOption = Annotated[
    int,
    typer.Option("--cap", "-c", help="Ceiling for the growing pause (ms, 0 = no growth)"),
]
