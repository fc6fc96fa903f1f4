"""Main CLI application for the request limiter."""

import asyncio
import math
import random
from pathlib import Path
from typing import Annotated

import typer
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from request_limiter import __version__
from request_limiter.cli.common import (
    CapOption,
    DelayOption,
    ItemsOption,
    MaxConcurrentOption,
    StepOption,
    console,
    run_async_command,
)
from request_limiter.config import LimiterConfig, build_config, get_settings
from request_limiter.exceptions import ConfigurationError
from request_limiter.logging import setup_logging
from request_limiter.pacing import (
    CancellationToken,
    ProgressiveDelay,
    ProgressSnapshot,
    RequestLimiter,
    RunResult,
)

app = typer.Typer(
    name="reqlimit",
    help="Plan and simulate batched, rate-limited async runs.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"reqlimit version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress non-error output (WARNING level)."),
    ] = False,
) -> None:
    """Request limiter developer tools."""
    settings = get_settings()
    log_config = settings.logging

    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


def _build_config(max_concurrent: int, delay: int, step: int, cap: int) -> LimiterConfig:
    try:
        return build_config(
            {
                "max_concurrent": max_concurrent,
                "delay_between_batches_ms": delay,
                "progressive_delay_step_ms": step,
                "max_progressive_delay_ms": cap,
            }
        )
    except ConfigurationError as e:
        console.print(f"[red]Invalid options:[/red] {e.__cause__ or e}")
        raise typer.Exit(2) from None


@app.command()
def plan(
    items: ItemsOption = 10,
    max_concurrent: MaxConcurrentOption = 10,
    delay: DelayOption = 0,
    step: StepOption = 0,
    cap: CapOption = 0,
) -> None:
    """Show the batch schedule without running anything.

    Examples:
        reqlimit plan --items 6 --max 1 --delay 100 --step 100 --cap 200
    """
    config = _build_config(max_concurrent, delay, step, cap)
    batches = math.ceil(items / config.max_concurrent)
    gaps = ProgressiveDelay.from_config(config).schedule(batches)

    table = Table(title=f"{items} operations, max {config.max_concurrent} in flight")
    table.add_column("Batch", style="cyan", justify="right")
    table.add_column("Operations", justify="right")
    table.add_column("Pause after (ms)", justify="right")

    for index in range(batches):
        size = min(config.max_concurrent, items - index * config.max_concurrent)
        pause_ms = str(gaps[index]) if index < len(gaps) else "-"
        table.add_row(str(index + 1), str(size), pause_ms)

    console.print(table)
    console.print(f"Batches: {batches}  Minimum total pause: {sum(gaps)} ms")


@app.command()
def simulate(
    items: ItemsOption = 20,
    max_concurrent: MaxConcurrentOption = 5,
    delay: DelayOption = 0,
    step: StepOption = 0,
    cap: CapOption = 0,
    latency_ms: Annotated[
        int,
        typer.Option("--latency-ms", "-l", min=0, help="Mean latency of each operation (ms)"),
    ] = 100,
    fail_rate: Annotated[
        float,
        typer.Option("--fail-rate", "-f", min=0.0, max=1.0, help="Probability an operation fails"),
    ] = 0.0,
    seed: Annotated[
        int | None,
        typer.Option("--seed", help="Random seed for reproducible runs"),
    ] = None,
    cancel_after: Annotated[
        float | None,
        typer.Option("--cancel-after", help="Cancel the run after this many seconds"),
    ] = None,
) -> None:
    """Run synthetic operations through the limiter.

    Examples:
        reqlimit simulate --items 50 --max 10 --fail-rate 0.1
        reqlimit simulate --items 20 --max 2 --delay 200 --cancel-after 1
    """
    config = _build_config(max_concurrent, delay, step, cap)
    rng = random.Random(seed)
    plans = [
        (rng.uniform(0.5, 1.5) * latency_ms / 1000, rng.random() < fail_rate)
        for _ in range(items)
    ]

    def make_operation(index: int, seconds: float, fails: bool):
        async def operation(token: CancellationToken) -> int:
            deadline = asyncio.get_running_loop().time() + seconds
            while (remaining := deadline - asyncio.get_running_loop().time()) > 0:
                token.raise_if_cancelled()
                await asyncio.sleep(min(remaining, 0.01))
            if fails:
                raise RuntimeError(f"operation {index} failed")
            return index

        return operation

    operations = [make_operation(i, seconds, fails) for i, (seconds, fails) in enumerate(plans)]

    async def _simulate() -> RunResult[int, BaseException]:
        with Progress(
            TextColumn("[bold]Running"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("[red]{task.fields[failed]} failed"),
            TimeElapsedColumn(),
            console=console,
        ) as bar:
            task_id = bar.add_task("run", total=items, failed=0)

            def on_progress(snapshot: ProgressSnapshot) -> None:
                bar.update(task_id, completed=snapshot.processed, failed=snapshot.failed)

            limiter: RequestLimiter[int, BaseException] = RequestLimiter(operations, config)
            limiter.progress(on_progress)

            if cancel_after is not None:
                asyncio.get_running_loop().call_later(
                    cancel_after, limiter.cancel, "cancel-after elapsed"
                )
            return await limiter.run()

    result = run_async_command(_simulate(), error_prefix="Simulation failed")
    _print_summary(result)


def _print_summary(result: RunResult[int, BaseException]) -> None:
    table = Table(title="Run summary")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Batches", str(result.batches))
    table.add_row("Succeeded", f"[green]{result.success_count}[/green]")
    table.add_row("Failed", f"[red]{result.failure_count}[/red]")
    table.add_row("Cancelled", "yes" if result.cancelled else "no")
    console.print(table)


if __name__ == "__main__":
    app()
