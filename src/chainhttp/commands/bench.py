"""Bench command -- many concurrent GETs over one shared transport.

All requests draw on a single connection pool built by
:func:`~chainhttp.transport.create_manager`, so thousands of in-flight
requests do not open thousands of pools.
"""

from __future__ import annotations

import asyncio
import time

import typer

from chainhttp.client import Client
from chainhttp.commands._runner import get_config
from chainhttp.exit_codes import EXIT_TRANSFER_ERROR
from chainhttp.models import TransportConfig
from chainhttp.output import info, print_data
from chainhttp.transport import create_manager


async def run_bench(url: str, count: int, config: TransportConfig) -> tuple[int, int]:
    """Issue *count* concurrent GETs to *url*; return ``(succeeded, failed)``."""
    succeeded = 0
    failed = 0

    def _ok(_body: str) -> None:
        nonlocal succeeded
        succeeded += 1

    def _failed(_message: str) -> None:
        nonlocal failed
        failed += 1

    async with create_manager(config) as manager:
        transfers = [
            Client(url).manager(manager).get(_ok, _failed)
            for _ in range(count)
        ]
        await asyncio.gather(*transfers)
    return succeeded, failed


def bench_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL to request."),
    count: int = typer.Option(100, "--count", "-n", min=1, help="Number of requests."),
) -> None:
    """Send COUNT concurrent GET requests through one shared transport."""
    config = get_config(ctx)
    started = time.monotonic()
    succeeded, failed = asyncio.run(run_bench(url, count, config.transport))
    elapsed = time.monotonic() - started
    info(f"{count} requests in {elapsed:.2f}s")
    print_data(f"succeeded={succeeded} failed={failed}")
    if failed:
        raise typer.Exit(code=EXIT_TRANSFER_ERROR)
