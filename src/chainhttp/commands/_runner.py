"""Helpers shared by the request commands: argument parsing and running transfers."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

import typer

from chainhttp.client import Client
from chainhttp.exceptions import ChainHttpError, InvalidUsageError, LocalFileError, TransferError
from chainhttp.executor import Transfer
from chainhttp.models import GlobalConfig, TransferState
from chainhttp.output import error


def get_config(ctx: typer.Context) -> GlobalConfig:
    """Return the configuration resolved by the root callback."""
    if ctx.obj and isinstance(ctx.obj.get("config"), GlobalConfig):
        return ctx.obj["config"]
    return GlobalConfig()


def parse_pair(raw: str, separator: str, what: str) -> tuple[str, str]:
    """Split ``name<separator>value``.

    Raises:
        InvalidUsageError: If *separator* is missing or the name is empty.
    """
    name, sep, value = raw.partition(separator)
    name = name.strip()
    if not sep or not name:
        raise InvalidUsageError(f"Invalid {what} {raw!r}, expected NAME{separator}VALUE")
    return name, value.strip() if separator == ":" else value


def build_client(
    url: str,
    params: Optional[list[str]],
    headers: Optional[list[str]],
    json_text: Optional[str],
    debug: bool,
    config: GlobalConfig,
) -> Client:
    """Translate CLI options into a configured :class:`~chainhttp.client.Client`."""
    client = Client(url).debug(debug).config(config.transport)
    for raw in params or []:
        client.param(*parse_pair(raw, "=", "parameter"))
    for raw in headers or []:
        client.header(*parse_pair(raw, ":", "header"))
    if json_text is not None:
        client.json(json_text)
    return client


def run_transfer(start: Callable[[], Transfer]) -> Transfer:
    """Run *start* inside a fresh event loop and wait for its transfer.

    Raises:
        LocalFileError: If the transfer was rejected before dispatch.
        TransferError: If the transfer failed at the transport level.
    """

    async def _main() -> Transfer:
        transfer = start()
        await transfer
        return transfer

    transfer = asyncio.run(_main())
    if transfer.state is TransferState.FAILED:
        message = transfer.error or "Transfer failed"
        if transfer.transport is None:
            raise LocalFileError(message)
        raise TransferError(message)
    return transfer


def exit_with(exc: ChainHttpError) -> typer.Exit:
    """Report *exc* on stderr and build the matching ``typer.Exit``."""
    error(str(exc))
    return typer.Exit(code=exc.exit_code)
