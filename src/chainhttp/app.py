"""Typer application and CLI entry point for chainhttp.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``get``, ``post``, ``put``, ``delete``,
``download``, ``upload``, ``bench``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~chainhttp.exceptions.ChainHttpError` exits with the error's code;
anything else is reported and exits with :data:`EXIT_GENERIC_FAILURE`.

See Also:
    :mod:`chainhttp.config`: Configuration resolution used by the root callback.
    :mod:`chainhttp.output`: Output manager initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any, Optional

import typer

from chainhttp import __version__
from chainhttp.commands.bench import bench_command
from chainhttp.commands.config import config_app
from chainhttp.commands.request import (
    delete_command,
    download_command,
    get_command,
    post_command,
    put_command,
    upload_command,
)
from chainhttp.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="chainhttp",
    help="Send HTTP requests, stream downloads and upload files.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("get")(get_command)
app.command("post")(post_command)
app.command("put")(put_command)
app.command("delete")(delete_command)
app.command("download")(download_command)
app.command("upload")(upload_command)
app.command("bench")(bench_command)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"chainhttp {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Route library log records to stderr; DEBUG only with ``--verbose``."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger = logging.getLogger("chainhttp")
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Transport timeout in seconds."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Resolves the effective configuration, installs the global
    :class:`~chainhttp.output.OutputManager`, and stores the configuration
    in ``ctx.obj`` for sub-commands.
    """
    from chainhttp.config import resolve_config
    from chainhttp.exceptions import ConfigError
    from chainhttp.output import OutputManager, error, set_output

    try:
        config = resolve_config(
            cli_timeout=timeout,
            cli_verbose=verbose or None,
            cli_no_color=no_color or None,
        )
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    set_output(
        OutputManager(
            no_color=config.output.no_color,
            quiet=quiet,
            verbose=config.output.verbose,
        )
    )
    _configure_logging(config.output.verbose)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``chainhttp`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from chainhttp.exceptions import ChainHttpError
        from chainhttp.output import error

        if isinstance(exc, ChainHttpError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {type(exc).__name__}: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
