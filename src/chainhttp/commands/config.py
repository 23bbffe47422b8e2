"""Config commands -- view and modify the global configuration.

Provides the ``chainhttp config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~chainhttp.models.GlobalConfig`).
"""

from __future__ import annotations

import json
from functools import reduce

import typer

from chainhttp.output import info, print_data, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the configuration stored on disk.

    Example::

        chainhttp config show
    """
    from chainhttp.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    print_data(json.dumps(config.model_dump(mode="json"), indent=2))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'transport.timeout')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Example::

        chainhttp config set transport.timeout 10
        chainhttp config set transport.verify_ssl false
        chainhttp config set default_encoding GBK
    """
    from chainhttp.commands._runner import exit_with
    from chainhttp.config import load_global_config, save_global_config, set_config_value
    from chainhttp.exceptions import ChainHttpError

    try:
        config = set_config_value(load_global_config(), key, value)
    except ChainHttpError as exc:
        raise exit_with(exc) from None

    save_global_config(config)
    stored = reduce(getattr, key.split("."), config)
    success(f"Set {key} = {stored}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults.

    Example::

        chainhttp config reset --force
    """
    from chainhttp.config import save_global_config
    from chainhttp.models import GlobalConfig

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
