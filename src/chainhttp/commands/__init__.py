"""Built-in CLI commands for chainhttp.

Each sub-module defines a Typer command or command group that is
registered on the root application in :func:`chainhttp.app.main`:

- :mod:`~chainhttp.commands.request` -- ``get``, ``post``, ``put``,
  ``delete``, ``download``, ``upload``
- :mod:`~chainhttp.commands.bench` -- ``bench`` (concurrent GETs over one
  shared transport)
- :mod:`~chainhttp.commands.config` -- ``config show|set|reset``
"""
