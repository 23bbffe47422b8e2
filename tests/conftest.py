"""Shared test fixtures for chainhttp.

Provides a way to route every transport chainhttp builds through an
``httpx.MockTransport``, isolated configuration directories, and automatic
reset of global output and logging state between tests.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

import chainhttp.transport
from chainhttp.models import TransportConfig
from chainhttp.output import OutputManager, reset_output, set_output


URL = "http://localhost:8080/rest"


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet OutputManager and reset it after every test."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_logging_between_tests() -> None:
    """Undo the handler the CLI callback installs on the ``chainhttp`` logger."""
    yield
    logger = logging.getLogger("chainhttp")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Transport fixtures
# ---------------------------------------------------------------------------


class CountingClient(httpx.AsyncClient):
    """An AsyncClient that records how often it was closed."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.close_calls = 0

    async def aclose(self) -> None:
        self.close_calls += 1
        await super().aclose()


class ClientFactory:
    """Stand-in for :func:`chainhttp.transport.build_client`.

    Every client it builds answers requests with *handler* and is recorded
    in :attr:`clients`, so tests can count internally created transports.
    """

    def __init__(self, handler: Callable[[httpx.Request], Any]) -> None:
        self.handler = handler
        self.clients: list[CountingClient] = []
        self.configs: list[TransportConfig] = []

    def __call__(
        self, config: TransportConfig, limits: Optional[httpx.Limits] = None
    ) -> CountingClient:
        client = CountingClient(transport=httpx.MockTransport(self.handler))
        self.clients.append(client)
        self.configs.append(config)
        return client


@pytest.fixture
def install_handler(monkeypatch: pytest.MonkeyPatch) -> Callable[..., ClientFactory]:
    """Make every transport chainhttp builds answer with the given handler.

    Returns:
        A function taking a MockTransport handler and returning the
        :class:`ClientFactory` that records the built clients.
    """

    def _install(handler: Callable[[httpx.Request], Any]) -> ClientFactory:
        factory = ClientFactory(handler)
        monkeypatch.setattr(chainhttp.transport, "build_client", factory)
        return factory

    return _install


@pytest.fixture
def make_manager() -> Callable[..., CountingClient]:
    """Build a caller-owned (external) client answering with a handler."""

    def _make(handler: Callable[[httpx.Request], Any]) -> CountingClient:
        return CountingClient(transport=httpx.MockTransport(handler))

    return _make


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME at tmp_path, clears all CHAINHTTP_* environment
    variables and changes the working directory to tmp_path.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in ["CHAINHTTP_TIMEOUT", "CHAINHTTP_VERIFY_SSL", "CHAINHTTP_ENCODING"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
