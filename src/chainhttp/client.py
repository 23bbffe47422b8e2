"""Fluent request builder.

:class:`Client` accumulates the pieces of a request and dispatches it with
one of the terminal calls (:meth:`~Client.get`, :meth:`~Client.post`,
:meth:`~Client.put`, :meth:`~Client.remove`, :meth:`~Client.download`,
:meth:`~Client.upload`). It is meant to be used in throw-away style::

    Client("http://localhost:8080/rest").param("name", "Alice").get(print)

Each terminal call freezes the builder into a
:class:`~chainhttp.models.RequestSpec` and hands that snapshot to
:mod:`chainhttp.executor`; the builder is not referenced by the running
transfer and can be discarded, or reused for another call, right away.

Terminal calls must be made from inside a running asyncio event loop.

See Also:
    :func:`~chainhttp.transport.create_manager` for sharing one transport
    between many concurrent requests.
"""

from __future__ import annotations

from typing import Optional, Union

import httpx

from chainhttp import executor
from chainhttp.decoder import DEFAULT_ENCODING
from chainhttp.executor import (
    ChunkHandler,
    ErrorHandler,
    FinishHandler,
    SuccessHandler,
    Transfer,
)
from chainhttp.models import HTTPMethod, RequestSpec, TransportConfig
from chainhttp.sinks import PathArg


class Client:
    """Builder for a single HTTP request.

    Configuration methods return the builder itself so calls can be chained.
    Nothing touches the network until a terminal call.

    Args:
        url: Scheme, host and path. Used as given; query parameters added
            with :meth:`param` are appended for GET, DELETE and uploads.

    Example::

        async def main() -> None:
            async with create_manager() as manager:
                transfer = (
                    Client("http://localhost:8080/rest")
                    .manager(manager)
                    .json('{"name": "Alice"}')
                    .put(on_success, on_error)
                )
                await transfer
    """

    def __init__(self, url: str) -> None:
        self._url = url
        self._params: list[tuple[str, str]] = []
        self._json: Optional[str] = None
        self._use_json = False
        self._headers: dict[str, tuple[str, str]] = {}
        self._manager: Optional[httpx.AsyncClient] = None
        self._config: Optional[TransportConfig] = None
        self._debug = False

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    def param(self, name: str, value: str) -> Client:
        """Append a form parameter. Repeated names are kept in order."""
        self._params.append((name, value))
        return self

    def json(self, text: str) -> Client:
        """Send *text* verbatim as a JSON body for POST and PUT.

        The text is not validated.
        """
        self._use_json = True
        self._json = text
        return self

    def header(self, name: str, value: str) -> Client:
        """Set a request header, replacing any earlier value for *name*.

        Names compare case-insensitively.
        """
        self._headers[name.lower()] = (name, value)
        return self

    def manager(self, manager: Optional[httpx.AsyncClient]) -> Client:
        """Use a caller-owned transport instead of a fresh one per call.

        chainhttp never closes *manager*; the caller does, once every
        transfer using it has finished.
        """
        self._manager = manager
        return self

    def config(self, config: Optional[TransportConfig]) -> Client:
        """Settings for transports built per call. Ignored with :meth:`manager`."""
        self._config = config
        return self

    def debug(self, debug: bool = True) -> Client:
        """Print the resolved URL and body to stderr before sending."""
        self._debug = debug
        return self

    def snapshot(self) -> RequestSpec:
        """Freeze the current state into a :class:`~chainhttp.models.RequestSpec`."""
        params = tuple(self._params)
        return RequestSpec(
            url=self._url,
            query_params=params,
            body_params=params,
            json_body=self._json,
            use_json=self._use_json,
            headers=tuple(self._headers.values()),
            debug=self._debug,
        )

    # ------------------------------------------------------------------ #
    # Terminal calls
    # ------------------------------------------------------------------ #

    def get(
        self,
        success_handler: Optional[SuccessHandler] = None,
        error_handler: Optional[ErrorHandler] = None,
        encoding: str = DEFAULT_ENCODING,
    ) -> Transfer:
        """Send a GET request; parameters go into the query string.

        Args:
            success_handler: Receives the decoded response body.
            error_handler: Receives a message on transport failure.
            encoding: Text encoding of the response body.

        Returns:
            The running :class:`~chainhttp.executor.Transfer`.
        """
        return self._execute(HTTPMethod.GET, success_handler, error_handler, encoding)

    def post(
        self,
        success_handler: Optional[SuccessHandler] = None,
        error_handler: Optional[ErrorHandler] = None,
        encoding: str = DEFAULT_ENCODING,
    ) -> Transfer:
        """Send a POST request with a form or JSON body."""
        return self._execute(HTTPMethod.POST, success_handler, error_handler, encoding)

    def put(
        self,
        success_handler: Optional[SuccessHandler] = None,
        error_handler: Optional[ErrorHandler] = None,
        encoding: str = DEFAULT_ENCODING,
    ) -> Transfer:
        """Send a PUT request with a form or JSON body."""
        return self._execute(HTTPMethod.PUT, success_handler, error_handler, encoding)

    def remove(
        self,
        success_handler: Optional[SuccessHandler] = None,
        error_handler: Optional[ErrorHandler] = None,
        encoding: str = DEFAULT_ENCODING,
    ) -> Transfer:
        """Send a DELETE request; parameters go into the query string."""
        return self._execute(HTTPMethod.DELETE, success_handler, error_handler, encoding)

    def download(
        self,
        sink: Union[PathArg, ChunkHandler],
        finish_handler: Optional[FinishHandler] = None,
        error_handler: Optional[ErrorHandler] = None,
    ) -> Transfer:
        """Stream the response of a GET into *sink*.

        Args:
            sink: A destination file path, or a callable receiving every
                chunk of bytes as it arrives.
            finish_handler: Called once when the stream ends without a
                transport error (after the file, if any, is closed).
            error_handler: Receives a message if the destination cannot be
                opened (immediately, nothing is sent) or the transfer fails.
        """
        return executor.download(
            self.snapshot(),
            sink,
            finish_handler,
            error_handler,
            manager=self._manager,
            config=self._config,
        )

    def upload(
        self,
        path: PathArg,
        success_handler: Optional[SuccessHandler] = None,
        error_handler: Optional[ErrorHandler] = None,
        encoding: str = DEFAULT_ENCODING,
    ) -> Transfer:
        """POST the file at *path* as a ``multipart/form-data`` part named ``file``.

        If the file cannot be opened, *error_handler* fires immediately and
        nothing is sent.
        """
        return executor.upload(
            self.snapshot(),
            path,
            success_handler,
            error_handler,
            encoding,
            manager=self._manager,
            config=self._config,
        )

    def _execute(
        self,
        method: HTTPMethod,
        success_handler: Optional[SuccessHandler],
        error_handler: Optional[ErrorHandler],
        encoding: str,
    ) -> Transfer:
        return executor.execute(
            self.snapshot(),
            method,
            success_handler,
            error_handler,
            encoding,
            manager=self._manager,
            config=self._config,
        )

    def __repr__(self) -> str:
        return f"Client({self._url!r})"
