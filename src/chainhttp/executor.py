"""Request execution: turning a :class:`~chainhttp.models.RequestSpec` into a transfer.

This module does the actual work behind every terminal call of
:class:`~chainhttp.client.Client`:

- **Request resolution** -- :func:`build_request` composes the final URL,
  the body (JSON text or form-encoded parameters) and the headers, with
  caller headers overriding the method's defaults.
- **Dispatch** -- :func:`execute`, :func:`download` and :func:`upload`
  acquire a transport, schedule a task on the running event loop and
  return a :class:`Transfer` immediately.
- **Completion** -- each task releases every resource it owns (internal
  transport, response stream, open files) and only then fires exactly one
  terminal handler.

Tasks close over the frozen request snapshot and the caller's handlers,
never over the builder, so a builder may be thrown away the moment a
terminal call returns. Live tasks are kept in a registry until they finish
so that dropping the returned :class:`Transfer` cannot get them collected.

Only transport errors (``httpx.HTTPError``), requests httpx refuses to
build and local file errors reach the error handler. Header values are
sent as UTF-8. An exception raised by a chunk handler marks the transfer
FAILED and propagates out of the task, like one raised by a terminal
handler. HTTP status codes are not interpreted and nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Generator, Optional, Union
from urllib.parse import quote, urlencode

import httpx

from chainhttp.decoder import read_reply, resolve_encoding
from chainhttp.exceptions import ChainHttpError, LocalFileError, describe_error
from chainhttp.models import (
    HTTPMethod,
    PreparedRequest,
    RequestSpec,
    TransferState,
    TransportConfig,
)
from chainhttp.output import info
from chainhttp.sinks import FileSink, PathArg, UploadBody
from chainhttp.transport import TransportHandle, acquire

logger = logging.getLogger(__name__)

SuccessHandler = Callable[[str], Any]
ErrorHandler = Callable[[str], Any]
FinishHandler = Callable[[], Any]
ChunkHandler = Callable[[bytes], Any]

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"
JSON_ACCEPT = "application/json; charset=utf-8"

_live_tasks: set[asyncio.Task] = set()


def active_transfers() -> int:
    """Number of transfers whose task has not finished yet."""
    return len(_live_tasks)


# ------------------------------------------------------------------ #
# Request resolution
# ------------------------------------------------------------------ #


def encode_form(pairs: tuple[tuple[str, str], ...]) -> str:
    """Percent-encode *pairs* in order; spaces become ``%20``."""
    return urlencode(pairs, quote_via=quote)


def _append_query(url: str, query: str) -> str:
    if not query:
        return url
    if url.endswith(("?", "&")):
        return url + query
    return f"{url}{'&' if '?' in url else '?'}{query}"


def build_request(
    spec: RequestSpec,
    method: HTTPMethod,
    multipart: bool = False,
) -> PreparedRequest:
    """Resolve the URL, headers and body for *spec* sent as *method*.

    GET and DELETE (and multipart uploads, whose body is the file) carry the
    parameters in the query string. POST and PUT send either the JSON text
    verbatim or the form-encoded parameters, with matching default
    ``Content-Type``/``Accept`` headers that caller headers override.
    """
    url = spec.url
    body: Optional[bytes] = None
    defaults: list[tuple[str, str]] = []

    if method.has_body and not multipart:
        if spec.use_json:
            body = (spec.json_body or "").encode("utf-8")
            defaults.append(("Content-Type", JSON_CONTENT_TYPE))
            defaults.append(("Accept", JSON_ACCEPT))
        else:
            body = encode_form(spec.body_params).encode("ascii")
            defaults.append(("Content-Type", FORM_CONTENT_TYPE))
    else:
        url = _append_query(url, encode_form(spec.query_params))

    merged: dict[str, tuple[str, str]] = {}
    for name, value in [*defaults, *spec.headers]:
        merged[name.lower()] = (name, value)

    return PreparedRequest(
        method=method,
        url=url,
        headers=tuple(merged.values()),
        body=body,
    )


def _dump_request(spec: RequestSpec, prepared: PreparedRequest) -> None:
    info(f"URL: {prepared.method.value} {prepared.url}")
    if prepared.method.has_body and prepared.body is not None:
        label = "JSON" if spec.use_json else "Params"
        info(f"{label}: {prepared.body.decode('utf-8', errors='replace')}")


# ------------------------------------------------------------------ #
# Transfer
# ------------------------------------------------------------------ #


class Transfer:
    """One in-flight operation and the resources it owns.

    Returned by every terminal call. Holding on to it is optional; awaiting
    it waits until the terminal handler has run (and re-raises anything a
    handler raised).

    Attributes:
        request: The resolved request.
        transport: The transport handle, or ``None`` when no network call
            was made.
        state: Current :class:`~chainhttp.models.TransferState`.
    """

    def __init__(
        self,
        request: PreparedRequest,
        transport: Optional[TransportHandle] = None,
    ) -> None:
        self.request = request
        self.transport = transport
        self.state = TransferState.PENDING
        self.error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def rejected(
        cls,
        request: PreparedRequest,
        exc: ChainHttpError,
        on_error: Optional[ErrorHandler],
    ) -> Transfer:
        """A transfer that failed before dispatch; *on_error* fires now."""
        transfer = cls(request)
        transfer._fail(str(exc), on_error)
        return transfer

    def done(self) -> bool:
        """Whether the terminal handler has run (or the task ended otherwise)."""
        if self._task is None:
            return self.state.finished
        return self._task.done()

    def __await__(self) -> Generator[Any, None, None]:
        if self._task is None:
            return _finished().__await__()
        return self._task.__await__()

    def __repr__(self) -> str:
        return f"<Transfer {self.request.method.value} {self.request.url} state={self.state.value}>"

    def _start(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        _live_tasks.add(task)
        task.add_done_callback(_live_tasks.discard)
        self._task = task

    def _complete(self, handler: Optional[Callable[..., Any]], *args: Any) -> None:
        self.state = TransferState.COMPLETED
        logger.debug("Transfer completed: %r", self)
        if handler is not None:
            handler(*args)

    def _fail(self, message: str, on_error: Optional[ErrorHandler]) -> None:
        self.state = TransferState.FAILED
        self.error = message
        logger.debug("Transfer failed: %r (%s)", self, message)
        if on_error is not None:
            on_error(message)


async def _finished() -> None:
    return None


# ------------------------------------------------------------------ #
# Task bodies
# ------------------------------------------------------------------ #


def _wire_headers(prepared: PreparedRequest) -> list[tuple[bytes, bytes]]:
    """Header pairs as raw bytes; non-ASCII values go out as UTF-8."""
    return [(name.encode("utf-8"), value.encode("utf-8")) for name, value in prepared.headers]


async def _run_query(
    transfer: Transfer,
    transport: TransportHandle,
    on_success: Optional[SuccessHandler],
    on_error: Optional[ErrorHandler],
    encoding: str,
    upload: Optional[UploadBody] = None,
) -> None:
    prepared = transfer.request
    client = transport.client
    text: Optional[str] = None
    message: Optional[str] = None

    try:
        try:
            if upload is not None:
                request = client.build_request(
                    prepared.method.value,
                    prepared.url,
                    headers=_wire_headers(prepared),
                    files=upload.files,
                )
            else:
                request = client.build_request(
                    prepared.method.value,
                    prepared.url,
                    headers=_wire_headers(prepared),
                    content=prepared.body,
                )
            response = await client.send(request)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            message = describe_error(exc)
        else:
            logger.debug("%s %s -> %d", prepared.method.value, prepared.url, response.status_code)
            text = read_reply(response.content, encoding)
    except BaseException:
        transfer.state = TransferState.FAILED
        raise
    finally:
        if upload is not None:
            upload.close()
        await transport.release()

    if message is not None:
        transfer._fail(message, on_error)
    else:
        transfer._complete(on_success, text)


async def _run_download(
    transfer: Transfer,
    transport: TransportHandle,
    on_chunk: ChunkHandler,
    on_finish: Optional[FinishHandler],
    on_error: Optional[ErrorHandler],
    sink: Optional[FileSink] = None,
    debug: bool = False,
) -> None:
    prepared = transfer.request
    client = transport.client
    message: Optional[str] = None

    try:
        try:
            request = client.build_request(
                prepared.method.value,
                prepared.url,
                headers=_wire_headers(prepared),
            )
            response = await client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            message = describe_error(exc)
        else:
            logger.debug("%s %s -> %d", prepared.method.value, prepared.url, response.status_code)
            try:
                async for chunk in response.aiter_bytes():
                    transfer.state = TransferState.STREAMING
                    on_chunk(chunk)
            except LocalFileError as exc:
                message = str(exc)
            except httpx.HTTPError as exc:
                message = describe_error(exc)
            finally:
                await response.aclose()
    except BaseException:
        transfer.state = TransferState.FAILED
        raise
    finally:
        if sink is not None:
            sink.close()
        await transport.release()

    if message is not None:
        transfer._fail(message, on_error)
        return
    if sink is not None and debug:
        info(f"Download finished, saved to: {sink.path}")
    transfer._complete(on_finish)


# ------------------------------------------------------------------ #
# Dispatch
# ------------------------------------------------------------------ #


def execute(
    spec: RequestSpec,
    method: HTTPMethod,
    on_success: Optional[SuccessHandler] = None,
    on_error: Optional[ErrorHandler] = None,
    encoding: str = "UTF-8",
    manager: Optional[httpx.AsyncClient] = None,
    config: Optional[TransportConfig] = None,
) -> Transfer:
    """Dispatch *spec* as *method* and return without waiting.

    On completion ``on_success`` receives the decoded body; on a transport
    error ``on_error`` receives a message. An unknown *encoding* is reported
    through ``on_error`` right away and no request is sent.

    Raises:
        RuntimeError: If no event loop is running.
    """
    asyncio.get_running_loop()
    prepared = build_request(spec, method)
    try:
        codec = resolve_encoding(encoding)
    except ChainHttpError as exc:
        return Transfer.rejected(prepared, exc, on_error)

    if spec.debug:
        _dump_request(spec, prepared)

    transport = acquire(manager, config)
    transfer = Transfer(prepared, transport)
    transfer._start(_run_query(transfer, transport, on_success, on_error, codec))
    return transfer


def download(
    spec: RequestSpec,
    sink: Union[PathArg, ChunkHandler],
    on_finish: Optional[FinishHandler] = None,
    on_error: Optional[ErrorHandler] = None,
    manager: Optional[httpx.AsyncClient] = None,
    config: Optional[TransportConfig] = None,
) -> Transfer:
    """Stream a GET of *spec* into *sink*.

    *sink* is either a callable receiving each chunk as it arrives, or a
    destination path. A path is opened before anything is sent; if that
    fails ``on_error`` fires immediately. The file is flushed and closed
    before ``on_finish`` or ``on_error`` runs.

    Raises:
        RuntimeError: If no event loop is running.
    """
    asyncio.get_running_loop()
    prepared = build_request(spec, HTTPMethod.GET)

    file_sink: Optional[FileSink] = None
    if callable(sink):
        on_chunk = sink
    else:
        file_sink = FileSink(sink)
        try:
            file_sink.open()
        except LocalFileError as exc:
            if spec.debug:
                info(str(exc))
            return Transfer.rejected(prepared, exc, on_error)
        on_chunk = file_sink.write

    if spec.debug:
        _dump_request(spec, prepared)

    try:
        transport = acquire(manager, config)
    except Exception:
        if file_sink is not None:
            file_sink.close()
        raise

    transfer = Transfer(prepared, transport)
    transfer._start(
        _run_download(transfer, transport, on_chunk, on_finish, on_error, file_sink, spec.debug)
    )
    return transfer


def upload(
    spec: RequestSpec,
    path: PathArg,
    on_success: Optional[SuccessHandler] = None,
    on_error: Optional[ErrorHandler] = None,
    encoding: str = "UTF-8",
    manager: Optional[httpx.AsyncClient] = None,
    config: Optional[TransportConfig] = None,
) -> Transfer:
    """POST the file at *path* as a multipart part named ``file``.

    The file is opened read-only before anything is sent; if that fails
    ``on_error`` fires immediately and no request is made. The handle is
    closed once the transfer finishes.

    Raises:
        RuntimeError: If no event loop is running.
    """
    asyncio.get_running_loop()
    prepared = build_request(spec, HTTPMethod.POST, multipart=True)
    body = UploadBody(path)
    try:
        codec = resolve_encoding(encoding)
        body.open()
    except ChainHttpError as exc:
        return Transfer.rejected(prepared, exc, on_error)

    if spec.debug:
        _dump_request(spec, prepared)
        info(f"File: {body.path}")

    try:
        transport = acquire(manager, config)
    except Exception:
        body.close()
        raise

    transfer = Transfer(prepared, transport)
    transfer._start(_run_query(transfer, transport, on_success, on_error, codec, upload=body))
    return transfer
