"""Request commands -- one HTTP call per invocation.

``get``, ``post``, ``put`` and ``delete`` print the decoded response body
to stdout; ``download`` streams a response into a file; ``upload`` sends a
file as ``multipart/form-data`` and prints the response.

Example::

    chainhttp get http://localhost:8080/rest -d name=Alice -H "token: md5sum"
    chainhttp put http://localhost:8080/rest --json '{"name": "Alice"}'
    chainhttp download http://example.com/img/dog.png dog.png
    chainhttp upload http://localhost:8080/upload photo.jpg
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from chainhttp.commands._runner import (
    build_client,
    exit_with,
    get_config,
    run_transfer,
)
from chainhttp.decoder import resolve_encoding
from chainhttp.exceptions import ChainHttpError
from chainhttp.models import HTTPMethod
from chainhttp.output import format_response, success

_PARAM_HELP = "Form parameter NAME=VALUE (repeatable)."
_HEADER_HELP = "Request header 'NAME: VALUE' (repeatable)."
_JSON_HELP = "Raw JSON body for POST/PUT (sent verbatim)."
_ENCODING_HELP = "Response text encoding (default from config)."
_DEBUG_HELP = "Print the resolved URL and body to stderr before sending."


def _send(
    ctx: typer.Context,
    method: HTTPMethod,
    url: str,
    params: Optional[list[str]],
    headers: Optional[list[str]],
    json_text: Optional[str],
    encoding: Optional[str],
    debug: bool,
) -> None:
    config = get_config(ctx)
    try:
        codec = resolve_encoding(encoding or config.default_encoding)
        client = build_client(url, params, headers, json_text, debug, config)
        dispatch = {
            HTTPMethod.GET: client.get,
            HTTPMethod.POST: client.post,
            HTTPMethod.PUT: client.put,
            HTTPMethod.DELETE: client.remove,
        }[method]
        body: list[str] = []
        run_transfer(lambda: dispatch(body.append, None, codec))
    except ChainHttpError as exc:
        raise exit_with(exc) from None
    format_response(body[0] if body else "")


def get_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Request URL."),
    param: Optional[list[str]] = typer.Option(None, "--data", "-d", help=_PARAM_HELP),
    header: Optional[list[str]] = typer.Option(None, "--header", "-H", help=_HEADER_HELP),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help=_ENCODING_HELP),
    debug: bool = typer.Option(False, "--debug", help=_DEBUG_HELP),
) -> None:
    """Send a GET request and print the response body."""
    _send(ctx, HTTPMethod.GET, url, param, header, None, encoding, debug)


def post_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Request URL."),
    param: Optional[list[str]] = typer.Option(None, "--data", "-d", help=_PARAM_HELP),
    header: Optional[list[str]] = typer.Option(None, "--header", "-H", help=_HEADER_HELP),
    json_text: Optional[str] = typer.Option(None, "--json", "-j", help=_JSON_HELP),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help=_ENCODING_HELP),
    debug: bool = typer.Option(False, "--debug", help=_DEBUG_HELP),
) -> None:
    """Send a POST request and print the response body."""
    _send(ctx, HTTPMethod.POST, url, param, header, json_text, encoding, debug)


def put_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Request URL."),
    param: Optional[list[str]] = typer.Option(None, "--data", "-d", help=_PARAM_HELP),
    header: Optional[list[str]] = typer.Option(None, "--header", "-H", help=_HEADER_HELP),
    json_text: Optional[str] = typer.Option(None, "--json", "-j", help=_JSON_HELP),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help=_ENCODING_HELP),
    debug: bool = typer.Option(False, "--debug", help=_DEBUG_HELP),
) -> None:
    """Send a PUT request and print the response body."""
    _send(ctx, HTTPMethod.PUT, url, param, header, json_text, encoding, debug)


def delete_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Request URL."),
    param: Optional[list[str]] = typer.Option(None, "--data", "-d", help=_PARAM_HELP),
    header: Optional[list[str]] = typer.Option(None, "--header", "-H", help=_HEADER_HELP),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help=_ENCODING_HELP),
    debug: bool = typer.Option(False, "--debug", help=_DEBUG_HELP),
) -> None:
    """Send a DELETE request and print the response body."""
    _send(ctx, HTTPMethod.DELETE, url, param, header, None, encoding, debug)


def download_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL to download."),
    destination: Path = typer.Argument(help="File to write the response body to."),
    param: Optional[list[str]] = typer.Option(None, "--data", "-d", help=_PARAM_HELP),
    header: Optional[list[str]] = typer.Option(None, "--header", "-H", help=_HEADER_HELP),
    debug: bool = typer.Option(False, "--debug", help=_DEBUG_HELP),
) -> None:
    """Stream a GET response into DESTINATION."""
    config = get_config(ctx)
    try:
        client = build_client(url, param, header, None, debug, config)
        run_transfer(lambda: client.download(destination))
    except ChainHttpError as exc:
        raise exit_with(exc) from None
    size = destination.stat().st_size
    success(f"Saved {size} bytes to {destination}")


def upload_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Upload endpoint."),
    file: Path = typer.Argument(help="File to send as the multipart part 'file'."),
    param: Optional[list[str]] = typer.Option(None, "--data", "-d", help=_PARAM_HELP),
    header: Optional[list[str]] = typer.Option(None, "--header", "-H", help=_HEADER_HELP),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help=_ENCODING_HELP),
    debug: bool = typer.Option(False, "--debug", help=_DEBUG_HELP),
) -> None:
    """Upload FILE with a multipart POST and print the response body."""
    config = get_config(ctx)
    try:
        codec = resolve_encoding(encoding or config.default_encoding)
        client = build_client(url, param, header, None, debug, config)
        body: list[str] = []
        run_transfer(lambda: client.upload(file, body.append, None, codec))
    except ChainHttpError as exc:
        raise exit_with(exc) from None
    format_response(body[0] if body else "")
