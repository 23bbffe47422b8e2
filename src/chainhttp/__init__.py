"""chainhttp -- fluent asynchronous HTTP requests with callback delivery.

Build a request with chained calls and fire it; the result arrives later
through the handlers you pass, even if the builder is long gone::

    Client("http://localhost:8080/rest").param("name", "Alice").get(print)

Requests run as asyncio tasks on ``httpx.AsyncClient`` transports. Each
call either gets a transport of its own, closed when it finishes, or shares
one the caller supplied with :meth:`Client.manager`.

Modules:
    client: The fluent :class:`Client` builder.
    executor: Request resolution, dispatch and the :class:`Transfer` handle.
    transport: Internal and external transport ownership.
    decoder: Response body decoding.
    sinks: Download files and multipart upload bodies.
    models: Pydantic models for request snapshots and configuration.
    config: Configuration file and environment resolution.
    output: stdout/stderr output and the debug channel.
    app: The ``chainhttp`` command-line tool.
"""

__version__ = "0.1.0"

from chainhttp.client import Client
from chainhttp.executor import Transfer, active_transfers
from chainhttp.models import RequestSpec, TransferState, TransportConfig
from chainhttp.transport import create_manager

__all__ = [
    "Client",
    "RequestSpec",
    "Transfer",
    "TransferState",
    "TransportConfig",
    "active_transfers",
    "create_manager",
]
