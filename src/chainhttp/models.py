"""Canonical Pydantic models shared across all chainhttp modules.

The models fall into two groups:

**Request models** -- immutable snapshots produced at dispatch time:
    :class:`HTTPMethod`, :class:`RequestSpec`, :class:`PreparedRequest`,
    plus the lifecycle enums :class:`TransferState` and :class:`Ownership`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`TransportConfig`, :class:`OutputConfig`, and :class:`GlobalConfig`.

Request models are frozen: once a terminal call has taken its snapshot,
nothing the caller does to the builder can reach the in-flight transfer.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Request models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods a terminal call can dispatch."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @property
    def has_body(self) -> bool:
        """Whether the method sends the parameters as a request body."""
        return self in (HTTPMethod.POST, HTTPMethod.PUT)


class TransferState(str, enum.Enum):
    """Lifecycle of a :class:`~chainhttp.executor.Transfer`.

    ``PENDING`` -> (``STREAMING``) -> ``COMPLETED`` | ``FAILED``.
    """

    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def finished(self) -> bool:
        return self in (TransferState.COMPLETED, TransferState.FAILED)


class Ownership(str, enum.Enum):
    """Who is responsible for closing a transport."""

    INTERNAL = "internal"
    EXTERNAL = "external"


class RequestSpec(BaseModel):
    """Immutable description of a single HTTP call.

    Built by :meth:`~chainhttp.client.Client.snapshot` once per terminal
    call. ``query_params`` and ``body_params`` hold the same ordered pairs
    collected by :meth:`~chainhttp.client.Client.param`; which of the two is
    used depends on the method.

    Example::

        RequestSpec(
            url="http://localhost:8080/rest",
            query_params=(("name", "Alice"),),
            body_params=(("name", "Alice"),),
            headers=(("token", "md5sum"),),
        )
    """

    model_config = ConfigDict(frozen=True)

    url: str
    query_params: tuple[tuple[str, str], ...] = ()
    body_params: tuple[tuple[str, str], ...] = ()
    json_body: Optional[str] = None
    use_json: bool = False
    headers: tuple[tuple[str, str], ...] = ()
    debug: bool = False

    @model_validator(mode="before")
    @classmethod
    def _json_body_implies_use_json(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("json_body") is not None:
            data = {**data, "use_json": True}
        return data


class PreparedRequest(BaseModel):
    """Fully resolved request: the exact URL, headers and body to send."""

    model_config = ConfigDict(frozen=True)

    method: HTTPMethod
    url: str
    headers: tuple[tuple[str, str], ...] = ()
    body: Optional[bytes] = None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


# --- Configuration models ---


class TransportConfig(BaseModel):
    """Settings handed unchanged to every :class:`httpx.AsyncClient` chainhttp builds.

    Timeouts, TLS and redirects are transport concerns; chainhttp itself
    imposes none of its own.
    """

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")
    max_connections: int = Field(
        default=100, description="Connection pool size of shared transports"
    )
    max_keepalive_connections: int = Field(
        default=20, description="Idle keep-alive connections kept by shared transports"
    )


class OutputConfig(BaseModel):
    """Diagnostic output preferences stored in :class:`GlobalConfig`."""

    verbose: bool = Field(default=False, description="Show debug messages on stderr")
    no_color: bool = Field(default=False, description="Disable Rich colour output")


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/chainhttp/config.json``.

    Loaded and saved by :func:`~chainhttp.config.load_global_config` and
    :func:`~chainhttp.config.save_global_config`. See
    :func:`~chainhttp.config.resolve_config` for the precedence chain.
    """

    default_encoding: str = Field(
        default="UTF-8", description="Text encoding used to decode response bodies"
    )
    transport: TransportConfig = Field(default_factory=TransportConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
