"""Transport ownership: who opens and who closes the ``httpx.AsyncClient``.

A transfer either borrows a caller-supplied client (``EXTERNAL``) or gets a
fresh client built just for it (``INTERNAL``). The :class:`TransportHandle`
carries that tag alongside the client so teardown can branch on it:
internal clients are closed exactly once when the transfer finishes, while
external clients are never closed by chainhttp no matter how many transfers
share them.

Sharing one external client is the supported way to issue thousands of
concurrent requests: every transfer draws from the same connection pool
instead of opening a pool of its own.

Example::

    async with create_manager() as manager:
        for i in range(5000):
            Client(url).manager(manager).get(print)
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from chainhttp.models import Ownership, TransportConfig

logger = logging.getLogger(__name__)


def build_client(
    config: TransportConfig, limits: Optional[httpx.Limits] = None
) -> httpx.AsyncClient:
    """Construct an ``httpx.AsyncClient`` from *config*."""
    kwargs: dict = {
        "timeout": config.timeout,
        "verify": config.verify_ssl,
        "follow_redirects": config.follow_redirects,
    }
    if limits is not None:
        kwargs["limits"] = limits
    return httpx.AsyncClient(**kwargs)


def create_manager(config: Optional[TransportConfig] = None) -> httpx.AsyncClient:
    """Build a client meant to be shared by many concurrent transfers.

    The caller owns the returned client and must close it (``aclose()`` or
    ``async with``) once no transfer uses it any more.
    """
    config = config or TransportConfig()
    limits = httpx.Limits(
        max_connections=config.max_connections,
        max_keepalive_connections=config.max_keepalive_connections,
    )
    return build_client(config, limits)


class TransportHandle:
    """An ``httpx.AsyncClient`` plus the tag saying who must close it.

    Args:
        client: The client performing network I/O.
        ownership: ``INTERNAL`` if this handle must close *client* on
            release, ``EXTERNAL`` if the caller keeps that duty.
    """

    def __init__(self, client: httpx.AsyncClient, ownership: Ownership) -> None:
        self.client = client
        self.ownership = ownership
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    async def release(self) -> None:
        """Give the transport back. Safe to call more than once.

        Internal clients are closed on the first call; external clients are
        left untouched.
        """
        if self._released:
            return
        self._released = True
        if self.ownership is Ownership.INTERNAL:
            await self.client.aclose()
            logger.debug("Closed internal transport %#x", id(self.client))

    def __repr__(self) -> str:
        return f"TransportHandle(ownership={self.ownership.value}, released={self._released})"


def acquire(
    external: Optional[httpx.AsyncClient],
    config: Optional[TransportConfig] = None,
) -> TransportHandle:
    """Return a handle for one transfer.

    Args:
        external: A caller-owned client, or ``None`` to build an internal one.
        config: Settings for the internal client. Ignored for external ones,
            whose settings are the caller's business.
    """
    if external is not None:
        return TransportHandle(external, Ownership.EXTERNAL)

    client = build_client(config or TransportConfig())
    logger.debug("Created internal transport %#x", id(client))
    return TransportHandle(client, Ownership.INTERNAL)
