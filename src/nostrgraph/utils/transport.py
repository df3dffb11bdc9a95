"""Relay WebSocket transport and connection ownership.

Provides [RelayConnection][nostrgraph.utils.transport.RelayConnection], a
thin aiohttp WebSocket wrapper exposing text send/receive and an explicit
lifecycle state, and
[RelayManager][nostrgraph.utils.transport.RelayManager], the single owner
of the live connection set.

Note:
    Connection state is held by a manager instance, never at module level.
    Each [EventFetcher][nostrgraph.services.fetcher.EventFetcher] owns one
    manager; subscriptions borrow its connections for one window at a time.

Examples:
    ```python
    async with RelayManager(connect_timeout=10.0) as manager:
        await manager.connect("wss://yabu.me")
        conn = manager.connections[0]
        await conn.send_text('["REQ", "ab12", {"limit": 1}]')
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import ssl
from typing import TYPE_CHECKING, Final

import aiohttp

from nostrgraph.core.exceptions import (
    ConnectivityError,
    RelayConnectionError,
    RelayTimeoutError,
    TransportError,
)
from nostrgraph.models.constants import ConnectionState
from nostrgraph.models.relay import RelayUrl


if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable
    from types import TracebackType


DEFAULT_CONNECT_TIMEOUT: Final[float] = 10.0
DEFAULT_CLOSE_TIMEOUT: Final[float] = 5.0


logger = logging.getLogger(__name__)


class RelayConnection:
    """One WebSocket connection to one relay.

    Owns its ``aiohttp.ClientSession``. Created by
    [open_connection()][nostrgraph.utils.transport.open_connection] in the
    ``OPEN`` state; moves to ``CLOSED`` on local close, relay close, or
    transport error.
    """

    __slots__ = ("_close_timeout", "_session", "_state", "_ws", "url")

    def __init__(
        self,
        url: str,
        ws: aiohttp.ClientWebSocketResponse,
        session: aiohttp.ClientSession,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ) -> None:
        self.url = url
        self._ws = ws
        self._session = session
        self._close_timeout = close_timeout
        self._state = ConnectionState.OPEN

    def __repr__(self) -> str:
        return f"RelayConnection(url={self.url!r}, state={self.state.value!r})"

    @property
    def state(self) -> ConnectionState:
        """Current state; reports ``CLOSED`` as soon as the socket is closed."""
        if self._state is ConnectionState.OPEN and self._ws.closed:
            self._state = ConnectionState.CLOSED
        return self._state

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    async def send_text(self, data: str) -> None:
        """Send one text frame.

        Raises:
            TransportError: If the socket is closed or the write fails.
        """
        if not self.is_open:
            raise TransportError(f"Relay not connected: {self.url}")
        try:
            await self._ws.send_str(data)
        except (aiohttp.ClientError, OSError, RuntimeError) as e:
            self._state = ConnectionState.CLOSED
            raise TransportError(f"Send failed to {self.url}: {e}") from e

    async def receive_text(self) -> str:
        """Wait for the next text frame.

        Control frames are handled by aiohttp (autoping) and never returned.

        Raises:
            TransportError: On a binary frame, a close frame, or a socket
                error. The connection is marked ``CLOSED`` for the last two.
        """
        msg = await self._ws.receive()

        if msg.type == aiohttp.WSMsgType.TEXT:
            return msg.data
        if msg.type == aiohttp.WSMsgType.BINARY:
            raise TransportError(f"Unexpected binary frame from {self.url}")

        # CLOSE, CLOSING, CLOSED, ERROR -> connection terminated
        self._state = ConnectionState.CLOSED
        if msg.type == aiohttp.WSMsgType.ERROR:
            raise TransportError(f"Connection error from {self.url}: {self._ws.exception()}")
        raise TransportError(f"Connection closed by {self.url}")

    async def close(self) -> None:
        """Close the socket and session with timeouts. Idempotent."""
        self._state = ConnectionState.CLOSED
        # aiohttp can raise ClientError, ServerDisconnectedError, etc. during
        # close; teardown must always reach the session.
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._ws.close(), timeout=self._close_timeout)
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._session.close(), timeout=self._close_timeout)


async def open_connection(
    url: str,
    *,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
) -> RelayConnection:
    """Open a WebSocket connection to *url*.

    Args:
        url: Normalized ``ws://`` or ``wss://`` relay URL.
        connect_timeout: Maximum seconds for the handshake.
        close_timeout: Stored on the connection for later teardown.

    Returns:
        An open [RelayConnection][nostrgraph.utils.transport.RelayConnection].

    Raises:
        RelayTimeoutError: If the handshake neither completes nor fails in time.
        RelayConnectionError: On DNS, TCP, TLS, or HTTP upgrade failure.
    """
    session = aiohttp.ClientSession()
    try:
        async with asyncio.timeout(connect_timeout):
            ws = await session.ws_connect(url)
    except TimeoutError:
        await session.close()
        logger.debug("ws_connect_timeout url=%s timeout_s=%s", url, connect_timeout)
        raise RelayTimeoutError(f"Connection timeout to {url}") from None
    except asyncio.CancelledError:
        await session.close()
        raise
    except (aiohttp.ClientError, ssl.SSLError, OSError) as e:
        await session.close()
        logger.debug("ws_connect_failed url=%s error=%s", url, str(e))
        raise RelayConnectionError(f"Failed to connect to {url}: {e}") from e

    return RelayConnection(url, ws, session, close_timeout=close_timeout)


class RelayManager:
    """Exclusive owner of the live relay connection set.

    ``connect()`` keeps a single relay; ``connect_many()`` keeps one
    connection per relay for fan-out. Either call reuses the current set
    when it already matches and every member is open, and otherwise closes
    everything before opening the new set.

    Note:
        Two locks are held: ``_state_lock`` serializes connect/close, and
        the reservation lock from
        [reserve()][nostrgraph.utils.transport.RelayManager.reserve] lets a
        whole fetch claim the connections so concurrent fetches sharing a
        manager run one after the other.
    """

    def __init__(
        self,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._close_timeout = close_timeout
        self._connections: list[RelayConnection] = []
        self._state_lock = asyncio.Lock()
        self._reservation = asyncio.Lock()

    @property
    def connections(self) -> tuple[RelayConnection, ...]:
        """Snapshot of the current connection set."""
        return tuple(self._connections)

    @property
    def urls(self) -> tuple[str, ...]:
        return tuple(conn.url for conn in self._connections)

    async def __aenter__(self) -> RelayManager:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @contextlib.asynccontextmanager
    async def reserve(self) -> AsyncIterator[RelayManager]:
        """Hold the connection set for the duration of one fetch."""
        async with self._reservation:
            yield self

    async def connect(self, url: str) -> None:
        """Ensure exactly one open connection, to *url*.

        Raises:
            RelayTimeoutError: If the handshake times out.
            RelayConnectionError: If the URL is invalid or the connect fails.
        """
        await self.connect_many([url])

    async def connect_many(self, urls: Iterable[str]) -> None:
        """Ensure one open connection per relay in *urls* (fan-out).

        Relays are connected concurrently. Relays that fail are logged and
        skipped as long as at least one connects.

        Raises:
            RelayConnectionError: If *urls* is empty or contains an invalid URL.
            ConnectivityError: The first failure, if no relay could be connected.
        """
        targets = _normalize_urls(urls)

        async with self._state_lock:
            if self.urls == targets and all(conn.is_open for conn in self._connections):
                logger.debug("connection_reused urls=%s", ",".join(targets))
                return

            await self._close_all()

            results = await asyncio.gather(
                *(
                    open_connection(
                        url,
                        connect_timeout=self._connect_timeout,
                        close_timeout=self._close_timeout,
                    )
                    for url in targets
                ),
                return_exceptions=True,
            )

            errors: list[ConnectivityError] = []
            for url, result in zip(targets, results, strict=True):
                if isinstance(result, ConnectivityError):
                    logger.warning("relay_connect_failed url=%s error=%s", url, result)
                    errors.append(result)
                elif isinstance(result, BaseException):
                    await self._discard(results)
                    raise result
                else:
                    logger.info("relay_connected url=%s", url)
                    self._connections.append(result)

            if not self._connections:
                raise errors[0]

    async def close(self) -> None:
        """Close every connection. Idempotent."""
        async with self._state_lock:
            await self._close_all()

    async def _close_all(self) -> None:
        connections, self._connections = self._connections, []
        for conn in connections:
            await conn.close()
            logger.debug("relay_disconnected url=%s", conn.url)

    async def _discard(self, results: list[RelayConnection | BaseException]) -> None:
        for result in results:
            if isinstance(result, RelayConnection):
                await result.close()
        self._connections = []


def _normalize_urls(urls: Iterable[str]) -> tuple[str, ...]:
    normalized: dict[str, None] = {}
    for raw in urls:
        try:
            normalized.setdefault(RelayUrl(raw).url, None)
        except (TypeError, ValueError) as e:
            raise RelayConnectionError(f"Invalid relay URL {raw!r}: {e}") from e
    if not normalized:
        raise RelayConnectionError("No relay URL given")
    return tuple(normalized)
