"""NIP-01 subscription protocol: wire codec and per-window subscriber.

Frames exchanged with a relay are JSON arrays whose first element is the
message label:

```text
client -> relay   ["REQ", <sub_id>, <filter>]      ["CLOSE", <sub_id>]
relay -> client   ["EVENT", <sub_id>, <event>]     ["EOSE", <sub_id>]
                  ["CLOSED", <sub_id>, <message>]  ["NOTICE", <message>]
```

[fetch_window()][nostrgraph.utils.protocol.fetch_window] runs one
subscription to completion on one connection.
[fetch_window_many()][nostrgraph.utils.protocol.fetch_window_many] runs
the same filter on several connections concurrently and merges the
results by event id.

Note:
    A subscription resolves exactly once: on ``EOSE``, on ``CLOSED``, or
    when the relay stays silent for ``silence_timeout`` seconds. The
    silence deadline is pushed back by every matching ``EVENT``, so it
    measures inactivity rather than total duration. ``CLOSE`` is sent on
    every exit path, including failures and cancellation.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final, NamedTuple

from nostrgraph.core.exceptions import NoConnectionError, NotOpenError, TransportError, WindowError
from nostrgraph.models.constants import ConnectionState, MessageType
from nostrgraph.models.event import EventRecord


if TYPE_CHECKING:
    from collections.abc import Sequence

    from nostrgraph.models.filter import EventFilter
    from nostrgraph.utils.transport import RelayConnection


DEFAULT_SILENCE_TIMEOUT: Final[float] = 10.0

logger = logging.getLogger(__name__)


# =============================================================================
# Wire Codec
# =============================================================================


class RelayMessage(NamedTuple):
    """Decoded relay-to-client frame.

    Attributes:
        type: Message label.
        subscription_id: Subscription the frame belongs to (``None`` for
            ``NOTICE``).
        payload: Raw event dict for ``EVENT``; human-readable text for
            ``NOTICE`` and ``CLOSED``; ``None`` for ``EOSE``.
    """

    type: MessageType
    subscription_id: str | None
    payload: Any = None


def generate_subscription_id() -> str:
    """Return a short random subscription id (8 hex chars).

    Collisions between concurrent subscriptions on one connection are
    possible but improbable and are not checked.
    """
    return secrets.token_hex(4)


def encode_req(subscription_id: str, event_filter: EventFilter) -> str:
    """Encode ``["REQ", subscription_id, filter]``."""
    return json.dumps([MessageType.REQ.value, subscription_id, event_filter.to_dict()])


def encode_close(subscription_id: str) -> str:
    """Encode ``["CLOSE", subscription_id]``."""
    return json.dumps([MessageType.CLOSE.value, subscription_id])


def parse_message(raw: str) -> RelayMessage | None:
    """Decode one relay frame.

    Returns:
        The decoded message, or ``None`` for well-formed frames with a label
        this client does not handle (``OK``, ``AUTH``, ``COUNT``, ...).

    Raises:
        TransportError: If the frame is not JSON, not a non-empty array with
            a string label, or a known label has the wrong arity or types.
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise TransportError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(data, list) or not data or not isinstance(data[0], str):
        raise TransportError(f"Frame is not a labelled array: {raw[:200]!r}")

    label = data[0]

    if label == MessageType.NOTICE:
        return RelayMessage(MessageType.NOTICE, None, str(data[1]) if len(data) > 1 else "")

    if label not in (MessageType.EVENT, MessageType.EOSE, MessageType.CLOSED):
        return None

    if len(data) < 2 or not isinstance(data[1], str):
        raise TransportError(f"{label} frame has no subscription id")

    if label == MessageType.EVENT:
        if len(data) < 3 or not isinstance(data[2], dict):
            raise TransportError("EVENT frame has no event object")
        return RelayMessage(MessageType.EVENT, data[1], data[2])

    if label == MessageType.CLOSED:
        return RelayMessage(MessageType.CLOSED, data[1], str(data[2]) if len(data) > 2 else "")

    return RelayMessage(MessageType.EOSE, data[1])


# =============================================================================
# Subscription
# =============================================================================


@dataclass(slots=True)
class Subscription:
    """State of one in-flight ``REQ`` on one connection.

    Attributes:
        id: Subscription id sent with ``REQ`` and ``CLOSE``.
        filter: Filter sent with ``REQ``.
        events: Records in arrival order.
        eose_received: The relay signalled end of stored events.
        closed_reason: Text of a relay ``CLOSED`` frame, if one arrived.
    """

    id: str
    filter: EventFilter
    events: list[EventRecord] = field(default_factory=list)
    eose_received: bool = False
    closed_reason: str | None = None

    @property
    def received_count(self) -> int:
        return len(self.events)

    def handle(self, message: RelayMessage) -> bool:
        """Apply a frame addressed to this subscription.

        Returns:
            ``True`` when the frame resolves the subscription.

        Raises:
            TransportError: If an ``EVENT`` payload is not a valid event.
        """
        if message.type is MessageType.EVENT:
            try:
                self.events.append(EventRecord.from_dict(message.payload))
            except (TypeError, ValueError) as e:
                raise TransportError(f"Invalid event in subscription {self.id}: {e}") from e
            return False
        if message.type is MessageType.EOSE:
            self.eose_received = True
            return True
        if message.type is MessageType.CLOSED:
            self.closed_reason = message.payload
            return True
        return False


# =============================================================================
# Batch Subscriber
# =============================================================================


async def fetch_window(
    connection: RelayConnection | None,
    event_filter: EventFilter,
    *,
    silence_timeout: float = DEFAULT_SILENCE_TIMEOUT,  # noqa: ASYNC109
) -> list[EventRecord]:
    """Run one subscription on *connection* and return its records.

    Sends ``REQ``, collects matching ``EVENT`` frames until ``EOSE``,
    ``CLOSED``, or *silence_timeout* seconds without a matching event, then
    sends ``CLOSE``. A silence timeout is a normal completion and returns
    whatever arrived.

    Frames for other subscription ids (late frames from a previous
    window) are ignored.

    Args:
        connection: Borrowed open connection, or ``None``.
        event_filter: Filter for this window.
        silence_timeout: Inactivity limit in seconds.

    Returns:
        Records in arrival order.

    Raises:
        NoConnectionError: If *connection* is ``None``.
        NotOpenError: If *connection* is not open.
        TransportError: On a malformed frame, an invalid event, or a lost
            connection. ``CLOSE`` is still attempted first.
    """
    if connection is None:
        raise NoConnectionError("No relay connected")
    if connection.state is not ConnectionState.OPEN:
        raise NotOpenError(f"Relay not connected: {connection.url}")

    subscription = Subscription(generate_subscription_id(), event_filter)
    loop = asyncio.get_running_loop()

    logger.debug(
        "subscription_opened relay=%s sub=%s since=%s until=%s",
        connection.url,
        subscription.id,
        event_filter.since,
        event_filter.until,
    )
    await connection.send_text(encode_req(subscription.id, event_filter))

    try:
        async with asyncio.timeout(silence_timeout) as deadline:
            while True:
                message = parse_message(await connection.receive_text())
                if message is None:
                    continue
                if message.type is MessageType.NOTICE:
                    logger.info("relay_notice relay=%s message=%s", connection.url, message.payload)
                    continue
                if message.subscription_id != subscription.id:
                    continue
                if subscription.handle(message):
                    break
                deadline.reschedule(loop.time() + silence_timeout)
    except TimeoutError:
        logger.debug(
            "subscription_timeout relay=%s sub=%s events=%s",
            connection.url,
            subscription.id,
            subscription.received_count,
        )
    finally:
        await _close_subscription(connection, subscription.id)

    if subscription.eose_received:
        logger.debug(
            "subscription_eose relay=%s sub=%s events=%s",
            connection.url,
            subscription.id,
            subscription.received_count,
        )
    elif subscription.closed_reason is not None:
        logger.warning(
            "subscription_closed_by_relay relay=%s sub=%s reason=%s",
            connection.url,
            subscription.id,
            subscription.closed_reason,
        )

    return subscription.events


async def _close_subscription(connection: RelayConnection, subscription_id: str) -> None:
    """Send ``CLOSE`` if the connection is still open; never raises."""
    if not connection.is_open:
        return
    try:
        await connection.send_text(encode_close(subscription_id))
    except TransportError as e:
        logger.debug("subscription_close_failed relay=%s error=%s", connection.url, e)


async def fetch_window_many(
    connections: Sequence[RelayConnection],
    event_filter: EventFilter,
    *,
    silence_timeout: float = DEFAULT_SILENCE_TIMEOUT,  # noqa: ASYNC109
) -> list[EventRecord]:
    """Run the same window on every connection concurrently and merge.

    Waits for every relay to resolve (join-all). Records are merged by
    event id: the first copy in connection order wins, and conflicting
    copies are not reconciled. Relays that fail the window are logged.

    Raises:
        NoConnectionError: If *connections* is empty.
        WindowError: The first relay's error, if every relay failed.
    """
    if not connections:
        raise NoConnectionError("No relay connected")

    results = await asyncio.gather(
        *(fetch_window(conn, event_filter, silence_timeout=silence_timeout) for conn in connections),
        return_exceptions=True,
    )

    merged: dict[str, EventRecord] = {}
    errors: list[WindowError] = []
    for conn, result in zip(connections, results, strict=True):
        if isinstance(result, WindowError):
            logger.warning("relay_window_failed relay=%s error=%s", conn.url, result)
            errors.append(result)
        elif isinstance(result, BaseException):
            raise result
        else:
            for record in result:
                merged.setdefault(record.id, record)

    if len(errors) == len(connections):
        raise errors[0]

    return list(merged.values())
