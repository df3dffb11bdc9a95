"""Shared constants for the models layer.

Defines enumerations and limits used across multiple model modules.
Placing them here avoids circular dependencies between the models and
utils layers.

See Also:
    [nostrgraph.models.filter][]: Validates filter ``kinds`` against
        [EVENT_KIND_MAX][nostrgraph.models.constants.EVENT_KIND_MAX].
    [nostrgraph.utils.protocol][]: Uses
        [MessageType][nostrgraph.models.constants.MessageType] to encode
        and decode relay frames.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class ConnectionState(StrEnum):
    """Lifecycle state of a relay WebSocket connection.

    Attributes:
        CONNECTING: Handshake in progress. Connections returned by
            [open_connection()][nostrgraph.utils.transport.open_connection]
            are built after the handshake, so they never report it;
            it marks hand-built connections that are not yet usable.
        OPEN: Ready to carry subscriptions.
        CLOSED: Closed locally, by the relay, or by a transport failure.

    See Also:
        [RelayConnection][nostrgraph.utils.transport.RelayConnection]:
            The connection object that carries this state.
    """

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class MessageType(StrEnum):
    """NIP-01 message labels (first element of every frame).

    Client to relay: ``REQ``, ``CLOSE``. Relay to client: ``EVENT``,
    ``EOSE``, ``NOTICE``, ``CLOSED``.
    """

    REQ = "REQ"
    CLOSE = "CLOSE"
    EVENT = "EVENT"
    EOSE = "EOSE"
    NOTICE = "NOTICE"
    CLOSED = "CLOSED"


class EventKind(IntEnum):
    """Well-known Nostr event kinds.

    The fetcher does not interpret kinds; these members exist so callers
    can build filters without magic numbers.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01).
        TEXT_NOTE: Kind 1 -- short text note (NIP-01).
        CONTACTS: Kind 3 -- contact list (NIP-02).
        REPOST: Kind 6 -- repost (NIP-18).
        REACTION: Kind 7 -- reaction (NIP-25).
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    CONTACTS = 3
    REPOST = 6
    REACTION = 7


EVENT_KIND_MAX = 65_535

HEX_KEY_LENGTH = 64

SECONDS_PER_DAY = 86_400
