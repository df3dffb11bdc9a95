"""Pure frozen dataclasses with zero network I/O.

The models layer is the foundation of the package: it depends on no other
nostrgraph package. Every model uses ``@dataclass(frozen=True, slots=True)``
and validates in ``__post_init__`` so invalid instances never escape the
constructor.

Attributes:
    EventRecord: Nostr event as received from a relay (no signature check).
    EventFilter: NIP-01 ``REQ`` filter for one subscription.
    TimeWindow: Contiguous sub-range of a paginated fetch.
    FetchProgress: Per-window progress notification.
    RelayUrl: Normalized ``ws``/``wss`` relay URL.
    ConnectionState: Relay connection lifecycle enum.
    MessageType: NIP-01 frame labels.
    EventKind: Well-known event kinds.
"""

from .constants import (
    EVENT_KIND_MAX,
    HEX_KEY_LENGTH,
    SECONDS_PER_DAY,
    ConnectionState,
    EventKind,
    MessageType,
)
from .event import EventRecord
from .filter import EventFilter
from .relay import RelayUrl
from .window import FetchProgress, TimeWindow


__all__ = [
    "EVENT_KIND_MAX",
    "HEX_KEY_LENGTH",
    "SECONDS_PER_DAY",
    "ConnectionState",
    "EventFilter",
    "EventKind",
    "EventRecord",
    "FetchProgress",
    "MessageType",
    "RelayUrl",
    "TimeWindow",
]
