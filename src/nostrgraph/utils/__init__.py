"""Network and protocol helpers used by the services layer.

Attributes:
    keys: Public key normalization (hex and ``npub``).
    windows: Time-range pagination.
    transport: aiohttp WebSocket connections and the relay manager.
    protocol: NIP-01 frame codec and per-window subscriptions.
"""

from .keys import is_valid_pubkey, normalize_pubkey
from .protocol import (
    DEFAULT_SILENCE_TIMEOUT,
    RelayMessage,
    Subscription,
    encode_close,
    encode_req,
    fetch_window,
    fetch_window_many,
    generate_subscription_id,
    parse_message,
)
from .transport import (
    DEFAULT_CLOSE_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    RelayConnection,
    RelayManager,
    open_connection,
)
from .windows import count_windows, plan_windows


__all__ = [
    "DEFAULT_CLOSE_TIMEOUT",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_SILENCE_TIMEOUT",
    "RelayConnection",
    "RelayManager",
    "RelayMessage",
    "Subscription",
    "count_windows",
    "encode_close",
    "encode_req",
    "fetch_window",
    "fetch_window_many",
    "generate_subscription_id",
    "is_valid_pubkey",
    "normalize_pubkey",
    "open_connection",
    "parse_message",
    "plan_windows",
]
