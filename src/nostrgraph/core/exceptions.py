"""nostrgraph exception hierarchy.

Separates errors that abort a whole fetch from errors scoped to a single
time window, so the coordinator can catch exactly the latter and let
``CancelledError`` propagate untouched.

Exception hierarchy:

```text
NostrGraphError (base -- never raised directly)
├── ConfigurationError         -- config validation, missing file, bad YAML
├── InvalidIdentifierError     -- malformed pubkey, no network attempted
├── ConnectivityError          -- relay unreachable (aborts the fetch)
│   ├── RelayTimeoutError      -- handshake did not finish in time
│   └── RelayConnectionError   -- transport-level connect failure
└── WindowError                -- scoped to one window (fetch continues)
    ├── NoConnectionError      -- no connection to subscribe on
    ├── NotOpenError           -- connection exists but is not open
    └── TransportError         -- malformed or unexpected wire message
```

See Also:
    [EventFetcher][nostrgraph.services.fetcher.EventFetcher]: Catches
        [WindowError][nostrgraph.core.exceptions.WindowError] per window
        and propagates everything else.
"""

from __future__ import annotations


class NostrGraphError(Exception):
    """Base exception for all nostrgraph errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostrGraphError):
    """Invalid or missing configuration (YAML, CLI flags)."""


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class InvalidIdentifierError(NostrGraphError, ValueError):
    """User-supplied identifier is neither 64-char hex nor a valid ``npub``.

    Attributes:
        value: The original input, kept for diagnostics.
    """

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Invalid pubkey format: {value!r}. "
            "Provide a 64-character hex key or an npub1 bech32 key."
        )


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(NostrGraphError):
    """Base for relay connection-establishment failures."""


class RelayTimeoutError(ConnectivityError):
    """The relay neither accepted nor rejected the handshake in time."""


class RelayConnectionError(ConnectivityError):
    """Transport-level failure while connecting (DNS, refused, TLS, HTTP)."""


# ---------------------------------------------------------------------------
# Per-window
# ---------------------------------------------------------------------------


class WindowError(NostrGraphError):
    """Base for failures that lose one window but not the whole fetch."""


class NoConnectionError(WindowError):
    """No relay connection exists to subscribe on."""


class NotOpenError(WindowError):
    """The relay connection exists but is not in the open state."""


class TransportError(WindowError):
    """Malformed frame, invalid event payload, or connection lost mid-window."""
