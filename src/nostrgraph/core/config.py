"""Pydantic configuration models for the event fetcher.

Every field has a default so an empty YAML file (or no file at all)
yields a working single-relay configuration.

Examples:
    ```yaml
    relays:
      - wss://yabu.me
    window_seconds: 86400
    timeouts:
      silence: 5.0
    filter:
      kinds: [1, 6, 7]
    ```

    Kinds may also be given as
    [EventKind][nostrgraph.models.constants.EventKind] members:

    ```python
    FilterConfig(kinds=[EventKind.TEXT_NOTE, EventKind.REPOST, EventKind.REACTION])
    ```

See Also:
    [load_yaml()][nostrgraph.core.yaml.load_yaml]: Produces the dict
        validated by [FetcherConfig][nostrgraph.core.config.FetcherConfig].
    [EventFetcher][nostrgraph.services.fetcher.EventFetcher]: Consumer of
        this configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from nostrgraph.models.constants import EVENT_KIND_MAX, SECONDS_PER_DAY
from nostrgraph.models.relay import RelayUrl


DEFAULT_RELAY = "wss://yabu.me"


class TimeoutsConfig(BaseModel):
    """Network timeouts in seconds.

    Attributes:
        connect: Maximum wait for a WebSocket handshake.
        silence: Maximum inactivity inside a subscription before it is
            resolved with whatever arrived. Reset by every matching event.
        close: Maximum wait when closing a socket or session.
    """

    connect: float = Field(default=10.0, gt=0.0, le=120.0)
    silence: float = Field(default=10.0, gt=0.0, le=300.0)
    close: float = Field(default=5.0, gt=0.0, le=60.0)


class FilterConfig(BaseModel):
    """Optional filter fields added to every window's ``REQ``."""

    kinds: list[int] | None = Field(default=None, description="Event kinds (None = all)")
    limit: int | None = Field(default=None, ge=1, le=5000, description="Per-request cap")

    @field_validator("kinds", mode="after")
    @classmethod
    def validate_kinds(cls, v: list[int] | None) -> list[int] | None:
        """Validate that all event kinds are within the valid range (0-65535)."""
        if v is None:
            return v
        for kind in v:
            if not 0 <= kind <= EVENT_KIND_MAX:
                raise ValueError(f"Event kind {kind} out of valid range (0-{EVENT_KIND_MAX})")
        return v


class LoggingConfig(BaseModel):
    """Log level and output format."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")
    json_output: bool = False


class FetcherConfig(BaseModel):
    """Top-level fetcher configuration.

    Note:
        With a single relay the fetcher keeps one connection and replaces
        it when the relay changes. With several relays every window is
        fanned out to all of them concurrently and results are merged by
        event id.

    Warning:
        ``stop_on_empty_window`` defaults to ``True``: the scan ends at the
        first window with no events. Accounts with a gap followed by later
        activity are under-counted; set it to ``False`` to scan the whole
        range.
    """

    relays: list[str] = Field(default_factory=lambda: [DEFAULT_RELAY], min_length=1)
    window_seconds: int = Field(default=SECONDS_PER_DAY, ge=60)
    lookback_days: int = Field(default=365, ge=1, le=3650)
    stop_on_empty_window: bool = True
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    filter: FilterConfig = Field(default_factory=FilterConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("relays", mode="after")
    @classmethod
    def normalize_relays(cls, v: list[str]) -> list[str]:
        """Normalize relay URLs and drop duplicates, keeping order."""
        seen: dict[str, None] = {}
        for raw in v:
            seen.setdefault(RelayUrl(raw).url, None)
        return list(seen)
