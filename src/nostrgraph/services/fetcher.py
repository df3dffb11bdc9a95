"""Time-windowed event fetcher.

Reconstructs one author's history by paging a time range through relay
subscriptions, one window at a time:

1. Normalize the identifier with
   [normalize_pubkey][nostrgraph.utils.keys.normalize_pubkey]; an invalid
   identifier fails before any network activity.
2. Connect through the owned
   [RelayManager][nostrgraph.utils.transport.RelayManager] (one relay, or
   all configured relays for fan-out).
3. Plan windows with [plan_windows][nostrgraph.utils.windows.plan_windows].
4. For each window, oldest first, run
   [fetch_window][nostrgraph.utils.protocol.fetch_window] (or
   [fetch_window_many][nostrgraph.utils.protocol.fetch_window_many]),
   append the records and report progress.

Note:
    A failed window ([WindowError][nostrgraph.core.exceptions.WindowError])
    is logged and skipped without a progress notification; partial data
    is preferred over total failure.

    A window that succeeds with zero records ends the scan (after its
    progress notification) while ``stop_on_empty_window`` is enabled, the
    default. Because windows run oldest first, an account that was quiet
    for a day and active later is under-counted. Disable the flag to scan
    every window.

See Also:
    [FetcherConfig][nostrgraph.core.config.FetcherConfig]: Relays, window
        size, timeouts, and filter settings.
"""

from __future__ import annotations

import inspect
import math
import numbers
import time
from typing import TYPE_CHECKING, Any, Self

import yaml
from pydantic import ValidationError

from nostrgraph.core.config import FetcherConfig
from nostrgraph.core.exceptions import ConfigurationError, WindowError
from nostrgraph.core.logger import Logger
from nostrgraph.core.metrics import FETCH_EVENTS, FETCH_WINDOWS, WINDOW_DURATION_SECONDS
from nostrgraph.core.yaml import load_yaml
from nostrgraph.models.filter import EventFilter
from nostrgraph.models.window import FetchProgress
from nostrgraph.utils.keys import normalize_pubkey
from nostrgraph.utils.protocol import fetch_window, fetch_window_many
from nostrgraph.utils.transport import RelayManager
from nostrgraph.utils.windows import count_windows, plan_windows


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from types import TracebackType

    from nostrgraph.models.event import EventRecord
    from nostrgraph.models.window import TimeWindow

    ProgressCallback = Callable[[FetchProgress, list[EventRecord]], Awaitable[None] | None]


class EventFetcher:
    """Fetch an author's events over a time range, window by window.

    Attributes:
        config: Validated [FetcherConfig][nostrgraph.core.config.FetcherConfig].
        manager: Owned [RelayManager][nostrgraph.utils.transport.RelayManager];
            closed when the fetcher's async context exits.

    Examples:
        ```python
        async with EventFetcher() as fetcher:
            events = await fetcher.get_events("npub1...", start=one_year_ago)
        ```
    """

    def __init__(
        self,
        config: FetcherConfig | None = None,
        manager: RelayManager | None = None,
    ) -> None:
        self.config = config if config is not None else FetcherConfig()
        self.manager = (
            manager
            if manager is not None
            else RelayManager(
                connect_timeout=self.config.timeouts.connect,
                close_timeout=self.config.timeouts.close,
            )
        )
        self._logger = Logger("fetcher", json_output=self.config.logging.json_output)

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Build a fetcher from a configuration dict.

        Raises:
            ConfigurationError: If the dict fails validation.
        """
        try:
            config = FetcherConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        return cls(config=config)

    @classmethod
    def from_yaml(cls, config_path: str) -> Self:
        """Build a fetcher from a YAML file.

        Raises:
            ConfigurationError: If the file is missing, unparsable, or invalid.
        """
        try:
            data = load_yaml(config_path)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load {config_path}: {e}") from e
        return cls.from_dict(data)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.manager.close()

    # -------------------------------------------------------------------------
    # Fetch
    # -------------------------------------------------------------------------

    async def get_events(
        self,
        identifier: str,
        start: float,
        end: float | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[EventRecord]:
        """Fetch every event by *identifier* between *start* and *end*.

        Args:
            identifier: Hex or ``npub`` public key.
            start: Range start (unix seconds). Floats such as
                ``time.time()`` are floored to whole seconds.
            end: Range end (unix seconds, floored); defaults to now.
            on_progress: Called after each successful window with the
                progress and a copy of the records so far. May be a plain
                function or a coroutine function.

        Returns:
            Records in arrival order within each window, windows oldest
            first. No sorting or cross-window deduplication is performed.

        Raises:
            InvalidIdentifierError: Before any network activity.
            TypeError: If *start* or *end* is not a real number, before any
                network activity.
            ValueError: If *start* or *end* is negative or not finite,
                before any network activity.
            ConnectivityError: If no relay could be connected.
        """
        pubkey = normalize_pubkey(identifier)
        start = _to_timestamp(start, "start")
        end = int(time.time()) if end is None else _to_timestamp(end, "end")
        window_size = self.config.window_seconds
        total = count_windows(start, end, window_size)

        self._logger.info(
            "fetch_started",
            pubkey=pubkey,
            since=start,
            until=end,
            windows=total,
            relays=",".join(self.config.relays),
        )

        events: list[EventRecord] = []

        async with self.manager.reserve():
            await self._connect()

            for index, window in enumerate(plan_windows(start, end, window_size), start=1):
                self._logger.debug(
                    "window_started", window=index, total=total, since=window.start, until=window.end
                )
                try:
                    batch = await self._fetch(pubkey, window)
                except WindowError as e:
                    FETCH_WINDOWS.labels(outcome="failed").inc()
                    self._logger.error(
                        "window_failed",
                        window=index,
                        total=total,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    continue

                events.extend(batch)
                FETCH_EVENTS.inc(len(batch))
                FETCH_WINDOWS.labels(outcome="completed" if batch else "empty").inc()
                self._logger.info(
                    "window_completed", window=index, total=total, events=len(batch)
                )

                if on_progress is not None:
                    progress = FetchProgress(
                        window_index=index,
                        total_windows=total,
                        event_count=len(events),
                        window_start=window.start,
                        window_end=window.end,
                    )
                    result = on_progress(progress, list(events))
                    if inspect.isawaitable(result):
                        await result

                if not batch and self.config.stop_on_empty_window:
                    self._logger.info("fetch_stopped_empty_window", window=index, total=total)
                    break

        self._logger.info("fetch_completed", pubkey=pubkey, events=len(events))
        return events

    async def _connect(self) -> None:
        relays = self.config.relays
        if len(relays) == 1:
            await self.manager.connect(relays[0])
        else:
            await self.manager.connect_many(relays)

    def _build_filter(self, pubkey: str, window: TimeWindow) -> EventFilter:
        kinds = self.config.filter.kinds
        return EventFilter(
            authors=(pubkey,),
            since=window.start,
            until=window.end,
            kinds=tuple(kinds) if kinds is not None else None,
            limit=self.config.filter.limit,
        )

    async def _fetch(self, pubkey: str, window: TimeWindow) -> list[EventRecord]:
        event_filter = self._build_filter(pubkey, window)
        silence = self.config.timeouts.silence
        connections = self.manager.connections

        with WINDOW_DURATION_SECONDS.time():
            if len(connections) > 1:
                return await fetch_window_many(connections, event_filter, silence_timeout=silence)
            return await fetch_window(
                connections[0] if connections else None,
                event_filter,
                silence_timeout=silence,
            )


def _to_timestamp(value: float, name: str) -> int:
    """Floor a unix time to whole seconds, rejecting non-numbers and pre-epoch values."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise TypeError(f"{name} must be a unix timestamp, got {type(value).__name__}")
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value}")
    timestamp = math.floor(value)
    if timestamp < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return timestamp
