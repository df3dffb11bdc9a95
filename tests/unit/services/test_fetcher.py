"""
Unit tests for services.fetcher module.

Tests:
- EventFetcher construction and factories
- get_events() - progress reporting, failure recovery, early termination
- get_events() - identifier validation before network activity
- get_events() - single relay vs fan-out
- End-to-end window loop over a scripted relay
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from nostr_sdk import Keys
from prometheus_client import REGISTRY

from nostrgraph.core.config import FetcherConfig
from nostrgraph.core.exceptions import (
    ConfigurationError,
    InvalidIdentifierError,
    RelayConnectionError,
    TransportError,
)
from nostrgraph.models import EventFilter, EventKind, EventRecord, FetchProgress
from nostrgraph.services.fetcher import EventFetcher
from nostrgraph.utils.transport import RelayManager
from tests.fixtures.relays import SAMPLE_AUTHOR, FakeConnection, eose_frame, event_frame, make_event


DAY = 86_400
START = 1_700_000_000
END = START + 5 * DAY


def _record(n: int) -> EventRecord:
    return EventRecord.from_dict(make_event(n))


def _window_index(event_filter: EventFilter) -> int:
    """1-based window index of a filter within [START, END]."""
    return (event_filter.since - START) // DAY + 1


class ScriptedWindows:
    """``fetch_window`` replacement returning a per-window outcome.

    *outcomes* maps a 1-based window index to a list of record numbers or
    an exception. Windows not listed return one record numbered
    ``index * 100``.
    """

    def __init__(self, outcomes: dict[int, Any] | None = None) -> None:
        self.outcomes = outcomes or {}
        self.filters: list[EventFilter] = []

    async def fetch(
        self, connection: Any, event_filter: EventFilter, *, silence_timeout: float
    ) -> list[EventRecord]:
        self.filters.append(event_filter)
        index = _window_index(event_filter)
        outcome = self.outcomes.get(index, [index * 100])
        if isinstance(outcome, BaseException):
            raise outcome
        return [_record(n) for n in outcome]

    @property
    def requested(self) -> list[int]:
        return [_window_index(f) for f in self.filters]


class ProgressRecorder:
    """Synchronous progress sink."""

    def __init__(self) -> None:
        self.calls: list[tuple[FetchProgress, list[EventRecord]]] = []

    def __call__(self, progress: FetchProgress, events: list[EventRecord]) -> None:
        self.calls.append((progress, events))

    @property
    def indices(self) -> list[int]:
        return [p.window_index for p, _ in self.calls]


@pytest.fixture
def opened() -> list[FakeConnection]:
    return []


@pytest.fixture
def manager(opened: list[FakeConnection]) -> Iterator[RelayManager]:
    """Real RelayManager whose connections are silent fakes."""

    async def _open(url: str, **kwargs: float) -> FakeConnection:
        conn = FakeConnection(url=url)
        opened.append(conn)
        return conn

    with patch("nostrgraph.utils.transport.open_connection", side_effect=_open):
        yield RelayManager()


def _fetcher(manager: RelayManager, **overrides: Any) -> EventFetcher:
    return EventFetcher(config=FetcherConfig(**overrides), manager=manager)


# =============================================================================
# Construction Tests
# =============================================================================


class TestEventFetcherConstruction:
    """EventFetcher defaults and factories."""

    def test_defaults(self) -> None:
        fetcher = EventFetcher()
        assert fetcher.config.relays == ["wss://yabu.me"]
        assert isinstance(fetcher.manager, RelayManager)

    def test_from_dict(self) -> None:
        fetcher = EventFetcher.from_dict({"window_seconds": 3600, "timeouts": {"silence": 2}})
        assert fetcher.config.window_seconds == 3600
        assert fetcher.config.timeouts.silence == 2.0

    def test_from_dict_invalid(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            EventFetcher.from_dict({"window_seconds": "daily"})

    def test_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "nostrgraph.yaml"
        path.write_text("relays:\n  - wss://relay.example.com/\nstop_on_empty_window: false\n")
        fetcher = EventFetcher.from_yaml(str(path))
        assert fetcher.config.relays == ["wss://relay.example.com"]
        assert fetcher.config.stop_on_empty_window is False

    def test_from_yaml_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Cannot load"):
            EventFetcher.from_yaml(str(tmp_path / "missing.yaml"))

    def test_from_yaml_bad_syntax(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("relays: [\n")
        with pytest.raises(ConfigurationError):
            EventFetcher.from_yaml(str(path))

    async def test_context_manager_closes_manager(self) -> None:
        manager = MagicMock(spec=RelayManager)
        manager.close = AsyncMock()
        async with EventFetcher(manager=manager):
            pass
        manager.close.assert_awaited_once()


# =============================================================================
# Progress Tests
# =============================================================================


class TestGetEventsProgress:
    """get_events() progress reporting."""

    async def test_one_notification_per_window(self, manager: RelayManager) -> None:
        windows = ScriptedWindows()
        progress = ProgressRecorder()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            events = await _fetcher(manager).get_events(
                SAMPLE_AUTHOR, START, END, on_progress=progress
            )
        assert progress.indices == [1, 2, 3, 4, 5]
        assert all(p.total_windows == 5 for p, _ in progress.calls)
        assert len(events) == 5

    async def test_progress_counts_are_cumulative(self, manager: RelayManager) -> None:
        windows = ScriptedWindows({1: [1, 2], 2: [3], 3: [4, 5, 6]})
        progress = ProgressRecorder()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            await _fetcher(manager).get_events(SAMPLE_AUTHOR, START, START + 3 * DAY, progress)
        assert [p.event_count for p, _ in progress.calls] == [2, 3, 6]
        assert [len(events) for _, events in progress.calls] == [2, 3, 6]

    async def test_progress_carries_window_bounds(self, manager: RelayManager) -> None:
        progress = ProgressRecorder()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=ScriptedWindows().fetch):
            await _fetcher(manager).get_events(SAMPLE_AUTHOR, START, START + 2 * DAY, progress)
        first, second = (p for p, _ in progress.calls)
        assert (first.window_start, first.window_end) == (START, START + DAY)
        assert (second.window_start, second.window_end) == (START + DAY, START + 2 * DAY)

    async def test_partial_events_are_snapshots(self, manager: RelayManager) -> None:
        progress = ProgressRecorder()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=ScriptedWindows().fetch):
            events = await _fetcher(manager).get_events(
                SAMPLE_AUTHOR, START, START + 2 * DAY, progress
            )
        first_snapshot = progress.calls[0][1]
        assert len(first_snapshot) == 1
        assert first_snapshot is not events

    async def test_async_callback_awaited(self, manager: RelayManager) -> None:
        seen: list[int] = []

        async def on_progress(progress: FetchProgress, events: list[EventRecord]) -> None:
            seen.append(progress.window_index)

        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=ScriptedWindows().fetch):
            await _fetcher(manager).get_events(
                SAMPLE_AUTHOR, START, START + 3 * DAY, on_progress=on_progress
            )
        assert seen == [1, 2, 3]

    async def test_no_callback(self, manager: RelayManager) -> None:
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=ScriptedWindows().fetch):
            events = await _fetcher(manager).get_events(SAMPLE_AUTHOR, START, END)
        assert len(events) == 5


# =============================================================================
# Failure Recovery Tests
# =============================================================================


class TestGetEventsWindowFailure:
    """get_events() skips failed windows."""

    async def test_failed_window_skipped(self, manager: RelayManager) -> None:
        windows = ScriptedWindows({2: TransportError("Frame is not valid JSON")})
        progress = ProgressRecorder()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            events = await _fetcher(manager).get_events(SAMPLE_AUTHOR, START, END, progress)
        assert progress.indices == [1, 3, 4, 5]
        assert windows.requested == [1, 2, 3, 4, 5]
        assert sorted(e.id for e in events) == sorted(
            f"{n * 100:064x}" for n in (1, 3, 4, 5)
        )

    async def test_all_windows_fail(self, manager: RelayManager) -> None:
        windows = ScriptedWindows({i: TransportError("lost") for i in range(1, 6)})
        progress = ProgressRecorder()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            events = await _fetcher(manager).get_events(SAMPLE_AUTHOR, START, END, progress)
        assert events == []
        assert progress.calls == []

    async def test_failed_window_counted(self, manager: RelayManager) -> None:
        before = REGISTRY.get_sample_value(
            "nostrgraph_fetch_windows_total", {"outcome": "failed"}
        ) or 0.0
        windows = ScriptedWindows({1: TransportError("lost")})
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            await _fetcher(manager).get_events(SAMPLE_AUTHOR, START, START + 2 * DAY)
        after = REGISTRY.get_sample_value("nostrgraph_fetch_windows_total", {"outcome": "failed"})
        assert after == before + 1

    async def test_unexpected_error_propagates(self, manager: RelayManager) -> None:
        windows = ScriptedWindows({2: RuntimeError("bug")})
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            with pytest.raises(RuntimeError, match="bug"):
                await _fetcher(manager).get_events(SAMPLE_AUTHOR, START, END)


# =============================================================================
# Early Termination Tests
# =============================================================================


class TestGetEventsEmptyWindow:
    """get_events() stops at the first empty window by default."""

    async def test_stops_after_empty_window(self, manager: RelayManager) -> None:
        windows = ScriptedWindows({2: []})
        progress = ProgressRecorder()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            events = await _fetcher(manager).get_events(SAMPLE_AUTHOR, START, END, progress)
        assert windows.requested == [1, 2]
        assert progress.indices == [1, 2]
        assert progress.calls[-1][0].event_count == 1
        assert len(events) == 1

    async def test_scan_all_when_disabled(self, manager: RelayManager) -> None:
        windows = ScriptedWindows({2: []})
        progress = ProgressRecorder()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            events = await _fetcher(manager, stop_on_empty_window=False).get_events(
                SAMPLE_AUTHOR, START, END, progress
            )
        assert windows.requested == [1, 2, 3, 4, 5]
        assert progress.indices == [1, 2, 3, 4, 5]
        assert len(events) == 4

    async def test_failed_window_does_not_stop(self, manager: RelayManager) -> None:
        windows = ScriptedWindows({1: TransportError("lost")})
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            await _fetcher(manager).get_events(SAMPLE_AUTHOR, START, END)
        assert windows.requested == [1, 2, 3, 4, 5]


# =============================================================================
# Identifier and Range Tests
# =============================================================================


class TestGetEventsIdentifier:
    """get_events() identifier handling."""

    async def test_invalid_identifier_before_network(self, manager: RelayManager, opened: list) -> None:
        windows = ScriptedWindows()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            with pytest.raises(InvalidIdentifierError):
                await _fetcher(manager).get_events("npub1garbage", START, END)
        assert opened == []
        assert windows.filters == []

    async def test_npub_normalized_into_filter(self, manager: RelayManager) -> None:
        public_key = Keys.generate().public_key()
        windows = ScriptedWindows({1: []})
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            await _fetcher(manager).get_events(public_key.to_bech32(), START, END)
        assert windows.filters[0].authors == (public_key.to_hex(),)

    async def test_uppercase_hex_normalized(self, manager: RelayManager) -> None:
        windows = ScriptedWindows({1: []})
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            await _fetcher(manager).get_events(SAMPLE_AUTHOR.upper(), START, END)
        assert windows.filters[0].authors == (SAMPLE_AUTHOR,)


class TestGetEventsRange:
    """get_events() range and filter construction."""

    async def test_end_defaults_to_now(self, manager: RelayManager) -> None:
        windows = ScriptedWindows()
        progress = ProgressRecorder()
        with (
            patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch),
            patch("nostrgraph.services.fetcher.time.time", return_value=float(START + 3 * DAY)),
        ):
            await _fetcher(manager).get_events(SAMPLE_AUTHOR, START, on_progress=progress)
        assert progress.calls[0][0].total_windows == 3
        assert windows.filters[-1].until == START + 3 * DAY

    async def test_empty_range(self, manager: RelayManager) -> None:
        windows = ScriptedWindows()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            assert await _fetcher(manager).get_events(SAMPLE_AUTHOR, END, START) == []
        assert windows.filters == []

    async def test_filters_use_config(self, manager: RelayManager) -> None:
        windows = ScriptedWindows({1: []})
        fetcher = _fetcher(
            manager, filter={"kinds": [EventKind.TEXT_NOTE, EventKind.REACTION], "limit": 500}
        )
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            await fetcher.get_events(SAMPLE_AUTHOR, START, END)
        event_filter = windows.filters[0]
        assert event_filter.kinds == (1, 7)
        assert event_filter.limit == 500
        assert (event_filter.since, event_filter.until) == (START, START + DAY)

    async def test_deterministic_across_runs(self, manager: RelayManager) -> None:
        windows = ScriptedWindows({1: [1, 2], 3: [5, 6]})
        fetcher = _fetcher(manager, stop_on_empty_window=False)
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            first = await fetcher.get_events(SAMPLE_AUTHOR, START, END)
            second = await fetcher.get_events(SAMPLE_AUTHOR, START, END)
        assert {e.id for e in first} == {e.id for e in second}

    async def test_float_bounds_are_floored(self, manager: RelayManager) -> None:
        windows = ScriptedWindows()
        progress = ProgressRecorder()
        fetcher = _fetcher(manager, stop_on_empty_window=False)
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            await fetcher.get_events(
                SAMPLE_AUTHOR, START + 0.7, START + 2 * DAY + 0.5, on_progress=progress
            )
        assert [(f.since, f.until) for f in windows.filters] == [
            (START, START + DAY),
            (START + DAY, START + 2 * DAY),
        ]
        assert all(isinstance(f.since, int) for f in windows.filters)
        assert progress.calls[0][0].total_windows == 2

    async def test_negative_start_rejected_before_connect(
        self, manager: RelayManager, opened: list[FakeConnection]
    ) -> None:
        windows = ScriptedWindows()
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=windows.fetch):
            with pytest.raises(ValueError, match="non-negative"):
                await _fetcher(manager).get_events(SAMPLE_AUTHOR, -1, END)
        assert opened == []
        assert windows.filters == []

    async def test_non_numeric_start_rejected_before_connect(
        self, manager: RelayManager, opened: list[FakeConnection]
    ) -> None:
        with pytest.raises(TypeError, match="unix timestamp"):
            await _fetcher(manager).get_events(SAMPLE_AUTHOR, "yesterday", END)  # type: ignore[arg-type]
        assert opened == []


# =============================================================================
# Relay Tests
# =============================================================================


class TestGetEventsRelays:
    """get_events() connection handling."""

    async def test_single_relay_connection_reused(
        self, manager: RelayManager, opened: list[FakeConnection]
    ) -> None:
        fetcher = _fetcher(manager)
        with patch("nostrgraph.services.fetcher.fetch_window", side_effect=ScriptedWindows({1: []}).fetch):
            await fetcher.get_events(SAMPLE_AUTHOR, START, END)
            await fetcher.get_events(SAMPLE_AUTHOR, START, END)
        assert len(opened) == 1
        assert opened[0].url == "wss://yabu.me"

    async def test_fan_out(self, manager: RelayManager, opened: list[FakeConnection]) -> None:
        fan_out = AsyncMock(return_value=[_record(1)])
        fetcher = _fetcher(manager, relays=["wss://a.test", "wss://b.test"])
        with (
            patch("nostrgraph.services.fetcher.fetch_window_many", fan_out),
            patch("nostrgraph.services.fetcher.fetch_window") as single,
        ):
            await fetcher.get_events(SAMPLE_AUTHOR, START, START + 2 * DAY)
        assert sorted(c.url for c in opened) == ["wss://a.test", "wss://b.test"]
        assert fan_out.await_count == 2
        single.assert_not_called()
        connections = fan_out.await_args.args[0]
        assert len(connections) == 2

    async def test_connectivity_error_aborts(self) -> None:
        manager = RelayManager()
        with patch(
            "nostrgraph.utils.transport.open_connection",
            AsyncMock(side_effect=RelayConnectionError("Failed to connect to wss://yabu.me")),
        ):
            with pytest.raises(RelayConnectionError):
                await EventFetcher(manager=manager).get_events(SAMPLE_AUTHOR, START, END)


# =============================================================================
# End-to-End Tests
# =============================================================================


class TestGetEventsScriptedRelay:
    """Full window loop over a scripted relay connection."""

    async def test_windows_over_one_connection(self, opened: list[FakeConnection]) -> None:
        conn = FakeConnection(
            [
                event_frame(make_event(1)),
                event_frame(make_event(2)),
                eose_frame(),
                "garbage",
                event_frame(make_event(3)),
                eose_frame(),
                eose_frame(),
            ]
        )
        progress = ProgressRecorder()
        with patch("nostrgraph.utils.transport.open_connection", AsyncMock(return_value=conn)):
            fetcher = EventFetcher(config=FetcherConfig(timeouts={"silence": 1.0}))
            events = await fetcher.get_events(SAMPLE_AUTHOR, START, END, progress)

        assert [e.id for e in events] == [f"{n:064x}" for n in (1, 2, 3)]
        assert progress.indices == [1, 3, 4]
        reqs = [m for m in conn.sent_messages if m[0] == "REQ"]
        closes = [m for m in conn.sent_messages if m[0] == "CLOSE"]
        assert len(reqs) == 4
        assert [r[1] for r in reqs] == [c[1] for c in closes]
        assert [r[2]["since"] for r in reqs] == [START + i * DAY for i in range(4)]
