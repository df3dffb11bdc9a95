"""
Prometheus metrics for event fetching.

Module-level metric objects shared by every
[EventFetcher][nostrgraph.services.fetcher.EventFetcher] in the process.
Exposition is left to the embedding application (for example
``prometheus_client.start_http_server``).

Architecture:
    FETCH_WINDOWS:            Windows processed, labelled by outcome.
    FETCH_EVENTS:             Event records received.
    WINDOW_DURATION_SECONDS:  Histogram of per-window latency.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram


# outcome: completed | empty | failed
FETCH_WINDOWS = Counter(
    "nostrgraph_fetch_windows",
    "Time windows processed by the event fetcher",
    ["outcome"],
)

FETCH_EVENTS = Counter(
    "nostrgraph_fetch_events",
    "Event records received from relays",
)

WINDOW_DURATION_SECONDS = Histogram(
    "nostrgraph_window_duration_seconds",
    "Duration of a single window subscription in seconds",
    buckets=(0.1, 0.5, 1, 2, 5, 10, 20, 30, 60),
)
