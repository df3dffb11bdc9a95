"""Time windows and progress notifications for paginated fetches."""

from __future__ import annotations

from dataclasses import dataclass

from ._validation import validate_timestamp


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Bounded sub-range ``[start, end]`` of a larger historical query.

    Raises:
        ValueError: If ``start >= end``.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        validate_timestamp(self.start, "start")
        validate_timestamp(self.end, "end")
        if self.start >= self.end:
            raise ValueError(f"window start ({self.start}) must precede end ({self.end})")

    @property
    def duration(self) -> int:
        """Window length in seconds."""
        return self.end - self.start


@dataclass(frozen=True, slots=True)
class FetchProgress:
    """Side-channel notification emitted after each completed window.

    Attributes:
        window_index: 1-based index of the window that just completed.
        total_windows: Number of windows planned for the whole range.
        event_count: Cumulative number of records fetched so far.
        window_start: Start timestamp of the completed window.
        window_end: End timestamp of the completed window.
    """

    window_index: int
    total_windows: int
    event_count: int
    window_start: int
    window_end: int

    @property
    def percent(self) -> float:
        """Share of planned windows processed, rounded to 1 decimal."""
        if self.total_windows <= 0:
            return 100.0
        return round(self.window_index / self.total_windows * 100, 1)
