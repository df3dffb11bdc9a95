"""Time-range pagination into fixed-size windows.

Relays cap the number of results per ``REQ``, so a long history is read
as a sequence of short windows, oldest first.

Examples:
    ```python
    list(plan_windows(0, 250, 100))
    # [TimeWindow(start=0, end=100), TimeWindow(start=100, end=200),
    #  TimeWindow(start=200, end=250)]
    count_windows(0, 250, 100)  # 3
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from nostrgraph.models.window import TimeWindow


if TYPE_CHECKING:
    from collections.abc import Iterator


def _check_window_size(window_size: int) -> None:
    if window_size <= 0:
        raise ValueError(f"window_size must be positive, got {window_size}")


def count_windows(start: int, end: int, window_size: int) -> int:
    """Number of windows ``plan_windows`` yields, without materializing them.

    Returns ``ceil((end - start) / window_size)``, or 0 for an empty range.

    Raises:
        ValueError: If *window_size* is not positive.
    """
    _check_window_size(window_size)
    if end <= start:
        return 0
    return -(-(end - start) // window_size)


def plan_windows(start: int, end: int, window_size: int) -> Iterator[TimeWindow]:
    """Lazily yield contiguous windows exactly covering ``[start, end]``.

    Each window spans ``min(cursor + window_size, end) - cursor``; only the
    last one may be shorter than *window_size*. Yields nothing when
    ``end <= start``.

    Raises:
        ValueError: If *window_size* is not positive.
    """
    _check_window_size(window_size)
    return _iter_windows(start, end, window_size)


def _iter_windows(start: int, end: int, window_size: int) -> Iterator[TimeWindow]:
    cursor = start
    while cursor < end:
        window_end = min(cursor + window_size, end)
        yield TimeWindow(cursor, window_end)
        cursor = window_end
