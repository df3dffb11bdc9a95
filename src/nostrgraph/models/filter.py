"""NIP-01 subscription filter sent with every ``REQ``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ._validation import validate_hex, validate_kind, validate_timestamp
from .constants import EVENT_KIND_MAX, HEX_KEY_LENGTH


@dataclass(frozen=True, slots=True)
class EventFilter:
    """Immutable query descriptor for one subscription.

    Attributes:
        authors: Canonical hex author keys.
        since: Lower timestamp bound (relay-defined inclusivity).
        until: Upper timestamp bound.
        kinds: Optional kind whitelist, passed through uninterpreted.
        limit: Optional per-request result cap.

    Raises:
        ValueError: If ``since > until``, an author is not 64-char hex,
            a kind is out of range, or ``limit`` is not positive.
    """

    authors: tuple[str, ...]
    since: int
    until: int
    kinds: tuple[int, ...] | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "authors", tuple(self.authors))
        for author in self.authors:
            validate_hex(author, "authors", HEX_KEY_LENGTH)
        validate_timestamp(self.since, "since")
        validate_timestamp(self.until, "until")
        if self.since > self.until:
            raise ValueError(f"since ({self.since}) must not exceed until ({self.until})")
        if self.kinds is not None:
            object.__setattr__(self, "kinds", tuple(self.kinds))
            for kind in self.kinds:
                validate_kind(kind, "kinds", EVENT_KIND_MAX)
        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be positive")

    def to_dict(self) -> dict[str, Any]:
        """Return the wire filter object, omitting unset optional fields."""
        data: dict[str, Any] = {
            "authors": list(self.authors),
            "since": self.since,
            "until": self.until,
        }
        if self.kinds is not None:
            data["kinds"] = list(self.kinds)
        if self.limit is not None:
            data["limit"] = self.limit
        return data
