"""
Immutable Nostr event record as delivered by a relay.

Holds the seven NIP-01 event fields verbatim. Payloads are trusted as
received: structure and field types are checked, signatures are not.

See Also:
    [fetch_window][nostrgraph.utils.protocol.fetch_window]: Builds records
        from ``EVENT`` frames via
        [EventRecord.from_dict()][nostrgraph.models.event.EventRecord.from_dict].
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ._validation import (
    validate_hex,
    validate_instance,
    validate_kind,
    validate_tags,
    validate_timestamp,
)
from .constants import EVENT_KIND_MAX, HEX_KEY_LENGTH


@dataclass(frozen=True, slots=True)
class EventRecord:
    """Immutable Nostr event.

    Attributes:
        id: Event ID (64-char hex).
        pubkey: Author public key (64-char hex).
        created_at: Unix timestamp of event creation.
        kind: Integer event kind.
        tags: Tag arrays, stored as nested tuples.
        content: Raw content string.
        sig: Schnorr signature hex (not verified).

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ``id``/``pubkey`` are not 64-char hex or ``kind`` is
            out of range.

    Examples:
        ```python
        record = EventRecord.from_dict(payload)
        record.kind        # 1
        record.to_dict()   # NIP-01 JSON shape
        ```
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...]
    content: str
    sig: str

    def __post_init__(self) -> None:
        validate_hex(self.id, "id", HEX_KEY_LENGTH)
        validate_hex(self.pubkey, "pubkey", HEX_KEY_LENGTH)
        validate_timestamp(self.created_at, "created_at")
        validate_kind(self.kind, "kind", EVENT_KIND_MAX)
        object.__setattr__(self, "tags", validate_tags(self.tags, "tags"))
        validate_instance(self.content, str, "content")
        validate_instance(self.sig, str, "sig")

    @classmethod
    def from_dict(cls, data: Any) -> EventRecord:
        """Build a record from a decoded ``EVENT`` payload.

        Unknown keys are ignored.

        Raises:
            TypeError: If *data* is not a dict or a field has the wrong type.
            ValueError: If a required field is missing or invalid.
        """
        validate_instance(data, dict, "event")
        try:
            return cls(
                id=data["id"],
                pubkey=data["pubkey"],
                created_at=data["created_at"],
                kind=data["kind"],
                tags=data["tags"],
                content=data["content"],
                sig=data["sig"],
            )
        except KeyError as e:
            raise ValueError(f"event is missing field {e.args[0]!r}") from None

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON representation."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }
