"""Shared validation helpers for frozen dataclass models.

Private module -- not part of the public API. Used exclusively by
``__post_init__`` methods in sibling model modules to enforce runtime
type constraints on data received from relays.
"""

from __future__ import annotations

from typing import Any


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_timestamp(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def validate_kind(value: Any, name: str, maximum: int) -> None:
    """Raise if *value* is not an ``int`` within ``[0, maximum]``."""
    validate_timestamp(value, name)
    if value > maximum:
        raise ValueError(f"{name} {value} out of valid range (0-{maximum})")


def validate_hex(value: Any, name: str, length: int) -> None:
    """Raise if *value* is not a hex string of exactly *length* characters."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if len(value) != length:
        raise ValueError(f"{name} must be {length} hex characters, got {len(value)}")
    try:
        bytes.fromhex(value)
    except ValueError as e:
        raise ValueError(f"{name} is not valid hex: {value!r}") from e


def validate_tags(value: Any, name: str) -> tuple[tuple[str, ...], ...]:
    """Validate a NIP-01 tag array and return it as nested tuples.

    Each tag must be a list of strings. The result is converted to tuples
    so the owning frozen dataclass stays hashable and immutable.
    """
    if not isinstance(value, list | tuple):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    frozen: list[tuple[str, ...]] = []
    for tag in value:
        if not isinstance(tag, list | tuple):
            raise TypeError(f"{name} entries must be lists, got {type(tag).__name__}")
        for item in tag:
            if not isinstance(item, str):
                raise TypeError(f"{name} values must be str, got {type(item).__name__}")
        frozen.append(tuple(tag))
    return tuple(frozen)
