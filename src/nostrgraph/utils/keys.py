"""Nostr public key normalization.

Accepts the two forms users paste into the client -- 64-character hex and
NIP-19 ``npub1...`` bech32 -- and returns the canonical lower-case hex key
used in relay filters.

Note:
    Bech32 decoding is delegated to ``nostr_sdk.PublicKey.parse``, which
    checks the checksum and requires the ``npub`` human-readable prefix.
    Other NIP-19 entities (``nsec``, ``note``, ``nprofile``) are rejected
    before decoding because they do not start with ``npub``.

Examples:
    ```python
    normalize_pubkey("NPUB1...")          # raises InvalidIdentifierError
    normalize_pubkey("AB" * 32)           # 'abab...ab'
    normalize_pubkey("npub180cvv07t...")  # '3bf0c63f...'
    ```
"""

from __future__ import annotations

import logging
import re

from nostr_sdk import NostrSdkError, PublicKey

from nostrgraph.core.exceptions import InvalidIdentifierError


logger = logging.getLogger(__name__)

_HEX_PUBKEY = re.compile(r"^[0-9a-fA-F]{64}$")

NPUB_PREFIX = "npub"


def normalize_pubkey(value: str) -> str:
    """Validate *value* and return the canonical hex public key.

    Args:
        value: 64-char hex (any case) or ``npub1...`` bech32 string.
            Surrounding whitespace is ignored.

    Returns:
        Lower-case 64-char hex public key.

    Raises:
        InvalidIdentifierError: If *value* matches neither form or fails to
            decode. ``error.value`` holds the original input.
    """
    if not isinstance(value, str):
        raise InvalidIdentifierError(repr(value))

    candidate = value.strip()

    if _HEX_PUBKEY.match(candidate):
        return candidate.lower()

    if candidate.startswith(NPUB_PREFIX):
        try:
            return PublicKey.parse(candidate).to_hex()
        except NostrSdkError as e:
            logger.debug("npub_decode_failed value=%s error=%s", candidate, e)
            raise InvalidIdentifierError(value) from e

    raise InvalidIdentifierError(value)


def is_valid_pubkey(value: str) -> bool:
    """Return ``True`` if [normalize_pubkey][nostrgraph.utils.keys.normalize_pubkey] accepts *value*."""
    try:
        normalize_pubkey(value)
    except InvalidIdentifierError:
        return False
    return True
