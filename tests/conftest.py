"""
Pytest configuration and shared fixtures for nostrgraph tests.

Provides:
- Logging setup for the test session
- Sample event payloads and filters
- Fake relay connections live in ``tests.fixtures.relays``
"""

from __future__ import annotations

import logging
from typing import Any

import pytest

from nostrgraph.models import EventFilter


# Valid secp256k1 x-only public key (DO NOT USE IN PRODUCTION)
SAMPLE_PUBKEY = "79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_pubkey() -> str:
    """Canonical hex author key."""
    return SAMPLE_PUBKEY


@pytest.fixture
def sample_event_dict() -> dict[str, Any]:
    """A structurally valid NIP-01 event payload."""
    return {
        "id": "a" * 64,
        "pubkey": SAMPLE_PUBKEY,
        "created_at": 1700000000,
        "kind": 1,
        "tags": [["e", "b" * 64], ["p", SAMPLE_PUBKEY]],
        "content": "Hello, Nostr!",
        "sig": "c" * 128,
    }


@pytest.fixture
def sample_filter() -> EventFilter:
    """One-day window filter for the sample author."""
    return EventFilter(authors=(SAMPLE_PUBKEY,), since=1700000000, until=1700086400)
