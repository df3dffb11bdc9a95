"""Orchestration layer built on the utils and core packages.

Attributes:
    EventFetcher: Time-windowed history fetcher for a single author.
        See [EventFetcher][nostrgraph.services.fetcher.EventFetcher].
"""

from .fetcher import EventFetcher


__all__ = ["EventFetcher"]
