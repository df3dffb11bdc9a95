"""Ambient infrastructure shared by the utils and services layers.

Attributes:
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][nostrgraph.core.logger.Logger].
    FetcherConfig: Pydantic configuration for the fetcher.
        See [FetcherConfig][nostrgraph.core.config.FetcherConfig].
    load_yaml: Safe YAML loading.
    exceptions: Typed error hierarchy separating fetch-fatal errors from
        window-scoped ones.
    metrics: Prometheus counters and histograms.
"""

from .config import DEFAULT_RELAY, FetcherConfig, FilterConfig, LoggingConfig, TimeoutsConfig
from .exceptions import (
    ConfigurationError,
    ConnectivityError,
    InvalidIdentifierError,
    NoConnectionError,
    NostrGraphError,
    NotOpenError,
    RelayConnectionError,
    RelayTimeoutError,
    TransportError,
    WindowError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs, setup_logging
from .metrics import FETCH_EVENTS, FETCH_WINDOWS, WINDOW_DURATION_SECONDS
from .yaml import load_yaml


__all__ = [
    "DEFAULT_RELAY",
    "FETCH_EVENTS",
    "FETCH_WINDOWS",
    "WINDOW_DURATION_SECONDS",
    "ConfigurationError",
    "ConnectivityError",
    "FetcherConfig",
    "FilterConfig",
    "InvalidIdentifierError",
    "Logger",
    "LoggingConfig",
    "NoConnectionError",
    "NostrGraphError",
    "NotOpenError",
    "RelayConnectionError",
    "RelayTimeoutError",
    "StructuredFormatter",
    "TimeoutsConfig",
    "TransportError",
    "WindowError",
    "format_kv_pairs",
    "load_yaml",
    "setup_logging",
]
