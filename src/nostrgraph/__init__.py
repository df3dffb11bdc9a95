r"""nostrgraph -- Fetch a Nostr author's history from relays, one time window at a time.

Imports flow strictly downward:

```text
   services         EventFetcher (window loop, progress, recovery)
      |
    utils           keys, windows, transport, protocol
      |
    core            config, exceptions, logging, metrics, yaml
      |
   models           Pure frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from nostrgraph import EventFetcher``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostrgraph")

__all__ = [
    "EventFetcher",
    "EventFilter",
    "EventRecord",
    "FetchProgress",
    "FetcherConfig",
    "InvalidIdentifierError",
    "Logger",
    "NostrGraphError",
    "RelayManager",
    "TimeWindow",
    "normalize_pubkey",
    "plan_windows",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "FetcherConfig": ("nostrgraph.core", "FetcherConfig"),
    "InvalidIdentifierError": ("nostrgraph.core", "InvalidIdentifierError"),
    "Logger": ("nostrgraph.core", "Logger"),
    "NostrGraphError": ("nostrgraph.core", "NostrGraphError"),
    "EventFilter": ("nostrgraph.models", "EventFilter"),
    "EventRecord": ("nostrgraph.models", "EventRecord"),
    "FetchProgress": ("nostrgraph.models", "FetchProgress"),
    "TimeWindow": ("nostrgraph.models", "TimeWindow"),
    "RelayManager": ("nostrgraph.utils", "RelayManager"),
    "normalize_pubkey": ("nostrgraph.utils", "normalize_pubkey"),
    "plan_windows": ("nostrgraph.utils", "plan_windows"),
    "EventFetcher": ("nostrgraph.services", "EventFetcher"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nostrgraph' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
