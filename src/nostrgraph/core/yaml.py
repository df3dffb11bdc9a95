"""YAML configuration loading.

Uses ``yaml.safe_load`` so configuration files can only produce plain
strings, numbers, lists, and dicts. Consumed by
[EventFetcher.from_yaml()][nostrgraph.services.fetcher.EventFetcher.from_yaml]
and the CLI.

Examples:
    ```python
    from nostrgraph.core.yaml import load_yaml

    config = load_yaml("config/nostrgraph.yaml")
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_yaml(config_path: str) -> dict[str, Any]:
    """Load and parse a YAML configuration file.

    Args:
        config_path: Path to the YAML file (absolute or relative).

    Returns:
        Parsed configuration as a nested dictionary. Returns an empty dict
        if the file exists but contains no data.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file contains invalid YAML syntax.

    Warning:
        The returned dictionary is not validated. Pass it to
        [FetcherConfig][nostrgraph.core.config.FetcherConfig] for schema
        validation.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open(encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
