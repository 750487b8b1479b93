"""Per-deployment JSON overrides for the FIR portal.

Each tool keeps a single JSON file in data/config/ keyed by tool name
(e.g. "fir-portal.json"). Option lists such as police stations or officer
ranks are read from there with a fallback to the hardcoded defaults, so a
district office can change them without touching code.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

CONFIG_DIR = Path(__file__).resolve().parent.parent / "data" / "config"


def load_config(tool_name: str) -> dict | None:
    """Load a tool's JSON config. Returns None if the file is missing or unreadable."""
    path = CONFIG_DIR / f"{tool_name}.json"
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        return None
    return data if isinstance(data, dict) else None


def save_config(tool_name: str, config: dict) -> None:
    """Write a tool's config to JSON, creating data/config/ if needed."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    path = CONFIG_DIR / f"{tool_name}.json"
    path.write_text(json.dumps(config, indent=2, ensure_ascii=False))


def get_config_value(tool_name: str, key: str, default: Any) -> Any:
    """Get a single key from a tool's config, with fallback to default."""
    config = load_config(tool_name)
    if config is None:
        return default
    return config.get(key, default)


def get_option_list(tool_name: str, key: str, default: list[str]) -> list[str]:
    """Return a list of select options, ignoring overrides that aren't string lists.

    A hand-edited config that stores a bare string or an empty list would
    leave a select box with nothing to choose, so those fall back too.
    """
    value = get_config_value(tool_name, key, default)
    if not isinstance(value, list) or not value:
        return list(default)
    if not all(isinstance(v, str) and v.strip() for v in value):
        return list(default)
    return list(value)
