"""Project configuration (.peeklint/config.json).

Keys cover file exclusions, finding suppression, and how the
unnecessary_indexing rule spells its suggestion.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from peeklint.utils import PROJECT_ROOT, safe_write_text

CONFIG_FILE = PROJECT_ROOT / ".peeklint" / "config.json"
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigKey:
    type: type
    default: object
    description: str


CONFIG_SCHEMA: dict[str, ConfigKey] = {
    "exclude": ConfigKey(list, [],
        "Path patterns to exclude from scanning"),
    "ignore": ConfigKey(list, [],
        "Path patterns whose findings are suppressed"),
    "method_names": ConfigKey(list, ["is_empty"],
        "Emptiness-check methods that start the unnecessary_indexing check"),
    "binding_name": ConfigKey(str, "x",
        "Name bound by the suggested if-let (suffixed when already in use)"),
    "peek_method": ConfigKey(str, "first",
        "Accessor returning the first element as Option<&T> (first, or front for a VecDeque)"),
}


def default_config() -> dict:
    """Return a config dict with all keys set to their defaults."""
    return {k: _copy_default(v.default) for k, v in CONFIG_SCHEMA.items()}


def _copy_default(value):
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


def load_config(path: Path | None = None) -> dict:
    """Load config from disk, filling missing keys with defaults.

    A missing or unreadable file yields the defaults.
    """
    p = path or CONFIG_FILE
    config: dict = {}
    if p.exists():
        try:
            loaded = json.loads(p.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            logger.debug("ignoring unreadable config %s: %s", p, exc)
            loaded = {}
        if isinstance(loaded, dict):
            config = loaded

    for key, schema in CONFIG_SCHEMA.items():
        if key not in config:
            config[key] = _copy_default(schema.default)

    return config


def save_config(config: dict, path: Path | None = None) -> None:
    """Save config to disk atomically."""
    p = path or CONFIG_FILE
    safe_write_text(p, json.dumps(config, indent=2) + "\n")


def set_config_value(config: dict, key: str, raw: str) -> None:
    """Parse and set a config value from a raw string.

    List keys append the value; string keys must be a plain identifier.
    """
    if key not in CONFIG_SCHEMA:
        raise KeyError(f"Unknown config key: {key}")

    schema = CONFIG_SCHEMA[key]

    if schema.type is str:
        if not raw.isidentifier():
            raise ValueError(f"Expected an identifier for {key}, got: {raw}")
        config[key] = raw
    elif schema.type is list:
        config.setdefault(key, [])
        if raw not in config[key]:
            config[key].append(raw)
    else:
        config[key] = raw


def unset_config_value(config: dict, key: str) -> None:
    """Reset a config key to its default value."""
    if key not in CONFIG_SCHEMA:
        raise KeyError(f"Unknown config key: {key}")
    config[key] = _copy_default(CONFIG_SCHEMA[key].default)
