"""
School source configuration.

One JSON file per school, e.g.:

    {
        "dialect": "html-table",
        "urls": [{"url": "https://example.org/plan/subst_001.htm", "following": true}],
        "encoding": "ISO-8859-1",
        "classes": ["5a", "5b"],
        "colors": {"red": ["Ausfall"]},
        "login": {"url": "https://example.org/login", "data": {"user": "x", "password": "y"}}
    }

Keys that are not understood are ignored. Wrong types raise ConfigError.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from vertretungsplan.dialects import DIALECTS
from vertretungsplan.errors import ConfigError
from vertretungsplan.pipeline import Descriptor


logger = logging.getLogger(__name__)


@dataclass
class SourceConfig:
    urls: List[Descriptor]
    dialect: str = "html-table"
    hints: Dict[str, Any] = field(default_factory=dict)
    website: Optional[str] = None
    strict: bool = False
    classes: List[str] = field(default_factory=list)
    colors: Dict[str, List[str]] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    login: Optional[Dict[str, Any]] = None


def _expect(data: Dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = data.get(key, default)
    if value is not None and not isinstance(value, kind):
        raise ConfigError(f"{key!r} must be of type {kind.__name__}")
    return value


def _dialect_name(value: Any, where: str) -> str:
    if value not in DIALECTS:
        raise ConfigError(f"{where}: unknown dialect {value!r}")
    return value


def _colors(value: Any) -> Dict[str, List[str]]:
    # {"red": ["Entfall", ...]}: every color maps to a list of type names
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError("'colors' must be of type dict")
    for color, types in value.items():
        if not isinstance(types, list) or not all(isinstance(t, str) for t in types):
            raise ConfigError(f"'colors': {color!r} must map to a list of type names")
    return value


def _descriptor(entry: Any, encoding: Optional[str]) -> Descriptor:
    # plain strings are allowed as a shorthand for {"url": ...}
    if isinstance(entry, str):
        entry = {"url": entry}
    if not isinstance(entry, dict) or not isinstance(entry.get("url"), str) or not entry["url"].strip():
        raise ConfigError(f"Invalid url entry: {entry!r}")

    dialect = entry.get("dialect")
    if dialect is not None:
        _dialect_name(dialect, entry["url"])

    return Descriptor(
        url=entry["url"].strip(),
        encoding=_expect(entry, "encoding", str, encoding),
        follow=bool(entry.get("following", entry.get("follow", False))),
        dialect=dialect,
        hints=_expect(entry, "hints", dict, None) or {},
        headers=_expect(entry, "headers", dict, None) or {},
    )


def config_from_dict(data: Any) -> SourceConfig:
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")

    urls = _expect(data, "urls", list, None)
    if not urls:
        raise ConfigError("Configuration needs at least one entry in 'urls'")

    encoding = _expect(data, "encoding", str, None)
    login = _expect(data, "login", dict, None)
    if login is not None and not isinstance(login.get("url"), str):
        raise ConfigError("'login' needs a 'url'")

    strict = data.get("strict", data.get("forceAllPages", False))

    return SourceConfig(
        urls=[_descriptor(entry, encoding) for entry in urls],
        dialect=_dialect_name(data.get("dialect", "html-table"), "config"),
        hints=_expect(data, "hints", dict, None) or {},
        website=_expect(data, "website", str, None),
        strict=bool(strict),
        classes=[str(c) for c in _expect(data, "classes", list, None) or []],
        colors=_colors(data.get("colors")),
        headers=_expect(data, "headers", dict, None) or {},
        login=login,
    )


def load_config(path: str | Path) -> SourceConfig:
    """
    Read and validate a school configuration file.
    """
    config_path = Path(path)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration not found: {config_path}") from e
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read configuration {config_path}: {e}") from e

    config = config_from_dict(data)
    logger.debug("Loaded %s: %d url(s), dialect %s", config_path, len(config.urls), config.dialect)
    return config
