"""
Configuration loader (``inventory_config.loader``).

Loads YAML files and parses them into ``EngineConfig``.  Runtime callers go
through ``inventory_config.get_active_config()`` instead.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import EngineConfig

_FIELD_TYPES: dict[str, type] = {
    "config_id": str,
    "version": int,
    "database_url": str,
    "log_level": str,
    "scan_cooldown_seconds": float,
    "max_write_retries": int,
    "recent_receipts_limit": int,
    "default_performer": str,
    "po_number_prefix": str,
    "school_order_prefix": str,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def merge_layers(*layers: dict[str, Any]) -> dict[str, Any]:
    """Later layers override earlier ones, key by key (``engine`` sections merged)."""
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
    return merged


def _coerce(name: str, value: Any) -> Any:
    expected = _FIELD_TYPES[name]
    if expected is float and isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if expected is int and isinstance(value, int) and not isinstance(value, bool):
        return value
    if expected is str and isinstance(value, str):
        return value
    raise ValueError(f"{name} must be {expected.__name__}, got {value!r}")


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """
    Build an EngineConfig from a parsed document.

    Accepts ``config_id``/``version`` at the top level and the settings
    under ``engine``.
    """
    known = {f.name for f in fields(EngineConfig)} - {"checksum"}
    raw: dict[str, Any] = {}
    for key in ("config_id", "version"):
        if key in data:
            raw[key] = data[key]
    engine = data.get("engine", {}) or {}
    if not isinstance(engine, dict):
        raise ValueError("engine section must be a mapping")
    raw.update(engine)

    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    values = {name: _coerce(name, value) for name, value in raw.items()}
    if "log_level" in values:
        values["log_level"] = values["log_level"].upper()
    return EngineConfig(**values, checksum=compute_checksum(data))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical input, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
