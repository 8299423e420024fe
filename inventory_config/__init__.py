"""
inventory_config -- single public entrypoint for engine configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains settings.
    No service reads configuration files or environment variables itself.

Failure modes:
    - ``FileNotFoundError`` -- the override file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful call emits an ``INVENTORY_CONFIG_TRACE`` log entry with
    the config id, version and checksum of the merged source.
"""

from __future__ import annotations

import logging
from pathlib import Path

from inventory_config.loader import load_yaml_file, merge_layers, parse_engine_config
from inventory_config.schema import EngineConfig

_logger = logging.getLogger("inventory_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
_DEFAULT_SET = "default.yaml"


def get_active_config(
    path: Path | str | None = None,
    config_dir: Path | None = None,
) -> EngineConfig:
    """
    Load the default configuration set, optionally overridden by ``path``.

    Args:
        path: YAML file whose keys override the default set.
        config_dir: Directory holding ``default.yaml``.  Defaults to
            ``inventory_config/sets/``.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    layers = [load_yaml_file(sets_dir / _DEFAULT_SET)]
    if path is not None:
        layers.append(load_yaml_file(Path(path)))

    config = parse_engine_config(merge_layers(*layers))

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "override_path": str(path) if path is not None else None,
        },
    )
    return config


from inventory_config.bridges import build_reconciliation_engine  # noqa: E402

__all__ = ["EngineConfig", "build_reconciliation_engine", "get_active_config"]
