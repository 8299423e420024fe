"""
EngineConfig schema.

The frozen runtime settings of the reconciliation engine.  YAML files are
parsed into this type by the loader; nothing else constructs it from raw
data.
"""

from __future__ import annotations

from dataclasses import dataclass

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class EngineConfig:
    """Runtime settings for one engine instance."""

    config_id: str = "default"
    version: int = 1
    database_url: str = "sqlite:///inventory.db"
    log_level: str = "INFO"
    scan_cooldown_seconds: float = 2.0
    max_write_retries: int = 3
    recent_receipts_limit: int = 5
    default_performer: str = "Unknown"
    po_number_prefix: str = "PO"
    school_order_prefix: str = "SO"
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")
        if self.scan_cooldown_seconds < 0:
            raise ValueError("scan_cooldown_seconds must be >= 0")
        if self.max_write_retries < 1:
            raise ValueError("max_write_retries must be >= 1")
        if self.recent_receipts_limit < 0:
            raise ValueError("recent_receipts_limit must be >= 0")
        if not self.default_performer.strip():
            raise ValueError("default_performer must not be blank")
        if not self.po_number_prefix.strip():
            raise ValueError("po_number_prefix must not be blank")
        if not self.school_order_prefix.strip():
            raise ValueError("school_order_prefix must not be blank")
