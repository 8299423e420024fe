"""
Config -> Kernel Bridges.

Turns an EngineConfig into a running ReconciliationEngine.  These live in
inventory_config (the producer) because the kernel must NEVER import
inventory_config.

Usage:
    from inventory_config.bridges import build_reconciliation_engine

    engine = build_reconciliation_engine(get_active_config("site.yaml"))
"""

from __future__ import annotations

from inventory_config.schema import EngineConfig
from inventory_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.logging_config import configure_logging
from inventory_kernel.services.engine import ReconciliationEngine
from inventory_kernel.store.sql_store import SqlDocumentStore


def engine_settings(config: EngineConfig) -> dict[str, object]:
    """Keyword arguments ReconciliationEngine takes from the config."""
    return {
        "scan_cooldown_seconds": config.scan_cooldown_seconds,
        "max_write_retries": config.max_write_retries,
        "recent_receipts_limit": config.recent_receipts_limit,
        "default_performer": config.default_performer,
        "po_number_prefix": config.po_number_prefix,
        "school_order_prefix": config.school_order_prefix,
    }


def build_reconciliation_engine(
    config: EngineConfig | None = None,
    clock: Clock | None = None,
) -> ReconciliationEngine:
    """
    Configure logging, open the database named by the config, create any
    missing tables and return a wired engine.
    """
    if config is None:
        from inventory_config import get_active_config

        config = get_active_config()

    configure_logging(level=config.log_level)
    init_engine_from_url(config.database_url)
    create_tables()

    clock = clock or SystemClock()
    store = SqlDocumentStore(get_session_factory(), clock)
    return ReconciliationEngine(store, clock, **engine_settings(config))
