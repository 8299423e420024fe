"""Tests for the structured logging system (inventory_kernel/logging_config.py)."""

import json
import logging
from datetime import UTC, datetime
from io import StringIO

import pytest

from inventory_kernel.domain.lifecycle import ItemStatus
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's setup."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "inventory_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("units_received", extra={"created": 3, "sku": "CAM-001"})

        record = _parse_log(stream)
        assert record["created"] == 3
        assert record["sku"] == "CAM-001"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(checkout_id="chk-1", school_id="sch-1")
        get_logger("test").info("scan")

        record = _parse_log(stream)
        assert record["checkout_id"] == "chk-1"
        assert record["school_id"] == "sch-1"
        assert "item_id" not in record

    def test_enum_and_datetime_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        when = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)
        get_logger("test").info("moved", extra={"to_status": ItemStatus.ASSIGNED, "at": when})

        record = _parse_log(stream)
        assert record["to_status"] == "assigned"
        assert record["at"] == when.isoformat()

    def test_dataclass_serialized(self):
        from inventory_kernel.domain.dtos import PartialFailure

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        partial = PartialFailure("receive", "store down", committed=("item:a",), pending=("item:2",))
        get_logger("test").warning("receive_partial", extra={"partial": partial})

        record = _parse_log(stream)
        assert record["partial"]["operation"] == "receive"
        assert record["partial"]["pending"] == ["item:2"]

    def test_kernel_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        from inventory_kernel.exceptions import OptimisticLockError

        try:
            raise OptimisticLockError("inventory_items", "item-1", 2, 3)
        except OptimisticLockError:
            get_logger("test").error("conflict", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "OptimisticLockError"
        assert record["exc_code"] == "OPTIMISTIC_LOCK_CONFLICT"
        assert record["exc_entity_id"] == "item-1"
        assert record["exc_expected_revision"] == 2
        assert record["exc_actual_revision"] == 3
        assert "traceback" in record

    def test_level_filtering(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second")
        logger.debug("third")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first", "second"]

    def test_configure_is_idempotent(self):
        first, first_stream = _make_handler()
        second, second_stream = _make_handler()
        configure_logging(handler=first)
        configure_logging(handler=second)
        get_logger("test").info("once")

        assert len(_parse_all_logs(first_stream)) == 1
        assert second_stream.getvalue() == ""


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_set_and_clear(self):
        LogContext.set(performed_by="Dana", item_id="item-1")
        assert LogContext.get_all() == {"performed_by": "Dana", "item_id": "item-1"}
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        LogContext.set(school_id="outer")
        with LogContext.bind(school_id="inner", checkout_id="chk"):
            assert LogContext.get_all() == {"school_id": "inner", "checkout_id": "chk"}
        assert LogContext.get_all() == {"school_id": "outer"}

    def test_bind_ignores_none(self):
        with LogContext.bind(item_id=None, school_id="sch-1"):
            assert LogContext.get_all() == {"school_id": "sch-1"}
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(event_id="evt-1")
        with pytest.raises(TypeError):
            with LogContext.bind(nonsense="x"):
                pass
