"""
Unit tests for the logging subsystem: context propagation, JSON records
and the queue handler lifecycle.
"""

import asyncio
import json
import logging
import queue

import pytest

from src.core.logging.logger import (
    ContextFilter,
    JSONFormatter,
    LogContext,
    _DroppingQueueHandler,
    get_log_context,
    get_logging_health,
    set_log_context,
    setup_logging,
    shutdown_logging,
)


def make_record(msg="hello", **extra):
    return logging.getLogger("tests.logging").makeRecord(
        "tests.logging", logging.INFO, __file__, 1, msg, (), None, extra=extra or None
    )


@pytest.mark.unit
class TestLogContext:
    def test_binds_and_restores(self):
        with LogContext(user_id="u1", operation="open_pack"):
            inside = get_log_context()

        assert inside["user_id"] == "u1"
        assert inside["operation"] == "open_pack"
        assert len(inside["correlation_id"]) == 8
        assert get_log_context() == {}

    def test_nested_context_keeps_correlation_id(self):
        with LogContext(user_id="u1", correlation_id="abc") as outer:
            with LogContext(operation="adjust_balance"):
                inner = get_log_context()
            assert outer.correlation_id == "abc"

        assert inner == {"user_id": "u1", "operation": "adjust_balance", "correlation_id": "abc"}

    def test_set_log_context_ignores_none(self):
        set_log_context(user_id="u2", operation=None)

        assert get_log_context() == {"user_id": "u2"}

    @pytest.mark.asyncio
    async def test_context_is_per_task(self):
        seen = {}

        async def worker(user_id):
            async with LogContext(user_id=user_id):
                await asyncio.sleep(0)
                seen[user_id] = get_log_context()["user_id"]

        await asyncio.gather(worker("a"), worker("b"))

        assert seen == {"a": "a", "b": "b"}


@pytest.mark.unit
class TestRecords:
    def test_json_record_carries_context_and_extra(self):
        record = make_record("Pack opened", instance_id="p_1", rating=91)

        with LogContext(user_id="u1", operation="open_pack", correlation_id="c0ffee00"):
            ContextFilter().filter(record)
        payload = json.loads(JSONFormatter().format(record))

        assert payload["msg"] == "Pack opened"
        assert payload["level"] == "INFO"
        assert payload["user_id"] == "u1"
        assert payload["correlation_id"] == "c0ffee00"
        assert payload["extra"] == {"instance_id": "p_1", "rating": 91}

    def test_explicit_extra_beats_ambient_context(self):
        record = make_record(operation="quick_sell")

        with LogContext(operation="open_pack"):
            ContextFilter().filter(record)

        assert record.operation == "quick_sell"

    def test_unset_context_omitted_from_json(self):
        record = make_record()
        ContextFilter().filter(record)

        payload = json.loads(JSONFormatter().format(record))

        assert "user_id" not in payload
        assert "extra" not in payload


@pytest.mark.unit
class TestLifecycle:
    def test_setup_is_idempotent_and_reversible(self):
        setup_logging()
        setup_logging()

        handlers = [h for h in logging.getLogger().handlers if isinstance(h, _DroppingQueueHandler)]
        assert len(handlers) == 1
        assert get_logging_health().initialized

        shutdown_logging()

        assert not get_logging_health().initialized
        assert not any(
            isinstance(h, _DroppingQueueHandler) for h in logging.getLogger().handlers
        )

    def test_full_queue_drops_instead_of_blocking(self):
        before = get_logging_health().dropped
        handler = _DroppingQueueHandler(queue.Queue(maxsize=1))

        handler.emit(make_record("first"))
        handler.emit(make_record("second"))

        assert get_logging_health().dropped == before + 1
