"""Tests for background unit utilities."""

from __future__ import annotations

import threading

import pytest
import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars
from structlog.testing import capture_logs

from slack_gateway.background import run_in_thread


def test_run_in_thread_propagates_structlog_context():
    """Context bound in the caller should be visible within the unit's thread."""

    clear_contextvars()
    bind_contextvars(trace_id="trace-123")
    captured: dict[str, str] = {}

    future = run_in_thread(lambda: captured.update(get_contextvars()))
    future.result(timeout=1)

    assert captured.get("trace_id") == "trace-123"

    clear_contextvars()


def test_run_in_thread_binds_unit_name_without_leaking_it():
    clear_contextvars()
    captured: dict[str, str] = {}

    future = run_in_thread(lambda: captured.update(get_contextvars()), name="healthcheck")
    future.result(timeout=1)

    assert captured.get("unit") == "healthcheck"
    assert "unit" not in get_contextvars()


def test_run_in_thread_tags_logs_with_unit():
    clear_contextvars()

    with capture_logs(processors=[structlog.contextvars.merge_contextvars]) as logs:
        future = run_in_thread(lambda: structlog.get_logger().info("unit_event"), name="monitor_events")
        future.result(timeout=1)

    assert logs, "expected unit_event log to be captured"
    assert logs[0].get("event") == "unit_event"
    assert logs[0].get("unit") == "monitor_events"


def test_run_in_thread_returns_result_and_forwards_arguments():
    future = run_in_thread(lambda a, *, b: a + b, 2, b=3)

    assert future.result(timeout=1) == 5


def test_run_in_thread_reports_exception_on_future():
    def fail():
        raise RuntimeError("boom")

    future = run_in_thread(fail)

    with pytest.raises(RuntimeError, match="boom"):
        future.result(timeout=1)


def test_run_in_thread_uses_daemon_thread():
    seen: dict[str, bool] = {}

    future = run_in_thread(lambda: seen.update(daemon=threading.current_thread().daemon), name="worker")
    future.result(timeout=1)

    assert seen == {"daemon": True}
