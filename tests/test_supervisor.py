"""Tests for cancellation and unit supervision."""

from __future__ import annotations

import os
import signal
import threading
import time

from structlog.testing import capture_logs

from slack_gateway.errors import Cancelled, DeadlineExceeded
from slack_gateway.supervisor import Cancellation, Supervisor, run_until_signalled


def _wait_for_cancellation(cancellation: Cancellation) -> None:
    cancellation.wait()


def test_cancelling_parent_cancels_children_with_same_reason():
    parent = Cancellation()
    child = parent.child()
    grandchild = child.child()
    reason = Cancelled("received SIGTERM")

    parent.cancel(reason)

    assert child.cancelled and grandchild.cancelled
    assert child.reason is reason
    assert grandchild.reason is reason


def test_cancelling_child_leaves_parent_running():
    parent = Cancellation()
    child = parent.child()

    child.cancel()

    assert child.cancelled
    assert not parent.cancelled


def test_child_of_cancelled_parent_starts_cancelled():
    parent = Cancellation()
    parent.cancel(Cancelled("stop"))

    child = parent.child()

    assert child.cancelled
    assert str(child.reason) == "stop"


def test_first_reason_wins():
    cancellation = Cancellation()

    cancellation.cancel(Cancelled("first"))
    cancellation.cancel(Cancelled("second"))

    assert str(cancellation.reason) == "first"


def test_deadline_cancels_with_deadline_exceeded():
    cancellation = Cancellation(timeout=0.05)

    assert cancellation.wait(timeout=2)
    assert isinstance(cancellation.reason, DeadlineExceeded)


def test_unit_error_ends_run_while_other_unit_is_idle():
    stopped = threading.Event()

    def idle(cancellation):
        cancellation.wait()
        stopped.set()

    def failing(_cancellation):
        raise RuntimeError("something went wrong")

    result = Supervisor({"idle": idle, "failing": failing}).run(Cancellation())

    assert isinstance(result, RuntimeError)
    assert str(result) == "something went wrong"
    assert stopped.wait(timeout=1)


def test_caller_deadline_is_returned():
    cancellation = Cancellation(timeout=0.05)

    result = Supervisor({"a": _wait_for_cancellation, "b": _wait_for_cancellation}).run(cancellation)

    assert isinstance(result, DeadlineExceeded)
    assert result is cancellation.reason


def test_unit_returning_normally_does_not_end_the_run():
    cancellation = Cancellation(timeout=0.2)

    started = time.monotonic()
    result = Supervisor({"quick": lambda _c: None, "idle": _wait_for_cancellation}).run(cancellation)

    assert isinstance(result, DeadlineExceeded)
    assert time.monotonic() - started >= 0.15


def test_stuck_unit_is_abandoned_after_grace_period():
    release = threading.Event()

    def stuck(_cancellation):
        release.wait()

    cancellation = Cancellation()
    cancellation.cancel(Cancelled("received SIGINT"))

    started = time.monotonic()
    with capture_logs() as logs:
        result = Supervisor({"stuck": stuck}, grace_period=0.1).run(cancellation)
    elapsed = time.monotonic() - started
    release.set()

    assert str(result) == "received SIGINT"
    assert elapsed < 2
    warnings = [entry for entry in logs if entry["event"] == "shutdown_grace_period_elapsed"]
    assert warnings and warnings[0]["units"] == ["stuck"]


def test_unit_error_is_returned_even_if_other_unit_never_stops():
    release = threading.Event()

    def stuck(_cancellation):
        release.wait()

    def failing(_cancellation):
        raise RuntimeError("boom")

    started = time.monotonic()
    with capture_logs() as logs:
        result = Supervisor({"stuck": stuck, "failing": failing}, grace_period=0.2).run(Cancellation())
    elapsed = time.monotonic() - started
    release.set()

    assert isinstance(result, RuntimeError)
    assert str(result) == "boom"
    assert elapsed < 1
    warnings = [entry for entry in logs if entry["event"] == "shutdown_grace_period_elapsed"]
    assert warnings and warnings[0]["units"] == ["stuck"]


def test_run_releases_its_scope_from_the_caller():
    parent = Cancellation()

    def failing(_cancellation):
        raise RuntimeError("boom")

    for _ in range(3):
        Supervisor({"failing": failing}).run(parent)

    assert parent._children == []
    assert not parent.cancelled


def test_detached_child_ignores_later_parent_cancellation():
    parent = Cancellation()
    child = parent.child()

    child.detach()
    parent.cancel(Cancelled("stop"))

    assert not child.cancelled


def test_signal_cancels_run_from_calling_thread():
    previous = signal.getsignal(signal.SIGTERM)
    seen: dict[str, str] = {}

    def run(cancellation):
        # Handlers are installed before the run starts.
        os.kill(os.getpid(), signal.SIGTERM)
        cancellation.wait(timeout=5)
        seen["thread"] = threading.current_thread().name
        return cancellation.reason

    result = run_until_signalled(run, Cancellation(), poll_interval=0.05)

    assert isinstance(result, Cancelled)
    assert str(result) == "received SIGTERM"
    assert seen["thread"] == "supervisor"
    assert signal.getsignal(signal.SIGTERM) == previous


def test_run_until_signalled_returns_result_without_signal():
    error = RuntimeError("bus down")

    result = run_until_signalled(lambda _cancellation: error, Cancellation(), poll_interval=0.05)

    assert result is error
