"""Cooperative cancellation and supervision of the monitor's loops."""

from __future__ import annotations

import signal
import threading
from concurrent.futures import Future, wait
from typing import Callable, Dict, Iterable, List, Mapping

import structlog

from .background import run_in_thread
from .errors import Cancelled, DeadlineExceeded

SHUTDOWN_GRACE_PERIOD = 3.0
SIGNAL_POLL_INTERVAL = 0.2

Unit = Callable[["Cancellation"], None]


class Cancellation:
    """A cancellation signal that can be linked to a parent and a deadline.

    Cancelling a parent cancels every child with the parent's reason. The
    first call to :meth:`cancel` decides the reason; later calls are ignored.
    """

    def __init__(self, parent: "Cancellation | None" = None, *, timeout: float | None = None) -> None:
        self._parent = parent
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._reason: BaseException | None = None
        self._children: List[Cancellation] = []
        self._timer: threading.Timer | None = None
        if timeout is not None:
            self._timer = threading.Timer(timeout, self.cancel, args=(DeadlineExceeded("deadline exceeded"),))
            self._timer.daemon = True
            self._timer.start()
        if parent is not None:
            parent._adopt(self)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> BaseException | None:
        return self._reason

    def child(self, *, timeout: float | None = None) -> "Cancellation":
        return Cancellation(self, timeout=timeout)

    def cancel(self, reason: BaseException | None = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason if reason is not None else Cancelled("cancelled")
            children, self._children = self._children, []
            self._event.set()
        if self._timer is not None:
            self._timer.cancel()
        for child in children:
            child.cancel(self._reason)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or *timeout* elapses; return True if cancelled."""

        return self._event.wait(timeout)

    def detach(self) -> None:
        """Stop following the parent; a finished child is no longer referenced by it."""

        parent, self._parent = self._parent, None
        if parent is not None:
            parent._forget(self)

    def _adopt(self, child: "Cancellation") -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.append(child)
                return
            reason = self._reason
        child.cancel(reason)

    def _forget(self, child: "Cancellation") -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)


class Supervisor:
    """Run independent loops until one fails or the caller cancels."""

    def __init__(self, units: Mapping[str, Unit], *, grace_period: float = SHUTDOWN_GRACE_PERIOD) -> None:
        self._units = dict(units)
        self._grace_period = grace_period

    def run(self, cancellation: Cancellation) -> BaseException | None:
        """Run every unit and return why the run ended.

        The result is the first exception raised by a unit, or the
        cancellation's reason when none failed. After signalling the units to
        stop, at most the grace period is spent waiting for them to exit.
        """

        log = structlog.get_logger()
        scope = cancellation.child()
        try:
            futures: Dict[str, Future] = {}
            for name, unit in self._units.items():
                future = run_in_thread(unit, scope, name=name)
                future.add_done_callback(_cancel_on_error(scope))
                futures[name] = future

            scope.wait()
            # A failing unit cancels the scope with its own exception, so the
            # scope's reason is either that first error or the caller's reason.
            result = scope.reason
            if not isinstance(result, Cancelled):
                log.error("supervised_unit_failed", error=str(result))

            _, pending = wait(futures.values(), timeout=self._grace_period)
            if pending:
                stuck = sorted(name for name, future in futures.items() if future in pending)
                log.warning("shutdown_grace_period_elapsed", units=stuck, grace_period=self._grace_period)
            return result
        finally:
            scope.detach()


def _cancel_on_error(scope: Cancellation) -> Callable[[Future], None]:
    def callback(future: Future) -> None:
        error = future.exception()
        if error is not None:
            scope.cancel(error)

    return callback


def run_until_signalled(
    run: Callable[[Cancellation], BaseException | None],
    cancellation: Cancellation,
    *,
    signals: Iterable[int] = (signal.SIGINT, signal.SIGTERM),
    poll_interval: float = SIGNAL_POLL_INTERVAL,
) -> BaseException | None:
    """Call ``run(cancellation)`` on a worker thread until it returns.

    The installed handlers only record which signal arrived. Cancelling
    happens on the calling thread between polls, never from inside a handler
    that may have interrupted a lock holder. Previous handlers are restored
    on return.
    """

    received: List[int] = []

    def _record(signum, _frame) -> None:
        received.append(signum)

    previous = {signum: signal.signal(signum, _record) for signum in signals}
    try:
        future = run_in_thread(run, cancellation, name="supervisor")
        while True:
            try:
                return future.result(timeout=poll_interval)
            except TimeoutError:
                if received and not cancellation.cancelled:
                    cancellation.cancel(Cancelled(f"received {signal.Signals(received[0]).name}"))
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
