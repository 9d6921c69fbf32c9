"""Utilities for running long-lived background units."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from contextvars import copy_context
from typing import Any, Callable

from structlog.contextvars import bind_contextvars


def run_in_thread(
    func: Callable[..., Any],
    /,
    *args: Any,
    name: str | None = None,
    **kwargs: Any,
) -> Future:
    """Run *func* on a new daemon thread and return a Future for its outcome.

    The caller's structlog context is copied into the thread, with ``unit``
    bound to *name*. Daemon threads never hold up interpreter exit, so a
    unit that ignores cancellation cannot block shutdown.
    """

    future: Future = Future()
    context = copy_context()
    if name is not None:
        context.run(bind_contextvars, unit=name)

    def runner() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = context.run(func, *args, **kwargs)
        except BaseException as exc:  # handed to whoever joins the future
            future.set_exception(exc)
        else:
            future.set_result(result)

    threading.Thread(target=runner, name=name, daemon=True).start()
    return future
