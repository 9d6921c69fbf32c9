"""Structlog configuration helpers for structured logging."""

from __future__ import annotations

import logging
import sys

import structlog

LOG_LEVEL = logging.INFO


def _component_adder(component: str):
    def add_component(_logger, _method_name, event_dict):
        event_dict.setdefault("component", component)
        return event_dict

    return add_component


def configure_logging(*, component: str | None = None) -> None:
    """Configure structlog to emit JSON-formatted logs.

    When *component* is given every log line carries it, which keeps the
    receiver's and the monitor's output apart in aggregated logs.
    """

    timestamper = structlog.processors.TimeStamper(fmt="iso")
    processors = [structlog.contextvars.merge_contextvars]
    if component:
        processors.append(_component_adder(component))
    processors.extend(
        [
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    )
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=LOG_LEVEL, stream=sys.stdout, format="%(message)s")
