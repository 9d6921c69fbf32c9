"""Slack gateway package initialisation."""

from importlib import metadata

from .apps import AppRegistration, AppRegistry, load_app_registry  # noqa: F401
from .config import (  # noqa: F401
    get_api_client_settings,
    get_monitor_settings,
    get_receiver_settings,
)
from .logging_config import configure_logging  # noqa: F401
from .models import Event, EventList, SlashCommand, SourceState  # noqa: F401


def load_version() -> str:
    try:
        return metadata.version("slack-gateway")
    except metadata.PackageNotFoundError:
        return "unknown"


__all__ = [
    "AppRegistration",
    "AppRegistry",
    "load_app_registry",
    "get_api_client_settings",
    "get_monitor_settings",
    "get_receiver_settings",
    "configure_logging",
    "Event",
    "EventList",
    "SlashCommand",
    "SourceState",
    "load_version",
]
