"""Pydantic-based configuration helpers for the Slack gateway."""

from __future__ import annotations

import os
import re
from functools import lru_cache
from typing import Iterable, List, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

DEFAULT_INTERVAL = 30.0

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str | float | int) -> float:
    """Parse a Go-style duration such as ``30s`` or ``1h30m`` into seconds."""

    if isinstance(value, (int, float)):
        return float(value)
    text = value.strip()
    if text == "0":
        return 0.0
    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()
    if not text or position != len(text):
        raise ValueError(f"value {value!r} was not parsable as a duration")
    return total


class ApiClientSettings(BaseModel):
    """Connection settings for the Brigade API."""

    address: str = Field(..., alias="API_ADDRESS")
    token: str = Field(..., alias="API_TOKEN")
    ignore_cert_warnings: bool = Field(False, alias="API_IGNORE_CERT_WARNINGS")


class ReceiverSettings(BaseModel):
    """Settings for the slash command receiver."""

    slack_apps_path: str = Field(..., alias="SLACK_APPS_PATH")
    port: int = Field(8080, alias="PORT")
    tls_enabled: bool = Field(False, alias="TLS_ENABLED")
    tls_cert_path: str | None = Field(None, alias="TLS_CERT_PATH")
    tls_key_path: str | None = Field(None, alias="TLS_KEY_PATH")

    @model_validator(mode="after")
    def _require_tls_files(self):
        if self.tls_enabled:
            missing = [
                name
                for name, value in (("TLS_CERT_PATH", self.tls_cert_path), ("TLS_KEY_PATH", self.tls_key_path))
                if not value
            ]
            if missing:
                raise ValueError(f"{_format_missing(missing)} required when TLS_ENABLED is true")
        return self


class MonitorSettings(BaseModel):
    """Settings for the event status monitor."""

    slack_apps_path: str = Field(..., alias="SLACK_APPS_PATH")
    list_events_interval: float = Field(DEFAULT_INTERVAL, alias="LIST_EVENTS_INTERVAL")
    healthcheck_interval: float = Field(DEFAULT_INTERVAL, alias="HEALTHCHECK_INTERVAL")

    @field_validator("list_events_interval", "healthcheck_interval", mode="before")
    @classmethod
    def _parse_interval(cls, value):
        return parse_duration(value)

    @field_validator("list_events_interval", "healthcheck_interval")
    @classmethod
    def _ensure_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("intervals must be greater than zero")
        return value


def _format_missing(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of missing env vars."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


SettingsT = TypeVar("SettingsT", bound=BaseModel)


def _load(model: Type[SettingsT]) -> SettingsT:
    try:
        return model.model_validate(os.environ)
    except ValidationError as exc:
        missing = [str(error["loc"][0]) for error in exc.errors() if error["type"] == "missing"]
        if missing:
            message = f"Missing required environment variables: {_format_missing(missing)}"
        else:
            message = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
                for error in exc.errors()
            )
            message = f"Invalid environment variables: {message}"
        raise RuntimeError(message) from exc


@lru_cache()
def get_api_client_settings() -> ApiClientSettings:
    """Fetch and cache Brigade API settings from environment variables."""

    return _load(ApiClientSettings)


@lru_cache()
def get_receiver_settings() -> ReceiverSettings:
    return _load(ReceiverSettings)


@lru_cache()
def get_monitor_settings() -> MonitorSettings:
    return _load(MonitorSettings)
