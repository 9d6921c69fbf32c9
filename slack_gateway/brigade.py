"""Client for the Brigade v2 REST API.

Only the handful of calls the gateway needs are implemented. The protocols
below are what the rest of the package depends on; tests substitute their own
implementations.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol

import httpx
import structlog

from .config import ApiClientSettings
from .errors import BrigadeApiError
from .models import Event, EventList, EventsSelector, ListOptions, SourceState

DEFAULT_TIMEOUT = 10.0


class EventsClient(Protocol):
    def list(self, selector: EventsSelector, options: ListOptions) -> EventList: ...

    def create(self, event: Event) -> EventList: ...

    def update_source_state(self, event_id: str, source_state: SourceState) -> None: ...


class SystemClient(Protocol):
    def ping(self) -> None: ...


def _selector_params(selector: EventsSelector, options: ListOptions) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if selector.source:
        params["source"] = selector.source
    if selector.worker_phases:
        params["workerPhases"] = ",".join(selector.worker_phases)
    if selector.source_state:
        params["sourceState"] = ",".join(f"{key}={value}" for key, value in sorted(selector.source_state.items()))
    if options.limit:
        params["limit"] = options.limit
    if options.continue_:
        params["continue"] = options.continue_
    return params


class BrigadeClient:
    """Synchronous Brigade API client implementing both client protocols."""

    def __init__(
        self,
        address: str,
        token: str,
        *,
        verify: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._http = httpx.Client(
            base_url=address,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            verify=verify,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: ApiClientSettings) -> "BrigadeClient":
        if settings.ignore_cert_warnings:
            structlog.get_logger().warning("brigade_tls_verification_disabled", api_address=settings.address)
        return cls(settings.address, settings.token, verify=not settings.ignore_cert_warnings)

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, *, event_id: str | None = None, **kwargs) -> httpx.Response:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise BrigadeApiError(f"error calling {method} {path}: {exc}", event_id=event_id) from exc
        if response.is_error:
            raise BrigadeApiError(
                f"{method} {path} returned status code {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                event_id=event_id,
            )
        return response

    def list(self, selector: EventsSelector, options: ListOptions) -> EventList:
        response = self._request("GET", "/v2/events", params=_selector_params(selector, options))
        return EventList.model_validate(response.json())

    def create(self, event: Event) -> EventList:
        response = self._request("POST", "/v2/events", json=event.to_api())
        return EventList.model_validate(response.json())

    def update_source_state(self, event_id: str, source_state: SourceState) -> None:
        self._request(
            "PUT",
            f"/v2/events/{event_id}/source-state",
            event_id=event_id,
            json=source_state.model_dump(by_alias=True),
        )

    def ping(self) -> None:
        self._request("GET", "/v2/ping")
