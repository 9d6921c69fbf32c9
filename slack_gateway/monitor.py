"""Report the outcome of Slack-originated Brigade events back to Slack.

The monitor polls Brigade for events emitted by the gateway whose workers
have reached a terminal phase and that are still flagged for follow-up. For
each one it posts a status message to the originating channel and then clears
the event's source state so it is not reported again.

Delivery is at-least-once: if clearing the source state fails after the
message went out, the event is reported again on the next cycle.
"""

from __future__ import annotations

import sys
from typing import Callable, Dict, Mapping

import structlog
from slack_sdk.errors import SlackApiError, SlackClientError

from . import load_version
from .apps import AppRegistration, AppRegistry, load_app_registry
from .brigade import BrigadeClient, EventsClient, SystemClient
from .config import get_api_client_settings, get_monitor_settings
from .errors import (
    Cancelled,
    DeliveryError,
    EventListingError,
    GatewayError,
    HealthcheckError,
    MessageRenderError,
    PermanentEventFailure,
    SourceStateError,
)
from .logging_config import configure_logging
from .messages import STATUS_HEADER, build_status_message
from .models import EVENT_SOURCE, TRACKING_KEY, Event, EventsSelector, ListOptions, SourceState, WorkerPhase
from .slack_client import SlackClient
from .supervisor import Cancellation, Supervisor, run_until_signalled

LIST_PAGE_SIZE = 100

TRACKED_TERMINAL_EVENTS = EventsSelector(
    source=EVENT_SOURCE,
    # Only report back once an event's worker can no longer change phase.
    worker_phases=list(WorkerPhase.TERMINAL),
    source_state={TRACKING_KEY: "true"},
)


class StatusMonitor:
    """Poll Brigade for finished events and report them to Slack."""

    def __init__(
        self,
        *,
        events_client: EventsClient,
        system_client: SystemClient,
        registry: AppRegistry,
        list_events_interval: float = 30.0,
        healthcheck_interval: float = 30.0,
        slack_client_factory: Callable[[AppRegistration], SlackClient] = SlackClient.for_app,
    ) -> None:
        self._events_client = events_client
        self._system_client = system_client
        self._list_events_interval = list_events_interval
        self._healthcheck_interval = healthcheck_interval
        self._slack_clients: Mapping[str, SlackClient] = {
            app_id: slack_client_factory(app) for app_id, app in registry.items()
        }

    def supervisor(self, **kwargs) -> Supervisor:
        return Supervisor(
            {"healthcheck": self.run_healthcheck_loop, "monitor_events": self.monitor_events},
            **kwargs,
        )

    def run(self, cancellation: Cancellation) -> BaseException | None:
        """Run the event monitor and the healthcheck loop until one fails or is cancelled."""

        return self.supervisor().run(cancellation)

    def monitor_events(self, cancellation: Cancellation) -> None:
        """Poll for reportable events until *cancellation* fires.

        Raises :class:`EventListingError` when events cannot be listed; a
        failure to report an individual event is only logged.
        """

        log = structlog.get_logger()
        while not cancellation.cancelled:
            options = ListOptions(limit=LIST_PAGE_SIZE)
            while True:
                if cancellation.cancelled:
                    return
                try:
                    events = self._events_client.list(TRACKED_TERMINAL_EVENTS, options)
                except Exception as exc:
                    raise EventListingError(f"error listing events: {exc}") from exc

                for event in events.items:
                    if cancellation.cancelled:
                        return
                    try:
                        self.report_event_status(event)
                    except GatewayError as exc:
                        log.error(
                            "event_status_report_failed",
                            event_id=exc.event_id or event.id,
                            app_id=exc.app_id or event.app_id,
                            error_type=type(exc).__name__,
                            error=str(exc),
                        )
                    except Exception:
                        log.exception("event_status_report_crashed", event_id=event.id, app_id=event.app_id)

                if events.metadata.remaining_item_count > 0:
                    options = ListOptions(limit=LIST_PAGE_SIZE, continue_=events.metadata.continue_)
                else:
                    break

            if cancellation.wait(self._list_events_interval):
                return

    def report_event_status(self, event: Event) -> None:
        """Post *event*'s status to Slack and stop tracking it."""

        app_id = event.app_id
        if not app_id:
            raise PermanentEventFailure(f"no slack app ID found in event {event.id!r} qualifiers", event_id=event.id)
        slack_client = self._slack_clients.get(app_id)
        if slack_client is None:
            raise PermanentEventFailure(
                f"no configuration found for app ID {app_id!r} from event {event.id!r} qualifiers",
                event_id=event.id,
                app_id=app_id,
            )
        log = structlog.get_logger().bind(event_id=event.id, app_id=app_id)

        try:
            message = build_status_message(event)
        except (TypeError, ValueError) as exc:
            raise MessageRenderError(
                f"error rendering status message for event {event.id!r}: {exc}", event_id=event.id, app_id=app_id
            ) from exc

        self._deliver(slack_client, event, message, log)

        # A blank source state means we're done following up on the event.
        try:
            self._events_client.update_source_state(event.id, SourceState())
        except Exception as exc:
            raise SourceStateError(
                f"error clearing source state for event {event.id!r}: {exc}", event_id=event.id, app_id=app_id
            ) from exc
        log.info("event_status_reported", worker_phase=event.worker_phase)

    def _deliver(self, slack_client: SlackClient, event: Event, message: Dict, log) -> None:
        try:
            slack_client.post_message(
                channel=message["channel"],
                blocks=message["blocks"],
                text=STATUS_HEADER,
                response_type=message["response_type"],
            )
        except SlackApiError as exc:
            status_code = getattr(exc.response, "status_code", None)
            error_code = exc.response.get("error") if getattr(exc, "response", None) else str(exc)
            if status_code != 200:
                raise DeliveryError(
                    f"error sending slack status message for event {event.id!r}: "
                    f"received status code {status_code}",
                    status_code=status_code,
                    event_id=event.id,
                    app_id=event.app_id,
                ) from exc
            # Slack accepted the request but refused the message. Retrying
            # would not change that, so the event is still cleared.
            log.warning("status_message_rejected", error=error_code, channel=message["channel"])
        except (SlackClientError, OSError) as exc:
            raise DeliveryError(
                f"error sending slack status message for event {event.id!r}: {exc}",
                event_id=event.id,
                app_id=event.app_id,
            ) from exc

    def run_healthcheck_loop(self, cancellation: Cancellation) -> None:
        """Ping the Brigade API every interval; raise :class:`HealthcheckError` on failure."""

        while not cancellation.wait(self._healthcheck_interval):
            try:
                self._system_client.ping()
            except Exception as exc:
                raise HealthcheckError(f"error checking Brigade API server health: {exc}") from exc


def main() -> int:
    """Run the monitor process until it is signalled or fails."""

    configure_logging(component="monitor")
    log = structlog.get_logger()
    log.info("monitor_starting", version=load_version())

    settings = get_monitor_settings()
    client = BrigadeClient.from_settings(get_api_client_settings())
    monitor = StatusMonitor(
        events_client=client,
        system_client=client,
        registry=load_app_registry(settings.slack_apps_path),
        list_events_interval=settings.list_events_interval,
        healthcheck_interval=settings.healthcheck_interval,
    )

    try:
        # SIGINT and SIGTERM cancel the run with a Cancelled reason.
        result = run_until_signalled(monitor.run, Cancellation())
    finally:
        client.close()
    if result is None or isinstance(result, Cancelled):
        log.info("monitor_stopped", reason=str(result))
        return 0
    log.error("monitor_failed", error_type=type(result).__name__, error=str(result))
    return 1


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    sys.exit(main())
