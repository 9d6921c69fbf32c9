"""Translation of Slack slash commands into Brigade events."""

from __future__ import annotations

from typing import Any, Dict

import structlog

from .brigade import EventsClient
from .errors import EventCreationError, MessageRenderError
from .messages import build_ack_message, render
from .models import APP_ID_QUALIFIER, EVENT_SOURCE, TRACKING_KEY, Event, SlashCommand, SourceState


def event_type_for(command: str) -> str:
    """Strip exactly one leading slash from *command*."""

    return command[1:] if command.startswith("/") else command


def build_event(command: SlashCommand) -> Event:
    """Build the Brigade event emitted for *command*."""

    labels = {
        "teamID": command.team_id,
        "channelID": command.channel_id,
        "userID": command.user_id,
    }
    # Only Enterprise Grid workspaces send an enterprise ID.
    if command.enterprise_id:
        labels["enterpriseID"] = command.enterprise_id
    return Event(
        source=EVENT_SOURCE,
        type=event_type_for(command.command),
        # Several apps in one workspace may share a command name, so events
        # are qualified by the app that produced them.
        qualifiers={APP_ID_QUALIFIER: command.api_app_id},
        labels=labels,
        source_state=SourceState(state={TRACKING_KEY: "true"}),
        payload=command.text,
    )


class SlashCommandService:
    """Emit events for slash commands and acknowledge them."""

    def __init__(self, events_client: EventsClient) -> None:
        self._events_client = events_client

    def handle(self, command: SlashCommand) -> Dict[str, Any]:
        """Emit the command's event and return the acknowledgement payload."""

        log = structlog.get_logger().bind(
            app_id=command.api_app_id,
            command=command.command,
            channel=command.channel_id,
        )
        event = build_event(command)
        try:
            events = self._events_client.create(event)
        except Exception as exc:
            raise EventCreationError(
                f"error emitting event(s) into Brigade: {exc}", app_id=command.api_app_id
            ) from exc
        log.info(
            "events_created",
            event_type=event.type,
            event_ids=[created.id for created in events.items],
        )
        return build_ack_message(channel=command.channel_id, events=events.items)

    def render(self, command: SlashCommand) -> bytes:
        """Handle *command* and serialise the acknowledgement."""

        message = self.handle(command)
        try:
            return render(message)
        except (TypeError, ValueError) as exc:
            raise MessageRenderError(f"error rendering response: {exc}", app_id=command.api_app_id) from exc
