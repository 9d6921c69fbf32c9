"""Block Kit message builders for acknowledgements and status updates."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from .models import Event

NO_EVENTS_HEADER = "No Events Created"
EVENTS_CREATED_HEADER = "Events Created for Subscribed Projects:"
NO_SUBSCRIBERS_TEXT = "No projects subscribed to this event."
STATUS_HEADER = "Event Status Update"

Block = Dict[str, Any]


def _plain_text(text: str) -> Dict[str, str]:
    return {"type": "plain_text", "text": text}


def _mrkdwn(text: str) -> Dict[str, str]:
    return {"type": "mrkdwn", "text": text}


def _header(text: str) -> Block:
    return {"type": "header", "text": _plain_text(text)}


def _fields_section(*fields: Dict[str, str]) -> Block:
    return {"type": "section", "fields": list(fields)}


def _text_section(text: str) -> Block:
    return {"type": "section", "text": _plain_text(text)}


def _id_pair_heading() -> Block:
    return _fields_section(_mrkdwn("*Project ID*"), _mrkdwn("*Event ID*"))


def _message(channel: str, blocks: List[Block]) -> Dict[str, Any]:
    return {"response_type": "in_channel", "channel": channel, "blocks": blocks}


def build_ack_message(*, channel: str, events: Sequence[Event]) -> Dict[str, Any]:
    """Acknowledge a slash command by listing the events it created.

    One section per created event follows the column headings, in the order
    the event bus returned them.
    """

    if not events:
        return _message(channel, [_header(NO_EVENTS_HEADER), _text_section(NO_SUBSCRIBERS_TEXT)])

    blocks: List[Block] = [_header(EVENTS_CREATED_HEADER), _id_pair_heading()]
    for event in events:
        blocks.append(_fields_section(_plain_text(event.project_id), _plain_text(event.id)))
    return _message(channel, blocks)


def build_status_message(event: Event) -> Dict[str, Any]:
    """Report an event's terminal worker phase back to its channel."""

    blocks: List[Block] = [
        _header(STATUS_HEADER),
        _id_pair_heading(),
        _fields_section(_plain_text(event.project_id), _plain_text(event.id)),
        _fields_section(_mrkdwn("*Worker Phase*")),
        _fields_section(_plain_text(event.worker_phase)),
    ]
    if event.summary:
        blocks.append(_text_section(event.summary))
    return _message(event.labels.get("channelID", ""), blocks)


def render(message: Dict[str, Any]) -> bytes:
    """Serialise a message payload to JSON bytes."""

    return json.dumps(message).encode("utf-8")
